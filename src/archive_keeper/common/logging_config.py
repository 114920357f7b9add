"""Logging section of the archive-keeper configuration."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoggingConfig(BaseModel):
    """``[logging]`` table: console level and format, optional JSON log file."""

    model_config = ConfigDict(extra='forbid')

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level"
    )
    format: Literal["simple", "detailed", "json"] = Field(
        default="simple",
        description="Console format; the log file is always JSON"
    )
    file: Optional[str] = Field(default=None, description="Log file path, rotated at 10 MB")

    @field_validator('level', mode='before')
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Accept ``info``, ``Debug`` and so on."""
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator('format', mode='before')
    @classmethod
    def normalize_format(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator('file', mode='before')
    @classmethod
    def empty_file_is_none(cls, v: Any) -> Any:
        """An empty string (e.g. from an environment override) disables the file."""
        if isinstance(v, str) and not v.strip():
            return None
        return v
