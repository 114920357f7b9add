"""Configuration schema for archive-keeper."""

from pydantic import BaseModel, Field, ConfigDict

from .common import LoggingConfig


class TransferConfig(BaseModel):
    """Settings shared by all download transports."""

    model_config = ConfigDict(extra='forbid')

    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Connect/read timeout for network transports"
    )
    chunk_size: int = Field(
        default=65536,
        ge=1024,
        description="Streaming chunk size in bytes"
    )
    aws_command: str = Field(
        default="aws",
        description="Executable used for s3:// sources"
    )
    gsutil_command: str = Field(
        default="gsutil",
        description="Executable used for gs:// sources"
    )


class KeeperConfig(BaseModel):
    """Root configuration for archive-keeper."""

    model_config = ConfigDict(extra='forbid')

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
