"""Desired state of a managed archive."""

import shlex
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .common import ChecksumType
from .sources import Source, parse_source
from .staging import detect_default_staging_directory
from .transports import DownloadOptions


class ArchiveResource(BaseModel):
    """Everything needed to converge one archive file.

    Instances are immutable; a new one is built for every convergence call.
    When ``path`` is omitted the archive is placed in the default staging
    directory under ``filename`` (or the source's basename).
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    path: Path = Field(description="Final archive location")
    filename: str = Field(description="Archive file name, used to name temp files")
    source: Optional[Source] = Field(default=None, description="Where the archive is fetched from")

    checksum: Optional[str] = Field(default=None, description="Expected digest or 'none'")
    checksum_url: Optional[str] = Field(default=None, description="URL of a file holding the expected digest")
    checksum_type: ChecksumType = Field(default=ChecksumType.NONE)
    checksum_verify: bool = Field(default=True, description="Verify downloads before placing them")

    extract: bool = False
    extract_path: Optional[Path] = None
    extract_command: Optional[str] = Field(
        default=None,
        description="Custom extraction command, '%s' is replaced by the archive path"
    )
    extract_flags: List[str] = Field(default_factory=list)
    cleanup: bool = Field(default=False, description="Remove the archive after extraction")
    creates: Optional[Path] = Field(default=None, description="Marker file present after extraction")
    user: Optional[Union[int, str]] = None
    group: Optional[Union[int, str]] = None

    temp_dir: Optional[Path] = None

    username: Optional[str] = None
    password: Optional[str] = None
    cookie: Optional[str] = None
    proxy_server: Optional[str] = None
    proxy_type: Optional[str] = None
    allow_insecure: bool = False
    download_options: List[str] = Field(default_factory=list)

    @model_validator(mode='before')
    @classmethod
    def default_path_and_filename(cls, data: Any) -> Any:
        """Derive ``filename`` from path or source, and ``path`` from the staging directory."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        path = data.get("path")
        filename = data.get("filename")

        if not filename:
            if path:
                filename = Path(str(path)).name
            elif data.get("source"):
                source = data["source"]
                if not isinstance(source, Source):
                    source = parse_source(str(source))
                filename = source.basename

        if not path:
            if not filename:
                raise ValueError("either 'path' or 'filename' must be given")
            path = Path(str(detect_default_staging_directory())) / filename

        data["path"] = path
        data["filename"] = filename
        return data

    @field_validator('source', mode='before')
    @classmethod
    def parse_source_locator(cls, v: Any) -> Any:
        """Tag plain source strings with their scheme."""
        if isinstance(v, str):
            return parse_source(v)
        return v

    @field_validator('checksum_type', mode='before')
    @classmethod
    def normalize_checksum_type(cls, v: Any) -> Any:
        """Accept checksum types case-insensitively."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('checksum', mode='before')
    @classmethod
    def normalize_checksum(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower() or None
        return v

    @field_validator('extract_flags', 'download_options', mode='before')
    @classmethod
    def split_arguments(cls, v: Any) -> Any:
        """Allow argument lists to be written as one shell-style string."""
        if v is None:
            return []
        if isinstance(v, str):
            return shlex.split(v)
        return v

    @property
    def explicit_checksum(self) -> Optional[str]:
        """Configured digest, ignoring the 'none' sentinel."""
        if self.checksum and self.checksum != "none":
            return self.checksum
        return None

    @property
    def verification_enabled(self) -> bool:
        """Whether downloads are digested before being placed."""
        return self.checksum_verify and self.checksum_type is not ChecksumType.NONE

    @property
    def cleanup_enabled(self) -> bool:
        return self.cleanup and self.extract

    @property
    def download_settings(self) -> DownloadOptions:
        """Auth and transport passthrough for fetches and checksum retrieval."""
        return DownloadOptions(
            username=self.username,
            password=self.password,
            cookie=self.cookie,
            proxy_server=self.proxy_server,
            proxy_type=self.proxy_type,
            allow_insecure=self.allow_insecure,
            extra_args=tuple(self.download_options),
        )
