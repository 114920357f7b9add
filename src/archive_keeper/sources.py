"""Archive source locators."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname


class SourceScheme(Enum):
    """How an archive source is fetched."""
    NATIVE = "native"
    HTTP = "http"
    FTP = "ftp"
    FILE = "file"
    S3 = "s3"
    GS = "gs"
    LOCAL = "local"


# Checked in order; the first matching prefix wins
_PREFIXES = (
    ("puppet", SourceScheme.NATIVE),
    ("http", SourceScheme.HTTP),
    ("ftp", SourceScheme.FTP),
    ("file", SourceScheme.FILE),
    ("s3", SourceScheme.S3),
    ("gs", SourceScheme.GS),
)


@dataclass(frozen=True)
class Source:
    """A source locator tagged with its scheme."""
    scheme: SourceScheme
    locator: str

    def __str__(self) -> str:
        return self.locator

    @property
    def basename(self) -> str:
        """Last path component of the locator."""
        if self.scheme is SourceScheme.LOCAL:
            return Path(self.locator).name
        return Path(urlparse(self.locator).path).name

    def local_path(self) -> Path:
        """Filesystem path for ``file://`` and plain local sources."""
        if self.scheme is SourceScheme.FILE:
            return Path(url2pathname(urlparse(self.locator).path))
        if self.scheme is SourceScheme.LOCAL:
            return Path(self.locator)
        raise ValueError(f"Source {self.locator} is not a local file")


def parse_source(locator: str) -> Source:
    """Tag a source string with its scheme.

    Args:
        locator: URL or filesystem path

    Returns:
        Tagged source; anything without a known prefix is a local path
    """
    for prefix, scheme in _PREFIXES:
        if locator.startswith(prefix):
            return Source(scheme=scheme, locator=locator)
    return Source(scheme=SourceScheme.LOCAL, locator=locator)
