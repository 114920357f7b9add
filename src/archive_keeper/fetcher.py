"""Download, verify and place archive files."""

import errno
import logging
import os
import secrets
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional

from .common import (
    ChecksumMismatchError, ChecksumType, ConfigurationError,
    SourceUnavailableError, compute_checksum
)
from .config import TransferConfig
from .resource import ArchiveResource
from .sources import Source, SourceScheme
from .transports import Transport, default_transports

logger = logging.getLogger(__name__)


def tempfile_name(resource: ArchiveResource, expected_checksum: Optional[str] = None) -> str:
    """Prefix for the temporary download of ``resource``.

    Uses the expected checksum (explicit, or resolved from ``checksum_url``)
    so concurrent downloads of different archives never share a name;
    otherwise a random token.
    """
    suffix = expected_checksum or resource.explicit_checksum or secrets.token_hex(8)
    return f"{resource.filename}_{suffix}"


@contextmanager
def scoped_tempfile(prefix: str, directory: Optional[Path] = None) -> Iterator[Path]:
    """Yield a fresh temporary file path that is removed on exit."""
    fd, name = tempfile.mkstemp(prefix=prefix, dir=directory)
    os.close(fd)
    path = Path(name)
    try:
        yield path
    finally:
        if path.exists():
            path.unlink()
            logger.debug(f"Removed temporary file {path}")


def move_file_in_place(from_path: Path, to_path: Path) -> None:
    """Move ``from_path`` to ``to_path``, creating parent directories first."""
    to_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        os.replace(from_path, to_path)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        # Different filesystems; fall back to copy and delete
        shutil.move(str(from_path), str(to_path))


class Fetcher:
    """Produces a verified archive at its final path, or fails leaving it untouched."""

    def __init__(
        self,
        transports: Optional[Dict[SourceScheme, Transport]] = None,
        config: Optional[TransferConfig] = None,
    ) -> None:
        if transports is None:
            config = config or TransferConfig()
            transports = default_transports(
                timeout=config.timeout_seconds,
                chunk_size=config.chunk_size,
                aws_command=config.aws_command,
                gsutil_command=config.gsutil_command,
            )
        self.transports = transports

    def transport_for(self, source: Optional[Source]) -> Transport:
        if source is None:
            raise SourceUnavailableError("Unable to fetch archive, the source parameter is nil.")

        transport = self.transports.get(source.scheme)
        if transport is None:
            raise ConfigurationError(
                f"No transport configured for {source.scheme.value} sources",
                source=str(source),
            )
        return transport

    def transfer_download(self, resource: ArchiveResource, expected_checksum: Optional[str] = None) -> Path:
        """Fetch ``resource.source`` and move it to ``resource.path``.

        Args:
            resource: Desired archive state
            expected_checksum: Digest the download must match; required when
                verification is enabled

        Returns:
            Final archive path

        Raises:
            ConfigurationError: If the temp directory override does not exist
            SourceUnavailableError: If the source is missing or the transport fails
            ChecksumMismatchError: If the download does not match the expected digest
        """
        if resource.temp_dir is not None and not resource.temp_dir.is_dir():
            raise ConfigurationError(
                f"Temporary directory {resource.temp_dir} doesn't exist",
                temp_dir=str(resource.temp_dir),
            )

        transport = self.transport_for(resource.source)

        with scoped_tempfile(tempfile_name(resource, expected_checksum), resource.temp_dir) as temp_path:
            logger.info(f"Downloading {resource.source} to {temp_path}")
            transport.fetch(resource.source, temp_path, resource.download_settings)

            if resource.verification_enabled:
                self.verify(temp_path, resource.checksum_type, expected_checksum)

            move_file_in_place(temp_path, resource.path)
            logger.info(f"Placed archive at {resource.path}")

        return resource.path

    def verify(self, temp_path: Path, checksum_type: ChecksumType, expected_checksum: Optional[str]) -> None:
        """Check a download against its expected digest, deleting it on mismatch."""
        if not expected_checksum:
            raise ConfigurationError(
                f"Checksum verification with {checksum_type.value} requires a checksum or checksum_url"
            )

        actual_checksum = compute_checksum(temp_path, checksum_type)
        if actual_checksum != expected_checksum:
            temp_path.unlink()
            logger.warning(f"Checksum mismatch for {temp_path}: expected {expected_checksum}, got {actual_checksum}")
            raise ChecksumMismatchError(expected_checksum, actual_checksum, path=str(temp_path))

        logger.debug(f"Verified {checksum_type.value} checksum {actual_checksum}")
