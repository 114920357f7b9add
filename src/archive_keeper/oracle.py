"""Local and remote archive digests."""

import logging
from pathlib import Path
from typing import Dict, Optional

from .common import ChecksumType, SourceUnavailableError, compute_checksum, find_digest
from .sources import SourceScheme
from .transports import DownloadOptions, Transport, default_transports, read_remote_text

logger = logging.getLogger(__name__)


class ChecksumOracle:
    """Computes the digest of local files and looks up published digests."""

    def __init__(self, transports: Optional[Dict[SourceScheme, Transport]] = None) -> None:
        self.transports = transports if transports is not None else default_transports()

    def local_checksum(self, path: Path, checksum_type: ChecksumType) -> str:
        digest = compute_checksum(path, checksum_type)
        logger.debug(f"{checksum_type.value} of {path}: {digest}")
        return digest

    def remote_checksum(self, url: str, options: Optional[DownloadOptions] = None) -> str:
        """Fetch ``url`` and return the first hex digest found in it.

        Raises:
            SourceUnavailableError: If the document cannot be read or holds no digest
        """
        text = read_remote_text(url, options or DownloadOptions(), self.transports)
        digest = find_digest(text)
        if digest is None:
            raise SourceUnavailableError(f"No checksum found at {url}", url=url)

        logger.debug(f"Remote checksum from {url}: {digest}")
        return digest
