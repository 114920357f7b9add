"""Checksum utilities for archive integrity verification."""

import hashlib
import re
from enum import Enum
from pathlib import Path
from typing import Optional

# Constants for checksum calculation
CHECKSUM_CHUNK_SIZE = 65536  # 64 KB chunks

# Hex digests from 32 (md5) up to 128 (sha512) characters
DIGEST_PATTERN = re.compile(r"\b[0-9a-f]{32,128}\b", re.IGNORECASE)


class ChecksumType(Enum):
    """Supported digest algorithms."""
    NONE = "none"
    MD5 = "md5"
    SHA1 = "sha1"
    SHA2 = "sha2"
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"

    @property
    def hashlib_name(self) -> Optional[str]:
        """Name understood by ``hashlib.new``; None for the ``none`` sentinel."""
        if self is ChecksumType.NONE:
            return None
        if self is ChecksumType.SHA2:
            return "sha256"
        return self.value


def compute_checksum(file_path: Path, checksum_type: ChecksumType) -> str:
    """
    Compute the digest of an entire file.

    Args:
        file_path: Path to the file
        checksum_type: Digest algorithm, must not be ``ChecksumType.NONE``

    Returns:
        Lowercase hex digest

    Raises:
        ValueError: If called with ``ChecksumType.NONE``
        OSError: If file cannot be read
    """
    algorithm = checksum_type.hashlib_name
    if algorithm is None:
        raise ValueError("Cannot compute a checksum with checksum type 'none'")

    digest = hashlib.new(algorithm)

    with open(file_path, 'rb') as f:
        while chunk := f.read(CHECKSUM_CHUNK_SIZE):
            digest.update(chunk)

    return digest.hexdigest().lower()


def find_digest(text: str) -> Optional[str]:
    """
    Find the first hex digest in a block of text.

    Checksum files come in many layouts (``<digest>  <name>``,
    ``SHA256 (name) = <digest>``, bare digest); the first standalone run of
    32 to 128 hex characters is taken as the digest.

    Args:
        text: Checksum file content

    Returns:
        Lowercase digest, or None if the text holds no digest
    """
    match = DIGEST_PATTERN.search(text)
    if match is None:
        return None
    return match.group(0).lower()
