"""Common utilities for archive-keeper."""

from .config import ConfigLoader
from .logging import setup_logging, LogContext
from .logging_config import LoggingConfig
from .errors import (
    ArchiveKeeperError, ConfigurationError, SourceUnavailableError,
    ToolNotFoundError, ChecksumMismatchError, ExtractionError,
    UnsupportedArchiveError, OwnershipError
)
from .checksums import ChecksumType, compute_checksum, find_digest

__all__ = [
    'ConfigLoader',
    'LoggingConfig',
    'setup_logging',
    'LogContext',
    'ArchiveKeeperError',
    'ConfigurationError',
    'SourceUnavailableError',
    'ToolNotFoundError',
    'ChecksumMismatchError',
    'ExtractionError',
    'UnsupportedArchiveError',
    'OwnershipError',
    'ChecksumType',
    'compute_checksum',
    'find_digest',
]
