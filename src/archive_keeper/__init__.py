"""Declarative download, verification and extraction of archive files."""

from .common import (
    ArchiveKeeperError, ConfigurationError, SourceUnavailableError,
    ToolNotFoundError, ChecksumMismatchError, ExtractionError,
    UnsupportedArchiveError, OwnershipError, ChecksumType
)
from .extractor import Extractor
from .fetcher import Fetcher
from .oracle import ChecksumOracle
from .reconciler import Action, ArchiveState, ConvergeResult, Ensure, Reconciler, plan
from .resource import ArchiveResource
from .sources import Source, SourceScheme, parse_source
from .staging import detect_default_staging_directory

__version__ = "0.1.0"

__all__ = [
    'ArchiveResource',
    'Reconciler',
    'Fetcher',
    'Extractor',
    'ChecksumOracle',
    'Action',
    'ArchiveState',
    'ConvergeResult',
    'Ensure',
    'plan',
    'Source',
    'SourceScheme',
    'parse_source',
    'detect_default_staging_directory',
    'ChecksumType',
    'ArchiveKeeperError',
    'ConfigurationError',
    'SourceUnavailableError',
    'ToolNotFoundError',
    'ChecksumMismatchError',
    'ExtractionError',
    'UnsupportedArchiveError',
    'OwnershipError',
]
