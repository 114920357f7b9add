"""Error definitions for archive-keeper."""

from typing import Any, Dict


class ArchiveKeeperError(Exception):
    """Base exception for all archive-keeper errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class ConfigurationError(ArchiveKeeperError):
    """A field required by the requested action is missing or invalid."""
    pass


class SourceUnavailableError(ArchiveKeeperError):
    """Archive source is missing or the transport failed."""
    pass


class ToolNotFoundError(SourceUnavailableError):
    """Required external tool is not available."""
    pass


class ChecksumMismatchError(ArchiveKeeperError):
    """Downloaded file digest differs from the expected digest."""

    def __init__(self, expected: str, actual: str, **context: Any) -> None:
        super().__init__(
            f"Download file checksum mismatch (expected: {expected} actual: {actual})",
            **context,
        )
        self.expected = expected
        self.actual = actual


class ExtractionError(ArchiveKeeperError):
    """Failed to extract archive."""
    pass


class UnsupportedArchiveError(ExtractionError):
    """Archive format is not supported."""
    pass


class OwnershipError(ArchiveKeeperError):
    """Extracted content could not be handed to the requested owner."""
    pass
