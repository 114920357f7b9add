"""Tests for standardized error handling."""

import pytest
from archive_keeper.common import (
    ArchiveKeeperError, ConfigurationError, SourceUnavailableError,
    ToolNotFoundError, ChecksumMismatchError, ExtractionError,
    UnsupportedArchiveError, OwnershipError
)


class TestStandardizedErrors:
    """Test standardized error types."""

    def test_base_error(self):
        """Test base ArchiveKeeperError functionality."""
        error = ArchiveKeeperError("Test error", path="/test/path")

        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.context == {"path": "/test/path"}

    @pytest.mark.parametrize("error_class", [
        ConfigurationError,
        SourceUnavailableError,
        ExtractionError,
        OwnershipError,
    ])
    def test_error_inheritance(self, error_class):
        """Test that every error derives from the base error."""
        error = error_class("failed", path="/test/path")

        assert isinstance(error, ArchiveKeeperError)
        assert error.context == {"path": "/test/path"}

    def test_tool_not_found_is_source_unavailable(self):
        """Test that a missing transport tool is a source failure."""
        error = ToolNotFoundError("Tool not found", tool="aws")

        assert isinstance(error, SourceUnavailableError)
        assert error.context["tool"] == "aws"

    def test_unsupported_archive_is_extraction_error(self):
        """Test UnsupportedArchiveError inheritance."""
        assert isinstance(UnsupportedArchiveError("nope"), ExtractionError)

    def test_checksum_mismatch_carries_values(self):
        """Test that the mismatch error reports both digests."""
        error = ChecksumMismatchError("abc123", "def456", path="/tmp/x")

        assert error.expected == "abc123"
        assert error.actual == "def456"
        assert "expected: abc123 actual: def456" in str(error)
        assert error.context == {"path": "/tmp/x"}
