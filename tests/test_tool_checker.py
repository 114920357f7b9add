"""Tests for bucket CLI availability checks."""

from archive_keeper.config import TransferConfig
from archive_keeper.resource import ArchiveResource
from archive_keeper.tool_checker import check_tool_availability, report_missing_tools


def only(*available):
    return lambda name: f"/usr/bin/{name}" if name in available else None


class TestCheckToolAvailability:
    """Test tool detection."""

    def test_all_available(self):
        assert check_tool_availability(which=only("aws", "gsutil")) == {"aws": True, "gsutil": True}

    def test_configured_command_names(self):
        """Test that configured executables are checked."""
        config = TransferConfig(aws_command="aws2")
        assert check_tool_availability(config, which=only("aws2")) == {"aws2": True, "gsutil": False}


class TestReportMissingTools:
    """Test warnings for tools needed by resources."""

    def test_reports_needed_tool(self, tmp_path, caplog):
        """Test that a missing tool used by a resource is reported once."""
        resources = [
            ArchiveResource(path=tmp_path / "a.zip", source="s3://bucket/a.zip"),
            ArchiveResource(path=tmp_path / "b.zip", source="s3://bucket/b.zip"),
        ]

        missing = report_missing_tools(resources, which=only())

        assert missing == ["aws"]
        assert "Tool not found" in caplog.text

    def test_ignores_unneeded_tool(self, tmp_path):
        """Test that tools no resource uses are not reported."""
        resources = [
            ArchiveResource(path=tmp_path / "a.zip", source="https://example.com/a.zip"),
            ArchiveResource(path=tmp_path / "b.zip"),
        ]

        assert report_missing_tools(resources, which=only()) == []
