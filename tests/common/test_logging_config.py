"""Tests for the [logging] configuration table."""

import json
import logging

import pytest
from pydantic import ValidationError
from archive_keeper.common import setup_logging
from archive_keeper.common.logging import SimpleFormatter, StructuredFormatter
from archive_keeper.common.logging_config import LoggingConfig


class TestLoggingConfigDefaults:
    """Test what an empty [logging] table means."""

    def test_console_only_simple_info(self):
        """Test that the default is INFO on a simple console, no file."""
        config = LoggingConfig()

        assert config.level == "INFO"
        assert config.format == "simple"
        assert config.file is None

    def test_round_trip_through_toml_shape(self):
        """Test that a dumped table can be read back unchanged."""
        config = LoggingConfig(level="warning", format="Detailed", file="/var/log/archive-keeper.log")

        assert LoggingConfig(**config.model_dump()) == config
        assert config.model_dump() == {
            "level": "WARNING",
            "format": "detailed",
            "file": "/var/log/archive-keeper.log",
        }


class TestLoggingConfigValidation:
    """Test rejected and normalized values."""

    @pytest.mark.parametrize("raw,expected", [
        ("debug", "DEBUG"),
        (" Error ", "ERROR"),
    ])
    def test_level_normalized(self, raw, expected):
        """Test that levels from env overrides are accepted in any case."""
        assert LoggingConfig(level=raw).level == expected

    @pytest.mark.parametrize("level", ["TRACE", "CRITICAL", "verbose"])
    def test_rejects_unknown_level(self, level):
        with pytest.raises(ValidationError):
            LoggingConfig(level=level)

    def test_format_normalized(self):
        assert LoggingConfig(format="JSON").format == "json"

    def test_rejects_unknown_format(self):
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")

    def test_empty_file_disables(self):
        """Test that ARCHIVE_KEEPER_LOGGING_FILE= turns the log file off."""
        assert LoggingConfig(file="").file is None
        assert LoggingConfig(file="  ").file is None

    def test_rejects_unknown_key(self):
        with pytest.raises(ValidationError):
            LoggingConfig(colour=True)


class TestLoggingConfigApplied:
    """Test the config driving setup_logging."""

    @pytest.fixture
    def root_logger(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        yield root
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])

    def test_file_is_always_json(self, tmp_path, root_logger):
        """Test that the log file gets JSON while the console stays simple."""
        config = LoggingConfig(format="simple", file=str(tmp_path / "keeper.log"))

        setup_logging(level=config.level, format=config.format, log_file=tmp_path / "keeper.log")

        formatters = [type(handler.formatter) for handler in root_logger.handlers]
        assert formatters == [SimpleFormatter, StructuredFormatter]

        logging.getLogger("archive_keeper.reconciler").info("Placed archive")
        for handler in root_logger.handlers:
            handler.flush()
        line = (tmp_path / "keeper.log").read_text(encoding="utf-8").splitlines()[-1]
        assert json.loads(line)["message"] == "Placed archive"

    def test_level_applied(self, root_logger):
        config = LoggingConfig(level="error")

        setup_logging(level=config.level, format=config.format)

        assert root_logger.level == logging.ERROR
