"""Tests for logging utilities."""

import logging
import logging.handlers
from pathlib import Path

import pytest
from sustainity_kg.config import LoggingConfig
from sustainity_kg.errors import ConfigError, MergeConflict, ParseError
from sustainity_kg.utils.logging import (
    ProgressLogger,
    configure_external_loggers,
    issue_levels,
    parse_file_size,
    setup_logging,
)
from sustainity_kg.utils.stats import RunStats


class TestParseFileSize:
    """Test parse_file_size function."""

    @pytest.mark.parametrize(
        "size,expected",
        [
            ("10MB", 10 * 1024**2),
            ("1.5kb", 1536),
            ("2 GB", 2 * 1024**3),
            ("512B", 512),
            ("4096", 4096),
            ("", 10 * 1024**2),
        ],
    )
    def test_sizes(self, size: str, expected: int) -> None:
        assert parse_file_size(size) == expected

    @pytest.mark.parametrize("size", ["lots", "10 PB", "MB"])
    def test_invalid_sizes(self, size: str) -> None:
        with pytest.raises(ConfigError):
            parse_file_size(size)


@pytest.mark.usefixtures("restore_logging")
class TestSetupLogging:
    """Test setup_logging function."""

    def test_console_only(self) -> None:
        package_logger = setup_logging(LoggingConfig(level="DEBUG"))
        root = logging.getLogger()
        assert package_logger.name == "sustainity_kg"
        assert package_logger.level == logging.DEBUG
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_repeated_setup_does_not_duplicate_handlers(self) -> None:
        setup_logging(LoggingConfig())
        setup_logging(LoggingConfig())
        assert len(logging.getLogger().handlers) == 1

    def test_rotating_file_handler(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "pipeline.log"
        setup_logging(
            LoggingConfig(file_path=log_file, max_file_size="1KB", backup_count=2)
        )

        file_handlers = [
            h
            for h in logging.getLogger().handlers
            if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 1024
        assert file_handlers[0].backupCount == 2

        logging.getLogger("sustainity_kg.test").info("hello")
        file_handlers[0].flush()
        assert "hello" in log_file.read_text(encoding="utf-8")

    def test_external_loggers_follow_config(self) -> None:
        setup_logging(LoggingConfig(external_level="ERROR"))
        assert logging.getLogger("urllib3").level == logging.ERROR

        configure_external_loggers("INFO")
        assert logging.getLogger("requests").level == logging.INFO

    def test_unknown_level(self) -> None:
        with pytest.raises(ConfigError):
            configure_external_loggers("LOUD")


class TestProgressLogger:
    """Test periodic progress reports."""

    def test_reports_every_interval(self, caplog: pytest.LogCaptureFixture) -> None:
        ticks = iter([0.0, 2.0, 4.0])
        progress = ProgressLogger(
            2,
            lambda: {"processed": 4, "skipped": 1, "ambiguous": 0},
            logging.getLogger("sustainity_kg.test.progress"),
            clock=lambda: next(ticks),
        )

        with caplog.at_level(logging.INFO, logger="sustainity_kg.test.progress"):
            reports = [progress.advance() for _ in range(4)]

        assert reports == [False, True, False, True]
        assert progress.lines == 4
        assert caplog.messages == [
            "Processed 2 lines (1/s): processed=4, skipped=1",
            "Processed 4 lines (1/s): processed=4, skipped=1",
        ]

    def test_interval_must_be_positive(self) -> None:
        with pytest.raises(ConfigError):
            ProgressLogger(0, dict)


class TestRunStats:
    """Test the shared counters."""

    def test_counters(self) -> None:
        stats = RunStats()
        stats.increment("processed")
        stats.increment("processed", 2)
        assert stats.get("processed") == 3
        assert stats.get("skipped") == 0
        assert stats.snapshot() == {"processed": 3}

    def test_issue_samples_are_bounded(self) -> None:
        stats = RunStats(max_samples=2)
        for line in range(5):
            stats.record(ParseError("bad json", line))
        stats.record(MergeConflict("Q1", "name", "A", "B"))

        assert stats.get("parse_error") == 5
        assert len(stats.samples("parse_error")) == 2
        assert stats.samples("merge_conflict") == ["Q1.name: kept 'A', dropped 'B'"]

    def test_issue_levels(self, caplog: pytest.LogCaptureFixture) -> None:
        config = LoggingConfig(issue_levels={"parse_error": "ERROR"})
        stats = RunStats(issue_levels=issue_levels(config))

        with caplog.at_level(logging.DEBUG, logger="sustainity_kg.utils.stats"):
            stats.record(ParseError("bad json", 3))
            stats.record(MergeConflict("Q1", "name", "A", "B"))

        assert [r.levelno for r in caplog.records] == [logging.ERROR, logging.WARNING]
