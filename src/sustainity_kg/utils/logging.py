"""Logging setup and progress reporting for pipeline runs."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
import logging.handlers
from pathlib import Path
import re
import sys
import time

from ..config.schemas import LoggingConfig
from ..errors import ConfigError

PACKAGE_LOGGER = "sustainity_kg"

# Libraries whose request-level chatter is capped at ``external_level``
EXTERNAL_LOGGERS = ("urllib3", "requests")

_SIZE = re.compile(r"\s*(\d+(?:\.\d+)?)\s*([KMGT]?B)?\s*", re.IGNORECASE)
_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3, "TB": 1024**4}


def level_number(name: str) -> int:
    """Translate a level name such as ``"debug"`` into its number."""
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ConfigError(f"Unknown log level: {name}")
    return level


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """
    Route pipeline logs to stdout and, optionally, a rotating file.

    Replaces the root handlers so repeated runs in one process do not
    duplicate output, and caps the levels of noisy HTTP libraries.

    Returns:
        logging.Logger: The package logger
    """
    config = config or LoggingConfig()
    log_level = level_number(config.level)
    formatter = logging.Formatter(config.format)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.file_path:
        file_path = Path(config.file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=file_path,
                maxBytes=parse_file_size(config.max_file_size),
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    configure_external_loggers(config.external_level)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(log_level)
    return package_logger


def parse_file_size(size_str: str) -> int:
    """
    Parse a size such as ``"10MB"`` or ``"1.5 kb"`` into bytes.

    An empty string means the 10MB default.

    Raises:
        ConfigError: If the size cannot be read
    """
    if not size_str or not size_str.strip():
        return 10 * _UNITS["MB"]

    match = _SIZE.fullmatch(size_str)
    if match is None:
        raise ConfigError(f"Invalid log file size: {size_str!r}")
    number, unit = match.groups()
    return int(float(number) * _UNITS[(unit or "B").upper()])


def configure_external_loggers(level: str | int = logging.WARNING) -> None:
    """Cap the log level of the HTTP libraries used to download dumps."""
    if isinstance(level, str):
        level = level_number(level)
    for logger_name in EXTERNAL_LOGGERS:
        logging.getLogger(logger_name).setLevel(level)


def issue_levels(config: LoggingConfig) -> dict[str, int]:
    """Log level per issue kind, e.g. merge conflicts at debug."""
    return {kind: level_number(name) for kind, name in config.issue_levels.items()}


class ProgressLogger:
    """Reports throughput and counters every ``every`` dump lines."""

    def __init__(
        self,
        every: int,
        counters: Callable[[], Mapping[str, int]],
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if every < 1:
            raise ConfigError("Progress interval must be at least 1")
        self.every = every
        self.counters = counters
        self.logger = logger or logging.getLogger(f"{PACKAGE_LOGGER}.progress")
        self.clock = clock
        self.lines = 0
        self._started = clock()

    def advance(self) -> bool:
        """Count one finished line; return whether a report was logged."""
        self.lines += 1
        if self.lines % self.every:
            return False

        elapsed = max(self.clock() - self._started, 1e-9)
        counts = self.counters()
        details = ", ".join(
            f"{name}={counts[name]}" for name in sorted(counts) if counts[name]
        )
        self.logger.info(
            f"Processed {self.lines} lines ({self.lines / elapsed:.0f}/s)"
            + (f": {details}" if details else "")
        )
        return True
