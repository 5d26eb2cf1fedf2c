from __future__ import annotations

from datetime import datetime, timezone
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys


LOGGER_NAME = "fastmirror"

_LEVEL_ALIASES = {
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


class UtcLevelFormatter(logging.Formatter):
    """Renders ``[2026-01-31 12:00:00.123] [WARN]: message`` with UTC timestamps."""

    def __init__(self) -> None:
        super().__init__("[%(asctime)s] [%(levelname)s]: %(message)s")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        moment = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return moment.strftime("%Y-%m-%d %H:%M:%S.") + f"{moment.microsecond // 1000:03d}"

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        if record.levelno == logging.WARNING:
            record.levelname = "WARN"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def parse_level(name: str) -> int:
    level = _LEVEL_ALIASES.get(name.strip().upper())
    if level is None:
        raise ValueError(f"Unknown log level: {name}")
    return level


def configure_logging(level: str = "INFO", log_file: Path | None = None) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(parse_level(level))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = UtcLevelFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
