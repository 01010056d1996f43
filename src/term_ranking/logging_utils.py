"""
Logging helpers for term_ranking.

Library modules only ask for a namespaced logger. Handlers are attached
once by :func:`configure_logging`, typically from the benchmark CLI.
Console: human readable. File (optional): one JSON object per line,
rotating 10 MB / 5 backups.
"""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER_NAME = "term_ranking"

_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
_BACKUP_COUNT = 5
_CONSOLE_FMT = "%(asctime)s | %(name)-28s | %(levelname)-7s | %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per record: time, level, logger name, message."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger under the ``term_ranking`` namespace.

    Args:
        name: Module name (``__name__``) or a short label.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    level: int = logging.INFO,
    log_dir: str | Path | None = None,
    *,
    console: bool = True,
) -> logging.Logger:
    """
    Attach console and (optionally) JSONL file handlers to the package logger.

    Idempotent: a second call only updates the level.

    Args:
        level: Minimum level for the package logger.
        log_dir: Directory for ``term_ranking.jsonl``; no file handler if None.
        console: Whether to attach a stderr handler.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    logger.propagate = False

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / f"{ROOT_LOGGER_NAME}.jsonl",
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JsonFormatter())
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FMT))
        logger.addHandler(console_handler)

    return logger
