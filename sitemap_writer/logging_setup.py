from __future__ import annotations

import logging
import logging.config
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(levelname)s | %(asctime)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_level: str = "WARNING",
    log_file: str | Path | None = None,
    file_max_bytes: int = 5 * 1024 * 1024,
    file_backup_count: int = 3,
) -> None:
    """Configure console logging, plus a rotating log file when ``log_file`` is set."""
    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "plain",
        },
    }
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "()": RotatingFileHandler,
            "level": "DEBUG",
            "filename": str(log_path),
            "maxBytes": file_max_bytes,
            "backupCount": file_backup_count,
            "encoding": "utf-8",
            "formatter": "plain",
        }

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": handlers,
        "loggers": {
            "urllib3": {"level": "WARNING"},
        },
        "root": {
            "level": "DEBUG" if log_file else log_level,
            "handlers": list(handlers),
        },
    })
