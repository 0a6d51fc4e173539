"""Logging setup: console output, a rotating main log and the edit audit log.

The audit log only receives the engine's ``Edit ...`` records, so it reads as
a plain history of structural edits and rejected gestures.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

MAIN_LOG_NAME = "novel_tree.log"
EDIT_LOG_NAME = "structure_edits.log"

# Logger that records every structural edit
EDIT_LOGGER_NAME = "structure.engine"


class EditAuditFilter(logging.Filter):
    """Pass only ``Edit:``, ``Edit OK:``, ``Edit noop:`` and ``Edit FAIL:`` records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return str(record.msg).startswith("Edit")


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        str(path),
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _drop_file_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if isinstance(handler, RotatingFileHandler):
            logger.removeHandler(handler)
            handler.close()


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str | Path] = None,
    console_enabled: bool = True,
) -> Path:
    """Configure application-wide logging.

    Args:
        level: Level for the console and main log (e.g., logging.DEBUG).
        log_dir: Directory for log files. Defaults to ./data/logs.
        console_enabled: Whether to also log to stderr.

    Returns:
        The directory the log files are written to.
    """
    log_dir = Path(log_dir or "./data/logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    _drop_file_handlers(root_logger)
    for handler in list(root_logger.handlers):
        if type(handler) is logging.StreamHandler:
            root_logger.removeHandler(handler)

    if console_enabled:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    root_logger.addHandler(_rotating_handler(log_dir / MAIN_LOG_NAME, level, formatter))

    # The audit log keeps INFO edits even when the main level is higher
    edit_logger = logging.getLogger(EDIT_LOGGER_NAME)
    edit_logger.setLevel(logging.INFO)
    _drop_file_handlers(edit_logger)
    edit_handler = _rotating_handler(log_dir / EDIT_LOG_NAME, logging.INFO, formatter)
    edit_handler.addFilter(EditAuditFilter())
    edit_logger.addHandler(edit_handler)

    logging.getLogger(__name__).debug("Logging initialized: level=%s, dir=%s", level, log_dir)
    return log_dir
