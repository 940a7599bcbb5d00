"""Logging for PocketLedger.

Modules log through ``get_logger(__name__)``; every logger hangs under the
``pocketledger`` root. The library itself installs no handlers. A host
application calls ``setup_logging`` once at startup to get a rotating log
file in the data directory:

    setup_logging(data_dir=Path.home() / ".pocket-ledger")
    logger = get_logger(__name__)
    logger.info("Ledger opened")
"""
import logging
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from config.constants import STORAGE


ROOT_LOGGER_NAME = 'pocketledger'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(
    data_dir: Optional[Path] = None,
    debug: bool = False,
    console_output: bool = False
) -> logging.Logger:
    """Route ``pocketledger`` records to ``<data_dir>/pocket_ledger.log``.

    Calling it again closes and replaces the handlers of the previous call.

    Args:
        data_dir: Directory for the log file. Defaults to ~/.pocket-ledger/
        debug: Record DEBUG messages as well.
        console_output: Echo warnings (everything, with debug) to stderr.

    Returns:
        The ``pocketledger`` logger.
    """
    data_dir = data_dir or Path.home() / STORAGE.DATA_DIR_NAME
    data_dir.mkdir(parents=True, exist_ok=True)
    level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    handlers = [RotatingFileHandler(
        data_dir / STORAGE.LOG_FILE,
        maxBytes=STORAGE.LOG_MAX_BYTES,
        backupCount=STORAGE.LOG_BACKUP_COUNT,
        encoding='utf-8'
    )]
    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level if debug else logging.WARNING)
        handlers.append(console_handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    root_logger.debug(f"Logging to {data_dir / STORAGE.LOG_FILE}")
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Child of the ``pocketledger`` logger for a module.

    Only the last two dotted parts of ``name`` are kept, so
    ``storage.sqlite_store`` logs as ``pocketledger.storage.sqlite_store``.
    """
    short_name = '.'.join(name.split('.')[-2:])
    return logging.getLogger(f'{ROOT_LOGGER_NAME}.{short_name}')


def log_exception(logger: logging.Logger, message: str, exc: Exception) -> None:
    """Log ``exc`` at ERROR with its type and the current traceback."""
    logger.error(f"{message}: {type(exc).__name__}: {exc}", exc_info=True)


class LogContext:
    """Times a block and logs its start and outcome.

    Example:
        >>> with LogContext(logger, "Backup restore"):
        ...     coordinator.restore_backup(backup_id)
        # Logs: "Backup restore completed in 12ms"
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.DEBUG):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time: Optional[float] = None

    def __enter__(self):
        self.start_time = time.monotonic()
        self.logger.log(self.level, f"{self.operation} starting...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed_ms = (time.monotonic() - self.start_time) * 1000
        if exc_type:
            self.logger.error(f"{self.operation} failed after {elapsed_ms:.0f}ms: {exc_val}")
        else:
            self.logger.log(self.level, f"{self.operation} completed in {elapsed_ms:.0f}ms")
        return False
