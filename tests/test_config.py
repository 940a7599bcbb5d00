"""Tests for the config module."""
import logging
from logging.handlers import RotatingFileHandler

import pytest

from config.constants import BACKUP, LEDGER, LOCAL_KEYS, STORAGE
from config.exceptions import (
    BackupError,
    ConfigurationError,
    PocketLedgerError,
    StorageError,
    ValidationError,
)
from config.logging_config import LogContext, get_logger, log_exception, setup_logging


class TestConstants:
    """Tests for constants module."""

    def test_storage_config_has_required_fields(self):
        """Storage config should have all required fields."""
        assert STORAGE.DATA_DIR_NAME
        assert STORAGE.DATABASE_FILE
        assert STORAGE.LOCAL_STORE_FILE
        assert STORAGE.LOG_FILE

    def test_local_keys_match_browser_names(self):
        """Collection keys keep the names the browser build used."""
        assert LOCAL_KEYS.NOTES == "financialNotes"
        assert LOCAL_KEYS.DEBTS == "pocketLedgerDebts"
        assert LOCAL_KEYS.TODOS == "pocketLedgerTodos"
        assert LOCAL_KEYS.DARK_MODE == "darkMode"
        assert LOCAL_KEYS.CURRENCY == "selectedCurrencyCode"

    def test_backup_id_format_is_fourteen_chars(self):
        """The backup id format should yield zero-padded 14-char ids."""
        from datetime import datetime

        backup_id = datetime(2024, 1, 2, 3, 4, 5).strftime(BACKUP.ID_FORMAT)
        assert backup_id == "20240102030405"
        assert len(backup_id) == BACKUP.ID_LENGTH

    def test_default_currency_is_available(self):
        """The default currency must be one of the offered currencies."""
        codes = [c.code for c in LEDGER.CURRENCIES]
        assert LEDGER.DEFAULT_CURRENCY in codes
        assert len(codes) == len(set(codes))

    def test_constants_are_frozen(self):
        """Constant groups cannot be mutated at runtime."""
        with pytest.raises(Exception):
            STORAGE.DATABASE_FILE = "other.db"


class TestExceptions:
    """Tests for custom exceptions."""

    def test_base_exception(self):
        """PocketLedgerError should work with message and details."""
        exc = PocketLedgerError("Test error", {"key": "value"})
        assert exc.message == "Test error"
        assert exc.details == {"key": "value"}
        assert "Test error" in str(exc)
        assert "key" in str(exc)

    def test_exception_without_details(self):
        """Exceptions should work without details."""
        exc = StorageError("Storage failed")
        assert exc.message == "Storage failed"
        assert exc.details == {}
        assert str(exc) == "Storage failed"

    def test_exception_inheritance(self):
        """All custom exceptions should inherit from PocketLedgerError."""
        assert issubclass(StorageError, PocketLedgerError)
        assert issubclass(ValidationError, PocketLedgerError)
        assert issubclass(BackupError, PocketLedgerError)
        assert issubclass(ConfigurationError, PocketLedgerError)


class TestLogging:
    """Tests for logging configuration."""

    def test_setup_logging_creates_logger(self, temp_data_dir):
        """setup_logging should return a configured logger."""
        logger = setup_logging(data_dir=temp_data_dir, console_output=False)
        assert logger is not None
        assert logger.name == 'pocketledger'

    def test_setup_logging_writes_log_file(self, temp_data_dir):
        """File logging should create the log file in the data dir."""
        setup_logging(data_dir=temp_data_dir, console_output=False)
        get_logger("storage.sqlite_store").info("hello")
        assert (temp_data_dir / STORAGE.LOG_FILE).exists()

    def test_setup_logging_twice_replaces_handlers(self, temp_data_dir):
        """Reconfiguring should not stack handlers."""
        setup_logging(data_dir=temp_data_dir, console_output=True)
        logger = setup_logging(data_dir=temp_data_dir, console_output=True)
        assert len(logger.handlers) == 2

    def test_file_only_by_default(self, temp_data_dir):
        """Without console_output only the rotating file handler is attached."""
        logger = setup_logging(data_dir=temp_data_dir)
        assert [type(h) for h in logger.handlers] == [RotatingFileHandler]

    def test_module_records_reach_log_file(self, temp_data_dir):
        """Records from module loggers land in the file with their short name."""
        setup_logging(data_dir=temp_data_dir)
        get_logger("storage.sqlite_store").warning("disk nearly full")
        text = (temp_data_dir / STORAGE.LOG_FILE).read_text(encoding="utf-8")
        assert "pocketledger.storage.sqlite_store - WARNING - disk nearly full" in text

    def test_get_logger_returns_child(self, temp_data_dir):
        """get_logger should return child of root logger."""
        setup_logging(data_dir=temp_data_dir, console_output=False)
        logger = get_logger("test.module")
        assert 'pocketledger' in logger.name

    def test_get_logger_keeps_last_two_parts(self):
        """Deep module paths are shortened to their last two parts."""
        logger = get_logger("a.b.storage.sqlite_store")
        assert logger.name == 'pocketledger.storage.sqlite_store'

    def test_log_exception_includes_type(self, caplog):
        """log_exception should log the exception type and message."""
        logger = get_logger("tests.log_exception")
        logger.propagate = True
        with caplog.at_level(logging.ERROR):
            try:
                raise StorageError("disk full")
            except StorageError as e:
                log_exception(logger, "Saving failed", e)

        assert "StorageError" in caplog.text
        assert "disk full" in caplog.text

    def test_log_context_measures_duration(self, temp_data_dir):
        """LogContext should measure operation duration."""
        import time
        setup_logging(data_dir=temp_data_dir, console_output=False)
        logger = get_logger(__name__)

        with LogContext(logger, "Test operation") as ctx:
            time.sleep(0.01)  # Sleep 10ms

        # Context should have recorded start time
        assert ctx.start_time is not None

    def test_log_context_does_not_swallow(self):
        """Exceptions inside LogContext propagate."""
        logger = get_logger("tests.log_context")
        with pytest.raises(ValueError):
            with LogContext(logger, "Failing operation"):
                raise ValueError("boom")
