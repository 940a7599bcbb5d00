"""Configuration module for PocketLedger.

Provides centralized configuration, logging and exceptions.
"""
from config.constants import (
    BACKUP,
    LEDGER,
    LOCAL_KEYS,
    STORAGE,
    BackupConfig,
    Currency,
    LedgerDefaults,
    LocalStoreKeys,
    StorageConfig,
)
from config.exceptions import (
    BackupError,
    ConfigurationError,
    PocketLedgerError,
    StorageError,
    ValidationError,
)
from config.logging_config import LogContext, get_logger, log_exception, setup_logging

__all__ = [
    # Constants
    "STORAGE",
    "LOCAL_KEYS",
    "BACKUP",
    "LEDGER",
    "StorageConfig",
    "LocalStoreKeys",
    "BackupConfig",
    "LedgerDefaults",
    "Currency",
    # Exceptions
    "PocketLedgerError",
    "StorageError",
    "ValidationError",
    "BackupError",
    "ConfigurationError",
    # Logging
    "setup_logging",
    "get_logger",
    "log_exception",
    "LogContext",
]
