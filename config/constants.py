"""Centralized constants and configuration for PocketLedger.

This module contains the file names, storage keys, backup naming rules and
ledger defaults used across the storage and ledger packages. Centralizing
them keeps the naming conventions shared by both stores in one place.

Usage:
    from config.constants import STORAGE, LOCAL_KEYS, BACKUP

    db_file = STORAGE.DATABASE_FILE
    notes_key = LOCAL_KEYS.NOTES
"""
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class StorageConfig:
    """Storage and file-related configuration."""
    # Directory and file names
    DATA_DIR_NAME: str = ".pocket-ledger"
    DATABASE_FILE: str = "pocketledger.db"
    LOCAL_STORE_FILE: str = "local_storage.json"
    LOG_FILE: str = "pocket_ledger.log"

    # SQLite connection
    CONNECT_TIMEOUT_SECONDS: float = 30.0

    # Log rotation
    LOG_MAX_BYTES: int = 5_000_000  # 5MB
    LOG_BACKUP_COUNT: int = 3


@dataclass(frozen=True)
class LocalStoreKeys:
    """Keys used in the local key-value store.

    The names match the keys the browser build of the app wrote, so an
    exported localStorage dump can be loaded as-is.
    """
    NOTES: str = "financialNotes"
    DEBTS: str = "pocketLedgerDebts"
    TODOS: str = "pocketLedgerTodos"
    DARK_MODE: str = "darkMode"
    CURRENCY: str = "selectedCurrencyCode"
    DEBT_LANGUAGE: str = "pocketLedgerDebtLang"


@dataclass(frozen=True)
class BackupConfig:
    """Snapshot naming rules shared by both stores."""
    ID_FORMAT: str = "%Y%m%d%H%M%S"   # 14 chars, sortable as a string
    ID_LENGTH: int = 14
    INFIX: str = "_backup_"

    # Relational tables that are snapshotted
    TRANSACTIONS_TABLE: str = "transactions"
    USERS_TABLE: str = "users"


@dataclass(frozen=True)
class Currency:
    """Display currency. Amounts themselves are currency-agnostic."""
    symbol: str
    code: str
    name: str


@dataclass(frozen=True)
class LedgerDefaults:
    """Suggested values and defaults for ledger records."""
    TRANSACTION_TYPES: Tuple[str, ...] = ("income", "expense")

    # Suggested, not enforced
    CATEGORIES: Tuple[str, ...] = (
        "Salary",
        "Food",
        "Transport",
        "Entertainment",
        "Utilities",
        "Other",
    )
    ASSET_CATEGORIES: Tuple[str, ...] = (
        "Cryptocurrency",
        "Stocks",
        "Bonds",
        "Real Estate",
        "Commodities",
        "Forex",
        "Other",
    )

    CURRENCIES: Tuple[Currency, ...] = (
        Currency("₺", "TRY", "Turkish Lira"),
        Currency("$", "USD", "US Dollar"),
        Currency("€", "EUR", "Euro"),
        Currency("£", "GBP", "British Pound"),
        Currency("¥", "JPY", "Japanese Yen"),
    )
    DEFAULT_CURRENCY: str = "TRY"

    DEFAULT_DARK_MODE: bool = True
    LANGUAGES: Tuple[str, ...] = ("en", "tr")
    DEFAULT_LANGUAGE: str = "en"

    # Credential row has a fixed identifier
    USER_ID: int = 1


# Global instances - import these
STORAGE = StorageConfig()
LOCAL_KEYS = LocalStoreKeys()
BACKUP = BackupConfig()
LEDGER = LedgerDefaults()
