"""User preferences for PocketLedger."""
import threading
from pathlib import Path
from typing import List, Optional, Tuple

from config import LEDGER, LOCAL_KEYS, Currency, get_logger
from config.exceptions import ConfigurationError
from storage.local_store import LocalStore

logger = get_logger(__name__)


class Preferences:
    """Manages scalar preferences kept in the local store.

    Values are stored as plain strings under their own keys: the theme flag
    as ``"true"``/``"false"``, the currency as its ISO code.
    """

    def __init__(self, local_store: LocalStore):
        self.local_store = local_store
        self._lock = threading.Lock()

    # === Theme ===

    def get_dark_mode(self) -> bool:
        """Get the theme flag. Defaults to dark."""
        stored = self.local_store.get_item(LOCAL_KEYS.DARK_MODE)
        if stored is None:
            return LEDGER.DEFAULT_DARK_MODE
        return stored == "true"

    def set_dark_mode(self, enabled: bool) -> None:
        """Set the theme flag."""
        with self._lock:
            self.local_store.set_item(LOCAL_KEYS.DARK_MODE, "true" if enabled else "false")

    # === Currency ===

    @staticmethod
    def find_currency(code: str) -> Optional[Currency]:
        for currency in LEDGER.CURRENCIES:
            if currency.code == code:
                return currency
        return None

    def get_currency(self) -> Currency:
        """Get the display currency.

        Unknown stored codes fall back to the default currency.
        """
        code = self.local_store.get_item(LOCAL_KEYS.CURRENCY)
        if code is not None:
            found = self.find_currency(code)
            if found:
                return found
            logger.warning(f"Unknown stored currency '{code}', using {LEDGER.DEFAULT_CURRENCY}")
        return self.find_currency(LEDGER.DEFAULT_CURRENCY) or LEDGER.CURRENCIES[0]

    def get_currency_code(self) -> str:
        return self.get_currency().code

    def get_currency_symbol(self) -> str:
        return self.get_currency().symbol

    def set_currency(self, code: str) -> None:
        """Set the display currency by code.

        Raises:
            ConfigurationError: If the code is not a supported currency
        """
        if self.find_currency(code) is None:
            raise ConfigurationError("Unknown currency", {"code": code})
        with self._lock:
            self.local_store.set_item(LOCAL_KEYS.CURRENCY, code)

    def get_currency_options(self) -> List[Tuple[str, str]]:
        """Get available currencies as (code, label) pairs."""
        return [
            (c.code, f"{c.symbol} {c.name} ({c.code})")
            for c in LEDGER.CURRENCIES
        ]

    # === Debt Page Language ===

    def get_debt_language(self) -> str:
        """Get the debt page language, 'en' unless a valid one is stored."""
        stored = self.local_store.get_item(LOCAL_KEYS.DEBT_LANGUAGE)
        if stored in LEDGER.LANGUAGES:
            return stored
        return LEDGER.DEFAULT_LANGUAGE

    def set_debt_language(self, language: str) -> None:
        """Set the debt page language.

        Raises:
            ConfigurationError: If the language is not supported
        """
        if language not in LEDGER.LANGUAGES:
            raise ConfigurationError("Unsupported language", {"language": language})
        with self._lock:
            self.local_store.set_item(LOCAL_KEYS.DEBT_LANGUAGE, language)


def get_preferences(data_dir: Optional[Path] = None) -> Preferences:
    """Create preferences backed by the local store in ``data_dir``."""
    return Preferences(LocalStore(data_dir))
