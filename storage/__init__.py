"""Data persistence components."""

from .collection_store import CollectionStore
from .local_store import LocalStore
from .settings import Preferences, get_preferences
from .sqlite_store import LedgerDatabase, get_database, reset_database_instance

__all__ = [
    "CollectionStore",
    "LedgerDatabase",
    "LocalStore",
    "Preferences",
    "get_database",
    "get_preferences",
    "reset_database_instance",
]
