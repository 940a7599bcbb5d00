"""Whole-collection persistence on top of LocalStore.

A collection is a JSON array stored under one key. It is read once when
loaded and rewritten in full after every change.
"""
import json
from datetime import datetime
from typing import Callable, Generic, List, Optional, TypeVar

from config import get_logger
from ledger.models import new_record_id
from storage.local_store import LocalStore

logger = get_logger(__name__)

T = TypeVar("T")


class CollectionStore(Generic[T]):
    """Loads and saves a list of records under a single LocalStore key.

    Args:
        local_store: Backing key-value store
        key: Key holding the JSON array
        from_dict: Builds a record from its stored dict (dates included)
    """

    def __init__(self, local_store: LocalStore, key: str, from_dict: Callable[[dict], T]):
        self.local_store = local_store
        self.key = key
        self._from_dict = from_dict
        self.items: List[T] = self.load()

    def load(self) -> List[T]:
        """Read the collection.

        A missing key gives an empty list. So does anything unparsable; in
        that case a warning is logged and nothing is raised.
        """
        raw = self.local_store.get_item(self.key)
        if raw is None:
            return []

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise TypeError(f"expected a JSON array, got {type(data).__name__}")
            return [self._from_dict(item) for item in data]
        except (ValueError, TypeError, KeyError, AttributeError, OverflowError) as e:
            logger.warning(f"Failed to parse '{self.key}' from local store, starting empty: {e}")
            return []

    def save(self) -> None:
        """Overwrite the stored collection with the in-memory one."""
        payload = json.dumps([item.to_dict() for item in self.items], ensure_ascii=False)
        self.local_store.set_item(self.key, payload)

    def replace_all(self, items: List[T]) -> None:
        """Swap in a new list and persist it."""
        self.items = list(items)
        self.save()

    def find(self, record_id: str) -> Optional[T]:
        for item in self.items:
            if item.id == record_id:
                return item
        return None

    def next_id(self, now: Optional[datetime] = None) -> str:
        """Timestamp-derived id, bumped until it is unique in this collection."""
        candidate = int(new_record_id(now))
        taken = {item.id for item in self.items}
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    def __len__(self) -> int:
        return len(self.items)
