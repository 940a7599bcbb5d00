"""Financial notes kept in the local store."""
from datetime import datetime
from typing import List, Optional

from config import LOCAL_KEYS, get_logger
from config.exceptions import ValidationError
from ledger.listing import SortConfig, SortDirection, apply_sort
from ledger.models import DateLike, Note, parse_timestamp
from storage.collection_store import CollectionStore
from storage.local_store import LocalStore

logger = get_logger(__name__)

DEFAULT_NOTE_SORT = SortConfig("created_at", SortDirection.DESCENDING)


class NoteBook(CollectionStore[Note]):
    """Notes collection, newest first. Persisted after every change."""

    def __init__(self, local_store: LocalStore):
        super().__init__(local_store, LOCAL_KEYS.NOTES, Note.from_dict)

    @property
    def notes(self) -> List[Note]:
        return list(self.items)

    def add_note(self, title: str, content: str, asset_type: Optional[str] = None,
                 quantity: Optional[float] = None, purchase_price: Optional[float] = None,
                 purchase_date: Optional[DateLike] = None,
                 now: Optional[datetime] = None) -> Note:
        """Add a note at the top of the list.

        Raises:
            ValidationError: If title or content is blank
        """
        title = (title or "").strip()
        content = (content or "").strip()
        if not title or not content:
            raise ValidationError("A note needs a title and content")

        try:
            purchased_at = parse_timestamp(purchase_date)
        except (ValueError, OverflowError):
            raise ValidationError("Invalid purchase date", {"purchase_date": purchase_date})

        now = now or datetime.now()
        note = Note(
            id=self.next_id(now),
            title=title,
            content=content,
            asset_type=(asset_type or "").strip() or None,
            quantity=quantity,
            purchase_price=purchase_price,
            purchase_date=purchased_at,
            created_at=now,
        )
        self.items.insert(0, note)
        self.save()
        logger.debug(f"Added note {note.id}")
        return note

    def delete_note(self, note_id: str) -> bool:
        """Remove a note.

        Returns:
            True if a note was removed
        """
        remaining = [n for n in self.items if n.id != note_id]
        if len(remaining) == len(self.items):
            logger.warning(f"Delete requested for unknown note {note_id}")
            return False
        self.replace_all(remaining)
        return True

    def sorted_notes(self, config: Optional[SortConfig] = DEFAULT_NOTE_SORT) -> List[Note]:
        """Notes ordered for display; newest first by default."""
        return apply_sort(self.items, config)
