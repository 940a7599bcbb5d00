"""Sorting, filtering and pagination for record lists shown to the user."""
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Iterable, List, Optional, TypeVar, Union

from ledger.models import DateLike, Transaction, TransactionType, parse_timestamp

T = TypeVar("T")


class SortDirection(Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


@dataclass(frozen=True)
class SortConfig:
    """Which attribute a list is sorted by, and in which direction."""
    key: str
    direction: SortDirection = SortDirection.ASCENDING

    def toggled(self, key: str) -> 'SortConfig':
        """Sort config after the user picks ``key``.

        Picking the current key while ascending flips to descending;
        anything else sorts ascending by the picked key.
        """
        if key == self.key and self.direction == SortDirection.ASCENDING:
            return SortConfig(key, SortDirection.DESCENDING)
        return SortConfig(key, SortDirection.ASCENDING)


def _sort_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.casefold()
    return value


def sort_records(records: Iterable[T], key: str,
                 direction: SortDirection = SortDirection.ASCENDING) -> List[T]:
    """Return a sorted copy of ``records`` ordered by attribute ``key``.

    Records whose value is None come first when ascending and last when
    descending. Strings compare case-insensitively.
    """
    items = list(records)
    present = [r for r in items if getattr(r, key, None) is not None]
    missing = [r for r in items if getattr(r, key, None) is None]

    reverse = direction == SortDirection.DESCENDING
    present.sort(key=lambda r: _sort_value(getattr(r, key)), reverse=reverse)

    return present + missing if reverse else missing + present


def apply_sort(records: Iterable[T], config: Optional[SortConfig]) -> List[T]:
    """Sort by ``config``, or keep the original order when it is None."""
    if config is None:
        return list(records)
    return sort_records(records, config.key, config.direction)


def filter_transactions(transactions: Iterable[Transaction],
                        kind: Optional[Union[TransactionType, str]] = None,
                        category: Optional[str] = None,
                        start: Optional[DateLike] = None,
                        end: Optional[DateLike] = None,
                        text: Optional[str] = None) -> List[Transaction]:
    """Keep transactions matching every given criterion.

    Args:
        kind: ``income`` or ``expense``
        category: Exact category, case-insensitive
        start: Earliest date, inclusive
        end: Latest date, inclusive
        text: Substring searched in category and notes, case-insensitive
    """
    kind_value = kind.value if isinstance(kind, TransactionType) else kind
    start_at: Optional[datetime] = parse_timestamp(start)
    end_at: Optional[datetime] = parse_timestamp(end)
    needle = text.casefold().strip() if text else None

    result = []
    for tx in transactions:
        if kind_value and tx.type != kind_value:
            continue
        if category and tx.category.casefold() != category.casefold():
            continue
        if start_at and tx.date < start_at:
            continue
        if end_at and tx.date > end_at:
            continue
        if needle:
            haystack = f"{tx.category} {tx.notes or ''}".casefold()
            if needle not in haystack:
                continue
        result.append(tx)
    return result


@dataclass
class Page(Generic[T]):
    """One page of a longer list."""
    items: List[T] = field(default_factory=list)
    page: int = 1
    page_size: int = 10
    total_items: int = 0
    total_pages: int = 1

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(records: Iterable[T], page: int = 1, page_size: int = 10) -> Page[T]:
    """Cut ``records`` into pages and return one of them.

    Pages are 1-based. Out-of-range page numbers are clamped, and an empty
    list still has one (empty) page.

    Raises:
        ValueError: If ``page_size`` is not positive
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")

    items = list(records)
    total_pages = max(1, math.ceil(len(items) / page_size))
    page = min(max(1, page), total_pages)
    start = (page - 1) * page_size

    return Page(
        items=items[start:start + page_size],
        page=page,
        page_size=page_size,
        total_items=len(items),
        total_pages=total_pages,
    )
