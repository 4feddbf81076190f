import math
from dataclasses import dataclass, field
from typing import Generic, List, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One slice of an ordered result list (zero-based ``page_index``)."""
    items: List[T] = field(default_factory=list)
    page_index: int = 0
    page_size: int = 10
    total_items: int = 0
    total_pages: int = 0

    @property
    def has_next(self) -> bool:
        return self.page_index + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page_index > 0 and self.total_pages > 0


def paginate(records: Sequence[T], page_index: int, page_size: int) -> Page[T]:
    """
    Slice ``records`` for display.

    Args:
        records: ordered records
        page_index: zero-based; negative values are treated as 0
        page_size: records per page; values below 1 are treated as 1

    Returns:
        Page whose items are empty when ``page_index`` is past the end.
    """
    page_size = max(1, int(page_size))
    page_index = max(0, int(page_index))

    total_items = len(records)
    start = page_index * page_size
    return Page(
        items=list(records[start:start + page_size]),
        page_index=page_index,
        page_size=page_size,
        total_items=total_items,
        total_pages=math.ceil(total_items / page_size),
    )
