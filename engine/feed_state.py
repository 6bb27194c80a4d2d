"""
Immutable feed snapshot.

The store swaps whole FeedState instances; observers only ever see complete
snapshots.
"""
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple

from sources.base_provider import NewsItem


@dataclass(frozen=True)
class FeedState:
    """Items newest-first plus the number of completed detail loads."""
    items: Tuple[NewsItem, ...] = ()
    read_count: int = 0

    def __post_init__(self):
        if self.read_count < 0:
            raise ValueError("read_count must be non-negative")
        # Accept any sequence but always store a tuple
        if not isinstance(self.items, tuple):
            object.__setattr__(self, 'items', tuple(self.items))

    def __len__(self) -> int:
        return len(self.items)

    def find(self, news_id: int) -> Optional[NewsItem]:
        # bool is an int subclass; True must not match id 1
        if isinstance(news_id, bool):
            return None
        for item in self.items:
            if item.id == news_id:
                return item
        return None

    def contains(self, news_id: int) -> bool:
        return self.find(news_id) is not None

    def ids(self) -> Tuple[int, ...]:
        return tuple(item.id for item in self.items)

    def loaded_count(self) -> int:
        """Number of items whose detail has been loaded."""
        return sum(1 for item in self.items if item.is_detail_loaded)

    def with_prepended(self, item: NewsItem) -> "FeedState":
        return replace(self, items=(item,) + self.items)

    def with_updated_item(self, news_id: int, update: Callable[[NewsItem], NewsItem]) -> "FeedState":
        """Apply ``update`` to the item with ``news_id``; other items are kept as-is."""
        return replace(
            self,
            items=tuple(update(item) if item.id == news_id else item for item in self.items),
        )

    def with_read(self) -> "FeedState":
        return replace(self, read_count=self.read_count + 1)
