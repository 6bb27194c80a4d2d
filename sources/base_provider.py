"""
Base news provider interface.

Defines the news item record and the abstract interface that every feed
source must implement so the store can consume it.
"""
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Iterator, Optional, Tuple


class Category:
    """The fixed set of categories the simulated feed draws from."""
    TECHNOLOGY = "Technology"
    SPORTS = "Sports"
    POLITICS = "Politics"
    ENTERTAINMENT = "Entertainment"


CATEGORIES: Tuple[str, ...] = (
    Category.TECHNOLOGY,
    Category.SPORTS,
    Category.POLITICS,
    Category.ENTERTAINMENT,
)


@dataclass(frozen=True)
class NewsItem:
    """
    One feed entry and its detail-load status.

    Instances are immutable; every change produces a new item via the
    with_* helpers. ``id`` is the only key used for lookup and never changes.
    ``detail_content`` is non-empty exactly when ``is_detail_loaded`` is set.
    """
    id: int
    title: str
    category: str
    summary: str
    is_detail_loaded: bool = False
    detail_content: str = ""

    def __post_init__(self):
        """Validate the item after initialization."""
        if isinstance(self.id, bool) or not isinstance(self.id, int) or self.id < 1:
            raise ValueError(f"NewsItem id must be a positive integer, got {self.id!r}")
        if self.is_detail_loaded != bool(self.detail_content):
            raise ValueError("detail_content must be non-empty exactly when is_detail_loaded is set")

    def with_category(self, category: str) -> "NewsItem":
        """Return a copy whose category is upper-cased."""
        return replace(self, category=category.upper())

    def normalized(self) -> "NewsItem":
        """Return a copy with the stored-form (upper-case) category."""
        if self.category.isupper():
            return self
        return self.with_category(self.category)

    def with_detail(self, content: str) -> "NewsItem":
        """Return a loaded copy carrying the fetched detail text."""
        if not content:
            raise ValueError("detail content must not be empty")
        return replace(self, is_detail_loaded=True, detail_content=content)


class FeedProvider(ABC):
    """
    Abstract base class for news feed sources.

    The store only talks to sources through this interface, so a networked
    implementation can replace the synthetic one.
    """

    @abstractmethod
    def produce_feed(self, cancel: Optional[threading.Event] = None) -> Iterator[NewsItem]:
        """
        Produce news items lazily, waiting between successive items.

        Args:
            cancel: Optional event; once set the iterator ends promptly.

        Returns:
            A non-restartable iterator of NewsItem.
        """

    @abstractmethod
    def fetch_detail(self, news_id: int) -> str:
        """
        Fetch the full detail text for one item. Blocks the calling thread.

        Raises:
            FetchFailedError: If the detail could not be retrieved.
        """

    def get_source_name(self) -> str:
        """Get a human-readable name for this source."""
        return self.__class__.__name__
