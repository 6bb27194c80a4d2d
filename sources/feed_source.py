"""
Synthetic news feed source.

Emits an unbounded stream of generated news items spaced apart in time and
simulates a slow remote detail lookup.
"""
import random
import threading
import time
from typing import Iterator, Optional

from core.errors import FetchFailedError
from core.logging.logger import get_logger, is_verbose_logging
from core.settings.models import FeedSettings
from sources.base_provider import CATEGORIES, FeedProvider, NewsItem

logger = get_logger(__name__)


class FeedSource(FeedProvider):
    """
    Simulated live feed.

    Each produced item gets a uniformly random category, the next sequential
    id (starting at 1 per generator) and a title/summary built from them.
    The wait happens between items, never before the first.
    """

    def __init__(self, interval_ms: int = 2000, detail_delay_ms: int = 1500,
                 failure_rate: float = 0.0, rng: Optional[random.Random] = None):
        """
        Args:
            interval_ms: Delay between successive produced items
            detail_delay_ms: Simulated latency of fetch_detail()
            failure_rate: Probability in [0, 1] that fetch_detail() fails
            rng: Random generator, injectable for deterministic tests
        """
        if interval_ms < 0 or detail_delay_ms < 0:
            raise ValueError("intervals must be non-negative")
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        self.interval_ms = int(interval_ms)
        self.detail_delay_ms = int(detail_delay_ms)
        self.failure_rate = float(failure_rate)
        self._rng = rng or random.Random()
        # fetch_detail runs on several IO workers at once
        self._rng_lock = threading.Lock()

        logger.debug("FeedSource created (interval=%dms, detail_delay=%dms, failure_rate=%.2f)",
                     self.interval_ms, self.detail_delay_ms, self.failure_rate)

    @classmethod
    def from_settings(cls, settings: FeedSettings, rng: Optional[random.Random] = None) -> "FeedSource":
        return cls(
            interval_ms=settings.interval_ms,
            detail_delay_ms=settings.detail_delay_ms,
            failure_rate=settings.detail_failure_rate,
            rng=rng,
        )

    def _make_item(self, news_id: int) -> NewsItem:
        with self._rng_lock:
            category = self._rng.choice(CATEGORIES)
        return NewsItem(
            id=news_id,
            title=f"Breaking News #{news_id}",
            category=category,
            summary=f"Summary of an important development in {category}...",
        )

    def produce_feed(self, cancel: Optional[threading.Event] = None) -> Iterator[NewsItem]:
        """Yield generated items forever, or until ``cancel`` is set."""
        cancel = cancel or threading.Event()
        news_id = 1
        while not cancel.is_set():
            item = self._make_item(news_id)
            if is_verbose_logging():
                logger.debug("[FEED] Produced #%d (%s)", item.id, item.category)
            yield item
            news_id += 1
            # wait() returns True as soon as cancel is set
            if cancel.wait(self.interval_ms / 1000.0):
                break
        logger.debug("[FEED] Producer cancelled after %d items", news_id - 1)

    def fetch_detail(self, news_id: int) -> str:
        """Sleep for the simulated latency, then return the detail text."""
        time.sleep(self.detail_delay_ms / 1000.0)

        if self.failure_rate > 0.0:
            with self._rng_lock:
                failed = self._rng.random() < self.failure_rate
            if failed:
                raise FetchFailedError(news_id, f"Simulated network failure for news item #{news_id}")

        return (
            f"This is the full, in-depth detail for news #{news_id}. "
            "The data was fetched asynchronously without blocking the UI."
        )
