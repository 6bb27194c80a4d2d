"""
Error taxonomy for the news feed.

All errors are local to the operation that raised them. The store reports
them through signals/events and never lets them escape a worker thread.
"""
from typing import Optional


class FeedError(Exception):
    """Base class for news feed errors."""


class NotFoundError(FeedError):
    """Raised when a detail is requested for an id that is not in the feed."""

    def __init__(self, news_id: int, message: Optional[str] = None):
        self.news_id = news_id
        super().__init__(message or f"News item #{news_id} not found")


class FetchFailedError(FeedError):
    """Raised when a detail fetch cannot complete. The item stays unloaded."""

    def __init__(self, news_id: int, message: Optional[str] = None):
        self.news_id = news_id
        super().__init__(message or f"Detail fetch failed for news item #{news_id}")


class ProducerExhaustedError(FeedError):
    """Raised (or reported) when the feed source stops emitting items."""
