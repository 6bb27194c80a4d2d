"""
Event type definitions for the news feed.
"""
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass
class Event:
    """Base event class."""
    event_type: str
    data: Any = None
    source: Any = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    timestamp: float = field(default_factory=time.time)
    is_handled: bool = False

    def mark_handled(self):
        """Stop delivery to lower priority subscribers."""
        self.is_handled = True


@dataclass
class Subscription:
    """Subscription to an event type."""
    callback: Callable[[Event], None]
    event_type: str
    priority: int = 0
    filter_fn: Optional[Callable[[Event], bool]] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    active: bool = True

    def __call__(self, event: Event) -> None:
        """Call the subscription callback if filter passes."""
        if not self.active:
            return
        if self.filter_fn is None or self.filter_fn(event):
            self.callback(event)

    def __lt__(self, other: 'Subscription') -> bool:
        """Sort by priority (higher first)."""
        return self.priority > other.priority


class EventType:
    """Event type constants."""
    # Feed state
    FEED_UPDATED = "feed.updated"          # data: FeedState snapshot
    FEED_ITEM_ADDED = "feed.item.added"    # data: NewsItem
    FEED_STARTED = "feed.started"
    FEED_STOPPED = "feed.stopped"          # data: {"reason": "closed" | "exhausted"}

    # Detail loading
    DETAIL_REQUESTED = "feed.detail.requested"   # data: {"news_id", "request_id"}
    DETAIL_LOADED = "feed.detail.loaded"         # data: {"news_id", "request_id"}
    DETAIL_FAILED = "feed.detail.failed"         # data: {"news_id", "request_id", "error"}
    DETAIL_NOT_FOUND = "feed.detail.not_found"   # data: {"news_id", "error"}

    # Settings events
    SETTINGS_CHANGED = "settings.changed"
