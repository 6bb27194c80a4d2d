"""Engine module: feed state and the store that owns it."""

from .feed_state import FeedState
from .feed_store import FeedStateView, FeedStore

__all__ = ['FeedState', 'FeedStateView', 'FeedStore']
