"""News feed sources."""

from .base_provider import CATEGORIES, Category, FeedProvider, NewsItem
from .feed_source import FeedSource

__all__ = ['CATEGORIES', 'Category', 'FeedProvider', 'FeedSource', 'NewsItem']
