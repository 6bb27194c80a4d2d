"""Widgets used by the news feed window."""

from .news_card import LoadState, NewsCard
from .stats_card import StatsCard

__all__ = ['LoadState', 'NewsCard', 'StatsCard']
