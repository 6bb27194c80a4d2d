"""Settings management for the news feed simulator."""

from .models import FeedSettings, WindowSettings
from .settings_manager import DEFAULT_SETTINGS, SettingsManager

__all__ = ['DEFAULT_SETTINGS', 'FeedSettings', 'SettingsManager', 'WindowSettings']
