"""
Typed views over the flat QSettings keys.
"""
from dataclasses import dataclass

from core.settings.settings_manager import DEFAULT_SETTINGS, SettingsManager


@dataclass(frozen=True)
class FeedSettings:
    """Timing and failure-injection knobs for the simulated feed."""
    interval_ms: int = DEFAULT_SETTINGS['feed.interval_ms']
    detail_delay_ms: int = DEFAULT_SETTINGS['feed.detail_delay_ms']
    detail_timeout_ms: int = DEFAULT_SETTINGS['feed.detail_timeout_ms']
    detail_failure_rate: float = DEFAULT_SETTINGS['feed.detail_failure_rate']
    io_workers: int = DEFAULT_SETTINGS['feed.io_workers']

    @classmethod
    def from_settings(cls, settings: SettingsManager) -> "FeedSettings":
        """Read and clamp the feed.* keys."""
        rate = settings.get_float('feed.detail_failure_rate', cls.detail_failure_rate)
        return cls(
            interval_ms=max(0, settings.get_int('feed.interval_ms', cls.interval_ms)),
            detail_delay_ms=max(0, settings.get_int('feed.detail_delay_ms', cls.detail_delay_ms)),
            detail_timeout_ms=max(0, settings.get_int('feed.detail_timeout_ms', cls.detail_timeout_ms)),
            detail_failure_rate=min(1.0, max(0.0, rate)),
            io_workers=max(1, settings.get_int('feed.io_workers', cls.io_workers)),
        )


@dataclass(frozen=True)
class WindowSettings:
    width: int = DEFAULT_SETTINGS['ui.window_width']
    height: int = DEFAULT_SETTINGS['ui.window_height']

    @classmethod
    def from_settings(cls, settings: SettingsManager) -> "WindowSettings":
        return cls(
            width=max(320, settings.get_int('ui.window_width', cls.width)),
            height=max(240, settings.get_int('ui.window_height', cls.height)),
        )
