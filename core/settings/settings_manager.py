"""
Settings manager implementation for the news feed simulator.

Uses QSettings for persistent storage of application configuration (feed
timing, window size). The feed itself is never persisted.
"""
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
import threading
from PySide6.QtCore import QSettings, QObject, Signal
from core.logging.logger import get_logger

logger = get_logger('SettingsManager')


DEFAULT_SETTINGS: Dict[str, Any] = {
    # Feed timing
    'feed.interval_ms': 2000,
    'feed.detail_delay_ms': 1500,
    # 0 disables the detail timeout
    'feed.detail_timeout_ms': 10000,
    # Probability that a simulated detail fetch fails
    'feed.detail_failure_rate': 0.0,
    'feed.io_workers': 4,

    # Window
    'ui.window_width': 480,
    'ui.window_height': 720,
}


class SettingsManager(QObject):
    """
    Centralized settings management.

    Uses QSettings with organization/application name, or an INI file when
    a path is given. Thread-safe with change notifications.
    """

    # Signal emitted when settings change
    settings_changed = Signal(str, object)  # key, new_value

    def __init__(self, organization: str = "NewsFeedSimulator",
                 application: str = "NewsFeedSimulator",
                 path: Optional[Union[str, Path]] = None):
        """
        Initialize the settings manager.

        Args:
            organization: Organization name for QSettings
            application: Application name for QSettings
            path: Optional INI file; overrides organization/application
        """
        super().__init__()

        if path is not None:
            self._settings = QSettings(str(path), QSettings.Format.IniFormat)
        else:
            self._settings = QSettings(organization, application)
        self._organization = organization
        self._application = application
        self._lock = threading.RLock()
        self._change_handlers: Dict[str, List[Callable[[Any, Any], None]]] = {}

        self._set_defaults()

        logger.info("SettingsManager initialized (%s)", self._settings.fileName())

    def _set_defaults(self) -> None:
        """Set default values if not already present."""
        with self._lock:
            for key, value in DEFAULT_SETTINGS.items():
                if not self._settings.contains(key):
                    self._settings.setValue(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value.

        Args:
            key: Setting key in dot notation (e.g., 'feed.interval_ms')
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        with self._lock:
            return self._settings.value(key, default)

    @staticmethod
    def to_bool(value: Any, default: bool = False) -> bool:
        """Normalize a stored setting value to bool.

        INI-backed QSettings hands every value back as a string, so "true",
        "1", "yes", "on" and their negatives are recognised.
        """
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            v = value.strip().lower()
            if v in ("true", "1", "yes", "on"):
                return True
            if v in ("false", "0", "no", "off"):
                return False
            return default
        if value is None:
            return default
        return bool(value)

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Convenience wrapper around get() that normalizes to bool."""
        return self.to_bool(self.get(key, default), default)

    def get_int(self, key: str, default: int = 0) -> int:
        """Return a setting as int, falling back to default on bad values."""
        raw = self.get(key, default)
        try:
            return int(float(raw))
        except (TypeError, ValueError):
            logger.warning("Setting %s=%r is not an integer, using %d", key, raw, default)
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        """Return a setting as float, falling back to default on bad values."""
        raw = self.get(key, default)
        try:
            return float(raw)
        except (TypeError, ValueError):
            logger.warning("Setting %s=%r is not a number, using %s", key, raw, default)
            return default

    def set(self, key: str, value: Any) -> None:
        """
        Set a setting value.

        Args:
            key: Setting key in dot notation
            value: Value to set
        """
        with self._lock:
            old_value = self._settings.value(key)
            self._settings.setValue(key, value)
            handlers = list(self._change_handlers.get(key, ()))

        self.settings_changed.emit(key, value)
        for handler in handlers:
            try:
                handler(value, old_value)
            except Exception as e:
                logger.error("Error in change handler for %s: %s", key, e)

        logger.debug("Setting changed: %s: %r -> %r", key, old_value, value)

    def save(self) -> None:
        """Force save settings to persistent storage."""
        with self._lock:
            self._settings.sync()
        logger.debug("Settings saved")

    def on_changed(self, key: str, handler: Callable[[Any, Any], None]) -> None:
        """
        Register a handler for when a specific setting changes.

        Args:
            key: Setting key to watch
            handler: Callback function(new_value, old_value)
        """
        with self._lock:
            self._change_handlers.setdefault(key, []).append(handler)

        logger.debug("Registered change handler for %s", key)

    def reset_to_defaults(self) -> None:
        """Reset all settings to default values."""
        with self._lock:
            self._settings.clear()
            for key, value in DEFAULT_SETTINGS.items():
                self._settings.setValue(key, value)
            self._settings.sync()

        logger.info("Settings reset to defaults")
        self.settings_changed.emit('*', None)  # Signal that all changed

    def get_all_keys(self) -> List[str]:
        """Get all setting keys."""
        with self._lock:
            return self._settings.allKeys()

    def contains(self, key: str) -> bool:
        """Check if a setting key exists."""
        with self._lock:
            return self._settings.contains(key)

    def remove(self, key: str) -> None:
        """Remove a setting key."""
        with self._lock:
            self._settings.remove(key)
        logger.debug("Removed setting: %s", key)

    def clear(self) -> None:
        """Clear all settings (use with caution)."""
        with self._lock:
            self._settings.clear()
        logger.warning("All settings cleared")

    def get_application_name(self) -> str:
        return self._application

    def get_organization_name(self) -> str:
        return self._organization
