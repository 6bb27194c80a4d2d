"""
NewsFeedSimulator - Main Entry Point

Desktop demo that simulates a live news feed with asynchronous detail loading.

Usage:
    python main.py [--debug|-d] [--verbose|-v]
"""
import sys
from typing import List, Optional, Tuple

from PySide6.QtWidgets import QApplication

from core.events import EventSystem, EventType
from core.logging.logger import setup_logging, get_logger
from core.settings import FeedSettings, SettingsManager, WindowSettings
from engine.feed_store import FeedStore
from ui.main_window import NewsFeedWindow
from versioning import APP_DESCRIPTION, APP_NAME, APP_ORGANIZATION, APP_VERSION, VERSION_INFO

logger = get_logger(__name__)


def parse_flags(argv: List[str]) -> Tuple[bool, bool]:
    """Return (debug, verbose) from the command line."""
    debug_mode = '--debug' in argv or '-d' in argv
    verbose_mode = '--verbose' in argv or '-v' in argv
    return debug_mode, verbose_mode


def build_application(settings: SettingsManager,
                      event_system: Optional[EventSystem] = None) -> Tuple[FeedStore, NewsFeedWindow]:
    """Wire settings, store and window together. Requires a QApplication."""
    feed_settings = FeedSettings.from_settings(settings)
    logger.info(
        "Feed settings: interval=%dms, detail_delay=%dms, timeout=%dms, failure_rate=%.2f",
        feed_settings.interval_ms,
        feed_settings.detail_delay_ms,
        feed_settings.detail_timeout_ms,
        feed_settings.detail_failure_rate,
    )

    store = FeedStore.from_settings(feed_settings, event_system=event_system)
    window = NewsFeedWindow(
        store,
        window_settings=WindowSettings.from_settings(settings),
        interval_ms=feed_settings.interval_ms,
        title=f"{APP_NAME} {APP_VERSION}",
    )

    def _on_setting_changed(key: str, value) -> None:
        store.event_system.publish(EventType.SETTINGS_CHANGED, data={"key": key, "value": value})
        if key.startswith('feed.'):
            logger.info("Setting %s changed; takes effect on next launch", key)

    settings.settings_changed.connect(_on_setting_changed)
    return store, window


def main() -> int:
    """Main entry point for the news feed simulator."""
    debug_mode, verbose_mode = parse_flags(sys.argv)
    setup_logging(debug=debug_mode, verbose=verbose_mode)

    logger.info("=" * 60)
    logger.info("%s %s Starting", APP_NAME, VERSION_INFO)
    logger.info(APP_DESCRIPTION)
    logger.info("=" * 60)

    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setOrganizationName(APP_ORGANIZATION)
    app.setApplicationVersion(APP_VERSION)

    settings = SettingsManager(organization=APP_ORGANIZATION, application=APP_NAME)
    store, window = build_application(settings)

    # Closing the last window quits; make sure the store is torn down even
    # when the app exits another way.
    app.aboutToQuit.connect(store.close)

    window.show()
    store.start()

    exit_code = app.exec()
    settings.save()
    logger.info("%s exiting with code %d", APP_NAME, exit_code)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
