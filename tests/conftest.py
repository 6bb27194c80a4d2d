"""
Shared pytest fixtures for news feed tests.
"""
import os
import random
import sys

os.environ.setdefault('QT_QPA_PLATFORM', 'offscreen')

import pytest
from PySide6.QtWidgets import QApplication


@pytest.fixture(scope='session')
def qt_app():
    """Create QApplication instance for tests."""
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    yield app
    # Don't quit - causes issues with pytest


@pytest.fixture
def settings_manager(tmp_path):
    """SettingsManager backed by a throwaway INI file."""
    from core.settings import SettingsManager
    manager = SettingsManager(path=tmp_path / "settings.ini")
    yield manager
    manager.clear()


@pytest.fixture
def thread_manager():
    """Create ThreadManager instance for testing."""
    from core.threading.manager import ThreadManager
    manager = ThreadManager()
    yield manager
    manager.shutdown(wait=True)


@pytest.fixture
def event_system():
    """Create EventSystem instance for testing."""
    from core.events import EventSystem
    system = EventSystem()
    yield system
    system.clear()


@pytest.fixture
def fast_source():
    """Synthetic source with short delays and a fixed seed."""
    from sources.feed_source import FeedSource
    return FeedSource(interval_ms=20, detail_delay_ms=50, rng=random.Random(7))


@pytest.fixture
def feed_store(qt_app, fast_source, thread_manager, event_system):
    """FeedStore over the fast source. Not started."""
    from engine.feed_store import FeedStore
    store = FeedStore(fast_source, thread_manager=thread_manager, event_system=event_system)
    yield store
    store.close()


