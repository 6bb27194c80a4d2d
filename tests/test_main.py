"""
Tests for the entry point helpers.
"""
import pytest

from core.events import EventSystem, EventType
from main import build_application, parse_flags
from versioning import APP_VERSION, VERSION_INFO, parse_version


@pytest.mark.parametrize("argv,expected", [
    (["main.py"], (False, False)),
    (["main.py", "--debug"], (True, False)),
    (["main.py", "-d", "-v"], (True, True)),
    (["main.py", "--verbose"], (False, True)),
])
def test_parse_flags(argv, expected):
    assert parse_flags(argv) == expected


@pytest.mark.qt
def test_build_application_wires_store_and_window(qt_app, qtbot, settings_manager):
    settings_manager.set('feed.interval_ms', 50)
    settings_manager.set('ui.window_width', 500)
    events = EventSystem()

    store, window = build_application(settings_manager, event_system=events)
    qtbot.addWidget(window)
    try:
        assert store.event_system is events
        assert window.width() == 500
        assert not store.is_running()

        settings_manager.set('ui.window_height', 640)
        history = events.get_event_history(event_type=EventType.SETTINGS_CHANGED)
        assert history[-1].data == {"key": 'ui.window_height', "value": 640}
    finally:
        store.close()


@pytest.mark.parametrize("text,expected", [
    ("0.1.0", (0, 1, 0)),
    ("2.3", (2, 3, 0)),
    (" 1 ", (1, 0, 0)),
])
def test_parse_version(text, expected):
    assert parse_version(text).to_tuple() == expected


def test_version_info_matches_app_version():
    assert str(VERSION_INFO) == APP_VERSION
