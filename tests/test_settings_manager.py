"""
Tests for SettingsManager and the typed settings views.
"""
import pytest

from core.settings import DEFAULT_SETTINGS, FeedSettings, SettingsManager, WindowSettings


class TestSettingsManagerBasics:
    """Get/set and type conversion."""

    def test_defaults_are_written(self, settings_manager):
        for key in DEFAULT_SETTINGS:
            assert settings_manager.contains(key)
        assert settings_manager.get_int('feed.interval_ms') == 2000
        assert settings_manager.get_int('feed.detail_delay_ms') == 1500

    def test_existing_values_are_kept(self, tmp_path):
        path = tmp_path / "keep.ini"
        first = SettingsManager(path=path)
        first.set('feed.interval_ms', 500)
        first.save()

        second = SettingsManager(path=path)
        assert second.get_int('feed.interval_ms') == 500

    def test_set_and_get_string(self, settings_manager):
        settings_manager.set("test.key", "test_value")
        assert settings_manager.get("test.key") == "test_value"

    def test_get_returns_default_for_missing_key(self, settings_manager):
        assert settings_manager.get("nonexistent.key", "fallback") == "fallback"

    def test_get_int_and_float_parse_ini_strings(self, settings_manager):
        settings_manager.set('feed.io_workers', "3")
        settings_manager.set('feed.detail_failure_rate', "0.5")

        assert settings_manager.get_int('feed.io_workers') == 3
        assert settings_manager.get_float('feed.detail_failure_rate') == 0.5

    def test_get_int_falls_back_on_garbage(self, settings_manager):
        settings_manager.set('feed.interval_ms', "soon")
        assert settings_manager.get_int('feed.interval_ms', 2000) == 2000

    @pytest.mark.parametrize("raw,expected", [
        ("true", True), ("1", True), ("on", True),
        ("false", False), ("0", False), ("no", False),
        (True, True), (0, False), (None, False),
    ])
    def test_to_bool(self, raw, expected):
        assert SettingsManager.to_bool(raw) is expected

    def test_remove(self, settings_manager):
        settings_manager.set("temp.key", 1)
        settings_manager.remove("temp.key")
        assert not settings_manager.contains("temp.key")


class TestSettingsNotifications:
    """Change signal and handlers."""

    def test_set_emits_signal(self, qt_app, qtbot, settings_manager):
        with qtbot.waitSignal(settings_manager.settings_changed, timeout=1000) as blocker:
            settings_manager.set('ui.window_width', 600)
        assert blocker.args == ['ui.window_width', 600]

    def test_change_handler_receives_old_and_new(self, settings_manager):
        seen = []
        settings_manager.on_changed('feed.interval_ms', lambda new, old: seen.append((new, old)))

        settings_manager.set('feed.interval_ms', 750)

        assert len(seen) == 1
        assert seen[0][0] == 750
        assert int(seen[0][1]) == 2000

    def test_failing_handler_does_not_block_set(self, settings_manager):
        def broken(new, old):
            raise RuntimeError("handler failed")

        settings_manager.on_changed('feed.interval_ms', broken)
        settings_manager.set('feed.interval_ms', 900)

        assert settings_manager.get_int('feed.interval_ms') == 900

    def test_reset_to_defaults(self, settings_manager):
        settings_manager.set('feed.interval_ms', 1)
        settings_manager.set('custom.key', 'x')

        settings_manager.reset_to_defaults()

        assert settings_manager.get_int('feed.interval_ms') == 2000
        assert not settings_manager.contains('custom.key')


class TestTypedSettings:
    """FeedSettings / WindowSettings built from the manager."""

    def test_feed_settings_defaults(self, settings_manager):
        feed = FeedSettings.from_settings(settings_manager)
        assert feed == FeedSettings()
        assert feed.detail_timeout_ms == 10000

    def test_feed_settings_clamps(self, settings_manager):
        settings_manager.set('feed.interval_ms', -10)
        settings_manager.set('feed.detail_failure_rate', 3.0)
        settings_manager.set('feed.io_workers', 0)

        feed = FeedSettings.from_settings(settings_manager)

        assert feed.interval_ms == 0
        assert feed.detail_failure_rate == 1.0
        assert feed.io_workers == 1

    def test_window_settings(self, settings_manager):
        settings_manager.set('ui.window_width', 100)
        window = WindowSettings.from_settings(settings_manager)
        assert window.width == 320
        assert window.height == 720
