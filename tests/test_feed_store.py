"""
Tests for FeedStore.

Covers:
- Newest-first ingestion and category normalization
- Detail loading, read counting and duplicate requests
- Not-found, failed and timed out requests
- Start/close lifecycle and producer exhaustion
- The read-only observation handle
"""
import dataclasses

import pytest

from core.events import EventType
from core.threading import ThreadManager, ThreadPoolType
from engine.feed_state import FeedState
from engine.feed_store import FeedStore
from sources.base_provider import CATEGORIES
from tests._feed_test_utils import EndlessScriptedSource, ScriptedSource, make_item


def _assert_detail_consistent(state: FeedState) -> None:
    for item in state.items:
        assert bool(item.detail_content) == item.is_detail_loaded


class TestIngestion:
    """Prepending and normalizing items."""

    def test_initial_state_is_empty(self, feed_store):
        assert feed_store.state == FeedState()
        assert feed_store.state.items == ()
        assert feed_store.state.read_count == 0
        assert feed_store.observe().value == FeedState()

    def test_items_are_newest_first(self, feed_store):
        for news_id in (1, 2, 3):
            feed_store.ingest(make_item(news_id))

        state = feed_store.state
        assert state.ids() == (3, 2, 1)
        assert state.read_count == 0

    def test_ingest_many_keeps_insertion_order(self, feed_store):
        n = 25
        for news_id in range(1, n + 1):
            feed_store.ingest(make_item(news_id))

        items = feed_store.state.items
        assert items[0].id == n
        assert items[n - 1].id == 1

    def test_three_items_equal_reverse_of_ingest(self, feed_store):
        stored = [feed_store.ingest(make_item(news_id)) for news_id in (1, 2, 3)]

        assert list(feed_store.state.items) == [stored[2], stored[1], stored[0]]

    @pytest.mark.parametrize("raw", ["politik", "Politik", "POLITIK", "pOlItIk"])
    def test_category_is_upper_cased(self, feed_store, raw):
        stored = feed_store.ingest(make_item(1, category=raw))

        assert stored.category == "POLITIK"
        assert feed_store.state.find(1).category == "POLITIK"

    @pytest.mark.parametrize("category", CATEGORIES)
    def test_known_categories_normalize_to_enumerated_upper_case(self, feed_store, category):
        feed_store.ingest(make_item(1, category=category.lower()))

        stored = feed_store.state.find(1).category
        assert stored == category.upper()
        assert stored in {c.upper() for c in CATEGORIES}

    def test_normalizing_twice_is_stable(self, feed_store):
        stored = feed_store.ingest(make_item(1, category="sports"))

        assert stored.normalized() == stored
        assert stored.with_category(stored.category) == stored

    def test_duplicate_id_is_ignored(self, feed_store):
        feed_store.ingest(make_item(1))
        before = feed_store.state

        assert feed_store.ingest(make_item(1, category="Sports")) is None
        assert feed_store.state is before

    def test_ingest_publishes_snapshot(self, feed_store, qtbot):
        with qtbot.waitSignal(feed_store.state_changed, timeout=1000) as blocker:
            feed_store.ingest(make_item(1))

        assert isinstance(blocker.args[0], FeedState)
        assert blocker.args[0].ids() == (1,)


class TestDetailLoading:
    """request_detail() and read counting."""

    def test_scenario_single_item(self, feed_store, qtbot):
        feed_store.ingest(make_item(1, category="politik"))
        item = feed_store.state.find(1)
        assert item.category == "POLITIK"
        assert item.is_detail_loaded is False

        assert feed_store.request_detail(1) is True
        qtbot.waitUntil(lambda: feed_store.state.read_count == 1, timeout=3000)

        loaded = feed_store.state.find(1)
        assert loaded.is_detail_loaded is True
        assert "1" in loaded.detail_content
        assert feed_store.state.read_count == 1

    def test_detail_only_changes_matching_item(self, feed_store, qtbot):
        for news_id in (1, 2, 3):
            feed_store.ingest(make_item(news_id))
        before = feed_store.state

        feed_store.request_detail(2)
        qtbot.waitUntil(lambda: feed_store.state.read_count == 1, timeout=3000)

        after = feed_store.state
        assert after.ids() == before.ids()
        assert after.find(1) == before.find(1)
        assert after.find(3) == before.find(3)
        changed = after.find(2)
        assert changed.title == before.find(2).title
        assert changed.category == before.find(2).category
        assert changed.summary == before.find(2).summary
        assert changed.is_detail_loaded

    def test_duplicate_concurrent_requests_count_twice(self, feed_store, qtbot):
        feed_store.ingest(make_item(1))

        assert feed_store.request_detail(1)
        assert feed_store.request_detail(1)
        assert feed_store.pending_requests() == 2

        qtbot.waitUntil(lambda: feed_store.state.read_count == 2, timeout=3000)
        assert feed_store.state.loaded_count() == 1
        assert feed_store.pending_requests() == 0

    def test_request_for_loaded_item_counts_again(self, feed_store, qtbot):
        feed_store.ingest(make_item(1))
        feed_store.request_detail(1)
        qtbot.waitUntil(lambda: feed_store.state.read_count == 1, timeout=3000)

        feed_store.request_detail(1)
        qtbot.waitUntil(lambda: feed_store.state.read_count == 2, timeout=3000)
        assert feed_store.state.find(1).is_detail_loaded

    def test_detail_flag_matches_content_in_every_snapshot(self, feed_store, qtbot):
        snapshots = []
        feed_store.observe().subscribe(snapshots.append)

        for news_id in (1, 2, 3):
            feed_store.ingest(make_item(news_id))
        feed_store.request_detail(1)
        feed_store.request_detail(3)
        qtbot.waitUntil(lambda: feed_store.state.read_count == 2, timeout=3000)

        assert len(snapshots) == 1 + 3 + 2
        for snapshot in snapshots:
            _assert_detail_consistent(snapshot)
            assert snapshot.read_count <= snapshot.loaded_count() <= len(snapshot)

    def test_completions_apply_in_completion_order(self, qt_app, qtbot, thread_manager, event_system):
        source = ScriptedSource(detail_delays={1: 0.4, 2: 0.02})
        store = FeedStore(source, thread_manager=thread_manager, event_system=event_system)
        try:
            store.ingest(make_item(1))
            store.ingest(make_item(2))
            order = []
            store.detail_loaded.connect(order.append)

            store.request_detail(1)
            store.request_detail(2)
            qtbot.waitUntil(lambda: len(order) == 2, timeout=3000)

            assert order == [2, 1]
            assert store.state.read_count == 2
        finally:
            store.close()


class TestDetailErrors:
    """Not found, failures and timeouts."""

    def test_unknown_id_leaves_state_unchanged(self, feed_store, qtbot):
        feed_store.ingest(make_item(1))
        before = feed_store.state

        with qtbot.waitSignal(feed_store.detail_not_found, timeout=1000) as blocker:
            assert feed_store.request_detail(99) is False

        assert blocker.args == [99]
        assert feed_store.state is before
        assert feed_store.state.read_count == 0
        assert len(feed_store.state) == 1
        assert feed_store.pending_requests() == 0

    def test_unknown_id_on_empty_feed(self, feed_store, event_system):
        assert feed_store.request_detail(1) is False
        assert feed_store.state == FeedState()
        history = event_system.get_event_history(event_type=EventType.DETAIL_NOT_FOUND)
        assert [e.data["news_id"] for e in history] == [1]

    def test_bool_id_does_not_match_item_one(self, qt_app, qtbot, thread_manager, event_system):
        source = ScriptedSource()
        store = FeedStore(source, thread_manager=thread_manager, event_system=event_system)
        try:
            store.ingest(make_item(1))

            with qtbot.waitSignal(store.detail_not_found, timeout=1000):
                assert store.request_detail(True) is False

            assert store.pending_requests() == 0
            qtbot.wait(100)
            assert source.fetch_calls == []
            assert store.state.find(True) is None
            assert not store.state.contains(True)
        finally:
            store.close()

    def test_item_removed_before_detail_reports_not_found(self, qt_app, qtbot, thread_manager, event_system):
        source = ScriptedSource(detail_delays={1: 0.2})
        store = FeedStore(source, thread_manager=thread_manager, event_system=event_system)
        loaded = []
        store.detail_loaded.connect(loaded.append)
        try:
            store.ingest(make_item(1))
            assert store.request_detail(1) is True
            with store._lock:
                store._state = FeedState()

            with qtbot.waitSignal(store.detail_not_found, timeout=3000) as blocker:
                pass

            assert blocker.args == [1]
            assert loaded == []
            assert store.state.read_count == 0
            assert store.pending_requests() == 0
            history = event_system.get_event_history(event_type=EventType.DETAIL_NOT_FOUND)
            assert history[-1].data["request_id"] == 1
        finally:
            store.close()

    def test_failed_fetch_leaves_item_idle(self, qt_app, qtbot, thread_manager, event_system):
        source = ScriptedSource(failures={1: 1})
        store = FeedStore(source, thread_manager=thread_manager, event_system=event_system)
        try:
            store.ingest(make_item(1))
            with qtbot.waitSignal(store.detail_failed, timeout=3000) as blocker:
                store.request_detail(1)

            news_id, message = blocker.args
            assert news_id == 1
            assert "scripted failure" in message
            assert store.state.find(1).is_detail_loaded is False
            assert store.state.read_count == 0
            assert store.pending_requests() == 0
        finally:
            store.close()

    def test_retry_after_failure_succeeds(self, qt_app, qtbot, thread_manager, event_system):
        source = ScriptedSource(failures={1: 1})
        store = FeedStore(source, thread_manager=thread_manager, event_system=event_system)
        try:
            store.ingest(make_item(1))
            with qtbot.waitSignal(store.detail_failed, timeout=3000):
                store.request_detail(1)

            store.request_detail(1)
            qtbot.waitUntil(lambda: store.state.read_count == 1, timeout=3000)
            assert store.state.find(1).is_detail_loaded
            assert source.fetch_calls == [1, 1]
        finally:
            store.close()

    def test_failure_does_not_affect_other_requests(self, qt_app, qtbot, thread_manager, event_system):
        source = ScriptedSource(failures={1: 1})
        store = FeedStore(source, thread_manager=thread_manager, event_system=event_system)
        try:
            store.ingest(make_item(1))
            store.ingest(make_item(2))
            failed = []
            store.detail_failed.connect(lambda news_id, _msg: failed.append(news_id))

            store.request_detail(1)
            store.request_detail(2)
            qtbot.waitUntil(lambda: store.state.read_count == 1 and bool(failed), timeout=3000)

            assert failed == [1]
            assert store.state.find(2).is_detail_loaded
            assert not store.state.find(1).is_detail_loaded
        finally:
            store.close()

    def test_timeout_fails_request_and_ignores_late_result(self, qt_app, qtbot, thread_manager, event_system):
        source = ScriptedSource(detail_delays={1: 0.4})
        store = FeedStore(source, thread_manager=thread_manager, event_system=event_system,
                          detail_timeout_ms=50)
        try:
            store.ingest(make_item(1))
            with qtbot.waitSignal(store.detail_failed, timeout=2000) as blocker:
                store.request_detail(1)

            assert "timed out" in blocker.args[1]
            # Let the slow fetch finish; its result must be dropped
            qtbot.wait(600)
            assert store.state.read_count == 0
            assert not store.state.find(1).is_detail_loaded
        finally:
            store.close()

    def test_fetch_failure_from_synthetic_source(self, qt_app, qtbot, thread_manager, event_system):
        from sources.feed_source import FeedSource
        source = FeedSource(interval_ms=10, detail_delay_ms=10, failure_rate=1.0)
        store = FeedStore(source, thread_manager=thread_manager, event_system=event_system)
        try:
            store.ingest(make_item(1))
            with qtbot.waitSignal(store.detail_failed, timeout=2000) as blocker:
                store.request_detail(1)
            assert blocker.args[0] == 1
            history = event_system.get_event_history(event_type=EventType.DETAIL_FAILED)
            assert history[-1].data["news_id"] == 1
        finally:
            store.close()


class TestLifecycle:
    """start(), close() and producer exhaustion."""

    def test_start_ingests_sequential_items(self, feed_store, qtbot):
        assert feed_store.start() is True
        qtbot.waitUntil(lambda: len(feed_store.state) >= 3, timeout=3000)

        ids = feed_store.state.ids()
        assert ids == tuple(range(len(ids), 0, -1))
        assert all(item.category.isupper() for item in feed_store.state.items)
        assert feed_store.is_running()

    def test_start_twice_creates_one_consumer(self, qt_app, qtbot, thread_manager, event_system):
        source = EndlessScriptedSource()
        store = FeedStore(source, thread_manager=thread_manager, event_system=event_system)
        try:
            assert store.start() is True
            assert store.start() is True
            qtbot.waitUntil(lambda: len(store.state) >= 3, timeout=3000)

            assert source.produce_calls == 1
            ids = store.state.ids()
            assert len(set(ids)) == len(ids)
        finally:
            store.close()

    def test_second_store_on_busy_feed_pool_is_refused(self, qt_app, qtbot, thread_manager, event_system):
        first = FeedStore(EndlessScriptedSource(), thread_manager=thread_manager, event_system=event_system)
        second = FeedStore(EndlessScriptedSource(), thread_manager=thread_manager, event_system=event_system)
        started = []
        second.started.connect(lambda: started.append(True))
        try:
            assert first.start() is True
            qtbot.waitUntil(lambda: len(first.state) >= 1, timeout=3000)

            assert second.start() is False
            assert started == []
            assert not second.is_running()
            starts = event_system.get_event_history(event_type=EventType.FEED_STARTED)
            assert [e.source for e in starts] == [first]
        finally:
            first.close()
            second.close()

    def test_stores_sharing_a_sized_feed_pool_both_ingest(self, qt_app, qtbot, event_system):
        manager = ThreadManager(config={ThreadPoolType.FEED: 2})
        first = FeedStore(EndlessScriptedSource(), thread_manager=manager, event_system=event_system)
        second = FeedStore(EndlessScriptedSource(), thread_manager=manager, event_system=event_system)
        try:
            assert first.start() is True
            assert second.start() is True

            qtbot.waitUntil(lambda: len(first.state) >= 3 and len(second.state) >= 3, timeout=3000)
            assert first.is_running() and second.is_running()
        finally:
            first.close()
            second.close()
            manager.shutdown(wait=True)

    def test_start_refused_after_manager_shutdown(self, qt_app, event_system):
        manager = ThreadManager()
        store = FeedStore(EndlessScriptedSource(), thread_manager=manager, event_system=event_system)
        manager.shutdown()
        try:
            assert store.start() is False
            assert not store.is_running()
        finally:
            store.close()

    def test_close_stops_ingestion(self, feed_store, qtbot):
        feed_store.start()
        qtbot.waitUntil(lambda: len(feed_store.state) >= 1, timeout=3000)

        with qtbot.waitSignal(feed_store.stopped, timeout=1000):
            feed_store.close()
        count = len(feed_store.state)
        qtbot.wait(200)

        assert len(feed_store.state) == count
        assert feed_store.is_stopped()
        assert not feed_store.is_running()
        assert feed_store.start() is False

    def test_close_abandons_in_flight_fetches(self, feed_store, qtbot):
        feed_store.ingest(make_item(1))
        assert feed_store.request_detail(1)

        feed_store.close()
        assert feed_store.pending_requests() == 0
        qtbot.wait(300)

        assert feed_store.state.read_count == 0
        assert not feed_store.state.find(1).is_detail_loaded

    def test_close_is_idempotent(self, feed_store, event_system):
        feed_store.close()
        feed_store.close()

        stops = event_system.get_event_history(event_type=EventType.FEED_STOPPED)
        assert len(stops) == 1
        assert stops[0].data == {"reason": "closed"}

    def test_requests_after_close_are_ignored(self, feed_store):
        feed_store.ingest(make_item(1))
        feed_store.close()

        assert feed_store.request_detail(1) is False
        assert feed_store.ingest(make_item(2)) is None

    def test_exhausted_producer_marks_store_stopped(self, qt_app, qtbot, thread_manager, event_system):
        source = ScriptedSource(items=[make_item(i, category="sports") for i in (1, 2, 3)])
        store = FeedStore(source, thread_manager=thread_manager, event_system=event_system)
        try:
            with qtbot.waitSignal(store.stopped, timeout=3000):
                store.start()

            assert store.state.ids() == (3, 2, 1)
            assert store.is_stopped()
            assert not store.is_running()
            assert store.ingest(make_item(4)) is None
            stops = event_system.get_event_history(event_type=EventType.FEED_STOPPED)
            assert stops[-1].data["reason"] == "exhausted"

            # Existing items can still be read
            store.request_detail(2)
            qtbot.waitUntil(lambda: store.state.read_count == 1, timeout=3000)
            assert store.state.find(2).is_detail_loaded
        finally:
            store.close()

    def test_from_settings_owns_its_workers(self, qt_app):
        from core.settings.models import FeedSettings
        store = FeedStore.from_settings(FeedSettings(interval_ms=10, detail_delay_ms=10, io_workers=2))
        try:
            assert store.state == FeedState()
        finally:
            store.close()
        assert store._thread_manager.is_shutdown()


class TestObservation:
    """The read-only handle returned by observe()."""

    def test_subscribe_replays_current_value(self, feed_store):
        feed_store.ingest(make_item(1))
        received = []

        feed_store.observe().subscribe(received.append)

        assert received == [feed_store.state]

    def test_subscribe_without_replay(self, feed_store):
        received = []
        feed_store.observe().subscribe(received.append, replay=False)
        assert received == []

        feed_store.ingest(make_item(1))
        assert [s.ids() for s in received] == [(1,)]

    def test_unsubscribe_stops_delivery(self, feed_store):
        received = []
        view = feed_store.observe()
        sub_id = view.subscribe(received.append, replay=False)

        feed_store.ingest(make_item(1))
        assert view.unsubscribe(sub_id) is True
        feed_store.ingest(make_item(2))

        assert len(received) == 1
        assert view.value.ids() == (2, 1)

    def test_value_tracks_latest_state(self, feed_store):
        view = feed_store.observe()
        feed_store.ingest(make_item(1))
        assert view.value is feed_store.state

    def test_view_cannot_mutate(self, feed_store):
        feed_store.ingest(make_item(1))
        view = feed_store.observe()

        assert not hasattr(view, "ingest")
        assert not hasattr(view, "request_detail")
        with pytest.raises(dataclasses.FrozenInstanceError):
            view.value.read_count = 5
        with pytest.raises(dataclasses.FrozenInstanceError):
            view.value.items[0].is_detail_loaded = True
        assert isinstance(view.value.items, tuple)

    def test_observers_of_other_stores_are_not_notified(self, qt_app, feed_store, fast_source,
                                                        thread_manager, event_system):
        other = FeedStore(fast_source, thread_manager=thread_manager, event_system=event_system)
        try:
            received = []
            feed_store.observe().subscribe(received.append, replay=False)

            other.ingest(make_item(1))
            assert received == []
        finally:
            other.close()

    def test_events_published_for_item_and_detail(self, feed_store, qtbot, event_system):
        feed_store.ingest(make_item(1))
        feed_store.request_detail(1)
        qtbot.waitUntil(lambda: feed_store.state.read_count == 1, timeout=3000)

        kinds = [e.event_type for e in event_system.get_event_history()]
        assert EventType.FEED_ITEM_ADDED in kinds
        assert EventType.DETAIL_REQUESTED in kinds
        assert EventType.DETAIL_LOADED in kinds
        assert kinds.index(EventType.DETAIL_REQUESTED) < kinds.index(EventType.DETAIL_LOADED)
