"""
Feed store - owns the feed state and mediates every mutation.

The FeedStore is the central controller that:
- Consumes the feed source on a dedicated worker
- Prepends normalized items to the feed
- Runs detail fetches on the IO pool and applies their results
- Publishes immutable snapshots to observers

All mutations are applied on the Qt UI thread as whole-state replacements
under the store lock. Workers never touch the state; they hand results back
through ThreadManager.run_on_ui_thread().
"""
import itertools
import threading
from typing import Any, Callable, Dict, Optional

from PySide6.QtCore import QObject, Signal

from core.errors import FetchFailedError, NotFoundError, ProducerExhaustedError
from core.events import Event, EventSystem, EventType
from core.logging.logger import get_logger, is_verbose_logging
from core.settings.models import FeedSettings
from core.threading import TaskResult, ThreadManager, ThreadPoolType
from engine.feed_state import FeedState
from sources.base_provider import FeedProvider, NewsItem
from sources.feed_source import FeedSource

logger = get_logger(__name__)

_feed_task_ids = itertools.count(1)


class FeedStateView:
    """
    Read-only observation handle for a store's state.

    Exposes the current snapshot and a push subscription. Snapshots are
    frozen dataclasses, so nothing obtained through the view can change the
    store.
    """

    def __init__(self, get_state: Callable[[], FeedState], event_system: EventSystem, owner: Any):
        self._get_state = get_state
        self._event_system = event_system
        self._owner = owner

    @property
    def value(self) -> FeedState:
        """Current snapshot."""
        return self._get_state()

    def subscribe(self, callback: Callable[[FeedState], None], replay: bool = True,
                  priority: int = 50) -> str:
        """
        Call ``callback`` with every new snapshot, in mutation order.

        Args:
            callback: Receives each FeedState
            replay: Also deliver the current snapshot right away
            priority: Delivery priority relative to other observers

        Returns:
            str: Subscription ID for unsubscribe()
        """
        owner = self._owner

        def _deliver(event: Event) -> None:
            callback(event.data)

        sub_id = self._event_system.subscribe(
            EventType.FEED_UPDATED,
            _deliver,
            priority=priority,
            filter_fn=lambda event: event.source is owner,
        )
        if replay:
            callback(self.value)
        return sub_id

    def unsubscribe(self, subscription_id: str) -> bool:
        return self._event_system.unsubscribe(subscription_id)


class FeedStore(QObject):
    """
    Owner of the news feed state.

    Signals:
    - started: Ingestion started
    - stopped: Ingestion ended (store closed or producer exhausted)
    - state_changed: New FeedState snapshot published
    - item_added: NewsItem prepended (normalized)
    - detail_loaded: Detail applied for a news id
    - detail_failed: Detail fetch failed or timed out (news id, message)
    - detail_not_found: Detail requested for an unknown news id
    """

    started = Signal()
    stopped = Signal()
    state_changed = Signal(object)
    item_added = Signal(object)
    detail_loaded = Signal(int)
    detail_failed = Signal(int, str)
    detail_not_found = Signal(int)

    def __init__(self, source: FeedProvider,
                 thread_manager: Optional[ThreadManager] = None,
                 event_system: Optional[EventSystem] = None,
                 detail_timeout_ms: int = 0,
                 parent: Optional[QObject] = None):
        """
        Args:
            source: Feed source to consume and fetch details from
            thread_manager: Worker pools; created and owned by the store if omitted
            event_system: Event hub for observers; created if omitted
            detail_timeout_ms: Fail detail fetches that take longer (0 = no timeout)
            parent: Optional Qt parent
        """
        super().__init__(parent)

        self._source = source
        self._owns_thread_manager = thread_manager is None
        self._thread_manager = thread_manager or ThreadManager()
        self.event_system = event_system or EventSystem()
        self._detail_timeout_ms = max(0, int(detail_timeout_ms))

        self._state = FeedState()
        self._lock = threading.RLock()
        self._cancel = threading.Event()

        self._started = False
        self._closed = False
        self._exhausted = False
        self._feed_task_id: Optional[str] = None

        # request id -> news id for detail fetches still in flight
        self._pending: Dict[int, int] = {}
        self._request_ids = itertools.count(1)

        logger.info("FeedStore created (source=%s, detail_timeout=%dms)",
                    source.get_source_name(), self._detail_timeout_ms)

    @classmethod
    def from_settings(cls, settings: FeedSettings,
                      event_system: Optional[EventSystem] = None,
                      parent: Optional[QObject] = None) -> "FeedStore":
        """Build a store with a synthetic source and its own worker pools."""
        store = cls(
            FeedSource.from_settings(settings),
            thread_manager=ThreadManager(config={ThreadPoolType.IO: settings.io_workers}),
            event_system=event_system,
            detail_timeout_ms=settings.detail_timeout_ms,
            parent=parent,
        )
        store._owns_thread_manager = True
        return store

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> FeedState:
        """Current snapshot."""
        with self._lock:
            return self._state

    def observe(self) -> FeedStateView:
        """Return a read-only live view of the feed state."""
        return FeedStateView(lambda: self.state, self.event_system, self)

    def pending_requests(self) -> int:
        """Number of detail fetches still in flight."""
        with self._lock:
            return len(self._pending)

    def is_running(self) -> bool:
        return self._started and not self._closed and not self._exhausted

    def is_stopped(self) -> bool:
        """True once the producer ended or the store was closed."""
        return self._closed or self._exhausted

    def is_closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """
        Start consuming the feed source.

        Only the first call creates a consumer; later calls are no-ops. The
        ingestion loop holds a FEED worker for as long as it runs, so a store
        sharing its ThreadManager with a running store needs a FEED pool with
        a free worker.

        Returns:
            True if ingestion is (or already was) started, False once closed
            or when no FEED worker is free
        """
        if self._closed:
            logger.warning("[FEED] start() called on a closed store")
            return False
        if self._started:
            logger.warning("[FEED] Store already started")
            return True
        if self._thread_manager.is_shutdown():
            logger.warning("[FEED] start() refused, thread manager is shut down")
            return False
        if not self._thread_manager.has_idle_worker(ThreadPoolType.FEED):
            logger.warning("[FEED] start() refused, no free feed worker (pool size %d)",
                           self._thread_manager.config[ThreadPoolType.FEED])
            return False

        self._started = True
        self._feed_task_id = self._thread_manager.submit_feed_task(
            self._run_feed,
            task_id=f"feed_ingest_{next(_feed_task_ids)}",
            callback=self._on_feed_finished,
        )
        logger.info("[FEED] Ingestion started")
        self.started.emit()
        self.event_system.publish(EventType.FEED_STARTED, source=self)
        return True

    def _run_feed(self) -> int:
        """Worker loop: hand each produced item to the UI thread."""
        count = 0
        for item in self._source.produce_feed(self._cancel):
            if self._cancel.is_set():
                break
            ThreadManager.run_on_ui_thread(self.ingest, item)
            count += 1
        if not self._cancel.is_set():
            raise ProducerExhaustedError(
                f"{self._source.get_source_name()} stopped after {count} items"
            )
        return count

    def _on_feed_finished(self, result: TaskResult) -> None:
        # Runs on the feed worker; cancellation is the normal way out
        if self._cancel.is_set():
            logger.debug("[FEED] Ingestion loop finished after teardown")
            return
        error = result.error or ProducerExhaustedError("feed source ended")
        ThreadManager.run_on_ui_thread(self._mark_exhausted, error)

    def _mark_exhausted(self, error: Exception) -> None:
        if self._closed or self._exhausted:
            return
        self._exhausted = True
        logger.warning("[FEED] Producer exhausted, no further items will be ingested: %s", error)
        self.stopped.emit()
        self.event_system.publish(
            EventType.FEED_STOPPED,
            data={"reason": "exhausted", "error": str(error)},
            source=self,
        )

    def ingest(self, item: NewsItem) -> Optional[NewsItem]:
        """
        Normalize ``item``'s category to upper case and prepend it.

        Call on the Qt UI thread. Items arriving after close() or after the
        producer was marked exhausted are dropped, as are items whose id is
        already in the feed.

        Returns:
            The stored item, or None if it was dropped
        """
        if self._closed or self._exhausted:
            logger.debug("[FEED] Dropping item #%d, store stopped", item.id)
            return None

        stored = item.normalized()
        with self._lock:
            if self._state.contains(stored.id):
                logger.warning("[FEED] Duplicate news id #%d ignored", stored.id)
                return None
            self._state = self._state.with_prepended(stored)
            snapshot = self._state

            if is_verbose_logging():
                logger.debug("[FEED] Ingested #%d (%s), %d items", stored.id, stored.category, len(snapshot))
            self.item_added.emit(stored)
            self.event_system.publish(EventType.FEED_ITEM_ADDED, data=stored, source=self)
            self._publish(snapshot)
        return stored

    # ------------------------------------------------------------------
    # Detail loading
    # ------------------------------------------------------------------

    def request_detail(self, news_id: int) -> bool:
        """
        Start an asynchronous detail fetch for ``news_id``.

        The outcome arrives later through the observation channel
        (state_changed / detail_loaded) or detail_failed. Each completed
        request counts as one read, including repeats for the same id.

        Returns:
            True if a fetch was started, False if the id is unknown or the
            store is closed
        """
        if self._closed:
            logger.warning("[DETAIL] Request for #%d after close ignored", news_id)
            return False

        with self._lock:
            known = self._state.contains(news_id)
            if known:
                request_id = next(self._request_ids)
                self._pending[request_id] = news_id

        if not known:
            error = NotFoundError(news_id)
            logger.warning("[DETAIL] Request ignored: %s", error)
            self.detail_not_found.emit(news_id)
            self.event_system.publish(
                EventType.DETAIL_NOT_FOUND,
                data={"news_id": news_id, "error": str(error)},
                source=self,
            )
            return False

        def _on_done(result: TaskResult, request_id: int = request_id) -> None:
            ThreadManager.run_on_ui_thread(self._on_detail_result, request_id, news_id, result)

        try:
            self._thread_manager.submit_io_task(
                self._source.fetch_detail,
                news_id,
                task_id=f"detail_{request_id}",
                callback=_on_done,
            )
        except RuntimeError as e:
            with self._lock:
                self._pending.pop(request_id, None)
            logger.error("[DETAIL] Could not schedule fetch for #%d: %s", news_id, e)
            self._report_failure(request_id, news_id, FetchFailedError(news_id, str(e)))
            return False

        if self._detail_timeout_ms:
            ThreadManager.single_shot(self._detail_timeout_ms, self._on_detail_timeout, request_id)

        logger.debug("[DETAIL] Request %d started for #%d", request_id, news_id)
        self.event_system.publish(
            EventType.DETAIL_REQUESTED,
            data={"news_id": news_id, "request_id": request_id},
            source=self,
        )
        return True

    def _on_detail_result(self, request_id: int, news_id: int, result: TaskResult) -> None:
        with self._lock:
            if self._pending.pop(request_id, None) is None:
                # Timed out, or abandoned by close()
                logger.debug("[DETAIL] Dropping late result of request %d for #%d", request_id, news_id)
                return

            if result.success:
                error = self._apply_detail(request_id, news_id, result.result)
                if error is None:
                    return
            else:
                error = result.error
                if not isinstance(error, FetchFailedError):
                    error = FetchFailedError(news_id, f"Detail fetch for #{news_id} failed: {error}")

        self._report_failure(request_id, news_id, error)

    def _apply_detail(self, request_id: int, news_id: int, detail: Any) -> Optional[FetchFailedError]:
        """Commit a fetched detail. Must hold the lock."""
        if not isinstance(detail, str) or not detail:
            return FetchFailedError(news_id, f"Empty detail returned for news item #{news_id}")

        current = self._state
        if not current.contains(news_id):
            error = NotFoundError(news_id, f"News item #{news_id} is no longer in the feed")
            logger.warning("[DETAIL] Request %d dropped: %s", request_id, error)
            self.detail_not_found.emit(news_id)
            self.event_system.publish(
                EventType.DETAIL_NOT_FOUND,
                data={"news_id": news_id, "request_id": request_id, "error": str(error)},
                source=self,
            )
            return None

        self._state = current.with_updated_item(news_id, lambda item: item.with_detail(detail)).with_read()
        snapshot = self._state

        logger.info("[DETAIL] Loaded #%d (read count %d)", news_id, snapshot.read_count)
        self.detail_loaded.emit(news_id)
        self.event_system.publish(
            EventType.DETAIL_LOADED,
            data={"news_id": news_id, "request_id": request_id},
            source=self,
        )
        self._publish(snapshot)
        return None

    def _on_detail_timeout(self, request_id: int) -> None:
        with self._lock:
            news_id = self._pending.pop(request_id, None)
        if news_id is None:
            return
        self._report_failure(
            request_id,
            news_id,
            FetchFailedError(news_id, f"Detail fetch for #{news_id} timed out after {self._detail_timeout_ms}ms"),
        )

    def _report_failure(self, request_id: int, news_id: int, error: Exception) -> None:
        logger.warning("[DETAIL] Request %d for #%d failed: %s", request_id, news_id, error)
        self.detail_failed.emit(news_id, str(error))
        self.event_system.publish(
            EventType.DETAIL_FAILED,
            data={"news_id": news_id, "request_id": request_id, "error": str(error)},
            source=self,
        )

    # ------------------------------------------------------------------
    # Publishing / teardown
    # ------------------------------------------------------------------

    def _publish(self, snapshot: FeedState) -> None:
        self.state_changed.emit(snapshot)
        self.event_system.publish(EventType.FEED_UPDATED, data=snapshot, source=self)

    def close(self) -> None:
        """
        Stop ingestion and abandon in-flight detail fetches.

        Does not wait for workers. Results that arrive afterwards are
        ignored. Safe to call more than once.
        """
        if self._closed:
            return

        logger.info("[FEED] Closing feed store...")
        self._closed = True
        self._cancel.set()

        with self._lock:
            abandoned = len(self._pending)
            self._pending.clear()
        if abandoned:
            logger.info("[DETAIL] Abandoned %d in-flight detail fetches", abandoned)

        if self._owns_thread_manager:
            self._thread_manager.shutdown(wait=False)
        elif self._feed_task_id is not None:
            self._thread_manager.cancel_task(self._feed_task_id)

        if not self._exhausted:
            self.stopped.emit()
            self.event_system.publish(EventType.FEED_STOPPED, data={"reason": "closed"}, source=self)
        logger.info("[FEED] Feed store closed")
