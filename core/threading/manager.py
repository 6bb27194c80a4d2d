"""
Thread Manager for the news feed simulator.

Centralized thread management with a dedicated pool for the long-running feed
producer and an IO pool for detail fetches. Results are handed back to the Qt
UI thread through run_on_ui_thread(), which is the single place the feed
state is mutated from.
"""
import itertools
import threading
import time
from concurrent.futures import ThreadPoolExecutor, Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from PySide6.QtCore import QTimer, QObject, QThread, QCoreApplication, Signal
from core.logging.logger import get_logger, is_verbose_logging

logger = get_logger(__name__)


# UI-thread invoker for reliable main thread dispatch
class _UiInvoker(QObject):
    invoke = Signal(object, object, object)

    def __init__(self):
        super().__init__()
        self.invoke.connect(self._on_invoke)

    def _on_invoke(self, func, args, kwargs):
        try:
            func(*args, **(kwargs or {}))
        except Exception as e:
            logger.exception("UI invoker callable raised: %s", e)


_ui_invoker: Optional[_UiInvoker] = None
_ui_invoker_lock = threading.Lock()


def _ensure_ui_invoker() -> Optional[_UiInvoker]:
    global _ui_invoker
    app = QCoreApplication.instance()
    if app is None:
        logger.error("run_on_ui_thread: No QCoreApplication instance")
        return None
    with _ui_invoker_lock:
        if _ui_invoker is None:
            inv = _UiInvoker()
            inv.moveToThread(app.thread())
            _ui_invoker = inv
        return _ui_invoker


class ThreadPoolType(Enum):
    """Thread pool types for feed workloads"""
    FEED = "feed"   # Long-running feed producer loop
    IO = "io"       # Detail fetches


@dataclass
class TaskResult:
    """Container for task execution results"""
    success: bool
    result: Any = None
    error: Optional[Exception] = None
    execution_time: float = 0.0
    task_id: Optional[str] = None


class Task:
    """Wrapper for executable tasks with metadata"""
    _ids = itertools.count(1)

    def __init__(self, func: Callable, *args, task_id: Optional[str] = None, **kwargs):
        self.func = func
        self.args = args
        self.kwargs = kwargs
        self.task_id = task_id or f"task_{next(Task._ids)}"
        self.created_at = time.time()
        self.pool_type: Optional[ThreadPoolType] = None
        self.future: Optional[Future] = None


class ThreadManager:
    """
    Centralized thread manager.

    Features:
    - Separate FEED and IO thread pools
    - Task results wrapped in TaskResult, never raised on worker threads
    - UI thread dispatch utilities
    - Per-pool statistics
    """
    def __init__(self, config: Optional[Dict[ThreadPoolType, int]] = None):
        """
        Initialize thread manager.

        Args:
            config: Dictionary mapping ThreadPoolType to max_workers count
        """
        self._shutdown = False

        default_config = {
            ThreadPoolType.FEED: 1,
            ThreadPoolType.IO: 4,
        }
        self.config = {**default_config, **(config or {})}

        self._executors: Dict[ThreadPoolType, ThreadPoolExecutor] = {}
        self._active_tasks: Dict[str, Task] = {}
        self._stats = {pool_type: {'submitted': 0, 'completed': 0, 'failed': 0}
                       for pool_type in ThreadPoolType}
        self._lock = threading.Lock()

        self._initialize_pools()

        logger.info("ThreadManager initialized with FEED=%d, IO=%d workers",
                    self.config[ThreadPoolType.FEED], self.config[ThreadPoolType.IO])

    def _initialize_pools(self):
        """Initialize thread pools based on configuration."""
        for pool_type, max_workers in self.config.items():
            if max_workers < 1:
                raise ValueError(f"{pool_type.value} pool needs at least one worker")
            self._executors[pool_type] = ThreadPoolExecutor(
                max_workers=max_workers,
                thread_name_prefix=f"{pool_type.value}_pool"
            )
            logger.debug("Initialized %s pool with %d workers", pool_type.value, max_workers)

    def is_shutdown(self) -> bool:
        return self._shutdown

    def submit_task(self, pool_type: ThreadPoolType, func: Callable, *args,
                    task_id: Optional[str] = None,
                    callback: Optional[Callable[[TaskResult], None]] = None, **kwargs) -> str:
        """
        Submit a task to the specified thread pool.

        Args:
            pool_type: Which thread pool to use
            func: Function to execute
            *args: Positional arguments for func
            task_id: Optional unique identifier
            callback: Optional callback for result, called on the worker thread
            **kwargs: Keyword arguments for func

        Returns:
            str: Task ID for tracking

        Raises:
            RuntimeError: If the manager has been shut down
        """
        if self._shutdown:
            raise RuntimeError("Thread manager is shut down")

        task = Task(func, *args, task_id=task_id, **kwargs)
        task.pool_type = pool_type
        executor = self._executors[pool_type]

        def wrapped_func():
            start_time = time.time()
            try:
                result = task.func(*task.args, **task.kwargs)
                task_result = TaskResult(
                    success=True,
                    result=result,
                    execution_time=time.time() - start_time,
                    task_id=task.task_id
                )
                self._record(pool_type, 'completed')
            except Exception as e:
                task_result = TaskResult(
                    success=False,
                    error=e,
                    execution_time=time.time() - start_time,
                    task_id=task.task_id
                )
                logger.warning("Task %s failed: %s", task.task_id, e)
                self._record(pool_type, 'failed')
            finally:
                with self._lock:
                    self._active_tasks.pop(task.task_id, None)

            if callback:
                try:
                    callback(task_result)
                except Exception as e:
                    logger.error("Callback for task %s failed: %s", task.task_id, e)

            return task_result

        with self._lock:
            self._active_tasks[task.task_id] = task
            self._stats[pool_type]['submitted'] += 1
        task.future = executor.submit(wrapped_func)

        if is_verbose_logging():
            logger.debug("Submitted task %s to %s pool", task.task_id, pool_type.value)
        return task.task_id

    def submit_io_task(self, func: Callable, *args, **kwargs) -> str:
        """Convenience method for IO pool submissions"""
        return self.submit_task(ThreadPoolType.IO, func, *args, **kwargs)

    def submit_feed_task(self, func: Callable, *args, **kwargs) -> str:
        """Convenience method for the feed producer pool."""
        return self.submit_task(ThreadPoolType.FEED, func, *args, **kwargs)

    def _record(self, pool_type: ThreadPoolType, kind: str) -> None:
        with self._lock:
            self._stats[pool_type][kind] += 1

    def cancel_task(self, task_id: str) -> bool:
        """Attempt to cancel a task that has not started yet."""
        with self._lock:
            task = self._active_tasks.get(task_id)
        if task and task.future:
            cancelled = task.future.cancel()
            if cancelled:
                with self._lock:
                    self._active_tasks.pop(task_id, None)
                logger.debug("Cancelled task %s", task_id)
            return cancelled
        return False

    def has_idle_worker(self, pool_type: ThreadPoolType) -> bool:
        """True if fewer tasks are active in the pool than it has workers."""
        with self._lock:
            busy = sum(1 for task in self._active_tasks.values() if task.pool_type is pool_type)
        return busy < self.config[pool_type]

    def get_active_tasks(self) -> List[str]:
        """Get list of currently active task IDs"""
        with self._lock:
            return list(self._active_tasks.keys())

    def get_pool_stats(self) -> Dict[str, Dict[str, int]]:
        """Get statistics for all thread pools"""
        with self._lock:
            return {pool_type.value: stats.copy()
                    for pool_type, stats in self._stats.items()}

    def shutdown(self, wait: bool = True) -> None:
        """
        Shutdown all thread pools.

        Args:
            wait: Whether to wait for running tasks. Queued tasks are
                cancelled when not waiting.
        """
        if self._shutdown:
            return
        self._shutdown = True
        logger.info("Shutting down thread manager (wait=%s)...", wait)

        for task_id in self.get_active_tasks():
            self.cancel_task(task_id)

        for pool_type, executor in self._executors.items():
            pending = self.get_active_tasks()
            if pending:
                logger.debug("Pool %s shutting down with %d tasks still running",
                             pool_type.value, len(pending))
            executor.shutdown(wait=wait, cancel_futures=not wait)

        self._executors.clear()
        with self._lock:
            self._active_tasks.clear()

        logger.info("Thread manager shut down complete")

    # UI dispatch utilities ----------------------------------------------
    @staticmethod
    def run_on_ui_thread(func: Callable, *args, **kwargs) -> bool:
        """Dispatch a callable to the Qt UI thread.

        Runs inline when already on the UI thread, otherwise queues it
        through the invoker's signal. Returns False when no Qt application
        exists to dispatch to.
        """
        app = QCoreApplication.instance()
        if app is None:
            logger.debug("run_on_ui_thread called without QCoreApplication")
            return False

        if QThread.currentThread() is app.thread():
            try:
                func(*args, **(kwargs or {}))
            except Exception as e:
                logger.exception("UI thread callable raised: %s", e)
            return True

        inv = _ensure_ui_invoker()
        if inv is None:
            return False
        inv.invoke.emit(func, args, kwargs or {})
        return True

    @staticmethod
    def single_shot(delay_ms: int, func: Callable, *args, **kwargs) -> None:
        """Schedule a callable to run on the UI thread after a delay"""
        app = QCoreApplication.instance()
        if app is None:
            raise RuntimeError("single_shot called without QCoreApplication")

        def _invoke():
            ThreadManager.run_on_ui_thread(func, *args, **(kwargs or {}))

        if QThread.currentThread() is app.thread():
            QTimer.singleShot(max(0, int(delay_ms)), _invoke)
        else:
            def _schedule_on_ui():
                QTimer.singleShot(max(0, int(delay_ms)), _invoke)
            ThreadManager.run_on_ui_thread(_schedule_on_ui)
