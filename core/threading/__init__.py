"""Thread pools and UI-thread dispatch."""

from .manager import TaskResult, ThreadManager, ThreadPoolType

__all__ = ['TaskResult', 'ThreadManager', 'ThreadPoolType']
