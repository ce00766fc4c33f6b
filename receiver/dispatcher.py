"""
Detached task dispatch.

Fire-and-forget work (telemetry and analytics reports) is handed to a
dispatcher. dispatch() returns immediately; the task's outcome is never
reported back to the caller and failed tasks are not retried.
"""
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable
import threading

from bittensor.utils.btlogging import logging

from receiver.constants import DEFAULT_DISPATCH_BACKLOG, DEFAULT_DISPATCH_WORKERS


class IDispatcher(ABC):
    """Interface for scheduling detached tasks."""
    
    @abstractmethod
    def dispatch(self, task: Callable, *args, **kwargs) -> None:
        """
        Schedule task(*args, **kwargs) without waiting for it.
        
        Never raises and never blocks on the task.
        """
        pass
    
    @abstractmethod
    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting tasks. Optionally wait for pending ones."""
        pass


class ThreadPoolDispatcher(IDispatcher):
    """
    Runs detached tasks on a thread pool and discards their results.
    
    At most max_workers + max_pending tasks are in flight. While the pool
    is saturated (e.g. the API is slow), further tasks are dropped.
    """
    
    def __init__(self, max_workers: int = DEFAULT_DISPATCH_WORKERS, max_pending: int = DEFAULT_DISPATCH_BACKLOG):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dispatch")
        self._slots = threading.BoundedSemaphore(max_workers + max_pending)
        self.dropped = 0
    
    def _finish(self, name: str, future: Future) -> None:
        self._slots.release()
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logging.debug(f"Detached task {name} failed (ignored): {error}")
    
    def dispatch(self, task: Callable, *args, **kwargs) -> None:
        name = getattr(task, "__name__", repr(task))
        if not self._slots.acquire(blocking=False):
            self.dropped += 1
            logging.debug(f"Dropped detached task {name}: backlog full ({self.dropped} dropped so far)")
            return
        try:
            future = self._executor.submit(task, *args, **kwargs)
        except RuntimeError as e:
            # Executor already shut down
            self._slots.release()
            logging.debug(f"Dropped detached task {name}: {e}")
            return
        future.add_done_callback(lambda f: self._finish(name, f))
    
    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
