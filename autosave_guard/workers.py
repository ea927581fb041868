# workers.py
"""
Background task execution utilities for Autosave Guard.
Defines a unified Worker for QRunnable tasks and a TaskExecutor that submits
them to a QThreadPool.
"""
import logging
from typing import Any, Callable, Optional, Protocol

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal

LOGGER = logging.getLogger(__name__)


class WorkerSignals(QObject):
    started = Signal()
    finished = Signal()
    error = Signal(str)
    result = Signal(object)


class Worker(QRunnable):
    """Wraps any function to run in a QThreadPool."""
    def __init__(self, fn: Callable, *args, **kwargs):
        super().__init__()
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.signals = WorkerSignals()

    def run(self) -> None:
        try:
            self.signals.started.emit()
            result = self.fn(*self.args, **self.kwargs)
            self.signals.result.emit(result)
        except Exception as e:
            LOGGER.error("Worker error: %s", e, exc_info=True)
            self.signals.error.emit(str(e))
        finally:
            self.signals.finished.emit()


class Executor(Protocol):
    """Anything able to run a callable off the calling thread."""

    def submit(self, fn: Callable[[], Any]) -> None: ...


class TaskExecutor:
    """Submits one Worker per task to a thread pool."""
    def __init__(self, thread_pool: Optional[QThreadPool] = None):
        self.thread_pool = thread_pool or QThreadPool.globalInstance()

    def submit(self, fn: Callable[[], Any]) -> Worker:
        worker = Worker(fn)
        self.thread_pool.start(worker)
        return worker

    def wait_for_done(self, timeout_ms: int = -1) -> bool:
        """Block until every queued task finished (shutdown helper)."""
        return self.thread_pool.waitForDone(timeout_ms)
