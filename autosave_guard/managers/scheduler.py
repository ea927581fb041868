# managers/scheduler.py
"""Restartable, pausable periodic timer driving autosave attempts."""

from __future__ import annotations

import logging
from threading import RLock
from typing import Callable, Optional, Protocol

from PySide6.QtCore import QCoreApplication, QObject, QTimer, Signal, Slot

LOGGER = logging.getLogger(__name__)

MS_PER_MINUTE = 60 * 1000


class PeriodicTimer(Protocol):
    """Minimal timer surface used by :class:`AutosaveScheduler`."""

    def start(self, interval_ms: int) -> None: ...

    def stop(self) -> None: ...

    def is_active(self) -> bool: ...


class QtPeriodicTimer(QObject):
    """``QTimer`` wrapper that may be driven from any thread.

    ``QTimer`` can only be started or stopped from the thread that owns it.
    Requests go through signals, so calls made on a worker thread are queued
    to the owner thread while calls from the owner thread run immediately.
    """

    _start_requested = Signal(int)
    _stop_requested = Signal()

    def __init__(self, callback: Callable[[], None], parent: Optional[QObject] = None):
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.timeout.connect(callback)
        self._start_requested.connect(self._start)
        self._stop_requested.connect(self._stop)
        app = QCoreApplication.instance()
        if parent is None and app is not None and self.thread() != app.thread():
            # Created from a pool thread: hand the timer to the GUI event loop.
            self.moveToThread(app.thread())

    def start(self, interval_ms: int) -> None:
        self._start_requested.emit(int(interval_ms))

    def stop(self) -> None:
        self._stop_requested.emit()

    def is_active(self) -> bool:
        return self._timer.isActive()

    @Slot(int)
    def _start(self, interval_ms: int) -> None:
        # QTimer.start(msec) updates the period and restarts a running timer.
        self._timer.start(interval_ms)

    @Slot()
    def _stop(self) -> None:
        self._timer.stop()


class AutosaveScheduler:
    """Periodic autosave trigger configured in minutes.

    ``interval_provider`` is queried on every :meth:`restart` so preference
    changes apply on the next restart.  An interval of zero or less disables
    the timer entirely.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        interval_provider: Callable[[], int],
        timer_factory: Optional[Callable[[Callable[[], None]], PeriodicTimer]] = None,
    ):
        self._callback = callback
        self._interval_provider = interval_provider
        self._timer_factory = timer_factory or QtPeriodicTimer
        self._timer: Optional[PeriodicTimer] = None
        self._interval_minutes = 0
        self._stopped = False
        self._lock = RLock()

    @property
    def interval_ms(self) -> int:
        with self._lock:
            return max(self._interval_minutes, 0) * MS_PER_MINUTE

    @property
    def has_timer(self) -> bool:
        with self._lock:
            return self._timer is not None

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._timer is not None and self._timer.is_active()

    def start(self) -> None:
        with self._lock:
            self._stopped = False
        self.restart()

    def restart(self) -> None:
        """Re-read the interval and (re)arm, or drop, the timer."""
        interval = int(self._interval_provider())
        with self._lock:
            if self._stopped:
                return
            self._interval_minutes = interval
            if interval <= 0:
                if self._timer is not None:
                    LOGGER.debug("autosave disabled; removing timer")
                    self._timer.stop()
                    self._timer = None
                return
            delay_ms = interval * MS_PER_MINUTE
            if self._timer is None:
                LOGGER.debug("creating autosave timer", extra={"delay_ms": delay_ms})
                self._timer = self._timer_factory(self._callback)
            else:
                LOGGER.debug("restarting autosave timer", extra={"delay_ms": delay_ms})
            self._timer.start(delay_ms)

    def pause(self) -> None:
        """Stop firing without discarding the timer."""
        with self._lock:
            if self._timer is not None:
                LOGGER.debug("pausing autosave timer")
                self._timer.stop()

    def resume(self) -> None:
        """Re-arm a paused timer with the last interval :meth:`restart` applied."""
        with self._lock:
            if self._stopped or self._timer is None or self._interval_minutes <= 0:
                return
            LOGGER.debug("resuming autosave timer")
            self._timer.start(self._interval_minutes * MS_PER_MINUTE)

    def stop(self) -> None:
        """Stop and discard the timer (application shutdown)."""
        with self._lock:
            self._stopped = True
            if self._timer is not None:
                self._timer.stop()
                self._timer = None
