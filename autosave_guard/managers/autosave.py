# managers/autosave.py
"""Autosave manager with structured logging and metrics.

This module exposes :class:`AutosaveManager` which periodically writes a
snapshot of the live campaign to the single recovery file at
``config.AUTOSAVE_PATH``.  Each attempt:

* is skipped silently when the process does not own the campaign;
* snapshots the state on the calling (GUI) thread, before any locking;
* persists the snapshot on a background worker while holding the shared
  :class:`~autosave_guard.managers.save_lock.SaveLock`, or drops the attempt
  outright when a manual save already holds it;
* always releases the lock and restarts the scheduler, so the next attempt
  is spaced a full interval after this one finished.

All operations emit structured logs including a correlation identifier
(``cid``).  Basic metrics are recorded via the ``autosave_metrics``
instance which tracks success, failure and skip counts as well as observed
write durations.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from .. import config
from ..errors import AutosaveError, InconsistentSaveStateError
from ..serialization.campaign import CampaignSnapshot, save_campaign
from ..workers import Executor, TaskExecutor
from .save_lock import SaveLock
from .scheduler import AutosaveScheduler

StatusReporter = Callable[[str], None]
ErrorReporter = Callable[[str, Exception], None]

STATUS_AUTOSAVING = "Autosaving campaign..."
STATUS_COMPLETE = "Autosave complete ({duration_ms:.0f} ms)"
ERROR_FAILED = "Autosave failed"


class _AutosaveMetrics:
    """Simple in-memory metrics collector."""

    def __init__(self) -> None:
        self.counters: Counter[str] = Counter()
        self.durations: list[float] = []
        self._lock = threading.Lock()

    def record(self, name: str, duration: float | None = None) -> None:
        with self._lock:
            self.counters[name] += 1
            if duration is not None:
                self.durations.append(duration)

    def reset(self) -> None:
        with self._lock:
            self.counters.clear()
            self.durations.clear()


autosave_metrics = _AutosaveMetrics()


@dataclass(slots=True)
class _AutosaveContext:
    """Holds state for a single autosave attempt."""

    cid: str
    path: Path
    snapshot: CampaignSnapshot
    log: logging.LoggerAdapter


class AutosaveManager:
    """Coordinates periodic autosaves with manual saves of the same campaign."""

    def __init__(
        self,
        snapshot_producer: Callable[[], CampaignSnapshot],
        is_authoritative: Callable[[], bool],
        save_lock: SaveLock,
        interval_provider: Callable[[], int],
        *,
        status_reporter: Optional[StatusReporter] = None,
        error_reporter: Optional[ErrorReporter] = None,
        writer: Callable[[CampaignSnapshot, Path], Any] = save_campaign,
        executor: Optional[Executor] = None,
        scheduler: Optional[AutosaveScheduler] = None,
        path: Optional[Path] = None,
    ):
        self.snapshot_producer = snapshot_producer
        self.is_authoritative = is_authoritative
        self.save_lock = save_lock
        self.path = Path(path) if path is not None else config.AUTOSAVE_PATH
        self._writer = writer
        self._status_reporter = status_reporter or (lambda _message: None)
        self._error_reporter = error_reporter or (lambda _message, _error: None)
        self._executor = executor or TaskExecutor()
        self.scheduler = scheduler or AutosaveScheduler(
            self.perform_autosave, interval_provider
        )
        self._pending = 0
        self._pending_lock = threading.Lock()
        self._idle_event = threading.Event()
        self._idle_event.set()

    # -- scheduling -------------------------------------------------------

    def start(self) -> None:
        self.scheduler.start()

    def restart(self) -> None:
        self.scheduler.restart()

    def pause(self) -> None:
        self.scheduler.pause()

    def shutdown(self, timeout: float | None = config.AUTOSAVE_IDLE_TIMEOUT_SECS) -> None:
        """Stop the timer and wait for an in-flight autosave to finish."""
        self.scheduler.stop()
        self.wait_for_idle(timeout)

    def wait_for_idle(self, timeout: float | None = None) -> None:
        """Block until submitted autosave tasks (if any) complete.

        Used at shutdown and in tests to synchronise with background workers.
        """
        if not self._idle_event.wait(timeout):
            raise TimeoutError("Autosave task did not complete in time")

    @property
    def is_idle(self) -> bool:
        return self._idle_event.is_set()

    # -- attempts ---------------------------------------------------------

    def perform_autosave(self) -> None:
        """Snapshot the campaign and persist it in the background."""

        if not self.is_authoritative():
            logging.getLogger(__name__).debug("autosave skipped: campaign not owned")
            return

        cid = uuid.uuid4().hex
        log = logging.LoggerAdapter(logging.getLogger(__name__), {"cid": cid})
        submitted = False
        try:
            start_copy = time.perf_counter()
            snapshot = self.snapshot_producer()
            log.info(
                "campaign snapshot taken",
                extra={"copy_ms": (time.perf_counter() - start_copy) * 1000},
            )
            context = _AutosaveContext(cid=cid, path=self.path, snapshot=snapshot, log=log)
            self._task_submitted()
            submitted = True
            self._executor.submit(lambda: self._run_attempt(context))
        except Exception as exc:  # noqa: BLE001 - reported, never propagated to the GUI thread
            if submitted:
                self._task_finished()
            self._recover_from_launch_failure(log, exc)

    def _run_attempt(self, context: _AutosaveContext) -> None:
        try:
            if not self.save_lock.try_acquire():
                # A manual save owns the campaign right now; drop this attempt.
                context.log.debug("autosave skipped: save already in progress")
                autosave_metrics.record("skipped")
                return
            try:
                self.scheduler.pause()
                self._persist(context)
            finally:
                context.log.debug("releasing save flag and rescheduling")
                self.save_lock.release()
                self._reschedule(context)
        except Exception:  # noqa: BLE001 - nothing escapes the worker thread
            context.log.exception("autosave task failed")
        finally:
            self._task_finished()

    def _persist(self, context: _AutosaveContext) -> None:
        self._status_reporter(STATUS_AUTOSAVING)
        start = time.perf_counter()
        try:
            self._writer(context.snapshot, context.path)
        except Exception as exc:  # noqa: BLE001 - any writer failure is a failed autosave
            autosave_metrics.record("failure")
            context.log.error(
                "autosave failed",  # Runbook: verify free space and permissions of the autosave dir
                exc_info=True,
                extra={"path": str(context.path), "error": str(exc)},
            )
            error = AutosaveError(f"Failed to autosave to {context.path}: {exc}")
            error.__cause__ = exc
            self._error_reporter(ERROR_FAILED, error)
            return
        duration = (time.perf_counter() - start) * 1000
        autosave_metrics.record("success", duration)
        context.log.info(
            "autosave complete",
            extra={"path": str(context.path), "duration_ms": duration},
        )
        self._status_reporter(STATUS_COMPLETE.format(duration_ms=duration))

    def _reschedule(self, context: _AutosaveContext) -> None:
        try:
            self.scheduler.restart()
        except Exception as exc:  # noqa: BLE001 - keep the previous cadence instead
            context.log.error("autosave could not be rescheduled", exc_info=True)
            self.scheduler.resume()
            error = AutosaveError(f"Autosave could not be rescheduled: {exc}")
            error.__cause__ = exc
            self._error_reporter(ERROR_FAILED, error)

    def _recover_from_launch_failure(self, log: logging.LoggerAdapter, exc: Exception) -> None:
        autosave_metrics.record("failure")
        if self.save_lock.force_reset():
            log.error("autosave could not start and save flag was held", exc_info=True)
            error: AutosaveError = InconsistentSaveStateError(
                f"Autosave could not start and the save flag was still set: {exc}"
            )
        else:
            log.error("autosave could not start", exc_info=True)
            error = AutosaveError(f"Autosave could not start: {exc}")
        error.__cause__ = exc
        try:
            self._error_reporter(ERROR_FAILED, error)
        except Exception:  # noqa: BLE001 - the timer callback must not raise
            log.exception("autosave error reporter failed")

    def _task_submitted(self) -> None:
        with self._pending_lock:
            self._pending += 1
            self._idle_event.clear()

    def _task_finished(self) -> None:
        with self._pending_lock:
            self._pending = max(self._pending - 1, 0)
            if self._pending == 0:
                self._idle_event.set()
