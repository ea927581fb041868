"""Shared fakes for driving the autosave subsystem without a Qt event loop."""

from __future__ import annotations

import threading
from typing import Callable, List

import pytest

from autosave_guard.managers.autosave import autosave_metrics
from autosave_guard.managers.scheduler import AutosaveScheduler


class FakeTimer:
    """Stub periodic timer recording how it was driven."""

    def __init__(self, callback: Callable[[], None]):
        self.callback = callback
        self.active = False
        self.interval_ms = None
        self.starts = 0

    def start(self, interval_ms: int) -> None:
        self.interval_ms = interval_ms
        self.active = True
        self.starts += 1

    def stop(self) -> None:
        self.active = False

    def is_active(self) -> bool:
        return self.active

    def fire(self) -> None:
        self.callback()


class FakeTimerFactory:
    def __init__(self):
        self.created: List[FakeTimer] = []

    def __call__(self, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(callback)
        self.created.append(timer)
        return timer

    @property
    def active(self) -> List[FakeTimer]:
        return [t for t in self.created if t.active]


class CountingScheduler(AutosaveScheduler):
    """Scheduler that counts pause/restart calls."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.restarts = 0
        self.pauses = 0

    def restart(self) -> None:
        self.restarts += 1
        super().restart()

    def pause(self) -> None:
        self.pauses += 1
        super().pause()


class InlineExecutor:
    """Runs submitted tasks immediately on the calling thread."""

    def submit(self, fn):
        fn()


class DeferredExecutor:
    """Holds submitted tasks until :meth:`run_all` is called."""

    def __init__(self):
        self.tasks = []

    def submit(self, fn):
        self.tasks.append(fn)

    def run_all(self) -> None:
        while self.tasks:
            self.tasks.pop(0)()


class ThreadExecutor:
    """Starts one thread per submitted task."""

    def __init__(self):
        self.threads: List[threading.Thread] = []

    def submit(self, fn):
        thread = threading.Thread(target=fn, daemon=True)
        self.threads.append(thread)
        thread.start()


@pytest.fixture(autouse=True)
def reset_metrics():
    autosave_metrics.reset()
    yield
    autosave_metrics.reset()


@pytest.fixture()
def timer_factory() -> FakeTimerFactory:
    return FakeTimerFactory()
