import json
import logging
import re
import threading
import time
from unittest.mock import MagicMock

import pytest

from conftest import CountingScheduler, DeferredExecutor, InlineExecutor, ThreadExecutor

from autosave_guard.controllers import CampaignSession
from autosave_guard.errors import AutosaveError, InconsistentSaveStateError, SaveInProgressError
from autosave_guard.managers.autosave import (
    ERROR_FAILED,
    STATUS_AUTOSAVING,
    AutosaveManager,
    autosave_metrics,
)
from autosave_guard.managers.save_lock import SaveLock
from autosave_guard.serialization import save_campaign


class Harness:
    """Wires an AutosaveManager to fakes and records what it reports."""

    def __init__(
        self, tmp_path, timer_factory, *, writer=save_campaign, executor=None, owner=True, interval=lambda: 1
    ):
        self.lock = SaveLock()
        self.session = CampaignSession(
            self.lock, state={"notes": "hello"}, autosave_path=tmp_path / "autosave" / "AutoSave.cmpgn"
        )
        self.owner = owner
        self.statuses = []
        self.errors = []
        self.path = tmp_path / "autosave" / "AutoSave.cmpgn"
        self.manager = AutosaveManager(
            self.session.snapshot,
            lambda: self.owner,
            self.lock,
            interval,
            status_reporter=self.statuses.append,
            error_reporter=lambda message, error: self.errors.append((message, error)),
            writer=writer,
            executor=executor or InlineExecutor(),
            path=self.path,
        )
        self.scheduler = CountingScheduler(
            self.manager.perform_autosave, interval, timer_factory=timer_factory
        )
        self.manager.scheduler = self.scheduler

    def start(self):
        self.manager.start()
        self.scheduler.restarts = 0
        self.scheduler.pauses = 0
        return self.scheduler


def test_scheduled_fire_writes_snapshot_and_reschedules(tmp_path, timer_factory):
    def slow_writer(snapshot, path):
        time.sleep(0.01)
        save_campaign(snapshot, path)

    harness = Harness(tmp_path, timer_factory, writer=slow_writer)
    scheduler = harness.start()

    timer_factory.created[0].fire()

    payload = json.loads(harness.path.read_text(encoding="utf-8"))
    assert payload["campaign"] == {"notes": "hello"}
    assert harness.statuses[0] == STATUS_AUTOSAVING
    assert re.fullmatch(r"Autosave complete \(\d+ ms\)", harness.statuses[-1])
    assert harness.errors == []
    assert harness.lock.is_saving is False
    assert scheduler.pauses == 1
    assert scheduler.restarts == 1
    assert len(timer_factory.active) == 1
    assert autosave_metrics.counters["success"] == 1
    assert autosave_metrics.durations[0] >= 5


def test_persistence_failure_is_reported_and_released(tmp_path, timer_factory, caplog):
    def failing_writer(snapshot, path):
        raise OSError("disk full")

    harness = Harness(tmp_path, timer_factory, writer=failing_writer)
    scheduler = harness.start()

    caplog.set_level(logging.DEBUG, logger="autosave_guard")
    harness.manager.perform_autosave()

    assert len(harness.errors) == 1
    message, error = harness.errors[0]
    assert message == ERROR_FAILED
    assert isinstance(error, AutosaveError)
    assert isinstance(error.__cause__, OSError)
    assert harness.statuses == [STATUS_AUTOSAVING]
    assert harness.lock.is_saving is False
    assert scheduler.restarts == 1
    assert scheduler.is_active is True
    assert autosave_metrics.counters["failure"] == 1
    assert any("cid" in r.__dict__ for r in caplog.records)


def test_reporter_failure_still_releases_flag(tmp_path, timer_factory):
    harness = Harness(tmp_path, timer_factory)
    scheduler = harness.start()
    harness.manager._status_reporter = MagicMock(side_effect=RuntimeError("status bar gone"))

    harness.manager.perform_autosave()

    assert harness.lock.is_saving is False
    assert scheduler.restarts == 1
    assert harness.manager.is_idle
    assert harness.errors == []


def test_attempt_skipped_while_manual_save_holds_flag(tmp_path, timer_factory):
    writer = MagicMock()
    harness = Harness(tmp_path, timer_factory, writer=writer)
    scheduler = harness.start()
    assert harness.lock.try_acquire()

    harness.manager.perform_autosave()

    writer.assert_not_called()
    assert harness.lock.is_saving is True
    assert scheduler.restarts == 0
    assert scheduler.pauses == 0
    assert harness.statuses == []
    assert harness.errors == []
    assert autosave_metrics.counters["skipped"] == 1


def test_attempt_skipped_when_not_authoritative(tmp_path, timer_factory):
    executor = MagicMock()
    harness = Harness(tmp_path, timer_factory, executor=executor, owner=False)
    harness.manager.snapshot_producer = MagicMock()

    harness.manager.perform_autosave()

    harness.manager.snapshot_producer.assert_not_called()
    executor.submit.assert_not_called()
    assert harness.statuses == []
    assert harness.lock.is_saving is False


def test_snapshot_taken_before_background_write(tmp_path, timer_factory):
    executor = DeferredExecutor()
    harness = Harness(tmp_path, timer_factory, executor=executor)

    harness.manager.perform_autosave()
    harness.session.update(notes="edited after the timer fired")
    executor.run_all()

    payload = json.loads(harness.path.read_text(encoding="utf-8"))
    assert payload["campaign"]["notes"] == "hello"


def test_snapshot_failure_reports_error(tmp_path, timer_factory):
    executor = MagicMock()
    harness = Harness(tmp_path, timer_factory, executor=executor)
    harness.manager.snapshot_producer = MagicMock(side_effect=ValueError("cannot copy"))
    harness.manager.perform_autosave()

    executor.submit.assert_not_called()
    assert len(harness.errors) == 1
    _, error = harness.errors[0]
    assert type(error) is AutosaveError
    assert isinstance(error.__cause__, ValueError)
    assert harness.lock.is_saving is False


def test_launch_failure_with_held_flag_forces_idle(tmp_path, timer_factory):
    harness = Harness(tmp_path, timer_factory)
    harness.manager.snapshot_producer = MagicMock(side_effect=ValueError("cannot copy"))
    assert harness.lock.try_acquire()

    harness.manager.perform_autosave()

    assert harness.lock.is_saving is False
    _, error = harness.errors[0]
    assert isinstance(error, InconsistentSaveStateError)


def test_submit_failure_leaves_manager_idle(tmp_path, timer_factory):
    executor = MagicMock()
    executor.submit.side_effect = RuntimeError("pool shut down")
    harness = Harness(tmp_path, timer_factory, executor=executor)

    harness.manager.perform_autosave()

    assert harness.manager.is_idle
    harness.manager.wait_for_idle(0)
    assert isinstance(harness.errors[0][1], AutosaveError)


def test_wait_for_idle_times_out_while_task_pending(tmp_path, timer_factory):
    harness = Harness(tmp_path, timer_factory, executor=DeferredExecutor())

    harness.manager.perform_autosave()

    with pytest.raises(TimeoutError):
        harness.manager.wait_for_idle(0.01)


def test_back_to_back_fires_drop_second_attempt(tmp_path, timer_factory):
    entered = threading.Event()
    release = threading.Event()
    writes = []

    def blocking_writer(snapshot, path):
        writes.append(snapshot)
        entered.set()
        assert release.wait(5)
        save_campaign(snapshot, path)

    executor = ThreadExecutor()
    harness = Harness(tmp_path, timer_factory, writer=blocking_writer, executor=executor)
    scheduler = harness.start()

    harness.manager.perform_autosave()
    assert entered.wait(5)

    harness.manager.perform_autosave()
    executor.threads[1].join(5)

    assert len(writes) == 1
    assert harness.statuses == [STATUS_AUTOSAVING]
    assert harness.lock.is_saving is True
    assert autosave_metrics.counters["skipped"] == 1
    # A manual save contends for the same flag.
    with pytest.raises(SaveInProgressError):
        harness.session.save(tmp_path / "named.cmpgn")
    assert not (tmp_path / "named.cmpgn").exists()

    release.set()
    harness.manager.wait_for_idle(5)

    assert harness.statuses[-1].startswith("Autosave complete")
    assert harness.lock.is_saving is False
    assert scheduler.restarts == 1
    assert harness.path.exists()


def test_shutdown_stops_scheduler(tmp_path, timer_factory):
    harness = Harness(tmp_path, timer_factory)
    scheduler = harness.start()

    harness.manager.shutdown(timeout=1)
    harness.manager.perform_autosave()

    assert scheduler.has_timer is False
    assert harness.path.exists()
    assert timer_factory.active == []


def test_reschedule_failure_keeps_previous_cadence_and_reports(tmp_path, timer_factory):
    calls = []

    def flaky_interval():
        calls.append(1)
        if len(calls) > 1:
            raise ValueError("preferences unreadable")
        return 1

    harness = Harness(tmp_path, timer_factory, interval=flaky_interval)
    scheduler = harness.start()

    harness.manager.perform_autosave()

    assert harness.path.exists()
    assert harness.lock.is_saving is False
    assert scheduler.is_active is True
    assert timer_factory.created[0].interval_ms == 60_000
    assert len(harness.errors) == 1
    message, error = harness.errors[0]
    assert message == ERROR_FAILED
    assert isinstance(error, AutosaveError)
    assert isinstance(error.__cause__, ValueError)
    assert harness.manager.is_idle


def test_launch_failure_reporter_error_stays_on_manager(tmp_path, timer_factory, caplog):
    harness = Harness(tmp_path, timer_factory)
    harness.manager.snapshot_producer = MagicMock(side_effect=ValueError("cannot copy"))
    harness.manager._error_reporter = MagicMock(side_effect=RuntimeError("dialog gone"))
    caplog.set_level(logging.ERROR, logger="autosave_guard")

    harness.manager.perform_autosave()

    harness.manager._error_reporter.assert_called_once()
    assert harness.lock.is_saving is False
    assert harness.manager.is_idle
    assert any(r.getMessage() == "autosave error reporter failed" for r in caplog.records)
