"""
Unit tests for the scan monitor state machine.

Most tests drive poll() directly so no timer thread is involved; the clock
is injected so staleness is tested without sleeping.
"""

import threading
import time
from unittest.mock import MagicMock

import pytest

from core.exceptions import StatusFetchError
from core.status_client import ScanStatusClient
from models.scan import PersistedSnapshot, ScanJobSnapshot, ScanPhase
from services.scan_monitor import MonitorState, ScanMonitor, ScanPresenter
from services.snapshot_store import MemorySnapshotStore


NOW = 10_000.0


def snap(scanning, progress, cancelled=False):
    return ScanJobSnapshot(
        scanning=scanning, cancelled=cancelled, progress=progress, current_network="10.0.0.0/24"
    )


# Fixtures

@pytest.fixture
def client():
    return MagicMock(spec=ScanStatusClient)


@pytest.fixture
def store():
    return MemorySnapshotStore()


@pytest.fixture
def presenter():
    return MagicMock(spec=ScanPresenter)


@pytest.fixture
def monitor(client, store, presenter):
    """Monitor with a long interval so the timer never ticks during a test."""
    monitor = ScanMonitor(client, store, presenter, poll_interval=60.0, clock=lambda: NOW)
    yield monitor
    monitor.close()


class TestPolling:
    """Test transitions driven by status polls."""

    def test_defaults(self, client, store):
        monitor = ScanMonitor(client, store)

        assert monitor.poll_interval == 2.0
        assert monitor.staleness_window == 300.0
        assert monitor.state is MonitorState.IDLE

    def test_progress_sequence_completes(self, monitor, client, store, presenter):
        """[10, 45, 100] with scanning [true, true, false] ends COMPLETED."""
        client.fetch.side_effect = [snap(True, 10), snap(True, 45), snap(False, 100)]

        states = [monitor.poll() for _ in range(3)]

        assert states == [MonitorState.POLLING, MonitorState.POLLING, MonitorState.COMPLETED]
        presenter.show.assert_called_once()
        presenter.hide.assert_called_once_with(ScanPhase.COMPLETED, 0.3)
        assert store.load() is None

    def test_progress_sequence_cancelled(self, monitor, client, store, presenter):
        """[10, 45] then a cancelled status ends CANCELLED, not COMPLETED."""
        client.fetch.side_effect = [
            snap(True, 10),
            snap(True, 45),
            snap(False, 45, cancelled=True),
        ]

        states = [monitor.poll() for _ in range(3)]

        assert states[-1] is MonitorState.CANCELLED
        presenter.hide.assert_called_once_with(ScanPhase.CANCELLED, 0.3)
        assert store.load() is None

    def test_in_progress_poll_checkpoints_snapshot(self, monitor, client, store):
        client.fetch.return_value = snap(True, 10)

        monitor.poll()

        persisted = store.load()
        assert persisted.snapshot.progress == 10
        assert persisted.captured_at == NOW
        assert persisted.claims_active

    def test_progress_never_decreases_while_scanning(self, monitor, client, store):
        client.fetch.side_effect = [snap(True, 10), snap(True, 45), snap(True, 30), snap(True, 50)]

        observed = []
        for _ in range(4):
            monitor.poll()
            observed.append(monitor.displayed_snapshot.progress)

        assert observed == [10, 45, 45, 50]
        assert observed == sorted(observed)

    def test_fetch_failure_keeps_state_and_display(self, monitor, client, presenter):
        client.fetch.side_effect = [
            snap(True, 10),
            StatusFetchError("http://console/scan-status", "connection refused"),
            snap(True, 20),
        ]

        monitor.poll()
        assert monitor.poll() is None

        assert monitor.state is MonitorState.POLLING
        assert monitor.displayed_snapshot.progress == 10
        presenter.hide.assert_not_called()

        assert monitor.poll() is MonitorState.POLLING
        assert monitor.displayed_snapshot.progress == 20

    def test_not_started_goes_idle(self, monitor, client, store, presenter):
        """The server reporting no job stops monitoring and clears the checkpoint."""
        client.fetch.side_effect = [snap(True, 10), snap(False, 0)]

        monitor.poll()
        state = monitor.poll()

        assert state is MonitorState.IDLE
        assert store.load() is None
        assert monitor.displayed_snapshot is None
        presenter.hide.assert_called_once_with(ScanPhase.NOT_STARTED, 0.0)

    def test_terminal_monitor_ignores_polls(self, monitor, client):
        client.fetch.return_value = snap(False, 100)
        monitor.poll()

        assert monitor.poll() is None
        assert client.fetch.call_count == 1


class TestConcurrency:
    """Test the single in-flight fetch and teardown during a fetch."""

    def test_teardown_mid_poll_discards_result(self, monitor, client, store, presenter):
        """A result arriving after close() applies no transition."""
        client.fetch.return_value = snap(True, 10)
        monitor.poll()

        def close_then_complete():
            monitor.close()
            return snap(False, 100)

        client.fetch.side_effect = close_then_complete

        assert monitor.poll() is None
        assert monitor.state is MonitorState.IDLE
        presenter.hide.assert_not_called()
        assert store.load().snapshot.progress == 10

    def test_only_one_fetch_in_flight(self, monitor, client):
        started = threading.Event()
        release = threading.Event()

        def slow_fetch():
            started.set()
            release.wait(timeout=5)
            return snap(True, 10)

        client.fetch.side_effect = slow_fetch
        worker = threading.Thread(target=monitor.poll)
        worker.start()
        try:
            assert started.wait(timeout=5)
            assert monitor.state is MonitorState.RECONCILING
            assert monitor.poll() is None
        finally:
            release.set()
            worker.join(timeout=5)

        assert client.fetch.call_count == 1
        assert monitor.state is MonitorState.POLLING

    def test_resume_during_fetch_issues_no_second_fetch(self, monitor, client, store):
        """resume() shares the fetch gate with poll()."""
        store.save(PersistedSnapshot.capture(snap(True, 40), now=NOW - 30))
        started = threading.Event()
        release = threading.Event()

        def slow_fetch():
            started.set()
            release.wait(timeout=5)
            return snap(True, 50)

        client.fetch.side_effect = slow_fetch
        worker = threading.Thread(target=monitor.poll)
        worker.start()
        try:
            assert started.wait(timeout=5)
            assert monitor.resume() is MonitorState.RECONCILING
        finally:
            release.set()
            worker.join(timeout=5)

        assert client.fetch.call_count == 1
        assert monitor.state is MonitorState.POLLING
        assert monitor.displayed_snapshot.progress == 50

    def test_superseded_result_is_discarded(self, monitor, store, presenter):
        """An older fetch resolving after a newer one applies nothing."""
        older = monitor._issue_ticket()
        newer = monitor._issue_ticket()

        assert monitor._apply(newer, snap(True, 45), hide_delay=0.3) is MonitorState.POLLING
        assert monitor._apply(older, snap(True, 10), hide_delay=0.3) is None

        assert monitor.displayed_snapshot.progress == 45
        assert store.load().snapshot.progress == 45
        presenter.show.assert_called_once_with(snap(True, 45))
        presenter.update.assert_not_called()

    def test_tick_after_close_issues_no_fetch(self, monitor, client, store):
        """A timer tick that got past its stop check before close() does nothing."""
        client.fetch.return_value = snap(True, 30)
        monitor.poll()
        tick_stop_event = threading.Event()

        monitor.close()
        client.fetch.return_value = snap(True, 80)
        monitor._tick(tick_stop_event)

        assert client.fetch.call_count == 1
        assert monitor.state is MonitorState.IDLE
        assert store.load().snapshot.progress == 30

    def test_stopped_timer_tick_issues_no_fetch(self, monitor, client):
        stop_event = threading.Event()
        stop_event.set()

        assert monitor.poll(stop_event) is None
        client.fetch.assert_not_called()

    def test_close_during_timer_fetch_leaves_idle(self, monitor, client, store, presenter):
        """close() racing an outstanding timer fetch leaves the store unchanged."""
        client.fetch.return_value = snap(True, 30)
        monitor.poll()
        started = threading.Event()
        release = threading.Event()

        def slow_fetch():
            started.set()
            release.wait(timeout=5)
            return snap(True, 80)

        client.fetch.side_effect = slow_fetch
        monitor.start()
        assert started.wait(timeout=5)

        closer = threading.Thread(target=monitor.close)
        closer.start()
        deadline = time.monotonic() + 5
        while monitor.state is not MonitorState.IDLE and time.monotonic() < deadline:
            time.sleep(0.01)
        release.set()
        closer.join(timeout=5)

        assert not closer.is_alive()
        assert monitor.state is MonitorState.IDLE
        assert not monitor.is_running
        assert store.load().snapshot.progress == 30
        assert monitor.displayed_snapshot.progress == 30
        presenter.update.assert_not_called()

    def test_presenter_may_close_from_hide(self, monitor, client, presenter):
        """Presenter callbacks run outside the monitor's lock."""
        presenter.hide.side_effect = lambda outcome, delay: monitor.close()
        client.fetch.return_value = snap(False, 100)
        results = []

        worker = threading.Thread(target=lambda: results.append(monitor.poll()))
        worker.start()
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert results == [MonitorState.COMPLETED]
        assert monitor.state is MonitorState.IDLE


class TestTimer:
    """Test the polling thread lifecycle."""

    def test_start_polls_until_terminal(self, client, store):
        finished = threading.Event()
        presenter = MagicMock(spec=ScanPresenter)
        presenter.hide.side_effect = lambda outcome, delay: finished.set()
        client.fetch.side_effect = [snap(True, 10), snap(True, 60), snap(False, 100)]
        monitor = ScanMonitor(client, store, presenter, poll_interval=0.01)

        try:
            monitor.start()
            assert finished.wait(timeout=5)
        finally:
            monitor.close()

        presenter.hide.assert_called_once_with(ScanPhase.COMPLETED, 0.3)
        assert client.fetch.call_count == 3

    def test_start_is_idempotent(self, monitor, client):
        client.fetch.return_value = snap(True, 10)

        monitor.start()
        thread = monitor._thread
        monitor.start()

        assert monitor._thread is thread
        assert monitor.is_running

    def test_close_keeps_checkpoint(self, monitor, client, store):
        """Leaving the view mid-scan keeps the snapshot so the next view resumes."""
        client.fetch.return_value = snap(True, 30)
        monitor.poll()
        monitor.start()

        monitor.close()

        assert monitor.state is MonitorState.IDLE
        assert not monitor.is_running
        assert store.load().snapshot.progress == 30

    def test_hide_closing_on_timer_thread(self, client, store):
        """A view that exits when the bar hides can close from the timer thread."""
        finished = threading.Event()
        presenter = MagicMock(spec=ScanPresenter)
        client.fetch.side_effect = [snap(True, 10), snap(False, 100)]
        monitor = ScanMonitor(client, store, presenter, poll_interval=0.01)

        def close_on_hide(outcome, delay):
            monitor.close()
            finished.set()

        presenter.hide.side_effect = close_on_hide
        monitor.start()

        assert finished.wait(timeout=5)
        assert monitor.state is MonitorState.IDLE
        assert not monitor.is_running

    def test_start_after_close_polls_again(self, monitor, client, presenter):
        shown = threading.Event()
        presenter.show.side_effect = lambda snapshot: shown.set()
        client.fetch.return_value = snap(True, 10)

        monitor.close()
        monitor.start()

        assert shown.wait(timeout=5)
        assert monitor.is_running


class TestResume:
    """Test the startup transition from a persisted snapshot."""

    def test_no_snapshot_stays_idle(self, monitor, client):
        assert monitor.resume() is MonitorState.IDLE
        client.fetch.assert_not_called()

    def test_stale_active_snapshot_confirmed_inactive(self, monitor, client, store, presenter):
        """A stale claim is still checked; server inactivity means idle with no timer."""
        store.save(PersistedSnapshot.capture(snap(True, 40), now=NOW - 400))
        client.fetch.return_value = snap(False, 0)

        state = monitor.resume()

        assert state is MonitorState.IDLE
        assert not monitor.is_running
        assert client.fetch.call_count == 1
        assert store.load() is None
        presenter.show.assert_not_called()

    def test_stale_active_snapshot_confirmed_running(self, monitor, client, store, presenter):
        """Only the fresh status is displayed, never the stale values."""
        store.save(PersistedSnapshot.capture(snap(True, 40), now=NOW - 400))
        client.fetch.return_value = snap(True, 70)

        state = monitor.resume()

        assert state is MonitorState.POLLING
        assert monitor.is_running
        presenter.show.assert_called_once_with(snap(True, 70))

    def test_stale_snapshot_fetch_failure_stays_idle(self, monitor, client, store, presenter):
        store.save(PersistedSnapshot.capture(snap(True, 40), now=NOW - 400))
        client.fetch.side_effect = StatusFetchError("http://console/scan-status", "timeout")

        assert monitor.resume() is MonitorState.IDLE
        assert not monitor.is_running
        presenter.show.assert_not_called()

    def test_stale_inactive_snapshot_is_discarded_without_query(self, monitor, client, store):
        store.save(PersistedSnapshot.capture(snap(False, 100), now=NOW - 400))

        assert monitor.resume() is MonitorState.IDLE
        client.fetch.assert_not_called()
        assert store.load() is None

    def test_fresh_active_snapshot_resumes(self, monitor, client, store, presenter):
        store.save(PersistedSnapshot.capture(snap(True, 40), now=NOW - 30))
        client.fetch.return_value = snap(True, 55)

        state = monitor.resume()

        assert state is MonitorState.POLLING
        assert monitor.is_running
        presenter.show.assert_called_once_with(snap(True, 55))
        assert store.load().captured_at == NOW

    def test_fresh_snapshot_server_inactive(self, monitor, client, store):
        store.save(PersistedSnapshot.capture(snap(True, 40), now=NOW - 30))
        client.fetch.return_value = snap(False, 0)

        assert monitor.resume() is MonitorState.IDLE
        assert not monitor.is_running
        assert store.load() is None

    def test_fresh_snapshot_job_finished_meanwhile(self, monitor, client, store, presenter):
        """A job that completed while the view was away is shown briefly, then hidden."""
        store.save(PersistedSnapshot.capture(snap(True, 40), now=NOW - 30))
        client.fetch.return_value = snap(False, 100)

        assert monitor.resume() is MonitorState.COMPLETED
        assert not monitor.is_running
        presenter.hide.assert_called_once_with(ScanPhase.COMPLETED, 3.0)
        assert store.load() is None

    def test_fresh_snapshot_fetch_failure_shows_last_known(self, monitor, client, store, presenter):
        persisted = PersistedSnapshot.capture(snap(True, 40), now=NOW - 30)
        store.save(persisted)
        client.fetch.side_effect = StatusFetchError("http://console/scan-status", "timeout")

        state = monitor.resume()

        assert state is MonitorState.POLLING
        assert monitor.is_running
        assert monitor.displayed_snapshot == persisted.snapshot

    def test_fresh_inactive_snapshot_stays_idle(self, monitor, client, store):
        store.save(PersistedSnapshot.capture(snap(False, 100), now=NOW - 30))

        assert monitor.resume() is MonitorState.IDLE
        client.fetch.assert_not_called()
        assert store.load() is not None
