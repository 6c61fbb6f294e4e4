"""
Scan monitor with background polling thread.

Tracks the network discovery job from the operator's side: polls the status
endpoint every poll interval, checkpoints progress so a new view can resume
monitoring, and drives a presenter (progress bar) until the job completes or
is cancelled.

State machine:
    IDLE ──resume()/start()──> POLLING ──tick──> RECONCILING
    RECONCILING ──in progress──> POLLING
    RECONCILING ──completed────> COMPLETED
    RECONCILING ──cancelled────> CANCELLED
    RECONCILING ──not started──> IDLE
    any ──close()──> IDLE

A failed fetch does not transition state: the previous displayed values stay
on screen and the next tick retries at the same cadence.

Thread Safety:
    - One timer thread per monitor, owned by the instance (never global)
    - At most one fetch in flight, gated by a non-blocking lock (shared by
      poll() and resume())
    - Every fetch carries a PollTicket; close() cancels the outstanding
      ticket and a result arriving for a cancelled or superseded ticket is
      discarded without touching state, store or presenter
    - Once closed, no new fetch is issued until start() or resume()
    - Presenter callbacks run outside the state lock, so a presenter may
      call close() from hide()

Usage:
    monitor = ScanMonitor(HttpScanStatusClient(url), MemorySnapshotStore())
    monitor.resume()     # on view entry: pick up a scan started elsewhere
    monitor.start()      # after the operator starts a scan
    ...
    monitor.close()      # on view exit
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable, List, Optional, Tuple

from core.exceptions import StatusFetchError
from core.status_client import ScanStatusClient
from models.scan import STALENESS_WINDOW_SECONDS, PersistedSnapshot, ScanJobSnapshot, ScanPhase
from services.snapshot_store import SnapshotStore
from logging_config import get_logger, set_thread_name


# Module logger
logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 2.0
HIDE_FADE_SECONDS = 0.3
RESUME_HIDE_SECONDS = 3.0


class MonitorState(Enum):
    """State of a ScanMonitor."""

    IDLE = "idle"
    """No job is being monitored and no timer runs."""

    POLLING = "polling"
    """An in-progress job is monitored; waiting for the next tick."""

    RECONCILING = "reconciling"
    """A status fetch is outstanding."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (MonitorState.COMPLETED, MonitorState.CANCELLED)


_TERMINAL_STATES = {
    ScanPhase.COMPLETED: MonitorState.COMPLETED,
    ScanPhase.CANCELLED: MonitorState.CANCELLED,
}


@dataclass
class PollTicket:
    """Handle for one status fetch."""

    sequence: int
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ScanPresenter:
    """
    Presentation callbacks driven by the monitor.

    The web console renders these as a minimized progress bar; the terminal
    monitor prints them.
    """

    def show(self, snapshot: ScanJobSnapshot) -> None:
        """Display progress for a job that was not displayed before."""

    def update(self, snapshot: ScanJobSnapshot) -> None:
        """Refresh the displayed progress."""

    def hide(self, outcome: ScanPhase, delay_seconds: float) -> None:
        """
        Remove the progress display.

        Args:
            outcome: COMPLETED, CANCELLED, or NOT_STARTED when the server
                reports that no job is running
            delay_seconds: Fade delay before the display disappears
        """


class LoggingScanPresenter(ScanPresenter):
    """Presenter that writes progress to the application log."""

    def show(self, snapshot: ScanJobSnapshot) -> None:
        logger.info(
            f"Scan in progress: {snapshot.progress}% on {snapshot.network_label} "
            f"({snapshot.found_printers} printers found)"
        )

    def update(self, snapshot: ScanJobSnapshot) -> None:
        logger.info(
            f"Scan progress: {snapshot.progress}% on {snapshot.network_label} "
            f"({snapshot.found_printers} printers found)"
        )

    def hide(self, outcome: ScanPhase, delay_seconds: float) -> None:
        logger.info(f"Scan display closed: {outcome.value}")


class ScanMonitor:
    """
    Polling state machine for the network discovery job.

    Attributes:
        poll_interval: Seconds between status queries
        staleness_window: Age in seconds past which a persisted snapshot is
            not trusted
    """

    def __init__(
        self,
        client: ScanStatusClient,
        store: SnapshotStore,
        presenter: Optional[ScanPresenter] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        staleness_window: float = STALENESS_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
        hide_fade_seconds: float = HIDE_FADE_SECONDS,
        resume_hide_seconds: float = RESUME_HIDE_SECONDS,
    ):
        self._client = client
        self._store = store
        self._presenter = presenter or LoggingScanPresenter()
        self.poll_interval = poll_interval
        self.staleness_window = staleness_window
        self._clock = clock
        self._hide_fade_seconds = hide_fade_seconds
        self._resume_hide_seconds = resume_hide_seconds

        self._lock = threading.Lock()
        self._fetch_gate = threading.Lock()
        self._state = MonitorState.IDLE
        self._sequence = 0
        self._ticket: Optional[PollTicket] = None
        self._displayed: Optional[ScanJobSnapshot] = None
        self._consecutive_failures = 0
        self._closed = False

        # Timer thread control
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Whether the polling timer is active."""
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop_event.is_set()

    @property
    def displayed_snapshot(self) -> Optional[ScanJobSnapshot]:
        """Values currently on screen, or None if nothing is displayed."""
        return self._displayed

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def resume(self) -> MonitorState:
        """
        Resume monitoring a job started in a previous view.

        Reads the persisted snapshot once. A fresh snapshot claiming an active
        job is confirmed with one status query before the timer is resumed.
        A stale snapshot is discarded and never displayed; if it claimed an
        active job the server is still asked, and polling starts only if the
        job really is running.

        If a status fetch is already in flight the monitor is already polling,
        and the current state is returned without a second query.

        Returns:
            State after the startup transition
        """
        if not self._fetch_gate.acquire(blocking=False):
            logger.debug("Status fetch already in flight, not resuming")
            return self._state

        try:
            with self._lock:
                self._closed = False
            return self._resume()
        finally:
            self._fetch_gate.release()

    def _resume(self) -> MonitorState:
        # Caller holds self._fetch_gate
        persisted = self._store.load()
        if persisted is None:
            logger.debug("No persisted scan snapshot, staying idle")
            return self._state

        now = self._clock()
        if persisted.is_stale(now, self.staleness_window):
            logger.info(
                f"Discarding stale scan snapshot ({persisted.age_seconds(now):.0f}s old)"
            )
            self._store.clear()
            if persisted.claims_active:
                self._confirm_stale_claim()
            return self._state

        if not persisted.claims_active:
            logger.debug("Persisted scan snapshot is not an active job, staying idle")
            return self._state

        ticket = self._issue_ticket()
        try:
            snapshot = self._client.fetch()
        except StatusFetchError as e:
            logger.warning(f"Could not confirm persisted scan, showing last known values: {e}")
            with self._lock:
                if not self._is_current(ticket):
                    return self._state
                self._ticket = None
                pending = [self._display(persisted.snapshot)]
                self._state = MonitorState.POLLING
            self._notify(pending)
            self._start_timer(poll_immediately=False)
            return self._state

        state = self._apply(ticket, snapshot, hide_delay=self._resume_hide_seconds)
        if state is MonitorState.POLLING:
            self._start_timer(poll_immediately=False)
        return self._state

    def start(self) -> None:
        """
        Start polling.

        The first status query runs immediately on the timer thread, then
        every poll_interval seconds. Safe to call multiple times: a running
        monitor is left untouched.
        """
        if self.is_running:
            logger.debug("ScanMonitor already running")
            return

        with self._lock:
            self._closed = False
            # A new job after a terminal one starts from an empty display
            if self._state is MonitorState.IDLE or self._state.is_terminal:
                self._displayed = None
                self._state = MonitorState.POLLING

        self._start_timer(poll_immediately=True)

    def close(self) -> None:
        """
        Tear down the monitor (view exit).

        Stops the timer and cancels the outstanding fetch ticket. No fetch is
        issued afterwards until start() or resume(). The persisted snapshot is
        kept so the next view can resume; it was already cleared if the job
        reached a terminal state.

        May be called from a presenter callback, including on the timer
        thread.
        """
        with self._lock:
            self._closed = True
            if self._ticket is not None:
                self._ticket.cancel()
                self._ticket = None
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._state = MonitorState.IDLE

        if thread is not None and thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=5.0)
            if thread.is_alive():
                logger.warning("ScanMonitor thread did not stop cleanly")

        logger.info("ScanMonitor closed")

    # =========================================================================
    # POLLING
    # =========================================================================

    def poll(self, stop_event: Optional[threading.Event] = None) -> Optional[MonitorState]:
        """
        Run one tick: fetch status and reconcile.

        Args:
            stop_event: Stop event of the timer running this tick. A tick
                whose timer has been stopped issues no fetch.

        Returns:
            State after the tick, or None if the tick was skipped (a fetch was
            already in flight, the monitor is closed or terminal, the fetch
            failed, or its result was discarded)
        """
        if not self._fetch_gate.acquire(blocking=False):
            logger.debug("Status fetch already in flight, skipping tick")
            return None

        try:
            with self._lock:
                if self._closed or (stop_event is not None and stop_event.is_set()):
                    logger.debug("ScanMonitor stopped, skipping tick")
                    return None
                if self._state.is_terminal:
                    return None
                previous = self._state
                ticket = self._next_ticket()
                self._state = MonitorState.RECONCILING

            try:
                snapshot = self._client.fetch()
            except StatusFetchError as e:
                self._record_failure(e)
                with self._lock:
                    if self._is_current(ticket):
                        self._state = previous
                return None

            if self._consecutive_failures:
                logger.info(f"Scan status recovered after {self._consecutive_failures} failures")
                self._consecutive_failures = 0

            return self._apply(ticket, snapshot, hide_delay=self._hide_fade_seconds)
        finally:
            self._fetch_gate.release()

    def _apply(self, ticket: PollTicket, snapshot: ScanJobSnapshot, hide_delay: float) -> Optional[MonitorState]:
        """Reconcile one fetched snapshot, unless its ticket is no longer current."""
        with self._lock:
            state, pending = self._reconcile(ticket, snapshot, hide_delay)
        self._notify(pending)
        return state

    def _reconcile(
        self, ticket: PollTicket, snapshot: ScanJobSnapshot, hide_delay: float
    ) -> Tuple[Optional[MonitorState], List[Callable[[], None]]]:
        # Caller holds self._lock; presenter calls are returned, not made
        if not self._is_current(ticket):
            logger.debug(f"Discarding result of status fetch #{ticket.sequence}")
            return None, []
        self._ticket = None

        phase = snapshot.phase

        if phase is ScanPhase.IN_PROGRESS:
            if self._displayed is not None and snapshot.scanning:
                floor = self._displayed.progress
                if snapshot.progress < floor:
                    snapshot = snapshot.with_progress(floor)
            self._store.save(PersistedSnapshot.capture(snapshot, now=self._clock()))
            pending = [self._display(snapshot)]
            self._state = MonitorState.POLLING
            logger.debug(f"Scan at {snapshot.progress}% ({snapshot.found_printers} found)")
            return self._state, pending

        self._stop_event.set()
        self._store.clear()

        if phase is ScanPhase.NOT_STARTED:
            logger.info("Server reports no scan running, monitor idle")
            pending = []
            if self._displayed is not None:
                pending.append(partial(self._presenter.hide, phase, 0.0))
            self._displayed = None
            self._state = MonitorState.IDLE
            return self._state, pending

        pending = [self._display(snapshot), partial(self._presenter.hide, phase, hide_delay)]
        self._state = _TERMINAL_STATES[phase]
        logger.info(
            f"Scan {phase.value}: {snapshot.progress}%, "
            f"{snapshot.found_printers} printers found"
        )
        return self._state, pending

    def _confirm_stale_claim(self) -> None:
        """Ask the server whether the job a stale snapshot claimed is running."""
        ticket = self._issue_ticket()
        try:
            snapshot = self._client.fetch()
        except StatusFetchError as e:
            logger.warning(f"Could not confirm scan state, staying idle: {e}")
            return

        if snapshot.phase is not ScanPhase.IN_PROGRESS:
            logger.info(f"Server reports scan {snapshot.phase.value}, staying idle")
            return

        if self._apply(ticket, snapshot, hide_delay=self._resume_hide_seconds) is MonitorState.POLLING:
            self._start_timer(poll_immediately=False)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _issue_ticket(self) -> PollTicket:
        with self._lock:
            return self._next_ticket()

    def _next_ticket(self) -> PollTicket:
        # Caller holds self._lock
        if self._ticket is not None:
            self._ticket.cancel()
        self._sequence += 1
        self._ticket = PollTicket(self._sequence)
        return self._ticket

    def _is_current(self, ticket: PollTicket) -> bool:
        return not ticket.cancelled and ticket.sequence == self._sequence

    def _display(self, snapshot: ScanJobSnapshot) -> Callable[[], None]:
        # Caller holds self._lock
        if self._displayed is None:
            call = partial(self._presenter.show, snapshot)
        else:
            call = partial(self._presenter.update, snapshot)
        self._displayed = snapshot
        return call

    def _notify(self, pending: List[Callable[[], None]]) -> None:
        for call in pending:
            call()

    def _record_failure(self, error: Exception) -> None:
        self._consecutive_failures += 1
        if self._consecutive_failures == 1:
            logger.warning(f"Scan status fetch failed: {error}")
        elif self._consecutive_failures % 5 == 0:
            logger.error(
                f"Scan status still failing ({self._consecutive_failures} consecutive): {error}"
            )

    def _start_timer(self, poll_immediately: bool) -> None:
        with self._lock:
            if self._closed:
                logger.debug("ScanMonitor closed, timer not started")
                return
            if self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set():
                return
            # Each timer gets its own stop event so a finishing thread never
            # sees a later start() as its own
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop_event, poll_immediately),
                name="ScanMonitor",
                daemon=True,
            )
            self._thread.start()
        logger.info(f"ScanMonitor polling every {self.poll_interval}s")

    def _run(self, stop_event: threading.Event, poll_immediately: bool) -> None:
        set_thread_name("ScanMonitor")

        if poll_immediately:
            self._tick(stop_event)

        while not stop_event.wait(timeout=self.poll_interval):
            self._tick(stop_event)

        logger.debug("ScanMonitor timer exiting")

    def _tick(self, stop_event: threading.Event) -> None:
        if stop_event.is_set():
            return
        try:
            self.poll(stop_event)
        except Exception as e:
            # A presenter or store failure must not kill the timer
            logger.error(f"Scan monitor tick failed: {e}", exc_info=True)
