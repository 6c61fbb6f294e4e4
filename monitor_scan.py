"""Follow the network printer scan from a terminal.

Resumes a scan that an earlier run was following (within the staleness
window), or starts monitoring with --start. Ctrl+C detaches without
forgetting the scan, so the next run picks it up again.
"""

import argparse
import logging
import sys
import threading

from config import Config
from core.status_client import HttpScanStatusClient
from logging_config import setup_logging
from models.scan import ScanJobSnapshot, ScanPhase
from services.scan_monitor import ScanMonitor, ScanPresenter
from services.snapshot_store import JsonFileSnapshotStore


class ConsoleScanPresenter(ScanPresenter):
    """Prints progress lines and signals when the display is closed."""

    def __init__(self):
        self.finished = threading.Event()
        self.outcome = None

    def show(self, snapshot: ScanJobSnapshot) -> None:
        print("Scan in progress", file=sys.stderr)
        self.update(snapshot)

    def update(self, snapshot: ScanJobSnapshot) -> None:
        print(
            f"  {snapshot.progress:3d}%  {snapshot.network_label}  "
            f"({snapshot.found_printers} printers found)"
        )

    def hide(self, outcome: ScanPhase, delay_seconds: float) -> None:
        self.outcome = outcome
        self.finished.set()


def parse_arguments(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Follow the network printer scan.")
    parser.add_argument("--url", default=Config.SCAN_STATUS_URL, help="Scan status endpoint.")
    parser.add_argument(
        "--snapshot",
        default=Config.SCAN_SNAPSHOT_PATH,
        help="File holding the scan checkpoint between runs.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=Config.SCAN_POLL_INTERVAL_SECONDS,
        help="Seconds between status queries.",
    )
    parser.add_argument(
        "--start",
        action="store_true",
        help="Start monitoring even if no earlier run was following a scan.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log every poll.")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Run the monitor until the scan ends or the user detaches."""
    args = parse_arguments(argv)
    setup_logging(
        log_level=logging.DEBUG if args.verbose else logging.WARNING,
        enable_file_logging=False,
    )

    presenter = ConsoleScanPresenter()
    client = HttpScanStatusClient(args.url, timeout_seconds=Config.SCAN_STATUS_TIMEOUT_SECONDS)
    monitor = ScanMonitor(
        client,
        JsonFileSnapshotStore(args.snapshot),
        presenter,
        poll_interval=args.interval,
        staleness_window=Config.SCAN_SNAPSHOT_STALENESS_SECONDS,
        hide_fade_seconds=Config.SCAN_HIDE_FADE_SECONDS,
        resume_hide_seconds=Config.SCAN_RESUME_HIDE_SECONDS,
    )

    try:
        monitor.resume()
        if args.start:
            monitor.start()

        if not monitor.is_running and not presenter.finished.is_set():
            print("No scan in progress.", file=sys.stderr)
            return 0

        while not presenter.finished.wait(timeout=args.interval):
            if not monitor.is_running:
                break
    except KeyboardInterrupt:
        print("\nDetached; run again to resume.", file=sys.stderr)
        return 130
    finally:
        monitor.close()
        client.close()

    if presenter.outcome is ScanPhase.CANCELLED:
        print("Scan cancelled.", file=sys.stderr)
        return 1
    if presenter.outcome in (None, ScanPhase.NOT_STARTED):
        print("No scan in progress.", file=sys.stderr)
        return 0
    print("Scan completed.", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
