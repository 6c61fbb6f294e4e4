"""
Scan status query client.

The discovery job runs on the console server; its state is read through a
single status endpoint that takes no parameters and returns:

    {"scanning": bool, "cancelled": bool, "progress": 0-100,
     "currentNetwork": str, "foundPrinters": int}

ScanStatusClient is the boundary the monitor depends on. HttpScanStatusClient
is the production implementation; tests substitute a Mock or a scripted
subclass.

THREAD SAFETY:
    The monitor issues at most one fetch at a time, from its timer thread or
    from the caller of poll(). A client instance is never used concurrently
    by one monitor, so the underlying requests.Session is not shared.
"""

from __future__ import annotations

from typing import Optional

import requests

from models.scan import ScanJobSnapshot
from .exceptions import StatusFetchError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

DEFAULT_STATUS_URL = "http://localhost:8080/admin/scan-status"


class ScanStatusClient:
    """Source of authoritative scan status."""

    def fetch(self) -> ScanJobSnapshot:
        """
        Query the current state of the discovery job.

        Raises:
            StatusFetchError: If the status cannot be obtained
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release any connection resources."""


class HttpScanStatusClient(ScanStatusClient):
    """
    Status client for the console's HTTP status endpoint.

    Attributes:
        url: Status endpoint URL
        timeout_seconds: Per-request timeout
    """

    def __init__(
        self,
        url: str = DEFAULT_STATUS_URL,
        timeout_seconds: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def fetch(self) -> ScanJobSnapshot:
        try:
            response = self._session.get(self.url, timeout=self.timeout_seconds)
            response.raise_for_status()
        except requests.RequestException as error:
            raise StatusFetchError(self.url, str(error))

        try:
            data = response.json()
        except ValueError as error:
            raise StatusFetchError(self.url, f"response is not JSON: {error}")

        if not isinstance(data, dict):
            raise StatusFetchError(self.url, f"expected an object, got {type(data).__name__}")

        snapshot = ScanJobSnapshot.from_dict(data)
        logger.debug(
            f"Scan status: scanning={snapshot.scanning} cancelled={snapshot.cancelled} "
            f"progress={snapshot.progress} found={snapshot.found_printers}"
        )
        return snapshot

    def close(self) -> None:
        self._session.close()
