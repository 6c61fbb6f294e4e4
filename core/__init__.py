"""
Core module for the print relay console.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- status_client: Scan status query boundary and its HTTP implementation
"""

from .exceptions import (
    PrintRelayError,
    InvalidDescriptorError,
    UnsupportedTargetError,
    StatusFetchError,
    SnapshotFormatError,
)
from .status_client import ScanStatusClient, HttpScanStatusClient

__all__ = [
    "PrintRelayError",
    "InvalidDescriptorError",
    "UnsupportedTargetError",
    "StatusFetchError",
    "SnapshotFormatError",
    "ScanStatusClient",
    "HttpScanStatusClient",
]
