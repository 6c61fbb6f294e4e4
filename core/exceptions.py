"""
Custom exceptions for the print relay console.

Exception Hierarchy:
    PrintRelayError (base)
    ├── InvalidDescriptorError - Printer selection cannot be turned into an installer
    ├── UnsupportedTargetError - No installer variant for the requested OS
    ├── StatusFetchError       - Scan status query failed (runtime, retried silently)
    └── SnapshotFormatError    - Persisted scan snapshot is unreadable (discarded)

Usage:
    Input errors (InvalidDescriptorError, UnsupportedTargetError) are surfaced
    to the operator immediately and never retried.
    Runtime errors on the monitor side are logged and swallowed by the
    monitor, which keeps the last displayed values.
"""

from typing import Optional, Dict, Any


class PrintRelayError(Exception):
    """
    Base exception for all print relay console errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# INPUT ERRORS - Reported to the operator, no retry
# =============================================================================

class InvalidDescriptorError(PrintRelayError):
    """
    The selected printer is missing data required to build an installer.

    Typical causes:
    - No printer selected (empty name)
    - Missing network address
    - Port outside 1-65535
    - Shared-USB printer but no relay server address is known
    """

    def __init__(self, field: str, reason: str):
        message = f"Invalid printer descriptor: {field} {reason}"
        details = {
            "field": field,
            "resolution": "Select a printer with a name, address and port before requesting a script"
        }
        super().__init__(message, details)
        self.field = field
        self.reason = reason


class UnsupportedTargetError(PrintRelayError):
    """No installer variant exists for the requested operating system."""

    def __init__(self, target: str):
        message = f"No installer available for target OS: {target}"
        details = {
            "target": target,
            "resolution": "Request a 'windows' or 'linux' installer"
        }
        super().__init__(message, details)
        self.target = target


# =============================================================================
# RUNTIME ERRORS - Handled by the scan monitor, never shown to the operator
# =============================================================================

class StatusFetchError(PrintRelayError):
    """
    The scan status query failed.

    This can occur when:
    - The console server is unreachable or restarting
    - The request timed out
    - The response body was not the expected JSON document

    The monitor logs the failure, keeps the last displayed values and
    retries on the next tick.
    """

    def __init__(self, url: str, reason: str):
        message = f"Scan status query to {url} failed: {reason}"
        details = {
            "url": url,
            "resolution": "Monitor retries automatically on the next poll"
        }
        super().__init__(message, details)
        self.url = url
        self.reason = reason


class SnapshotFormatError(PrintRelayError):
    """A persisted scan snapshot could not be decoded."""

    def __init__(self, reason: str):
        super().__init__(f"Persisted scan snapshot is unreadable: {reason}")
        self.reason = reason
