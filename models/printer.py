"""
Printer installation data models.

These models describe one printer selected in the console, the ordered
connection attempts an installer will try, and the synthesized installer
artifact itself.

All models are frozen dataclasses: a descriptor is read once from the
operator's selection and handed to the synthesizer, which never mutates it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from core.exceptions import InvalidDescriptorError, UnsupportedTargetError

# Location tag the console writes for printers shared from a USB host
SHARED_USB_LOCATION_TAG = "Compartida-USB"

# Dedicated port used when a printer carries the relay indicator
DEFAULT_RELAY_PORT = 8631

# Value accepted in place of a port number for relayed printers
RELAY_PORT_INDICATOR = "relay"

ALREADY_EXISTS = "already exists"

_IPP_URI_RE = re.compile(r"^ipps?://([^:/]+):(\d+)/printers/(.+)$")


def _uri_host(address: str) -> str:
    """Bracket an IPv6 literal for use as a URI host."""
    if ":" in address and not address.startswith("["):
        return f"[{address}]"
    return address


class TargetOS(Enum):
    """Operating system an installer is generated for."""

    WINDOWS = "windows"
    LINUX = "linux"

    @classmethod
    def parse(cls, value: str) -> "TargetOS":
        """Parse a target name, raising UnsupportedTargetError if unknown."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise UnsupportedTargetError(value)


class ProtocolKind(Enum):
    """
    Connection protocol of one fallback attempt.

    Order of declaration is the fixed fallback order.
    """

    NATIVE_DOCUMENT = "ipp"
    """Native document protocol, keeps document formatting."""

    RAW_PORT = "raw"
    """TCP port with a generic local driver."""

    FILE_SHARE = "smb"
    """Shared-folder style connection string."""


@dataclass(frozen=True)
class PrinterDescriptor:
    """
    Identity and connectivity facts for one printer.

    A port of None is the relay indicator: the printer is only reachable
    through the relay server that forwards to a USB host.
    """

    name: str
    """Display name, also the logical name of the installed printer."""

    address: str = ""
    """Network address the printer is published on."""

    port: Optional[int] = DEFAULT_RELAY_PORT
    """Dedicated port, or None for the relay indicator."""

    location: str = ""
    """Location tag, used to detect shared-USB printers."""

    relay_address: Optional[str] = None
    """Relay server address (overrides the configured one)."""

    @property
    def is_shared_usb(self) -> bool:
        """Whether the printer is reached indirectly through a USB host."""
        return self.routes_through_relay()

    def routes_through_relay(self, location_tag: str = SHARED_USB_LOCATION_TAG) -> bool:
        """Check the relay indicator or the shared-USB location tag."""
        return self.port is None or bool(location_tag and location_tag in (self.location or ""))

    @property
    def queue_name(self) -> str:
        """Name of the queue on the relay server (spaces become underscores)."""
        return self.name.strip().replace(" ", "_")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "name": self.name,
            "address": self.address,
            "port": self.port if self.port is not None else RELAY_PORT_INDICATOR,
            "location": self.location,
            "relayAddress": self.relay_address,
            "sharedUsb": self.is_shared_usb,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrinterDescriptor":
        """
        Create from a selection dictionary (query string or JSON body).

        The port may be an integer, a numeric string, "relay" or missing.

        Raises:
            InvalidDescriptorError: If the port is not a number or "relay"
        """
        raw_port = data.get("port")
        if raw_port is None or raw_port == "":
            port: Optional[int] = DEFAULT_RELAY_PORT
        elif str(raw_port).strip().lower() == RELAY_PORT_INDICATOR:
            port = None
        else:
            try:
                port = int(str(raw_port).strip())
            except ValueError:
                raise InvalidDescriptorError("port", f"is not a number: {raw_port!r}")

        return cls(
            name=data.get("name", "") or "",
            address=data.get("address", data.get("ip", "")) or "",
            port=port,
            location=data.get("location", "") or "",
            relay_address=data.get("relayAddress", data.get("relay_address")) or None,
        )

    @classmethod
    def from_ipp_uri(cls, name: str, ipp_uri: str, location: str = "") -> "PrinterDescriptor":
        """
        Create from the IPP URI the console publishes for a printer.

        Args:
            name: Printer display name
            ipp_uri: URI like ipp://10.0.0.5:8632/printers/HP_LaserJet
            location: Location tag

        Raises:
            InvalidDescriptorError: If the URI does not match the expected form
        """
        match = _IPP_URI_RE.match((ipp_uri or "").strip())
        if not match:
            raise InvalidDescriptorError("ipp_uri", f"is not a printer URI: {ipp_uri!r}")

        host, port, _queue = match.groups()
        return cls(name=name, address=host, port=int(port), location=location)


@dataclass(frozen=True)
class ConnectionAttempt:
    """
    One entry in an installer's fallback chain.

    A failure whose message contains one of tolerated_errors is treated as
    success of that step; any other failure or a timeout moves the chain to
    the next attempt.
    """

    kind: ProtocolKind
    target_address: str
    port: int
    timeout_seconds: int
    run_in_background: bool = True
    tolerated_errors: Tuple[str, ...] = (ALREADY_EXISTS,)

    def connection_string(self, queue_name: str, target_os: TargetOS = TargetOS.WINDOWS) -> str:
        """Address string the installer hands to the print subsystem."""
        if self.kind is ProtocolKind.NATIVE_DOCUMENT:
            scheme = "http" if target_os is TargetOS.WINDOWS else "ipp"
            return f"{scheme}://{_uri_host(self.target_address)}:{self.port}/printers/{queue_name}"
        if self.kind is ProtocolKind.FILE_SHARE:
            return f"\\\\{self.target_address}\\{queue_name}"
        if target_os is TargetOS.LINUX:
            return f"socket://{_uri_host(self.target_address)}:{self.port}"
        return f"{self.target_address}:{self.port}"

    def tolerates(self, error_message: str) -> bool:
        """Whether a step failure with this message is non-fatal."""
        lowered = (error_message or "").lower()
        return any(marker in lowered for marker in self.tolerated_errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "targetAddress": self.target_address,
            "port": self.port,
            "timeoutSeconds": self.timeout_seconds,
            "background": self.run_in_background,
            "toleratedErrors": list(self.tolerated_errors),
        }


@dataclass(frozen=True)
class InstallScript:
    """
    A synthesized installer.

    Carries both the rendered text and the structured plan it was rendered
    from, so the plan can be inspected or dry-run without parsing the text.
    """

    target_os: TargetOS
    printer_name: str
    """Logical name the installer registers (and cleans up)."""

    queue_name: str
    """Queue path segment on the target server."""

    port_name: str
    """TCP port registration the raw attempt creates (the local queue on CUPS)."""

    attempts: Tuple[ConnectionAttempt, ...]
    manual_instructions: Tuple[str, ...]
    """Lines printed verbatim when every attempt fails."""

    shared_usb: bool
    requires_elevation: bool
    text: str
    filename: str
    raw_drivers: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def media_type(self) -> str:
        """MIME type used when offering the artifact for download."""
        if self.target_os is TargetOS.WINDOWS:
            return "application/x-bat"
        return "application/x-sh"

    @property
    def protocol_order(self) -> Tuple[ProtocolKind, ...]:
        return tuple(attempt.kind for attempt in self.attempts)
