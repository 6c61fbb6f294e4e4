"""
Connection fallback policy for printer installers.

Maps a printer's connectivity facts to the ordered list of connection
attempts an installer tries. The order is fixed:

    1. Native document protocol (IPP)  - keeps document formatting
    2. Raw network port                 - generic local driver
    3. File-share protocol (SMB)        - only where the installer supports it

Shared-USB printers are always addressed through the relay server, which
forwards jobs to the USB host. The USB host itself is never targeted.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple

from core.exceptions import InvalidDescriptorError
from models.printer import (
    ALREADY_EXISTS,
    DEFAULT_RELAY_PORT,
    SHARED_USB_LOCATION_TAG,
    ConnectionAttempt,
    PrinterDescriptor,
    ProtocolKind,
    TargetOS,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

# Installer variants able to connect through a file share
FILE_SHARE_TARGETS = frozenset({TargetOS.WINDOWS})


class ProtocolFallbackPolicy:
    """
    Decision table from connectivity facts to connection attempts.

    Attributes:
        relay_address: Relay server used for shared-USB printers
        relay_port: Port used when a descriptor carries the relay indicator
        native_timeout_seconds: Timeout of the background native attempt
    """

    def __init__(
        self,
        relay_address: Optional[str] = None,
        relay_port: int = DEFAULT_RELAY_PORT,
        native_timeout_seconds: int = 15,
        raw_timeout_seconds: int = 30,
        share_timeout_seconds: int = 30,
        shared_usb_tag: str = SHARED_USB_LOCATION_TAG,
    ):
        self.relay_address = relay_address
        self.relay_port = relay_port
        self.native_timeout_seconds = native_timeout_seconds
        self.raw_timeout_seconds = raw_timeout_seconds
        self.share_timeout_seconds = share_timeout_seconds
        self.shared_usb_tag = shared_usb_tag

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ProtocolFallbackPolicy":
        """Build a policy from a Flask config mapping."""
        get = config.get
        return cls(
            relay_address=get("RELAY_SERVER_ADDRESS") or None,
            relay_port=int(get("RELAY_DEFAULT_PORT", DEFAULT_RELAY_PORT)),
            native_timeout_seconds=int(get("NATIVE_ATTEMPT_TIMEOUT_SECONDS", 15)),
            raw_timeout_seconds=int(get("RAW_ATTEMPT_TIMEOUT_SECONDS", 30)),
            share_timeout_seconds=int(get("SHARE_ATTEMPT_TIMEOUT_SECONDS", 30)),
            shared_usb_tag=get("SHARED_USB_LOCATION_TAG", SHARED_USB_LOCATION_TAG),
        )

    def is_relayed(self, descriptor: PrinterDescriptor) -> bool:
        """Whether the printer is behind a shared-USB relay host."""
        return descriptor.routes_through_relay(self.shared_usb_tag)

    def resolve_target(self, descriptor: PrinterDescriptor) -> Tuple[str, int]:
        """
        Resolve the (address, port) every attempt connects to.

        Raises:
            InvalidDescriptorError: If no usable address is known
        """
        if self.is_relayed(descriptor):
            address = (descriptor.relay_address or self.relay_address or "").strip()
            if not address:
                raise InvalidDescriptorError(
                    "relay_address", "is required for a shared-USB printer"
                )
            port = descriptor.port if descriptor.port is not None else self.relay_port
        else:
            address = (descriptor.address or "").strip()
            if not address:
                raise InvalidDescriptorError("address", "is empty")
            port = descriptor.port

        if not 1 <= port <= 65535:
            raise InvalidDescriptorError("port", f"is out of range: {port}")
        return address, port

    def attempts_for(self, descriptor: PrinterDescriptor, target_os: TargetOS) -> List[ConnectionAttempt]:
        """
        Build the ordered, non-empty fallback chain for one printer.

        Args:
            descriptor: Printer to install
            target_os: Installer variant the chain is rendered into

        Returns:
            Connection attempts in fallback order

        Raises:
            InvalidDescriptorError: If no usable address is known
        """
        address, port = self.resolve_target(descriptor)
        tolerated = (ALREADY_EXISTS,)

        attempts = [
            ConnectionAttempt(
                kind=ProtocolKind.NATIVE_DOCUMENT,
                target_address=address,
                port=port,
                timeout_seconds=self.native_timeout_seconds,
                run_in_background=True,
                tolerated_errors=tolerated,
            ),
            ConnectionAttempt(
                kind=ProtocolKind.RAW_PORT,
                target_address=address,
                port=port,
                timeout_seconds=self.raw_timeout_seconds,
                run_in_background=True,
                tolerated_errors=tolerated,
            ),
        ]

        if target_os in FILE_SHARE_TARGETS:
            attempts.append(
                ConnectionAttempt(
                    kind=ProtocolKind.FILE_SHARE,
                    target_address=address,
                    port=port,
                    timeout_seconds=self.share_timeout_seconds,
                    run_in_background=True,
                    tolerated_errors=tolerated,
                )
            )

        logger.debug(
            f"Fallback chain for '{descriptor.name}' on {target_os.value}: "
            f"{[a.kind.value for a in attempts]} -> {address}:{port}"
        )
        return attempts
