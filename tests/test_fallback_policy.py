"""
Unit tests for the connection fallback policy.
"""

import pytest

from core.exceptions import InvalidDescriptorError
from models.printer import PrinterDescriptor, ProtocolKind, TargetOS
from modules.fallback_policy import ProtocolFallbackPolicy


# Fixtures

@pytest.fixture
def policy():
    """Policy with a configured relay server."""
    return ProtocolFallbackPolicy(relay_address="10.0.0.2")


@pytest.fixture
def direct_printer():
    """Printer published on its own dedicated port."""
    return PrinterDescriptor(name="HP LaserJet", address="10.0.0.2", port=8632, location="Office 1")


@pytest.fixture
def shared_usb_printer():
    """Printer shared from a USB host; its address is the host's."""
    return PrinterDescriptor(
        name="Canon USB", address="192.168.5.77", port=8640, location="Lab Compartida-USB"
    )


class TestAttemptOrder:
    """Test the fixed fallback order."""

    def test_windows_chain_is_native_raw_share(self, policy, direct_printer):
        """Windows installers try IPP, then the raw port, then SMB."""
        attempts = policy.attempts_for(direct_printer, TargetOS.WINDOWS)

        assert [a.kind for a in attempts] == [
            ProtocolKind.NATIVE_DOCUMENT,
            ProtocolKind.RAW_PORT,
            ProtocolKind.FILE_SHARE,
        ]

    def test_linux_chain_has_no_file_share(self, policy, direct_printer):
        """The CUPS installer does not offer the SMB attempt."""
        attempts = policy.attempts_for(direct_printer, TargetOS.LINUX)

        assert [a.kind for a in attempts] == [ProtocolKind.NATIVE_DOCUMENT, ProtocolKind.RAW_PORT]

    def test_native_attempt_runs_in_background_with_timeout(self, policy, direct_printer):
        """The native attempt is a 15 second background job."""
        native = policy.attempts_for(direct_printer, TargetOS.WINDOWS)[0]

        assert native.run_in_background is True
        assert native.timeout_seconds == 15

    def test_every_attempt_tolerates_already_exists(self, policy, direct_printer):
        """'Already exists' is non-fatal for every attempt."""
        for attempt in policy.attempts_for(direct_printer, TargetOS.WINDOWS):
            assert attempt.tolerates("The printer port already exists.")
            assert not attempt.tolerates("Access is denied.")

    def test_timeouts_come_from_config(self, direct_printer):
        """from_config reads the Flask config keys."""
        policy = ProtocolFallbackPolicy.from_config({
            "RELAY_SERVER_ADDRESS": "10.0.0.9",
            "NATIVE_ATTEMPT_TIMEOUT_SECONDS": 7,
            "RAW_ATTEMPT_TIMEOUT_SECONDS": "11",
        })

        attempts = policy.attempts_for(direct_printer, TargetOS.WINDOWS)

        assert policy.relay_address == "10.0.0.9"
        assert attempts[0].timeout_seconds == 7
        assert attempts[1].timeout_seconds == 11
        assert attempts[2].timeout_seconds == 30


class TestTargetResolution:
    """Test which address each attempt connects to."""

    def test_direct_printer_uses_its_own_address(self, policy, direct_printer):
        """A dedicated-port printer is addressed directly."""
        for attempt in policy.attempts_for(direct_printer, TargetOS.WINDOWS):
            assert attempt.target_address == "10.0.0.2"
            assert attempt.port == 8632

    def test_shared_usb_printer_targets_relay_only(self, policy, shared_usb_printer):
        """Every attempt for a shared-USB printer goes to the relay, never the USB host."""
        for target_os in TargetOS:
            for attempt in policy.attempts_for(shared_usb_printer, target_os):
                assert attempt.target_address == "10.0.0.2"
                assert attempt.target_address != shared_usb_printer.address

    def test_relay_indicator_uses_default_port(self, policy):
        """A printer with the relay indicator instead of a port uses the relay port."""
        printer = PrinterDescriptor(name="USB Printer", address="192.168.5.77", port=None)

        attempts = policy.attempts_for(printer, TargetOS.WINDOWS)

        assert policy.is_relayed(printer)
        assert {a.target_address for a in attempts} == {"10.0.0.2"}
        assert {a.port for a in attempts} == {8631}

    def test_descriptor_relay_address_overrides_policy(self, policy, shared_usb_printer):
        """A relay address on the descriptor wins over the configured one."""
        printer = PrinterDescriptor(
            name=shared_usb_printer.name,
            address=shared_usb_printer.address,
            port=shared_usb_printer.port,
            location=shared_usb_printer.location,
            relay_address="10.9.9.9",
        )

        attempts = policy.attempts_for(printer, TargetOS.WINDOWS)

        assert {a.target_address for a in attempts} == {"10.9.9.9"}

    def test_shared_usb_without_relay_is_rejected(self, shared_usb_printer):
        """No relay server known means no installer for a shared-USB printer."""
        policy = ProtocolFallbackPolicy(relay_address=None)

        with pytest.raises(InvalidDescriptorError) as exc_info:
            policy.attempts_for(shared_usb_printer, TargetOS.WINDOWS)

        assert exc_info.value.field == "relay_address"

    def test_missing_address_is_rejected(self, policy):
        """A direct printer needs an address."""
        with pytest.raises(InvalidDescriptorError) as exc_info:
            policy.attempts_for(PrinterDescriptor(name="HP", address="  ", port=9100), TargetOS.WINDOWS)

        assert exc_info.value.field == "address"

    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_port_out_of_range_is_rejected(self, policy, port):
        """Ports outside 1-65535 are invalid."""
        with pytest.raises(InvalidDescriptorError) as exc_info:
            policy.attempts_for(PrinterDescriptor(name="HP", address="10.0.0.5", port=port), TargetOS.LINUX)

        assert exc_info.value.field == "port"
