"""
Dry-run execution of installer plans.

Runs the structured plan of an InstallScript against an in-memory model of a
machine's print subsystem, following the same steps and exit codes as the
rendered script:

    0  printer installed
    1  every connection attempt failed (partial state removed)
    2  not running with administrative privilege
    3  print subsystem unavailable
    4  target address/port unreachable

The console uses this to preview what an installer will do, and the test
suite uses it to check idempotence and fallback ordering without touching
a real spooler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from models.printer import ConnectionAttempt, InstallScript, ProtocolKind
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ALL_ATTEMPTS_FAILED = 1
EXIT_NOT_ADMIN = 2
EXIT_SUBSYSTEM_UNAVAILABLE = 3
EXIT_UNREACHABLE = 4


@dataclass
class InstalledPrinter:
    """A printer registration on the simulated machine."""

    name: str
    port_name: str = ""
    connection: str = ""
    driver: str = ""
    protocol: Optional[ProtocolKind] = None


@dataclass
class SimulatedPrintSubsystem:
    """
    Mutable model of one machine's printing state.

    Attributes:
        is_admin: Whether the installer runs elevated
        spooler_running: Whether the spooler/scheduler is up
        spooler_startable: Whether starting it succeeds
        reachable: Whether the target address/port accepts connections
        printers: Registered printers by name
        ports: Registered TCP port names
        drivers: Installed driver names, in lookup order
        step_errors: Error message raised by an attempt kind
        timeouts: Attempt kinds that never finish
    """

    is_admin: bool = True
    spooler_running: bool = True
    spooler_startable: bool = True
    reachable: bool = True
    printers: Dict[str, InstalledPrinter] = field(default_factory=dict)
    ports: Set[str] = field(default_factory=set)
    drivers: List[str] = field(
        default_factory=lambda: ["Microsoft Print To PDF", "Generic / Text Only", "drv:///sample.drv/generic.ppd"]
    )
    step_errors: Dict[ProtocolKind, str] = field(default_factory=dict)
    timeouts: Set[ProtocolKind] = field(default_factory=set)

    def registrations(self, name: str) -> List[InstalledPrinter]:
        """Printers registered under a logical name."""
        return [p for p in self.printers.values() if p.name == name]


@dataclass(frozen=True)
class InstallOutcome:
    """Result of a dry run."""

    exit_code: int
    protocol: Optional[ProtocolKind]
    messages: Tuple[str, ...]
    manual_instructions: Tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.exit_code == EXIT_OK

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "exitCode": self.exit_code,
            "protocol": self.protocol.value if self.protocol else None,
            "messages": list(self.messages),
            "manualInstructions": list(self.manual_instructions),
        }


class InstallSimulator:
    """Executes an InstallScript plan against a SimulatedPrintSubsystem."""

    def __init__(self, script: InstallScript, subsystem: SimulatedPrintSubsystem):
        self.script = script
        self.subsystem = subsystem
        self._messages: List[str] = []

    def run(self) -> InstallOutcome:
        script, machine = self.script, self.subsystem

        if not machine.is_admin:
            return self._finish(EXIT_NOT_ADMIN, "administrator privileges are required")

        if not machine.spooler_running:
            if not machine.spooler_startable:
                return self._finish(EXIT_SUBSYSTEM_UNAVAILABLE, "print subsystem could not be started")
            machine.spooler_running = True
            self._log("started print subsystem")

        if not machine.reachable:
            target = script.attempts[0]
            return self._finish(
                EXIT_UNREACHABLE,
                f"cannot reach {target.target_address} on port {target.port}",
                manual=True,
            )

        self._remove_prior_installation()

        for index, attempt in enumerate(script.attempts, start=1):
            result = self._run_attempt(attempt)
            self._log(f"attempt {index} ({attempt.kind.value}): {result}")
            if result == "ok":
                return self._finish(EXIT_OK, f"installed via {attempt.kind.value}", protocol=attempt.kind)

        self._remove_prior_installation()
        return self._finish(EXIT_ALL_ATTEMPTS_FAILED, "every connection method failed", manual=True)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _remove_prior_installation(self) -> None:
        script, machine = self.script, self.subsystem
        address = script.attempts[0].target_address

        for key, printer in list(machine.printers.items()):
            if (
                printer.name == script.printer_name
                or printer.port_name == script.port_name
                or (script.queue_name in printer.name and address in printer.name)
            ):
                del machine.printers[key]
                self._log(f"removed printer {printer.name}")

        if script.port_name in machine.ports:
            machine.ports.discard(script.port_name)
            self._log(f"removed port {script.port_name}")

    def _run_attempt(self, attempt: ConnectionAttempt) -> str:
        machine = self.subsystem
        if attempt.kind in machine.timeouts:
            return f"timed out after {attempt.timeout_seconds}s"

        error = machine.step_errors.get(attempt.kind)
        if attempt.kind is ProtocolKind.RAW_PORT:
            return self._run_raw_attempt(attempt, error)

        if error and not attempt.tolerates(error):
            return f"failed: {error}"
        self._register(attempt, connection=attempt.connection_string(
            self.script.queue_name, self.script.target_os
        ))
        return "ok"

    def _run_raw_attempt(self, attempt: ConnectionAttempt, error: Optional[str]) -> str:
        machine = self.subsystem
        port_name = self.script.port_name

        if error and not attempt.tolerates(error):
            return f"failed: {error}"
        machine.ports.add(port_name)

        for driver in self.script.raw_drivers:
            if driver in machine.drivers:
                self._register(attempt, port_name=port_name, driver=driver)
                return "ok"

        machine.ports.discard(port_name)
        return "failed: no driver could be installed"

    def _register(self, attempt: ConnectionAttempt, **details) -> None:
        name = self.script.printer_name
        self.subsystem.printers[name] = InstalledPrinter(name=name, protocol=attempt.kind, **details)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _log(self, message: str) -> None:
        self._messages.append(message)
        logger.debug(f"[dry-run {self.script.printer_name}] {message}")

    def _finish(
        self,
        exit_code: int,
        message: str,
        protocol: Optional[ProtocolKind] = None,
        manual: bool = False,
    ) -> InstallOutcome:
        self._log(message)
        logger.info(f"Dry run for '{self.script.printer_name}' finished with exit code {exit_code}")
        return InstallOutcome(
            exit_code=exit_code,
            protocol=protocol,
            messages=tuple(self._messages),
            manual_instructions=self.script.manual_instructions if manual else (),
        )


def execute(script: InstallScript, subsystem: SimulatedPrintSubsystem) -> InstallOutcome:
    """
    Dry-run an installer plan.

    Args:
        script: Synthesized installer
        subsystem: Machine state, mutated in place

    Returns:
        InstallOutcome with exit code, winning protocol and step log
    """
    return InstallSimulator(script, subsystem).run()
