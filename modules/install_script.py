"""
Installer script synthesis.

Turns a PrinterDescriptor and a target OS into a self-elevating, idempotent
installation procedure. The procedure, when run on the target machine:

    1. Verifies administrative privilege (self-elevates, or exits with a clear error)
    2. Verifies the local print subsystem is running, starting it if needed
    3. Verifies the target address/port is reachable, aborting with manual
       instructions if not
    4. Removes prior printer/port registrations of the same logical name
    5. Runs the fallback chain in policy order, stopping at first success
    6. On total failure, removes anything half-created and prints the manual
       installation instructions verbatim

Synthesis only produces text. It raises only for invalid input; every
protocol failure is handled inside the generated script.

Windows artifact layout:
    A .bat wrapper (double-click, self-elevating) followed by a marker line
    and the PowerShell payload. The wrapper reads its own file and runs the
    lines after the marker, so the payload never passes through cmd.exe
    parsing and only needs PowerShell escaping.

Usage:
    synthesizer = InstallScriptSynthesizer(ProtocolFallbackPolicy(relay_address="10.0.0.2"))
    script = synthesizer.synthesize(descriptor, TargetOS.WINDOWS)
    download(script.filename, script.text)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple, Union
from urllib.parse import quote

from core.exceptions import InvalidDescriptorError
from models.printer import (
    ConnectionAttempt,
    InstallScript,
    PrinterDescriptor,
    ProtocolKind,
    TargetOS,
)
from modules.fallback_policy import ProtocolFallbackPolicy
from modules.script_escaping import (
    ScriptSyntax,
    escape_literal,
    safe_filename,
    strip_control_characters,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

PAYLOAD_MARKER = "##PS-PAYLOAD##"

# Drivers tried, in order, after any installed IPP class driver
WINDOWS_RAW_DRIVERS = ("Microsoft Print To PDF", "Generic / Text Only")

LINUX_NATIVE_MODEL = "everywhere"
LINUX_RAW_MODEL = "drv:///sample.drv/generic.ppd"

PROTOCOL_LABELS = {
    ProtocolKind.NATIVE_DOCUMENT: "native document protocol (IPP)",
    ProtocolKind.RAW_PORT: "raw TCP/IP port",
    ProtocolKind.FILE_SHARE: "shared printer (SMB)",
}


@dataclass(frozen=True)
class _ScriptFields:
    """Typed values a builder renders; the only data that reaches the text."""

    printer_name: str
    queue_name: str
    port_name: str
    address: str
    port: int
    shared_usb: bool
    attempts: Tuple[ConnectionAttempt, ...]
    manual_instructions: Tuple[str, ...]
    raw_drivers: Tuple[str, ...]
    reachability_timeout_seconds: int


def _ps(value: Any) -> str:
    return escape_literal(value, ScriptSyntax.POWERSHELL)


def _bat(value: Any) -> str:
    return escape_literal(value, ScriptSyntax.BATCH)


def _sh(value: Any) -> str:
    return escape_literal(value, ScriptSyntax.POSIX_SHELL)


# =============================================================================
# WINDOWS (BAT WRAPPER + POWERSHELL PAYLOAD)
# =============================================================================

_PS_ATTEMPT_RUNNER = """\
function Invoke-Attempt {
    param([int]$TimeoutSeconds, [scriptblock]$Body, [object[]]$Arguments)
    $job = Start-Job -ScriptBlock $Body -ArgumentList $Arguments
    if (Wait-Job $job -Timeout $TimeoutSeconds) {
        $result = Receive-Job $job -ErrorAction SilentlyContinue | Select-Object -Last 1
    } else {
        Stop-Job $job
        $result = 'timed out after ' + $TimeoutSeconds + 's'
    }
    Remove-Job $job -Force
    return [string]$result
}"""

_PS_CLEANUP = """\
function Remove-PriorInstallation {
    $namePattern = '*' + [WildcardPattern]::Escape($QueueName) + '*'
    $hostPattern = '*' + [WildcardPattern]::Escape($TargetAddress) + '*'
    $prior = @(Get-Printer -ErrorAction SilentlyContinue | Where-Object {
        $_.Name -eq $PrinterName -or $_.PortName -eq $PortName -or
        ($_.Name -like $namePattern -and $_.Name -like $hostPattern)
    })
    foreach ($printer in $prior) {
        Write-Host ('  Removing printer: ' + $printer.Name) -ForegroundColor Yellow
        Remove-Printer -Name $printer.Name -Confirm:$false -ErrorAction SilentlyContinue
    }
    if ($prior.Count -gt 0) { Start-Sleep -Seconds 2 }
    if (Get-PrinterPort -Name $PortName -ErrorAction SilentlyContinue) {
        Write-Host ('  Removing port: ' + $PortName) -ForegroundColor Yellow
        Remove-PrinterPort -Name $PortName -Confirm:$false -ErrorAction SilentlyContinue
    }
}"""

_PS_PRECHECKS = """\
# Administrator check
$principal = New-Object Security.Principal.WindowsPrincipal([Security.Principal.WindowsIdentity]::GetCurrent())
if (-not $principal.IsInRole([Security.Principal.WindowsBuiltInRole]::Administrator)) {
    Write-Host 'ERROR: administrator privileges are required.' -ForegroundColor Red
    Write-Host 'Right-click the installer and choose "Run as administrator".' -ForegroundColor Yellow
    exit 2
}

# Print spooler service
Write-Host 'Checking print spooler service...' -ForegroundColor Yellow
$spooler = Get-Service -Name 'Spooler' -ErrorAction SilentlyContinue
if ($null -eq $spooler) {
    Write-Host 'ERROR: the print spooler service is not installed.' -ForegroundColor Red
    exit 3
}
if ($spooler.Status -ne 'Running') {
    try {
        Start-Service -Name 'Spooler' -ErrorAction Stop
        Start-Sleep -Seconds 2
    } catch {
        Write-Host ('ERROR: could not start the print spooler: ' + $_.Exception.Message) -ForegroundColor Red
        exit 3
    }
}
Write-Host '  Spooler running' -ForegroundColor Green

# Reachability of the target
Write-Host ('Checking ' + $TargetAddress + ':' + $TargetPort + '...') -ForegroundColor Yellow
$reachable = $false
$tcp = New-Object System.Net.Sockets.TcpClient
try {
    $reachable = $tcp.ConnectAsync($TargetAddress, $TargetPort).Wait($ReachabilityTimeoutSeconds * 1000) -and $tcp.Connected
} catch {
    $reachable = $false
} finally {
    $tcp.Close()
}
if (-not $reachable) {
    Write-Host ('ERROR: cannot reach ' + $TargetAddress + ' on port ' + $TargetPort) -ForegroundColor Red
    Write-Host 'Check that the print server is switched on and that the firewall allows this port.' -ForegroundColor Yellow
    if ($SharedUsbRelay) {
        Write-Host 'This printer is shared from a USB host: that PC must be switched on too.' -ForegroundColor Yellow
    }
    Write-ManualInstructions
    exit 4
}
Write-Host '  Server reachable' -ForegroundColor Green"""

_PS_TOLERATED_CHECK = "@($tolerated | Where-Object { $message -like $_ }).Count -gt 0"

_PS_CONNECTION_BODY = """{
        param($connection, $tolerated)
        try {
            Add-Printer -ConnectionName $connection -ErrorAction Stop
            'ok'
        } catch {
            $message = $_.Exception.Message
            if (%s) { 'ok' } else { 'failed: ' + $message }
        }
    }""" % _PS_TOLERATED_CHECK

_PS_RAW_BODY = """{
        param($portName, $address, $port, $printerName, $drivers, $tolerated)
        try {
            Add-PrinterPort -Name $portName -PrinterHostAddress $address -PortNumber $port -ErrorAction Stop
        } catch {
            $message = $_.Exception.Message
            if (-not (%s)) { return 'failed: ' + $message }
        }
        $ippDriver = Get-PrinterDriver -ErrorAction SilentlyContinue |
            Where-Object { $_.Name -like '*IPP*' } | Select-Object -First 1 -ExpandProperty Name
        foreach ($driver in @($ippDriver) + $drivers) {
            if (-not $driver) { continue }
            try {
                Add-Printer -Name $printerName -PortName $portName -DriverName $driver -ErrorAction Stop
                return 'ok'
            } catch {
                $message = $_.Exception.Message
                if (%s) { return 'ok' }
            }
        }
        Remove-PrinterPort -Name $portName -Confirm:$false -ErrorAction SilentlyContinue
        'failed: no driver could be installed'
    }""" % (_PS_TOLERATED_CHECK, _PS_TOLERATED_CHECK)


class WindowsInstallerBuilder:
    """Renders the double-click .bat wrapper with its PowerShell payload."""

    line_ending = "\r\n"

    def render(self, fields: _ScriptFields) -> str:
        lines = self._wrapper_lines(fields)
        lines.append(PAYLOAD_MARKER)
        lines.extend(self._payload_lines(fields))
        # Multi-line blocks carry "\n"; cmd.exe needs CRLF throughout
        text = "\n".join(lines).replace("\r\n", "\n")
        return text.replace("\n", self.line_ending) + self.line_ending

    def _wrapper_lines(self, fields: _ScriptFields) -> List[str]:
        name = _bat(fields.printer_name)
        server = f"{_bat(fields.address)}:{fields.port}"
        if fields.shared_usb:
            route = "relay server forwards to the USB host"
        else:
            route = "dedicated port"

        # Payload loader: the marker is split so this line never matches it
        loader = (
            "powershell -NoProfile -ExecutionPolicy Bypass -Command "
            "\"$lines = [IO.File]::ReadAllLines($env:INSTALLER_PATH); "
            f"$start = [Array]::IndexOf($lines, '{PAYLOAD_MARKER[:2]}' + '{PAYLOAD_MARKER[2:]}') + 1; "
            "Invoke-Expression ($lines[$start..($lines.Length - 1)] -join [Environment]::NewLine)\""
        )

        return [
            "@echo off",
            "setlocal",
            "REM ====================================================================",
            f"REM Printer installer: {name}",
            f"REM Server: {server} ({route})",
            "REM ====================================================================",
            "",
            "set \"INSTALLER_PATH=%~f0\"",
            "",
            "REM Re-launch elevated when not running as administrator",
            "net session >nul 2>&1",
            "if %errorLevel% neq 0 (",
            "    echo Requesting administrator privileges...",
            "    powershell -NoProfile -ExecutionPolicy Bypass -Command "
            "\"Start-Process -FilePath $env:INSTALLER_PATH -Verb RunAs\"",
            "    exit /b",
            ")",
            "",
            f"title Printer installer - {name}",
            "echo.",
            f"echo   Printer: {name}",
            f"echo   Server: {server}",
            f"echo   Route: {route}",
            "echo.",
            "echo Installing printer, please wait...",
            "echo.",
            loader,
            "set ERROR_CODE=%ERRORLEVEL%",
            "echo.",
            "if %ERROR_CODE% EQU 0 (",
            "    echo   INSTALLATION COMPLETED",
            ") else (",
            "    echo   INSTALLATION FAILED - error code %ERROR_CODE%",
            "    echo   Follow the manual instructions shown above.",
            ")",
            "echo.",
            "echo Press any key to close this window...",
            "pause >nul",
            "exit /b %ERROR_CODE%",
        ]

    def _payload_lines(self, fields: _ScriptFields) -> List[str]:
        lines = [
            "$ErrorActionPreference = 'Continue'",
            "$ProgressPreference = 'SilentlyContinue'",
            f"$PrinterName = {_ps(fields.printer_name)}",
            f"$QueueName = {_ps(fields.queue_name)}",
            f"$TargetAddress = {_ps(fields.address)}",
            f"$TargetPort = {int(fields.port)}",
            f"$PortName = {_ps(fields.port_name)}",
            f"$SharedUsbRelay = {'$true' if fields.shared_usb else '$false'}",
            f"$ReachabilityTimeoutSeconds = {int(fields.reachability_timeout_seconds)}",
            "$RawDrivers = @(" + ", ".join(_ps(d) for d in fields.raw_drivers) + ")",
            "",
            "function Write-ManualInstructions {",
        ]
        for line in fields.manual_instructions:
            lines.append(f"    Write-Host {_ps(line)}")
        lines.append("}")
        lines.append("")
        lines.append(_PS_ATTEMPT_RUNNER)
        lines.append("")
        lines.append(_PS_CLEANUP)
        lines.append("")
        lines.append(_PS_PRECHECKS)
        lines.append("")
        lines.append("Write-Host 'Removing previous installations...' -ForegroundColor Yellow")
        lines.append("Remove-PriorInstallation")
        lines.append("")
        lines.append("$InstalledWith = $null")

        for index, attempt in enumerate(fields.attempts, start=1):
            lines.extend(self._attempt_lines(index, attempt, fields))

        lines.extend([
            "",
            "if ($InstalledWith) {",
            "    Write-Host ''",
            "    Write-Host 'INSTALLATION SUCCEEDED' -ForegroundColor Green",
            "    Write-Host ('  Printer: ' + $PrinterName) -ForegroundColor White",
            "    Write-Host ('  Method: ' + $InstalledWith) -ForegroundColor White",
            "    exit 0",
            "}",
            "",
            "Write-Host 'Every connection method failed, removing partial installation...' -ForegroundColor Yellow",
            "Remove-PriorInstallation",
            "Write-Host ''",
            "Write-Host 'INSTALLATION FAILED' -ForegroundColor Red",
            "Write-ManualInstructions",
            "exit 1",
        ])
        return lines

    def _attempt_lines(self, index: int, attempt: ConnectionAttempt, fields: _ScriptFields) -> List[str]:
        label = PROTOCOL_LABELS[attempt.kind]
        tolerated = "@(" + ", ".join(_ps(f"*{t}*") for t in attempt.tolerated_errors) + ")"

        if attempt.kind is ProtocolKind.RAW_PORT:
            body = _PS_RAW_BODY
            arguments = (
                f"@($PortName, {_ps(attempt.target_address)}, {int(attempt.port)}, "
                f"$PrinterName, $RawDrivers, {tolerated})"
            )
        else:
            body = _PS_CONNECTION_BODY
            connection = attempt.connection_string(fields.queue_name, TargetOS.WINDOWS)
            arguments = f"@({_ps(connection)}, {tolerated})"

        return [
            "",
            f"# Attempt {index}: {label}",
            "if (-not $InstalledWith) {",
            f"    Write-Host {_ps(f'Attempt {index}: {label}...')} -ForegroundColor Cyan",
            f"    $result = Invoke-Attempt -TimeoutSeconds {int(attempt.timeout_seconds)} -Arguments {arguments} -Body {body}",
            "    if ($result -eq 'ok') {",
            f"        $InstalledWith = {_ps(label)}",
            f"        Write-Host {_ps(f'  [OK] Installed via {label}')} -ForegroundColor Green",
            "    } else {",
            "        Write-Host ('  [!] ' + $result) -ForegroundColor Yellow",
            "    }",
            "}",
        ]


# =============================================================================
# LINUX (BASH + CUPS)
# =============================================================================

_SH_PRECHECKS = """\
# Administrator check (re-run through sudo when possible)
if [ "$(id -u)" -ne 0 ]; then
    if command -v sudo >/dev/null 2>&1; then
        echo "Requesting administrator privileges..."
        exec sudo -- "$0" "$@"
    fi
    echo "ERROR: administrator privileges are required. Run this script as root." >&2
    exit 2
fi

# CUPS scheduler
echo "Checking CUPS scheduler..."
if ! command -v lpadmin >/dev/null 2>&1; then
    echo "ERROR: CUPS is not installed (lpadmin not found). Install the 'cups' package and re-run." >&2
    exit 3
fi
if ! lpstat -r >/dev/null 2>&1; then
    systemctl start cups >/dev/null 2>&1 || service cups start >/dev/null 2>&1
    sleep 2
    if ! lpstat -r >/dev/null 2>&1; then
        echo "ERROR: the CUPS scheduler is not running and could not be started." >&2
        exit 3
    fi
fi
echo "  CUPS running"

# Reachability of the target
echo "Checking ${TARGET_ADDRESS}:${TARGET_PORT}..."
if ! timeout "$REACHABILITY_TIMEOUT" bash -c 'cat < /dev/null > "/dev/tcp/$1/$2"' _ "$TARGET_ADDRESS" "$TARGET_PORT" 2>/dev/null; then
    echo "ERROR: cannot reach ${TARGET_ADDRESS} on port ${TARGET_PORT}" >&2
    echo "Check that the print server is switched on and that the firewall allows this port."
    if [ "$SHARED_USB_RELAY" = "true" ]; then
        echo "This printer is shared from a USB host: that PC must be switched on too."
    fi
    manual_instructions
    exit 4
fi
echo "  Server reachable"

remove_prior_installation() {
    if lpstat -p "$QUEUE_NAME" >/dev/null 2>&1; then
        echo "  Removing printer: $QUEUE_NAME"
        lpadmin -x "$QUEUE_NAME"
    fi
}"""


class LinuxInstallerBuilder:
    """Renders a bash procedure driving CUPS through lpadmin."""

    line_ending = "\n"

    def render(self, fields: _ScriptFields) -> str:
        lines = [
            "#!/usr/bin/env bash",
            "# ====================================================================",
            f"# Printer installer: {_sh(fields.printer_name)}",
            f"# Server: {_sh(fields.address)}:{fields.port}",
            "# ====================================================================",
            "set -u",
            "",
            f"PRINTER_NAME={_sh(fields.printer_name)}",
            f"QUEUE_NAME={_sh(fields.port_name)}",
            f"TARGET_ADDRESS={_sh(fields.address)}",
            f"TARGET_PORT={int(fields.port)}",
            f"SHARED_USB_RELAY={'true' if fields.shared_usb else 'false'}",
            f"REACHABILITY_TIMEOUT={int(fields.reachability_timeout_seconds)}",
            "",
            "manual_instructions() {",
            "    printf '%s\\n' \\",
        ]
        for line in fields.manual_instructions:
            lines.append(f"        {_sh(line)} \\")
        lines.append("        ''")
        lines.append("}")
        lines.append("")
        lines.append(_SH_PRECHECKS)
        lines.append("")
        lines.append("echo \"Removing previous installations...\"")
        lines.append("remove_prior_installation")
        lines.append("")
        lines.append("INSTALLED_WITH=\"\"")

        for index, attempt in enumerate(fields.attempts, start=1):
            lines.extend(self._attempt_lines(index, attempt, fields))

        lines.extend([
            "",
            "if [ -n \"$INSTALLED_WITH\" ]; then",
            "    cupsenable \"$QUEUE_NAME\"",
            "    cupsaccept \"$QUEUE_NAME\"",
            "    echo \"\"",
            "    echo \"INSTALLATION SUCCEEDED\"",
            "    echo \"  Printer: ${PRINTER_NAME} (queue ${QUEUE_NAME})\"",
            "    echo \"  Method: ${INSTALLED_WITH}\"",
            "    exit 0",
            "fi",
            "",
            "echo \"Every connection method failed, removing partial installation...\"",
            "remove_prior_installation",
            "echo \"\"",
            "echo \"INSTALLATION FAILED\"",
            "manual_instructions",
            "exit 1",
        ])
        return self.line_ending.join(lines) + self.line_ending

    def _attempt_lines(self, index: int, attempt: ConnectionAttempt, fields: _ScriptFields) -> List[str]:
        label = PROTOCOL_LABELS[attempt.kind]
        model = LINUX_NATIVE_MODEL if attempt.kind is ProtocolKind.NATIVE_DOCUMENT else LINUX_RAW_MODEL
        uri = attempt.connection_string(fields.queue_name, TargetOS.LINUX)
        patterns = "|".join(f"*{_sh(t)}*" for t in attempt.tolerated_errors)

        return [
            "",
            f"# Attempt {index}: {label}",
            "if [ -z \"$INSTALLED_WITH\" ]; then",
            f"    echo {_sh(f'Attempt {index}: {label}...')}",
            f"    if OUTPUT=$(timeout {int(attempt.timeout_seconds)} lpadmin -p \"$QUEUE_NAME\" -E "
            f"-v {_sh(uri)} -D \"$PRINTER_NAME\" -m {_sh(model)} 2>&1); then",
            f"        INSTALLED_WITH={_sh(label)}",
            "    else",
            "        case \"$OUTPUT\" in",
            f"            {patterns}) INSTALLED_WITH={_sh(label)} ;;",
            "            *) echo \"  [!] ${OUTPUT:-timed out}\"; lpadmin -x \"$QUEUE_NAME\" >/dev/null 2>&1 ;;",
            "        esac",
            "    fi",
            "fi",
        ]


# =============================================================================
# SYNTHESIZER
# =============================================================================

class InstallScriptSynthesizer:
    """
    Builds installer scripts for printers selected in the console.

    Attributes:
        policy: ProtocolFallbackPolicy deciding the connection attempts
        reachability_timeout_seconds: Timeout of the pre-install reachability probe
    """

    _builders = {
        TargetOS.WINDOWS: WindowsInstallerBuilder(),
        TargetOS.LINUX: LinuxInstallerBuilder(),
    }

    def __init__(
        self,
        policy: Optional[ProtocolFallbackPolicy] = None,
        reachability_timeout_seconds: int = 5,
    ):
        self.policy = policy or ProtocolFallbackPolicy()
        self.reachability_timeout_seconds = reachability_timeout_seconds

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "InstallScriptSynthesizer":
        """Build a synthesizer from a Flask config mapping."""
        return cls(
            policy=ProtocolFallbackPolicy.from_config(config),
            reachability_timeout_seconds=int(config.get("REACHABILITY_TIMEOUT_SECONDS", 5)),
        )

    def synthesize(
        self,
        descriptor: PrinterDescriptor,
        target_os: Union[TargetOS, str],
    ) -> InstallScript:
        """
        Generate the installer for one printer.

        Args:
            descriptor: Printer selected by the operator
            target_os: TargetOS or its name ("windows", "linux")

        Returns:
            InstallScript with rendered text and structured plan

        Raises:
            InvalidDescriptorError: If the descriptor is missing required fields
            UnsupportedTargetError: If no installer exists for target_os
        """
        if not isinstance(target_os, TargetOS):
            target_os = TargetOS.parse(target_os)

        printer_name = strip_control_characters(descriptor.name or "").strip()
        if not printer_name:
            raise InvalidDescriptorError("name", "is empty (no printer selected)")

        attempts = tuple(self.policy.attempts_for(descriptor, target_os))
        address, port = attempts[0].target_address, attempts[0].port
        shared_usb = self.policy.is_relayed(descriptor)

        queue_name = quote(printer_name.replace(" ", "_"), safe="_-.~")
        if target_os is TargetOS.WINDOWS:
            port_name = f"IP_{address}_{queue_name}"
            raw_drivers = WINDOWS_RAW_DRIVERS
        else:
            port_name = safe_filename(printer_name)
            raw_drivers = (LINUX_RAW_MODEL,)

        fields = _ScriptFields(
            printer_name=printer_name,
            queue_name=queue_name,
            port_name=port_name,
            address=address,
            port=port,
            shared_usb=shared_usb,
            attempts=attempts,
            manual_instructions=self._manual_instructions(
                target_os, attempts, printer_name, queue_name, port_name
            ),
            raw_drivers=raw_drivers,
            reachability_timeout_seconds=self.reachability_timeout_seconds,
        )

        text = self._builders[target_os].render(fields)
        extension = "bat" if target_os is TargetOS.WINDOWS else "sh"

        logger.info(
            f"Synthesized {target_os.value} installer for '{printer_name}' "
            f"({address}:{port}, shared_usb={shared_usb}, "
            f"attempts={[a.kind.value for a in attempts]})"
        )

        return InstallScript(
            target_os=target_os,
            printer_name=printer_name,
            queue_name=queue_name,
            port_name=port_name,
            attempts=attempts,
            manual_instructions=fields.manual_instructions,
            shared_usb=shared_usb,
            requires_elevation=True,
            text=text,
            filename=f"install-{safe_filename(printer_name)}.{extension}",
            raw_drivers=raw_drivers,
        )

    @staticmethod
    def _manual_instructions(
        target_os: TargetOS,
        attempts: Tuple[ConnectionAttempt, ...],
        printer_name: str,
        queue_name: str,
        local_queue: str,
    ) -> Tuple[str, ...]:
        """Lines telling the operator how to install the printer by hand."""
        first = attempts[0]
        native = next(a for a in attempts if a.kind is ProtocolKind.NATIVE_DOCUMENT)

        if target_os is TargetOS.LINUX:
            return (
                "MANUAL INSTALLATION (CUPS):",
                f"  Address: {first.target_address}",
                f"  Port: {first.port}",
                f"  Queue path: printers/{queue_name}",
                f"  lpadmin -p {local_queue} -E -v "
                f"{native.connection_string(queue_name, TargetOS.LINUX)} -m {LINUX_NATIVE_MODEL}",
            )

        lines = [
            "MANUAL INSTALLATION (TCP/IP):",
            "  1. Control Panel -> Devices and Printers -> Add a printer",
            "  2. The printer that I want isn't listed",
            "  3. Add a printer using a TCP/IP address or hostname",
            f"  4. Address: {first.target_address}",
            f"  5. Port: {first.port}",
            f"  6. Custom -> LPR -> Queue name: printers/{queue_name}",
            f"  7. Printer name: {printer_name}",
            f"Alternative (IPP): {native.connection_string(queue_name, TargetOS.WINDOWS)}",
        ]
        for attempt in attempts:
            if attempt.kind is ProtocolKind.FILE_SHARE:
                lines.append(f"Alternative (shared printer): {attempt.connection_string(queue_name)}")
        return tuple(lines)
