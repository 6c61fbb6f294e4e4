"""
Installer routes.

Handles:
- /print-server/download/windows-script/<name> - Self-elevating .bat installer
- /print-server/download/linux-script/<name>   - bash/CUPS installer
- /print-server/api/install-command/<name>     - One-line commands and IPP URI
- /print-server/api/install-plan/<name>        - Fallback plan with a dry run

Printer connectivity comes from the query string:
    address   - printer address (default: the relay server)
    port      - dedicated port, or "relay" for a shared-USB printer
    location  - location tag (shared-USB printers carry "Compartida-USB")
    relay     - relay server address override
"""

from urllib.parse import urlsplit

from flask import Blueprint, Response, current_app, request

from models.printer import PrinterDescriptor, TargetOS
from modules.install_script import InstallScriptSynthesizer
from modules.install_simulator import SimulatedPrintSubsystem, execute
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

installer_bp = Blueprint("installer", __name__, url_prefix="/print-server")


def _synthesizer() -> InstallScriptSynthesizer:
    synthesizer = current_app.config.get("INSTALL_SYNTHESIZER")
    if synthesizer is None:
        synthesizer = InstallScriptSynthesizer.from_config(current_app.config)
        current_app.config["INSTALL_SYNTHESIZER"] = synthesizer
    return synthesizer


def _server_address() -> str:
    """Relay server address, falling back to the host the console is served on."""
    configured = current_app.config.get("RELAY_SERVER_ADDRESS")
    if configured:
        return configured
    # hostname strips the port and IPv6 brackets
    return urlsplit("//" + request.host).hostname or ""


def _descriptor_from_request(printer_name: str) -> PrinterDescriptor:
    args = request.args
    return PrinterDescriptor.from_dict({
        "name": printer_name,
        "address": args.get("address") or _server_address(),
        "port": args.get("port"),
        "location": args.get("location", ""),
        "relayAddress": args.get("relay") or _server_address(),
    })


def _download(printer_name: str, target_os: TargetOS) -> Response:
    descriptor = _descriptor_from_request(printer_name)
    script = _synthesizer().synthesize(descriptor, target_os)

    logger.info(f"Serving {script.filename} ({len(script.text)} chars)")
    return Response(
        script.text,
        mimetype=script.media_type,
        headers={"Content-Disposition": f'attachment; filename="{script.filename}"'},
    )


@installer_bp.route("/download/windows-script/<path:printer_name>", methods=["GET"])
def download_windows_script(printer_name: str):
    """Download the Windows installer for one printer."""
    return _download(printer_name, TargetOS.WINDOWS)


@installer_bp.route("/download/linux-script/<path:printer_name>", methods=["GET"])
def download_linux_script(printer_name: str):
    """Download the Linux (CUPS) installer for one printer."""
    return _download(printer_name, TargetOS.LINUX)


@installer_bp.route("/api/install-command/<path:printer_name>", methods=["GET"])
def install_command(printer_name: str):
    """
    Commands shown next to a printer in the console.

    Returns JSON with the command that runs each downloaded installer, the
    IPP URI for manual setup, and the port the printer is served on.
    """
    descriptor = _descriptor_from_request(printer_name)
    synthesizer = _synthesizer()
    windows = synthesizer.synthesize(descriptor, TargetOS.WINDOWS)
    linux = synthesizer.synthesize(descriptor, TargetOS.LINUX)

    native = windows.attempts[0]
    return {
        "windows": windows.filename,
        "linux": f"sudo bash {linux.filename}",
        "ippUri": native.connection_string(windows.queue_name, TargetOS.LINUX),
        "port": str(native.port),
        "sharedUsb": windows.shared_usb,
    }


@installer_bp.route("/api/install-plan/<path:printer_name>", methods=["GET"])
def install_plan(printer_name: str):
    """
    Structured fallback plan for one printer, with a dry run.

    Query parameter "os" selects the variant (default windows). The dry run
    executes the plan against a healthy simulated machine.
    """
    target_os = TargetOS.parse(request.args.get("os", TargetOS.WINDOWS.value))
    script = _synthesizer().synthesize(_descriptor_from_request(printer_name), target_os)
    outcome = execute(script, SimulatedPrintSubsystem())

    return {
        "printer": script.printer_name,
        "targetOs": script.target_os.value,
        "filename": script.filename,
        "sharedUsb": script.shared_usb,
        "attempts": [attempt.to_dict() for attempt in script.attempts],
        "manualInstructions": list(script.manual_instructions),
        "dryRun": outcome.to_dict(),
    }
