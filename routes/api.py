"""
API routes.

Handles:
- /health - Health check endpoint
"""

from flask import Blueprint, current_app

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with configuration status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    # Installer synthesis
    if current_app.config.get("INSTALL_SYNTHESIZER"):
        health_status["checks"]["installer"] = "ok"
    else:
        health_status["checks"]["installer"] = "not_initialized"
        health_status["status"] = "degraded"

    # Shared-USB printers fall back to the request host without it
    if current_app.config.get("RELAY_SERVER_ADDRESS"):
        health_status["checks"]["relay_server"] = current_app.config["RELAY_SERVER_ADDRESS"]
    else:
        health_status["checks"]["relay_server"] = "request_host"

    health_status["checks"]["scan_status_url"] = current_app.config.get("SCAN_STATUS_URL", "")

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
