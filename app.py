"""
Print relay console - Flask Application Entry Point.

This is a slim app factory that:
1. Loads configuration (.env + config classes)
2. Configures thread-aware logging
3. Builds the installer synthesizer from configuration
4. Registers route blueprints
5. Sets up JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Flask request handling
    └── Installer synthesis (pure, per request)

    The scan monitor runs on the operator's side (see monitor_scan.py);
    the web app only serves installers and health.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from logging_config import setup_logging, get_logger
from core.exceptions import PrintRelayError, UnsupportedTargetError
from modules.install_script import InstallScriptSynthesizer
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In PyInstaller bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def create_app(config_object: str = "config.Config") -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the configuration class

    Returns:
        Configured Flask application
    """
    # Use override=True so .env file always takes precedence over shell environment
    env_file = _get_base_path() / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        app_name="print_relay_console",
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting print relay console in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # INSTALLER SYNTHESIS
    # =========================================================================

    app.config["INSTALL_SYNTHESIZER"] = InstallScriptSynthesizer.from_config(app.config)
    if app.config.get("RELAY_SERVER_ADDRESS"):
        logger.info(f"Installers target relay server {app.config['RELAY_SERVER_ADDRESS']}")
    else:
        logger.warning("RELAY_SERVER_ADDRESS not set, installers target the request host")

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(PrintRelayError)
    def handle_print_relay_error(e: PrintRelayError):
        logger.warning(f"Rejected request: {e}")
        status_code = 404 if isinstance(e, UnsupportedTargetError) else 400
        return {"error": e.message, "details": e.details}, status_code

    @app.errorhandler(404)
    def handle_not_found(e):
        return {"error": "Not found"}, 404

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return {"error": "An unexpected error occurred"}, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)
