"""
Configuration for the print relay console.

Values come from the environment (a .env file is loaded first). Timeouts
are in seconds.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    SESSION_COOKIE_NAME = "print_relay_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Installer Configuration
    # ==========================================================================
    # RELAY_SERVER_ADDRESS: print server every generated installer targets.
    #   Shared-USB printers are always installed through it; the USB host
    #   is never addressed directly. Empty means "the host serving the console".
    #
    # RELAY_DEFAULT_PORT: port used when a printer carries the relay
    #   indicator instead of a dedicated port.
    # ==========================================================================
    RELAY_SERVER_ADDRESS = os.environ.get("RELAY_SERVER_ADDRESS", "")
    RELAY_DEFAULT_PORT = int(os.environ.get("RELAY_DEFAULT_PORT", "8631"))
    SHARED_USB_LOCATION_TAG = os.environ.get("SHARED_USB_LOCATION_TAG", "Compartida-USB")

    NATIVE_ATTEMPT_TIMEOUT_SECONDS = int(os.environ.get("NATIVE_ATTEMPT_TIMEOUT_SECONDS", "15"))
    RAW_ATTEMPT_TIMEOUT_SECONDS = int(os.environ.get("RAW_ATTEMPT_TIMEOUT_SECONDS", "30"))
    SHARE_ATTEMPT_TIMEOUT_SECONDS = int(os.environ.get("SHARE_ATTEMPT_TIMEOUT_SECONDS", "30"))
    REACHABILITY_TIMEOUT_SECONDS = int(os.environ.get("REACHABILITY_TIMEOUT_SECONDS", "5"))

    # ==========================================================================
    # Scan Monitor Configuration
    # ==========================================================================
    SCAN_STATUS_URL = os.environ.get(
        "SCAN_STATUS_URL", "http://localhost:8080/admin/scan-status"
    )
    SCAN_STATUS_TIMEOUT_SECONDS = float(os.environ.get("SCAN_STATUS_TIMEOUT_SECONDS", "5"))
    SCAN_POLL_INTERVAL_SECONDS = float(os.environ.get("SCAN_POLL_INTERVAL_SECONDS", "2"))
    SCAN_SNAPSHOT_STALENESS_SECONDS = float(
        os.environ.get("SCAN_SNAPSHOT_STALENESS_SECONDS", "300")
    )
    SCAN_HIDE_FADE_SECONDS = float(os.environ.get("SCAN_HIDE_FADE_SECONDS", "0.3"))
    SCAN_RESUME_HIDE_SECONDS = float(os.environ.get("SCAN_RESUME_HIDE_SECONDS", "3"))
    SCAN_SNAPSHOT_PATH = os.environ.get(
        "SCAN_SNAPSHOT_PATH", str(BASE_DIR / "instance" / "scan_snapshot.json")
    )


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    RELAY_SERVER_ADDRESS = "192.0.2.10"
