"""
Flask route blueprints for the print relay console.

This module contains all route handlers organized by functionality:
- installer: Installer downloads, install commands and dry-run plans
- api: Health check

Each blueprint is registered with the Flask app in create_app().
"""

from .installer import installer_bp
from .api import api_bp

__all__ = [
    "installer_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(installer_bp)
    app.register_blueprint(api_bp)
