"""
Flask route blueprints for the Supply Chain Console.

This module contains all route handlers organized by functionality:
- main: Landing redirect
- supply: Catalog page and the four stage forms
- api: JSON endpoints (catalog, transitions, health)

Each blueprint is registered with the Flask app in create_app().
"""

from .main import main_bp
from .supply import supply_bp
from .api import api_bp

__all__ = [
    "main_bp",
    "supply_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(main_bp)
    app.register_blueprint(supply_bp)
    app.register_blueprint(api_bp)
