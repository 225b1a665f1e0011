"""
Supply Chain Console - Flask Application Entry Point.

This is a slim app factory that:
1. Loads configuration (.env + config classes)
2. Configures logging
3. Creates the ledger connection (NOT connected yet)
4. Creates the supply chain service shared by every browser session
5. Registers route blueprints and error handlers

ARCHITECTURE:
    Flask request (async view)
    └── SupplySession               (one per browser, owns its ViewState)
        └── SupplyChainService      (one per app)
            ├── LedgerConnection.initialize() on first visit
            ├── ProductCatalogLoader   (sequential reads)
            └── TransitionOrchestrator (one write per user action)

The ledger is connected lazily on first page visit so that a missing node
or an undeployed contract shows up as a notice on the page instead of
preventing the app from starting.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, flash, redirect, url_for

from logging_config import setup_logging, get_logger
from core.ledger_connection import LedgerConnection
from services.supply_session import SupplyChainService
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In a frozen bundle: the directory containing the executable
    In development: the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path(__file__).parent


def create_app(
    config_object: str = "config.Config",
    supply_service: Optional[SupplyChainService] = None
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the config class
        supply_service: Pre-built service (tests); built from config when None

    Returns:
        Configured Flask application
    """
    # .env next to the executable takes precedence over the shell environment
    env_file = _get_base_path() / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)

    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting Supply Chain Console in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # LEDGER SERVICE (shared by all browser sessions)
    # =========================================================================

    if supply_service is None:
        connection = LedgerConnection(
            rpc_url=app.config["LEDGER_RPC_URL"],
            artifact_path=app.config["CONTRACT_ARTIFACT_PATH"],
            request_timeout=app.config["LEDGER_REQUEST_TIMEOUT"],
            logger=get_logger("core.ledger_connection"),
        )
        supply_service = SupplyChainService(
            connection,
            decimals=app.config["CURRENCY_DECIMALS"],
            fallback_gas_limit=app.config["FALLBACK_GAS_LIMIT"],
            guard_in_flight=app.config["GUARD_IN_FLIGHT"],
            auto_reload_after_transition=app.config["AUTO_RELOAD_AFTER_TRANSITION"],
            max_sessions=app.config["MAX_VIEW_SESSIONS"],
        )

    app.config["SUPPLY_SERVICE"] = supply_service
    logger.info(f"Ledger endpoint: {supply_service.connection.rpc_url}")

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(404)
    def handle_not_found(e):
        flash("Page not found.", "warning")
        return redirect(url_for("supply.supply"))

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        flash("An unexpected error occurred. Please try again.", "error")
        return redirect(url_for("supply.supply"))

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(host="127.0.0.1", port=int(os.environ.get("PORT", "5000")), debug=debug_mode)
