"""
Configuration for the Supply Chain Console.

The contract binding (ABI + per-network address) comes from a contract
artifact JSON; the ledger endpoint and transaction policy come from the
environment / .env file.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    SESSION_COOKIE_NAME = "supply_chain_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Ledger connection
    # ==========================================================================
    # LEDGER_RPC_URL: JSON-RPC endpoint of the node / wallet provider
    #   Default: Ganache on localhost
    #
    # CONTRACT_ARTIFACT_PATH: Truffle-style build artifact for SupplyChain
    #   Must contain "abi" and "networks": {"<network id>": {"address": ...}}
    #
    # LEDGER_REQUEST_TIMEOUT: Seconds, handed to the provider. No extra
    #   timeout is applied on top of it.
    # ==========================================================================
    LEDGER_RPC_URL = os.environ.get("LEDGER_RPC_URL", "http://127.0.0.1:7545")
    CONTRACT_ARTIFACT_PATH = os.environ.get(
        "CONTRACT_ARTIFACT_PATH",
        str(BASE_DIR / "artifacts" / "SupplyChain.json")
    )
    LEDGER_REQUEST_TIMEOUT = float(os.environ.get("LEDGER_REQUEST_TIMEOUT", "30"))

    # ==========================================================================
    # Transition policy
    # ==========================================================================
    # CURRENCY_DECIMALS: Exponent of the ledger currency (18 for ether/wei)
    #
    # FALLBACK_GAS_LIMIT: Gas limit used when estimation fails
    #
    # GUARD_IN_FLIGHT: Reject a second transition for a product while the
    #   first one is still waiting on the ledger
    #
    # AUTO_RELOAD_AFTER_TRANSITION: Reload the catalog after an accepted
    #   transition. Off by default - the page keeps the previous catalog
    #   until the user reloads.
    # ==========================================================================
    CURRENCY_DECIMALS = int(os.environ.get("CURRENCY_DECIMALS", "18"))
    FALLBACK_GAS_LIMIT = int(os.environ.get("FALLBACK_GAS_LIMIT", "3000000"))
    GUARD_IN_FLIGHT = _env_flag("GUARD_IN_FLIGHT", "1")
    AUTO_RELOAD_AFTER_TRANSITION = _env_flag("AUTO_RELOAD_AFTER_TRANSITION", "0")

    # Browser sessions kept in memory, least recently used dropped first
    MAX_VIEW_SESSIONS = int(os.environ.get("MAX_VIEW_SESSIONS", "500"))


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
