"""
API routes (JSON endpoints).

Handles:
- /api/products - Current catalog snapshot
- /api/transitions - Submit one stage transition
- /health - Health check endpoint
"""

from flask import (
    Blueprint,
    current_app,
    request,
)

from core.exceptions import (
    AlreadyInFlightError,
    InvalidPriceError,
    InvalidProductIdError,
    NoAccountError,
    UnknownOperationError,
)
from logging_config import get_logger
from routes.supply import get_supply_session


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)

# Receipt error types that are the caller's fault rather than the ledger's
_CLIENT_ERRORS = (InvalidProductIdError, UnknownOperationError, InvalidPriceError)


@api_bp.route("/api/products", methods=["GET"])
async def products():
    """
    Return the catalog as JSON.

    Mounts the session if needed. A blocking notice is returned with 503;
    the last good snapshot (if any) is still included.
    """
    session = get_supply_session()
    if session is None:
        return {"error": "Supply chain service unavailable"}, 503

    if request.args.get("reload") == "1":
        await session.reload()
    elif not session.view_state.has_loaded and not session.view_state.blocking_notice:
        await session.mount()

    view = session.view_state
    body = view.to_dict(session.decimals)
    status_code = 503 if view.blocking_notice else 200
    return body, status_code


@api_bp.route("/api/transitions", methods=["POST"])
async def transitions():
    """
    Submit one stage transition.

    Body: {"product_id": ..., "operation": "Manufacture" | "Ship" | ...}

    Returns the receipt with:
        200 accepted
        409 product already has a transition in flight
        422 invalid product ID / operation / price
        401 no wallet account
        502 ledger rejected or unreachable
    """
    session = get_supply_session()
    if session is None:
        return {"error": "Supply chain service unavailable"}, 503

    payload = request.get_json(silent=True) or {}
    product_id = payload.get("product_id", "")
    operation = payload.get("operation", "")

    try:
        receipt = await session.submit(product_id, operation)
    except RuntimeError as e:
        logger.error(f"Transition not attempted: {e}")
        return {"error": str(e)}, 503

    if receipt.accepted:
        return receipt.to_dict(), 200
    if isinstance(receipt.error, AlreadyInFlightError):
        return receipt.to_dict(), 409
    if isinstance(receipt.error, _CLIENT_ERRORS):
        return receipt.to_dict(), 422
    if isinstance(receipt.error, NoAccountError):
        return receipt.to_dict(), 401
    return receipt.to_dict(), 502


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check with the shared connection status and the calling browser's catalog."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    service = current_app.config.get("SUPPLY_SERVICE")
    if service is None:
        health_status["checks"]["session"] = "not_available"
        health_status["status"] = "degraded"
        return health_status, 503

    if service.connection.is_initialized:
        health_status["checks"]["ledger"] = "connected"
        health_status["checks"]["network_id"] = service.connection.handle.network_id
    else:
        health_status["checks"]["ledger"] = "not_connected"
        health_status["status"] = "degraded"

    view = get_supply_session().view_state
    health_status["checks"]["sessions"] = service.session_count

    if view.blocking_notice:
        health_status["checks"]["catalog"] = "unavailable"
        health_status["checks"]["notice"] = view.blocking_notice
        health_status["status"] = "degraded"
    elif view.has_loaded:
        health_status["checks"]["catalog"] = "ok"
        health_status["checks"]["products"] = len(view.snapshot)
    else:
        health_status["checks"]["catalog"] = "not_loaded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
