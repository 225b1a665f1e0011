"""
Supply chain page routes.

GET shows the catalog table, the current account and one form per
pipeline step. Each form POSTs a product ID to /supply/<operation>; the
outcome is flashed and the page is shown again with the catalog as it was
loaded (no automatic reload unless configured).
"""

from uuid import uuid4

import bleach
from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    session as browser_session,
    url_for,
)

from models.transition import Operation
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

supply_bp = Blueprint("supply", __name__)

# Constants
MAX_PRODUCT_ID_LENGTH = 78  # digits in 2**256


def _sanitize_text(text: str, max_length: int = None) -> str:
    """Sanitize user input text."""
    if not text:
        return ""
    text = text.strip()
    text = bleach.clean(text, tags=[], strip=True)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def get_supply_session():
    """
    SupplySession for the current browser, or None if the service is missing.

    The browser is identified by a random id stored in the signed Flask
    session cookie; the id is created on first use.
    """
    service = current_app.config.get("SUPPLY_SERVICE")
    if service is None:
        return None

    view_id = browser_session.get("view_id")
    if not view_id:
        view_id = uuid4().hex
        browser_session["view_id"] = view_id
    return service.session_for(view_id)


@supply_bp.route("/supply", methods=["GET"])
async def supply():
    """
    Display the catalog and the stage forms.

    Mounts the session on first visit. A load failure renders the blocking
    notice instead of the table.
    """
    session = get_supply_session()
    if session is None:
        return render_template(
            "supply.html",
            view=None,
            notice="Supply chain service unavailable",
            operations=list(Operation),
            decimals=18,
        ), 503

    view = session.view_state
    if not view.has_loaded and not view.is_loading and not view.blocking_notice:
        await session.mount()

    return render_template(
        "supply.html",
        view=view,
        notice=view.blocking_notice,
        operations=list(Operation),
        decimals=session.decimals,
    )


@supply_bp.route("/supply/reload", methods=["POST"])
async def reload():
    """Reload the whole catalog from the ledger."""
    session = get_supply_session()
    if session is None:
        flash("Supply chain service unavailable.", "error")
        return redirect(url_for("supply.supply"))

    if await session.reload():
        flash("Catalog reloaded.", "success")
    else:
        flash(session.view_state.blocking_notice or "Catalog reload failed.", "error")
    return redirect(url_for("supply.supply"))


@supply_bp.route("/supply/<operation>", methods=["POST"])
async def submit(operation: str):
    """
    Submit one stage transition from a step form.

    The operation in the URL is resolved by the orchestrator; an unknown
    one is reported like any other transition failure.
    """
    session = get_supply_session()
    if session is None:
        flash("Supply chain service unavailable.", "error")
        return redirect(url_for("supply.supply"))

    product_id = _sanitize_text(request.form.get("product_id", ""), MAX_PRODUCT_ID_LENGTH)
    logger.info(f"Transition requested: {operation} for product '{product_id}'")

    try:
        receipt = await session.submit(product_id, operation)
    except RuntimeError as e:
        logger.error(f"Transition not attempted: {e}")
        flash(str(e), "error")
        return redirect(url_for("supply.supply"))

    flash(receipt.message, "success" if receipt.accepted else "error")
    return redirect(url_for("supply.supply"))
