"""
Main routes.

Landing redirect to the supply chain page.
"""

from flask import Blueprint, redirect, url_for

main_bp = Blueprint("main", __name__)


@main_bp.route("/")
def index():
    """Redirect root to the supply chain page."""
    return redirect(url_for("supply.supply"))
