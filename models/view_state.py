"""
View state for the supply chain page.

Holds what the rendering layer needs: the current catalog snapshot, the
loading flag, the current account, the last transition outcome and any
blocking notice. Only SupplySession mutates it, always from the request
that owns it.

Rules:
    - A failed load keeps the previous snapshot but raises a blocking notice
    - A failed transition sets last_error and never touches the snapshot
    - A successful load clears the blocking notice
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from models.product import CatalogSnapshot
from models.transition import TransitionReceipt


class ViewState:
    """Mutable per-session view of the catalog and the last transition."""

    def __init__(self):
        self._snapshot: CatalogSnapshot = CatalogSnapshot.create_empty()
        self._is_loading = False
        self._has_loaded = False
        self._blocking_notice: Optional[str] = None
        self._last_error: Optional[str] = None
        self._last_receipt: Optional[TransitionReceipt] = None
        self._current_account: Optional[str] = None

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def has_loaded(self) -> bool:
        """Whether at least one full load has succeeded."""
        return self._has_loaded

    @property
    def blocking_notice(self) -> Optional[str]:
        return self._blocking_notice

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def last_receipt(self) -> Optional[TransitionReceipt]:
        return self._last_receipt

    @property
    def current_account(self) -> Optional[str]:
        return self._current_account

    def set_account(self, account: Optional[str]) -> None:
        self._current_account = account

    def begin_loading(self) -> None:
        self._is_loading = True

    def apply_snapshot(self, snapshot: CatalogSnapshot) -> None:
        """Replace the whole snapshot after a successful load."""
        self._snapshot = snapshot
        self._is_loading = False
        self._has_loaded = True
        self._blocking_notice = None

    def fail_loading(self, notice: str) -> None:
        """Record a load failure as a blocking notice."""
        self._is_loading = False
        self._blocking_notice = notice

    def record_transition(self, receipt: TransitionReceipt) -> None:
        """
        Record a transition outcome.

        Accepted receipts clear the previous error; rejected ones replace it.
        The snapshot is left as it is either way.
        """
        self._last_receipt = receipt
        self._last_error = None if receipt.accepted else receipt.message

    def clear_error(self) -> None:
        self._last_error = None

    def to_dict(self, decimals: int = 18) -> Dict[str, Any]:
        """Convert to dictionary for templates and JSON responses."""
        return {
            "snapshot": self._snapshot.to_dict(decimals),
            "is_loading": self._is_loading,
            "has_loaded": self._has_loaded,
            "blocking_notice": self._blocking_notice,
            "last_error": self._last_error,
            "last_receipt": self._last_receipt.to_dict() if self._last_receipt else None,
            "current_account": self._current_account,
        }
