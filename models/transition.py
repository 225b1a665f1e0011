"""
Stage transition data models.

These models represent a single request to move a product to the next
pipeline stage and the outcome reported back to the UI.

Lifecycle (one instance per user action, never reused):
    IDLE -> VALIDATING -> PRICING_RESOLVED -> GAS_ESTIMATED -> SUBMITTED
         -> (ACCEPTED | REJECTED)

A request may jump to REJECTED from any non-terminal state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from core.exceptions import UnknownOperationError


class Operation(Enum):
    """
    The four pipeline operations, one per stage.

    The value is the name shown to users; ``ledger_method`` is the contract
    function that performs it. This enumeration does not encode which
    operation is legal from which stage - the contract decides that.
    """

    MANUFACTURE = "Manufacture"
    SHIP = "Ship"
    DISTRIBUTE = "Distribute"
    WAREHOUSE = "Warehouse"

    @property
    def ledger_method(self) -> str:
        """Contract function name for this operation."""
        return _LEDGER_METHODS[self]

    @property
    def step(self) -> int:
        """Pipeline step number (1-4) used for display."""
        return list(Operation).index(self) + 1

    @classmethod
    def parse(cls, value: Any) -> "Operation":
        """
        Resolve an operation from its enum member, display value, member
        name or ledger method name (all case-insensitive).

        Raises:
            UnknownOperationError: If nothing matches
        """
        if isinstance(value, cls):
            return value

        if isinstance(value, str):
            key = value.strip().lower()
            for operation in cls:
                if key in (
                    operation.value.lower(),
                    operation.name.lower(),
                    operation.ledger_method.lower(),
                ):
                    return operation

        raise UnknownOperationError(value)


_LEDGER_METHODS = {
    Operation.MANUFACTURE: "startManufacturing",
    Operation.SHIP: "startShipping",
    Operation.DISTRIBUTE: "startDistribution",
    Operation.WAREHOUSE: "storeInWarehouse",
}


class TransitionState(Enum):
    """State of a single transition request."""

    IDLE = "idle"
    VALIDATING = "validating"
    PRICING_RESOLVED = "pricing_resolved"
    GAS_ESTIMATED = "gas_estimated"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (TransitionState.ACCEPTED, TransitionState.REJECTED)


@dataclass(frozen=True)
class TransitionRequest:
    """
    A user's request to run one pipeline operation on one product.

    Both fields hold the raw input; the orchestrator parses and validates
    them so that a malformed request still yields a proper receipt.
    """

    product_id: Any
    """Product ID as entered (int or text)."""

    operation: Any
    """Operation member, display name or ledger method name."""


@dataclass
class TransitionReceipt:
    """
    Outcome of one transition request.

    Created by the orchestrator, consumed by the session to update the
    view state. ``error`` keeps the original exception for callers and
    tests; it is not part of ``to_dict()``.
    """

    operation: str
    """Ledger method name, or the raw operation when it could not be resolved."""

    product_id: Any
    """Parsed product ID, or the raw input when parsing failed."""

    state: TransitionState
    """Final state (ACCEPTED or REJECTED)."""

    completed_at: datetime
    """When the orchestrator finished with the request."""

    transaction_hash: Optional[str] = None
    """Ledger transaction identifier (accepted requests only)."""

    payment: Optional[int] = None
    """Value attached to the write call, in minor units."""

    gas_limit: Optional[int] = None
    """Gas limit sent with the write call."""

    gas_fallback_used: bool = False
    """Whether the fixed ceiling replaced a failed estimate."""

    message: str = ""
    """User-facing outcome message."""

    error: Optional[BaseException] = None
    """Underlying exception (rejected requests only)."""

    history: List[TransitionState] = field(default_factory=list)
    """States the request passed through, in order."""

    @property
    def accepted(self) -> bool:
        return self.state == TransitionState.ACCEPTED

    @property
    def error_type(self) -> Optional[str]:
        return type(self.error).__name__ if self.error is not None else None

    @classmethod
    def create_accepted(
        cls,
        operation: str,
        product_id: int,
        transaction_hash: str,
        payment: int,
        gas_limit: int,
        gas_fallback_used: bool = False,
        history: Optional[List[TransitionState]] = None
    ) -> "TransitionReceipt":
        """
        Create a receipt for a write call the ledger accepted.

        Args:
            operation: Ledger method name
            product_id: Product the transition was applied to
            transaction_hash: Hash returned by the ledger
            payment: Value attached, in minor units
            gas_limit: Gas limit sent
            gas_fallback_used: Whether the fallback ceiling was used
            history: States visited before ACCEPTED

        Returns:
            TransitionReceipt in ACCEPTED state
        """
        return cls(
            operation=operation,
            product_id=product_id,
            state=TransitionState.ACCEPTED,
            completed_at=datetime.now(timezone.utc),
            transaction_hash=transaction_hash,
            payment=payment,
            gas_limit=gas_limit,
            gas_fallback_used=gas_fallback_used,
            message=f"Successfully called {operation} with result: {transaction_hash}",
            history=list(history or []) + [TransitionState.ACCEPTED],
        )

    @classmethod
    def create_rejected(
        cls,
        operation: str,
        product_id: Any,
        error: BaseException,
        payment: Optional[int] = None,
        gas_limit: Optional[int] = None,
        gas_fallback_used: bool = False,
        history: Optional[List[TransitionState]] = None
    ) -> "TransitionReceipt":
        """
        Create a receipt for a request that failed at any step.

        The message names the attempted operation and the cause.
        """
        cause = getattr(error, "message", None) or str(error) or type(error).__name__
        return cls(
            operation=operation,
            product_id=product_id,
            state=TransitionState.REJECTED,
            completed_at=datetime.now(timezone.utc),
            payment=payment,
            gas_limit=gas_limit,
            gas_fallback_used=gas_fallback_used,
            message=f"Error in {operation}: {cause}",
            error=error,
            history=list(history or []) + [TransitionState.REJECTED],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for session storage and JSON responses."""
        return {
            "operation": self.operation,
            "product_id": self.product_id,
            "state": self.state.value,
            "accepted": self.accepted,
            "completed_at": self.completed_at.isoformat(),
            "transaction_hash": self.transaction_hash,
            "payment": str(self.payment) if self.payment is not None else None,
            "gas_limit": self.gas_limit,
            "gas_fallback_used": self.gas_fallback_used,
            "message": self.message,
            "error_type": self.error_type,
            "history": [s.value for s in self.history],
        }
