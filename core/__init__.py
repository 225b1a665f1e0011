"""
Core module for the Supply Chain Console.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- payment: Exact minor-unit payment arithmetic
- ledger_connection: Explicit web3 connection / contract binding and wallet
- ledger_gateway: Typed read, write and gas-estimation calls on the contract

ledger_connection and ledger_gateway depend on the models package; import
them by module path (``from core.ledger_gateway import LedgerGateway``).
"""

from .exceptions import (
    SupplyChainError,
    LedgerUnavailableError,
    NetworkUnavailableError,
    ContractNotDeployedError,
    TransitionError,
    InvalidProductIdError,
    UnknownOperationError,
    InvalidPriceError,
    NoAccountError,
    EstimationFailedError,
    LedgerRejectedError,
    AlreadyInFlightError,
)
from .payment import compute_payment, to_minor_units, from_minor_units, format_major_units

__all__ = [
    "SupplyChainError",
    "LedgerUnavailableError",
    "NetworkUnavailableError",
    "ContractNotDeployedError",
    "TransitionError",
    "InvalidProductIdError",
    "UnknownOperationError",
    "InvalidPriceError",
    "NoAccountError",
    "EstimationFailedError",
    "LedgerRejectedError",
    "AlreadyInFlightError",
    "compute_payment",
    "to_minor_units",
    "from_minor_units",
    "format_major_units",
]
