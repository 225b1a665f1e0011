"""
Custom exceptions for the Supply Chain Console.

Exception Hierarchy:
    SupplyChainError (base)
    ├── LedgerUnavailableError      - Catalog cannot be loaded (blocking notice)
    │   ├── NetworkUnavailableError   - Ledger endpoint unreachable
    │   └── ContractNotDeployedError  - No deployment on the connected network
    └── TransitionError             - Stage transition failed (runtime, graceful)
        ├── InvalidProductIdError     - Product ID is not a positive integer
        ├── UnknownOperationError     - Operation has no ledger method
        ├── InvalidPriceError         - Price is not a non-negative decimal
        ├── NoAccountError            - Wallet returned no account
        ├── EstimationFailedError     - Gas estimation failed (recovered locally)
        ├── LedgerRejectedError       - Write call reverted or was denied
        └── AlreadyInFlightError      - Product already has a pending transition

Usage:
    Load-time errors block the catalog and are shown as a notice.
    Transition errors are converted into a single message naming the
    attempted operation; the displayed catalog stays as it was.
"""

from typing import Optional, Dict, Any


class SupplyChainError(Exception):
    """
    Base exception for all Supply Chain Console errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# LOAD-TIME ERRORS - Catalog is not rendered, user must fix configuration
# =============================================================================

class LedgerUnavailableError(SupplyChainError):
    """Base class for failures that prevent the catalog from loading."""


class NetworkUnavailableError(LedgerUnavailableError):
    """
    The ledger endpoint could not be reached.

    Typical causes:
    - Local node (Ganache, Hardhat) not running
    - Wrong LEDGER_RPC_URL in .env
    - Network connectivity issues
    """

    def __init__(self, endpoint: str, reason: str = ""):
        message = f"Ledger endpoint unreachable: {endpoint}"
        if reason:
            message = f"{message} ({reason})"
        details = {
            "endpoint": endpoint,
            "resolution": "Ensure the ledger node is running and LEDGER_RPC_URL is correct in .env"
        }
        super().__init__(message, details)
        self.endpoint = endpoint


class ContractNotDeployedError(LedgerUnavailableError):
    """
    The contract artifact has no deployment for the connected network.

    This is a configuration mismatch and is never retried automatically.
    """

    def __init__(
        self,
        network_id: str,
        artifact_path: str = "",
        message: str = "The smart contract is not deployed to the current network"
    ):
        details = {
            "network_id": network_id,
            "artifact_path": artifact_path,
            "resolution": "Deploy the contract or switch the wallet to a network listed in the artifact"
        }
        super().__init__(message, details)
        self.network_id = network_id


# =============================================================================
# TRANSITION ERRORS - Request fails, catalog stays as displayed
# =============================================================================

class TransitionError(SupplyChainError):
    """
    Base class for stage transition failures.

    Carries the attempted operation (ledger method name when it could be
    resolved, otherwise the raw operation) and the product ID as given.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        product_id: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if operation:
            error_details["operation"] = operation
        if product_id is not None:
            error_details["product_id"] = product_id
        super().__init__(message, error_details)
        self.operation = operation
        self.product_id = product_id


class InvalidProductIdError(TransitionError):
    """Product ID could not be parsed as a positive integer."""

    def __init__(self, raw_value: Any, operation: Optional[str] = None, reason: str = "Invalid Product ID"):
        super().__init__(reason, operation=operation, product_id=raw_value)
        self.raw_value = raw_value


class UnknownOperationError(TransitionError):
    """Requested operation is not one of the four pipeline stages."""

    def __init__(self, operation: Any):
        message = f"Operation {operation!r} does not exist on the smart contract."
        super().__init__(message, operation=str(operation))


class InvalidPriceError(TransitionError):
    """Unit price is not a well-formed non-negative decimal number."""

    def __init__(self, raw_value: Any, reason: str = "not a non-negative decimal number"):
        message = f"Invalid price {raw_value!r}: {reason}"
        super().__init__(message, details={"price": str(raw_value)})
        self.raw_value = raw_value


class NoAccountError(TransitionError):
    """
    The wallet returned no account, or the user denied access.

    The resolution is always on the wallet side: unlock an account
    or approve the connection request.
    """

    def __init__(self, reason: str = "No account available from wallet"):
        details = {"resolution": "Unlock an account in the wallet and approve the connection"}
        super().__init__(reason, details=details)


class EstimationFailedError(TransitionError):
    """
    Gas estimation failed.

    Never surfaced to the user: the orchestrator falls back to the
    configured gas ceiling and continues with the submission.
    """


class LedgerRejectedError(TransitionError):
    """The ledger reverted the write call or the wallet refused to sign it."""

    def __init__(self, reason: str, operation: Optional[str] = None, product_id: Optional[Any] = None):
        super().__init__(reason, operation=operation, product_id=product_id)
        self.reason = reason


class AlreadyInFlightError(TransitionError):
    """A transition for this product is still awaiting the ledger's answer."""

    def __init__(self, product_id: int, operation: Optional[str] = None):
        message = f"A transition for product {product_id} is already in progress"
        details = {"resolution": "Wait for the pending transition to finish before retrying"}
        super().__init__(message, operation=operation, product_id=product_id, details=details)
