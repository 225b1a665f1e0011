"""
Stage transition orchestrator.

Turns one user request ("ship product 7") into one ledger write call with
the exact payment attached, and reports the outcome as a TransitionReceipt.

Flow (one attempt per call, never retried):
    1. Parse the product ID (positive integer)
    2. Resolve the operation to its contract method (closed set of four)
    3. Re-read price and quantity from the LEDGER (not the cached catalog)
       and compute the payment in minor units
    4. Resolve the acting account from the wallet
    5. Estimate gas; on any failure use the fixed fallback ceiling
    6. Send the write call with from / gas / value
    7. Accepted -> receipt with the transaction hash

Any failure in steps 1-6 becomes a REJECTED receipt with the message
"Error in <operation>: <cause>". The orchestrator never touches the catalog
snapshot, and it does not decide which stage may follow which - the
contract accepts or reverts.

Usage:
    orchestrator = TransitionOrchestrator(gateway, wallet)
    receipt = await orchestrator.submit_transition(
        TransitionRequest(product_id="7", operation=Operation.SHIP)
    )
    if receipt.accepted:
        print(receipt.transaction_hash)
    else:
        print(receipt.message)
"""

from __future__ import annotations

import threading
from typing import Any, List, Optional, Set

from core.exceptions import (
    AlreadyInFlightError,
    EstimationFailedError,
    InvalidProductIdError,
    NoAccountError,
    UnknownOperationError,
)
from core.ledger_gateway import LedgerGateway
from core.payment import DEFAULT_DECIMALS, compute_payment, from_minor_units
from models.product import CatalogSnapshot
from models.transition import (
    Operation,
    TransitionReceipt,
    TransitionRequest,
    TransitionState,
)
from logging_config import get_logger, get_transition_logger


# Module logger
logger = get_logger(__name__)

DEFAULT_FALLBACK_GAS_LIMIT = 3_000_000


def parse_product_id(raw_value: Any) -> int:
    """
    Parse a product ID from user input.

    Accepts a positive int, or text made only of ASCII digits (surrounding
    whitespace ignored).

    Raises:
        InvalidProductIdError: For anything else, including 0 and negatives
    """
    if isinstance(raw_value, bool):
        raise InvalidProductIdError(raw_value)

    if isinstance(raw_value, int):
        product_id = raw_value
    elif isinstance(raw_value, str):
        text = raw_value.strip()
        if not (text.isascii() and text.isdigit()):
            raise InvalidProductIdError(raw_value)
        product_id = int(text)
    else:
        raise InvalidProductIdError(raw_value)

    if product_id <= 0:
        raise InvalidProductIdError(raw_value)
    return product_id


class InFlightRegistry:
    """
    Product IDs with a transition currently waiting on the ledger.

    The check-and-claim is done under a lock so two Flask worker threads
    cannot both claim the same product.
    """

    def __init__(self):
        self._ids: Set[int] = set()
        self._lock = threading.Lock()

    def claim(self, product_id: int) -> bool:
        with self._lock:
            if product_id in self._ids:
                return False
            self._ids.add(product_id)
            return True

    def release(self, product_id: int) -> None:
        with self._lock:
            self._ids.discard(product_id)

    def __contains__(self, product_id: int) -> bool:
        with self._lock:
            return product_id in self._ids


class TransitionOrchestrator:
    """
    Validates, prices, estimates and submits one stage transition.

    Each call to submit_transition() is its own state machine; nothing is
    shared between calls except the in-flight registry.

    Attributes:
        fallback_gas_limit: Gas limit used when estimation fails
        guard_in_flight: Whether concurrent requests for one product are rejected
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        wallet: Any,
        decimals: int = DEFAULT_DECIMALS,
        fallback_gas_limit: int = DEFAULT_FALLBACK_GAS_LIMIT,
        guard_in_flight: bool = True
    ):
        """
        Initialize orchestrator.

        Args:
            gateway: LedgerGateway for reads, estimation and writes
            wallet: Wallet collaborator with async request_accounts()
            decimals: Ledger currency exponent
            fallback_gas_limit: Gas ceiling used when estimation fails
            guard_in_flight: Reject a second concurrent request per product
        """
        self._gateway = gateway
        self._wallet = wallet
        self._decimals = decimals
        self._fallback_gas_limit = fallback_gas_limit
        self._guard_in_flight = guard_in_flight
        self._in_flight = InFlightRegistry()

    @property
    def fallback_gas_limit(self) -> int:
        return self._fallback_gas_limit

    @property
    def guard_in_flight(self) -> bool:
        return self._guard_in_flight

    def is_in_flight(self, product_id: int) -> bool:
        return product_id in self._in_flight

    async def submit_transition(
        self,
        request: TransitionRequest,
        caller: Optional[str] = None,
        snapshot: Optional[CatalogSnapshot] = None
    ) -> TransitionReceipt:
        """
        Run one transition request to a terminal state.

        Args:
            request: Raw product ID and operation
            caller: Account to send from; resolved from the wallet when None
            snapshot: Currently displayed catalog; when given, the product
                must be part of it

        Returns:
            TransitionReceipt in ACCEPTED or REJECTED state (never raises
            for request-level failures)
        """
        history: List[TransitionState] = [TransitionState.IDLE]
        label = self._operation_label(request.operation)
        product_id: Any = request.product_id
        payment: Optional[int] = None
        gas_limit: Optional[int] = None
        gas_fallback_used = False
        claimed = False
        tlog = get_transition_logger(label, product_id)

        try:
            # Step 1-2: validate input
            history.append(TransitionState.VALIDATING)
            product_id = parse_product_id(request.product_id)
            operation = Operation.parse(request.operation)
            method = operation.ledger_method
            tlog = get_transition_logger(method, product_id)

            if snapshot is not None and snapshot.get(product_id) is None:
                raise InvalidProductIdError(
                    product_id, method, f"Product {product_id} is not in the loaded catalog"
                )

            if self._guard_in_flight:
                if not self._in_flight.claim(product_id):
                    raise AlreadyInFlightError(product_id, method)
                claimed = True

            # Step 3: fresh price and quantity from the ledger
            product = await self._gateway.get_product(product_id)
            if product.id != product_id:
                raise InvalidProductIdError(
                    product_id, method, f"Product {product_id} does not exist on the ledger"
                )
            unit_price = from_minor_units(product.price, self._decimals)
            payment = compute_payment(unit_price, product.quantity, self._decimals)
            history.append(TransitionState.PRICING_RESOLVED)
            tlog.debug(f"Payment: {unit_price} x {product.quantity} = {payment} minor units")

            # Step 4: acting account
            account = caller or await self._resolve_account()

            # Step 5: gas, falling back to the fixed ceiling
            try:
                gas_limit = await self._gateway.estimate_gas(method, product_id, account, value=payment)
            except EstimationFailedError as e:
                tlog.warning(f"{e.message}; using fallback gas limit {self._fallback_gas_limit}")
                gas_limit = self._fallback_gas_limit
                gas_fallback_used = True
            history.append(TransitionState.GAS_ESTIMATED)

            # Step 6: submit
            history.append(TransitionState.SUBMITTED)
            tx_hash = await self._gateway.send_transition(method, product_id, account, gas_limit, payment)

            tlog.info(f"Successfully called {method} with result: {tx_hash}")
            return TransitionReceipt.create_accepted(
                operation=method,
                product_id=product_id,
                transaction_hash=tx_hash,
                payment=payment,
                gas_limit=gas_limit,
                gas_fallback_used=gas_fallback_used,
                history=history,
            )

        except Exception as e:
            tlog.error(f"Error in {label}: {e}")
            return TransitionReceipt.create_rejected(
                operation=label,
                product_id=product_id,
                error=e,
                payment=payment,
                gas_limit=gas_limit,
                gas_fallback_used=gas_fallback_used,
                history=history,
            )

        finally:
            if claimed:
                self._in_flight.release(product_id)

    async def _resolve_account(self) -> str:
        """
        First account offered by the wallet.

        Raises:
            NoAccountError: If the wallet fails, refuses, or returns nothing
        """
        try:
            accounts = await self._wallet.request_accounts()
        except NoAccountError:
            raise
        except Exception as e:
            raise NoAccountError(f"Wallet request failed: {e}") from e

        if not accounts:
            raise NoAccountError()
        return accounts[0]

    @staticmethod
    def _operation_label(raw_operation: Any) -> str:
        """Ledger method name when resolvable, otherwise the raw operation."""
        try:
            return Operation.parse(raw_operation).ledger_method
        except UnknownOperationError:
            return str(raw_operation)
