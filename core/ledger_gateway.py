"""
Typed gateway to the SupplyChain contract.

This module wraps the bound web3 contract with the handful of calls the
application needs and translates web3 / transport errors into the
application's exception hierarchy.

Contract surface:
    Reads:  medicineCtr(), MedicineStock(id), showStage(id)
    Writes: startManufacturing(id), startShipping(id),
            startDistribution(id), storeInWarehouse(id)
            (payable, sent with from / gas / value)

Each call is awaited on its own; the gateway never batches or parallelizes
reads. No timeout is imposed here beyond the provider's.

Usage:
    gateway = LedgerGateway(handle.contract, endpoint=rpc_url)

    count = await gateway.get_product_count()
    product = await gateway.get_product(1)
    stage = await gateway.get_stage(1)

    gas = await gateway.estimate_gas("startShipping", 1, account, value=payment)
    tx_hash = await gateway.send_transition("startShipping", 1, account, gas, payment)
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from web3 import AsyncWeb3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from models.product import Product, StageLabel
from .exceptions import (
    ContractNotDeployedError,
    EstimationFailedError,
    LedgerRejectedError,
    NetworkUnavailableError,
)
from .ledger_connection import CONNECTION_ERRORS


WRITE_METHODS = frozenset({
    "startManufacturing",
    "startShipping",
    "startDistribution",
    "storeInWarehouse",
})


class LedgerGateway:
    """
    Request/response boundary to the SupplyChain contract.

    Stateless apart from the contract binding: every call goes to the
    ledger, nothing is cached.
    """

    def __init__(
        self,
        contract: Any,
        endpoint: str = "",
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize gateway.

        Args:
            contract: Bound web3 AsyncContract (LedgerHandle.contract)
            endpoint: Endpoint URL, used in error messages
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If contract is None
        """
        if contract is None:
            raise ValueError("contract is required - ledger must be initialized")

        self._contract = contract
        self._endpoint = endpoint
        self._logger = logger or logging.getLogger("core.ledger_gateway")

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_product_count(self) -> int:
        """Number of products created so far (ids run 1..count)."""
        count = await self._call_read("medicineCtr")
        self._logger.debug(f"Ledger reports {count} products")
        return int(count)

    async def get_product(self, product_id: int) -> Product:
        """
        Read one product record straight from the ledger.

        Returns:
            Product (a never-created id comes back as an all-zero record)
        """
        function = self._contract.functions.MedicineStock(product_id)
        record = await self._await_read("MedicineStock", function.call())
        return Product.from_ledger(record, self._output_names(function))

    async def get_stage(self, product_id: int) -> StageLabel:
        """Current stage label for a product, as the contract phrases it."""
        stage = await self._call_read("showStage", product_id)
        return str(stage)

    # -------------------------------------------------------------------------
    # Gas estimation and writes
    # -------------------------------------------------------------------------

    async def estimate_gas(
        self,
        method: str,
        product_id: int,
        account: str,
        value: int = 0
    ) -> int:
        """
        Estimate gas for one write call with these exact arguments.

        Raises:
            EstimationFailedError: On any failure (provider error, revert)
        """
        function = self._write_function(method, product_id)
        try:
            estimate = await function.estimate_gas({"from": account, "value": value})
        except Exception as e:
            raise EstimationFailedError(
                f"Gas estimation failed: {e}",
                operation=method,
                product_id=product_id,
            ) from e

        self._logger.debug(f"Gas estimate for {method}({product_id}): {estimate}")
        return int(estimate)

    async def send_transition(
        self,
        method: str,
        product_id: int,
        account: str,
        gas: int,
        value: int
    ) -> str:
        """
        Submit a stage transition write call.

        Args:
            method: One of WRITE_METHODS
            product_id: Product to transition
            account: Sender address
            gas: Gas limit
            value: Payment attached, in minor units

        Returns:
            Transaction hash as a 0x-prefixed hex string

        Raises:
            LedgerRejectedError: If the call reverts or the wallet refuses it
            NetworkUnavailableError: If the endpoint cannot be reached
        """
        function = self._write_function(method, product_id)
        self._logger.info(f"Sending {method}({product_id}) from {account}, gas={gas}, value={value}")

        try:
            tx_hash = await function.transact({"from": account, "gas": gas, "value": value})
        except CONNECTION_ERRORS as e:
            raise NetworkUnavailableError(self._endpoint, str(e)) from e
        except ContractLogicError as e:
            raise LedgerRejectedError(f"Transaction reverted: {e}", method, product_id) from e
        except (Web3Exception, ValueError) as e:
            raise LedgerRejectedError(str(e), method, product_id) from e

        if isinstance(tx_hash, str):
            return tx_hash
        return AsyncWeb3.to_hex(tx_hash)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _write_function(self, method: str, product_id: int):
        if method not in WRITE_METHODS:
            raise ValueError(f"{method!r} is not a stage transition method")
        return getattr(self._contract.functions, method)(product_id)

    async def _call_read(self, method: str, *args: Any) -> Any:
        function = getattr(self._contract.functions, method)(*args)
        return await self._await_read(method, function.call())

    async def _await_read(self, method: str, pending) -> Any:
        try:
            return await pending
        except CONNECTION_ERRORS as e:
            self._logger.error(f"{method} failed, ledger unreachable: {e}")
            raise NetworkUnavailableError(self._endpoint, str(e)) from e
        except BadFunctionCallOutput as e:
            # Empty return data: nothing deployed at the bound address
            self._logger.error(f"{method} returned no data: {e}")
            raise ContractNotDeployedError("", message=f"Contract returned no data for {method}") from e

    @staticmethod
    def _output_names(function: Any) -> Optional[List[str]]:
        abi = getattr(function, "abi", None)
        if not isinstance(abi, dict):
            return None
        outputs = abi.get("outputs") or []
        # A struct getter may come back as one tuple output with components
        if len(outputs) == 1 and outputs[0].get("components"):
            outputs = outputs[0]["components"]
        return [o.get("name", "") for o in outputs]
