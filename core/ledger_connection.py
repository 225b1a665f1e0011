"""
Ledger connection and wallet lifecycle management.

This module replaces any ambient, globally looked-up wallet handle with an
explicit initialization step. ``LedgerConnection.initialize()`` either
returns a ``LedgerHandle`` (web3 instance, bound contract, wallet) or raises
a load-time error that the page shows as a blocking notice.

FAIL FAST BEHAVIOR:
    - Artifact file missing or unreadable: ContractNotDeployedError
    - Endpoint unreachable: NetworkUnavailableError
    - Artifact has no address for the network id: ContractNotDeployedError
    - Address has no code on chain: ContractNotDeployedError

Usage:
    connection = LedgerConnection(rpc_url, artifact_path)
    handle = await connection.initialize()

    gateway = LedgerGateway(handle.contract, endpoint=rpc_url)
    accounts = await handle.wallet.request_accounts()
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from aiohttp import ClientError, ClientTimeout
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import Web3Exception

from .exceptions import ContractNotDeployedError, NetworkUnavailableError, NoAccountError


CONNECTION_ERRORS = (ClientError, OSError, asyncio.TimeoutError)


class Web3Wallet:
    """
    Wallet/provider collaborator backed by the node's account list.

    ``get_accounts()`` never prompts; ``request_accounts()`` asks the
    provider for access (``eth_requestAccounts``) and falls back to the
    plain account list on nodes that do not implement that method.
    Failures and denials are reported as NoAccountError.
    """

    def __init__(self, web3: AsyncWeb3, logger: Optional[logging.Logger] = None):
        self._web3 = web3
        self._logger = logger or logging.getLogger("core.ledger_connection")

    async def get_accounts(self) -> List[str]:
        """
        Return the accounts the provider exposes, in provider order.

        Raises:
            NoAccountError: If the provider call fails
        """
        try:
            accounts = await self._web3.eth.accounts
        except CONNECTION_ERRORS as e:
            raise NoAccountError(f"Wallet unreachable: {e}") from e
        except (Web3Exception, ValueError) as e:
            raise NoAccountError(f"Wallet refused account list: {e}") from e
        return [str(a) for a in accounts]

    async def request_accounts(self) -> List[str]:
        """
        Request account access, which may prompt the user.

        Raises:
            NoAccountError: If access is denied or the provider fails
        """
        try:
            accounts = await self._web3.manager.coro_request("eth_requestAccounts", [])
        except CONNECTION_ERRORS as e:
            raise NoAccountError(f"Wallet unreachable: {e}") from e
        except (Web3Exception, ValueError) as e:
            self._logger.debug(f"eth_requestAccounts unavailable ({e}), using eth_accounts")
            return await self.get_accounts()
        return [str(a) for a in accounts or []]


@dataclass(frozen=True)
class LedgerHandle:
    """Capability handle returned by a successful initialization."""

    web3: AsyncWeb3
    contract: Any
    network_id: str
    contract_address: str
    wallet: Web3Wallet


class LedgerConnection:
    """
    Manages the web3 connection and the SupplyChain contract binding.

    This class is responsible for:
    1. Loading the contract artifact (ABI + per-network addresses)
    2. Connecting to the ledger endpoint
    3. Resolving the network id and the contract address for it
    4. Providing the bound contract and wallet through a LedgerHandle

    Attributes:
        rpc_url: Ledger JSON-RPC endpoint
        artifact_path: Path to the contract artifact JSON
        is_initialized: True once initialize() has succeeded
        handle: LedgerHandle (read-only after init)
    """

    def __init__(
        self,
        rpc_url: str,
        artifact_path: str | Path,
        request_timeout: float = 30.0,
        logger: Optional[logging.Logger] = None,
        web3: Optional[AsyncWeb3] = None
    ):
        """
        Initialize connection settings.

        Args:
            rpc_url: Ledger JSON-RPC endpoint
            artifact_path: Contract artifact JSON (``abi`` and ``networks``)
            request_timeout: Provider timeout in seconds (enforced by the provider)
            logger: Logger instance (optional)
            web3: Pre-built AsyncWeb3 instance (tests, custom providers)

        Note:
            This does NOT connect - call initialize() to do that.
        """
        self._rpc_url = rpc_url
        self._artifact_path = Path(artifact_path) if isinstance(artifact_path, str) else artifact_path
        self._request_timeout = request_timeout
        self._logger = logger or logging.getLogger("core.ledger_connection")
        self._web3 = web3
        self._handle: Optional[LedgerHandle] = None

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    @property
    def artifact_path(self) -> Path:
        return self._artifact_path

    @property
    def is_initialized(self) -> bool:
        return self._handle is not None

    @property
    def handle(self) -> LedgerHandle:
        """
        Capability handle for the bound contract.

        Raises:
            RuntimeError: If not initialized
        """
        if self._handle is None:
            raise RuntimeError("Ledger not initialized - call initialize() first")
        return self._handle

    def load_artifact(self) -> Dict[str, Any]:
        """
        Read the contract artifact.

        Raises:
            ContractNotDeployedError: If the file is missing, unreadable or has no ABI
        """
        path = str(self._artifact_path)
        try:
            with open(self._artifact_path, "r", encoding="utf-8") as f:
                artifact = json.load(f)
        except FileNotFoundError:
            raise ContractNotDeployedError("", path, f"Contract artifact not found: {path}")
        except (OSError, json.JSONDecodeError) as e:
            raise ContractNotDeployedError("", path, f"Contract artifact unreadable: {e}")

        if not isinstance(artifact, dict) or "abi" not in artifact:
            raise ContractNotDeployedError("", path, f"Contract artifact has no ABI: {path}")

        return artifact

    async def initialize(self) -> LedgerHandle:
        """
        Connect, resolve the network and bind the contract.

        Returns:
            LedgerHandle for the connected network

        Raises:
            NetworkUnavailableError: If the endpoint cannot be reached
            ContractNotDeployedError: If no deployment exists for the network
        """
        if self._handle is not None:
            return self._handle

        self._logger.info(f"Initializing ledger connection: {self._rpc_url}")
        artifact = self.load_artifact()

        web3 = self._web3 or AsyncWeb3(
            AsyncHTTPProvider(
                self._rpc_url,
                request_kwargs={"timeout": ClientTimeout(total=self._request_timeout)},
            )
        )

        try:
            connected = await web3.is_connected()
        except CONNECTION_ERRORS as e:
            raise NetworkUnavailableError(self._rpc_url, str(e)) from e
        except (Web3Exception, ValueError) as e:
            raise NetworkUnavailableError(self._rpc_url, f"Provider error: {e}") from e
        if not connected:
            self._logger.critical(f"Ledger endpoint not responding: {self._rpc_url}")
            raise NetworkUnavailableError(self._rpc_url)

        try:
            network_id = str(await web3.net.version)
        except CONNECTION_ERRORS as e:
            raise NetworkUnavailableError(self._rpc_url, str(e)) from e
        except (Web3Exception, ValueError) as e:
            raise NetworkUnavailableError(self._rpc_url, f"Provider error: {e}") from e

        network_data = artifact.get("networks", {}).get(network_id)
        if not network_data or not network_data.get("address"):
            self._logger.error(f"No deployment for network {network_id} in {self._artifact_path}")
            raise ContractNotDeployedError(network_id, str(self._artifact_path))

        try:
            address = AsyncWeb3.to_checksum_address(network_data["address"])
        except ValueError as e:
            raise ContractNotDeployedError(
                network_id, str(self._artifact_path), f"Invalid contract address in artifact: {e}"
            ) from e

        try:
            code = await web3.eth.get_code(address)
        except CONNECTION_ERRORS as e:
            raise NetworkUnavailableError(self._rpc_url, str(e)) from e
        except (Web3Exception, ValueError) as e:
            raise NetworkUnavailableError(self._rpc_url, f"Provider error: {e}") from e
        if not code:
            self._logger.error(f"No contract code at {address} on network {network_id}")
            raise ContractNotDeployedError(network_id, str(self._artifact_path))

        contract = web3.eth.contract(address=address, abi=artifact["abi"])

        self._web3 = web3
        self._handle = LedgerHandle(
            web3=web3,
            contract=contract,
            network_id=network_id,
            contract_address=address,
            wallet=Web3Wallet(web3, self._logger),
        )

        self._logger.info(f"Contract bound at {address} on network {network_id}")
        return self._handle

    def reset(self) -> None:
        """Forget the current binding so the next initialize() reconnects."""
        self._handle = None
