"""
Supply chain sessions.

SupplyChainService is created once per app and owns what every browser
shares: the ledger connection, the gateway, the catalog loader and the
transition orchestrator (and so the in-flight registry). Each browser
gets its own SupplySession, keyed by an id kept in the signed Flask
session cookie; a SupplySession owns one ViewState and is the only code
that mutates it.

Flow (per browser):
    1. mount(): bind the shared ledger (explicit initialization), read the
       current account, load this browser's catalog
    2. submit(): run one transition through the shared orchestrator and
       record the receipt; the catalog is left as loaded
    3. reload(): full catalog reload on demand

Load-time failures become the blocking notice on the browser's view. They
are not retried automatically.

Usage:
    service = SupplyChainService(connection, fallback_gas_limit=3_000_000)
    session = service.session_for(view_id)
    await session.mount()
    receipt = await session.submit("7", "Ship")
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Any, Optional

from core.exceptions import LedgerUnavailableError, NoAccountError
from core.ledger_connection import LedgerConnection, LedgerHandle
from core.ledger_gateway import LedgerGateway
from core.payment import DEFAULT_DECIMALS
from models.transition import TransitionReceipt, TransitionRequest
from models.view_state import ViewState
from services.catalog_service import ProductCatalogLoader
from services.transition_service import DEFAULT_FALLBACK_GAS_LIMIT, TransitionOrchestrator
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

DEFAULT_MAX_SESSIONS = 500


class SupplyChainService:
    """
    App-wide ledger collaborators and the per-browser session registry.

    The gateway, loader and orchestrator are built once, after the first
    successful initialization, so every browser shares one in-flight
    registry.

    Attributes:
        connection: LedgerConnection shared by all sessions
        decimals: Ledger currency exponent
        is_bound: Whether the ledger collaborators have been built
    """

    def __init__(
        self,
        connection: LedgerConnection,
        decimals: int = DEFAULT_DECIMALS,
        fallback_gas_limit: int = DEFAULT_FALLBACK_GAS_LIMIT,
        guard_in_flight: bool = True,
        auto_reload_after_transition: bool = False,
        max_sessions: int = DEFAULT_MAX_SESSIONS
    ):
        self._connection = connection
        self._decimals = decimals
        self._fallback_gas_limit = fallback_gas_limit
        self._guard_in_flight = guard_in_flight
        self._auto_reload = auto_reload_after_transition
        self._max_sessions = max_sessions

        self._lock = threading.Lock()
        self._sessions: "OrderedDict[str, SupplySession]" = OrderedDict()
        self._handle: Optional[LedgerHandle] = None
        self._loader: Optional[ProductCatalogLoader] = None
        self._orchestrator: Optional[TransitionOrchestrator] = None

    @property
    def connection(self) -> LedgerConnection:
        return self._connection

    @property
    def decimals(self) -> int:
        return self._decimals

    @property
    def auto_reload_after_transition(self) -> bool:
        return self._auto_reload

    @property
    def is_bound(self) -> bool:
        return self._orchestrator is not None

    @property
    def loader(self) -> Optional[ProductCatalogLoader]:
        return self._loader

    @property
    def orchestrator(self) -> Optional[TransitionOrchestrator]:
        return self._orchestrator

    @property
    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def session_for(self, session_id: str) -> "SupplySession":
        """
        Get or create the session for one browser.

        The least recently used session is dropped once more than
        max_sessions are held.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = SupplySession(self)
                self._sessions[session_id] = session
                logger.debug(f"New supply session {session_id[:8]}")
                while len(self._sessions) > self._max_sessions:
                    self._sessions.popitem(last=False)
            else:
                self._sessions.move_to_end(session_id)
            return session

    async def bind(self) -> LedgerHandle:
        """
        Initialize the connection and build the shared collaborators once.

        Raises:
            LedgerUnavailableError: If the ledger cannot be bound
        """
        handle = await self._connection.initialize()

        with self._lock:
            if self._orchestrator is None or self._handle is not handle:
                gateway = LedgerGateway(handle.contract, endpoint=self._connection.rpc_url, logger=logger)
                self._loader = ProductCatalogLoader(gateway)
                self._orchestrator = TransitionOrchestrator(
                    gateway,
                    handle.wallet,
                    decimals=self._decimals,
                    fallback_gas_limit=self._fallback_gas_limit,
                    guard_in_flight=self._guard_in_flight,
                )
                self._handle = handle
                logger.info(f"Ledger bound on network {handle.network_id}")
        return handle


class SupplySession:
    """
    One browser's view of the supply chain.

    Attributes:
        view_state: ViewState read by the rendering layer
        is_mounted: Whether mount() has bound the ledger for this browser
    """

    def __init__(self, service: SupplyChainService):
        self._service = service
        self._view_state = ViewState()
        self._mounted = False

    @property
    def view_state(self) -> ViewState:
        return self._view_state

    @property
    def decimals(self) -> int:
        return self._service.decimals

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    @property
    def service(self) -> SupplyChainService:
        return self._service

    async def mount(self) -> bool:
        """
        Bind the ledger and load the catalog.

        Returns:
            True if the catalog is loaded, False if a blocking notice was set
        """
        self._view_state.begin_loading()

        try:
            handle = await self._service.bind()
        except LedgerUnavailableError as e:
            logger.error(f"Ledger initialization failed: {e}")
            self._view_state.fail_loading(e.message)
            return False
        except Exception as e:
            logger.error(f"Ledger initialization failed unexpectedly: {e}", exc_info=True)
            self._view_state.fail_loading(f"Ledger initialization failed: {e}")
            return False

        self._mounted = True

        try:
            accounts = await handle.wallet.get_accounts()
            self._view_state.set_account(accounts[0] if accounts else None)
        except NoAccountError as e:
            # The catalog is readable without an account; transitions will report it
            logger.warning(f"No current account: {e.message}")
            self._view_state.set_account(None)

        return await self.reload()

    async def reload(self) -> bool:
        """
        Replace the catalog with a fresh full load.

        Returns:
            True on success; on failure the previous snapshot stays and a
            blocking notice is set
        """
        if not self._mounted:
            return await self.mount()

        self._view_state.begin_loading()
        try:
            snapshot = await self._service.loader.load_all()
        except LedgerUnavailableError as e:
            logger.error(f"Catalog load failed: {e}")
            self._view_state.fail_loading(e.message)
            return False
        except Exception as e:
            logger.error(f"Catalog load failed unexpectedly: {e}", exc_info=True)
            self._view_state.fail_loading(f"Catalog load failed: {e}")
            return False

        self._view_state.apply_snapshot(snapshot)
        return True

    async def submit(self, product_id: Any, operation: Any) -> TransitionReceipt:
        """
        Submit one transition and record its outcome.

        Args:
            product_id: Product ID as entered
            operation: Operation member, display name or ledger method

        Returns:
            TransitionReceipt (also stored on the view state)

        Raises:
            RuntimeError: If the ledger cannot be bound
        """
        if not self._mounted:
            await self.mount()
            if not self._mounted:
                raise RuntimeError(
                    self._view_state.blocking_notice or "Ledger is not available"
                )

        request = TransitionRequest(product_id=product_id, operation=operation)
        snapshot = self._view_state.snapshot if self._view_state.has_loaded else None

        receipt = await self._service.orchestrator.submit_transition(
            request,
            caller=None,
            snapshot=snapshot,
        )
        self._view_state.record_transition(receipt)

        if receipt.accepted and self._service.auto_reload_after_transition:
            await self.reload()

        return receipt
