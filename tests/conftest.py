"""Shared fixtures for the test suite."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.ledger_connection import LedgerConnection, LedgerHandle
from core.ledger_gateway import LedgerGateway
from fakes import WEI, FakeSupplyChainContract, FakeWallet, make_record


@pytest.fixture
def logger():
    """Create a test logger."""
    return logging.getLogger("test")


@pytest.fixture
def fake_contract():
    """Contract with three products at different stages."""
    return FakeSupplyChainContract({
        1: (make_record(1, price=2 * WEI, quantity=5), "Medicine Ordered"),
        2: (make_record(2, price=WEI // 2, quantity=10, name="Ibuprofen"), "Manufacturing Stage"),
        3: (make_record(3, price=3 * WEI, quantity=1, name="Amoxicillin"), "Shipping Stage"),
    })


@pytest.fixture
def fake_wallet():
    return FakeWallet()


@pytest.fixture
def gateway(fake_contract, logger):
    return LedgerGateway(fake_contract, endpoint="http://ledger.test", logger=logger)


@pytest.fixture
def mock_connection(fake_contract, fake_wallet):
    """LedgerConnection double whose initialize() binds the fake contract."""
    handle = LedgerHandle(
        web3=MagicMock(),
        contract=fake_contract,
        network_id="5777",
        contract_address="0x5FbDB2315678afecb367f032d93F642f64180aa3",
        wallet=fake_wallet,
    )
    connection = MagicMock(spec=LedgerConnection)
    connection.rpc_url = "http://ledger.test"
    connection.initialize = AsyncMock(return_value=handle)
    connection.is_initialized = True
    connection.handle = handle
    return connection
