"""
Tests for the Flask routes.

The app is created with TestingConfig and a SupplyChainService whose
connection hands back the in-memory contract, so each request runs the
full session / orchestrator / gateway path. Every test client is its
own browser with its own cookie.
"""

from dataclasses import replace

import pytest
from unittest.mock import AsyncMock
from web3.exceptions import ContractLogicError, Web3Exception

from app import create_app
from core.exceptions import ContractNotDeployedError
from services.supply_session import SupplyChainService
from fakes import TX_HASH, FakeWallet


@pytest.fixture
def supply_service(mock_connection):
    return SupplyChainService(mock_connection)


@pytest.fixture
def app(supply_service):
    app = create_app("config.TestingConfig", supply_service=supply_service)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def view_of(client, service):
    """ViewState of the browser behind a test client."""
    with client.session_transaction() as cookie_session:
        view_id = cookie_session["view_id"]
    return service.session_for(view_id).view_state


class TestSupplyPage:

    def test_index_redirects(self, client):
        response = client.get("/")
        assert response.status_code == 302
        assert "/supply" in response.headers["Location"]

    def test_renders_catalog(self, client):
        response = client.get("/supply")

        assert response.status_code == 200
        body = response.get_data(as_text=True)
        assert "Paracetamol" in body
        assert "Manufacturing Stage" in body
        assert "0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1" in body

    def test_blocking_notice(self, mock_connection):
        mock_connection.initialize = AsyncMock(side_effect=ContractNotDeployedError("1"))
        app = create_app("config.TestingConfig", supply_service=SupplyChainService(mock_connection))

        response = app.test_client().get("/supply")

        body = response.get_data(as_text=True)
        assert "The smart contract is not deployed to the current network" in body
        assert "Paracetamol" not in body

    def test_submit_flashes_success(self, client, mock_connection):
        client.get("/supply")

        response = client.post("/supply/Ship", data={"product_id": "1"}, follow_redirects=True)

        body = response.get_data(as_text=True)
        assert f"Successfully called startShipping with result: {TX_HASH}" in body
        assert mock_connection.handle.contract.transactions[0][0] == "startShipping"

    def test_submit_invalid_id(self, client, mock_connection):
        client.get("/supply")

        response = client.post(
            "/supply/Manufacture",
            data={"product_id": "<b>abc</b>"},
            follow_redirects=True,
        )

        assert "Error in startManufacturing: Invalid Product ID" in response.get_data(as_text=True)
        assert mock_connection.handle.contract.transactions == []

    def test_reload(self, client, supply_service):
        client.get("/supply")
        view = view_of(client, supply_service)
        first = view.snapshot

        response = client.post("/supply/reload", follow_redirects=True)

        assert "Catalog reloaded." in response.get_data(as_text=True)
        assert view.snapshot is not first

    def test_failed_submit_shown_once(self, client):
        client.get("/supply")
        message = "Error in startManufacturing: Invalid Product ID"

        response = client.post("/supply/Manufacture", data={"product_id": "abc"}, follow_redirects=True)
        assert response.get_data(as_text=True).count(message) == 1

        # Without the flash, the page still shows the last error
        assert client.get("/supply").get_data(as_text=True).count(message) == 1

    def test_provider_error_on_mount_shows_notice(self, mock_connection):
        mock_connection.initialize = AsyncMock(
            side_effect=[Web3Exception("bad response"), mock_connection.handle]
        )
        client = create_app(
            "config.TestingConfig", supply_service=SupplyChainService(mock_connection)
        ).test_client()

        body = client.get("/supply").get_data(as_text=True)
        assert "Ledger initialization failed: bad response" in body
        assert "Loading..." not in body

        body = client.post("/supply/reload", follow_redirects=True).get_data(as_text=True)
        assert "Catalog reloaded." in body
        assert "Paracetamol" in body


class TestSeparateBrowsers:

    def test_error_stays_with_its_browser(self, app, mock_connection):
        alice = app.test_client()
        bob = app.test_client()
        alice.get("/supply")
        bob.get("/supply")

        alice.post("/supply/Manufacture", data={"product_id": "abc"})

        assert "Error in startManufacturing" not in bob.get("/supply").get_data(as_text=True)
        assert "Error in startManufacturing" in alice.get("/supply").get_data(as_text=True)
        assert mock_connection.handle.contract.transactions == []

    def test_receipt_stays_with_its_browser(self, app):
        alice = app.test_client()
        bob = app.test_client()

        alice.post("/api/transitions", json={"product_id": "1", "operation": "Manufacture"})

        assert alice.get("/api/products").get_json()["last_receipt"]["accepted"] is True
        assert bob.get("/api/products").get_json()["last_receipt"] is None

    def test_browsers_share_one_ledger_binding(self, app, supply_service, mock_connection):
        app.test_client().get("/supply")
        app.test_client().get("/supply")

        assert supply_service.session_count == 2
        assert mock_connection.initialize.await_count == 2
        assert supply_service.is_bound


class TestApi:

    def test_products(self, client):
        response = client.get("/api/products")

        assert response.status_code == 200
        data = response.get_json()
        assert [p["id"] for p in data["snapshot"]["products"]] == [1, 2, 3]
        assert data["snapshot"]["products"][0]["price"] == "2000000000000000000"

    def test_products_blocking_notice(self, mock_connection):
        mock_connection.initialize = AsyncMock(side_effect=ContractNotDeployedError("1"))
        app = create_app("config.TestingConfig", supply_service=SupplyChainService(mock_connection))

        response = app.test_client().get("/api/products")

        assert response.status_code == 503
        assert response.get_json()["blocking_notice"].startswith("The smart contract")

    def test_transition_accepted(self, client):
        client.get("/api/products")

        response = client.post("/api/transitions", json={"product_id": "1", "operation": "Manufacture"})

        assert response.status_code == 200
        data = response.get_json()
        assert data["accepted"] is True
        assert data["payment"] == "10000000000000000000"
        assert data["transaction_hash"] == TX_HASH

    @pytest.mark.parametrize("payload", [
        {"product_id": "abc", "operation": "Ship"},
        {"product_id": "1", "operation": "Recall"},
        {},
    ])
    def test_transition_client_errors(self, client, payload):
        client.get("/api/products")

        response = client.post("/api/transitions", json=payload)

        assert response.status_code == 422

    def test_transition_reverted(self, client, mock_connection):
        client.get("/api/products")
        mock_connection.handle.contract.transact_error = ContractLogicError("execution reverted")

        response = client.post("/api/transitions", json={"product_id": "1", "operation": "Ship"})

        assert response.status_code == 502
        assert response.get_json()["error_type"] == "LedgerRejectedError"

    def test_transition_no_account(self, mock_connection):
        mock_connection.initialize.return_value = replace(
            mock_connection.handle, wallet=FakeWallet(accounts=[])
        )
        app = create_app("config.TestingConfig", supply_service=SupplyChainService(mock_connection))

        response = app.test_client().post(
            "/api/transitions", json={"product_id": "1", "operation": "Ship"}
        )

        assert response.status_code == 401

    def test_health(self, client):
        client.get("/api/products")

        response = client.get("/health")

        assert response.status_code == 200
        data = response.get_json()
        assert data["checks"]["ledger"] == "connected"
        assert data["checks"]["network_id"] == "5777"
        assert data["checks"]["catalog"] == "ok"
        assert data["checks"]["products"] == 3
        assert data["checks"]["sessions"] == 1
