"""
Unit tests for LedgerGateway.

Covers the read/write call shapes and the translation of web3 and
transport errors into the application's exceptions.
"""

import pytest
from aiohttp import ClientConnectionError
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from core.exceptions import (
    ContractNotDeployedError,
    EstimationFailedError,
    LedgerRejectedError,
    NetworkUnavailableError,
)
from core.ledger_gateway import LedgerGateway, WRITE_METHODS
from models.product import PRODUCT_FIELDS
from fakes import ACCOUNT, TX_HASH, WEI


class TestGatewayInit:

    def test_requires_contract(self):
        with pytest.raises(ValueError):
            LedgerGateway(None)

    def test_write_methods(self):
        assert WRITE_METHODS == {
            "startManufacturing",
            "startShipping",
            "startDistribution",
            "storeInWarehouse",
        }


class TestReads:

    @pytest.mark.asyncio
    async def test_product_count(self, gateway):
        assert await gateway.get_product_count() == 3

    @pytest.mark.asyncio
    async def test_get_product(self, gateway):
        product = await gateway.get_product(1)

        assert product.id == 1
        assert product.name == "Paracetamol"
        assert product.destination_company_name == "City Pharmacy"
        assert product.price == 2 * WEI
        assert product.quantity == 5

    @pytest.mark.asyncio
    async def test_never_created_id_reads_as_zero_record(self, gateway):
        product = await gateway.get_product(99)
        assert product.id == 0

    @pytest.mark.asyncio
    async def test_get_stage(self, gateway):
        assert await gateway.get_stage(2) == "Manufacturing Stage"

    @pytest.mark.asyncio
    async def test_unreachable_endpoint(self, fake_contract, gateway):
        refused = ClientConnectionError("refused")
        fake_contract.read_errors["medicineCtr"] = refused

        with pytest.raises(NetworkUnavailableError) as exc_info:
            await gateway.get_product_count()

        assert exc_info.value.endpoint == "http://ledger.test"
        assert exc_info.value.__cause__ is refused

    @pytest.mark.asyncio
    async def test_empty_return_data_means_not_deployed(self, fake_contract, gateway):
        fake_contract.read_errors["medicineCtr"] = BadFunctionCallOutput("Could not decode")

        with pytest.raises(ContractNotDeployedError) as exc_info:
            await gateway.get_product_count()

        assert isinstance(exc_info.value.__cause__, BadFunctionCallOutput)


class TestOutputNames:

    def test_no_abi(self):
        class Function:
            pass
        assert LedgerGateway._output_names(Function()) is None

    def test_flat_outputs(self):
        class Function:
            abi = {"outputs": [{"name": n} for n in PRODUCT_FIELDS]}
        assert LedgerGateway._output_names(Function()) == list(PRODUCT_FIELDS)

    def test_single_tuple_output(self):
        class Function:
            abi = {"outputs": [{
                "name": "",
                "type": "tuple",
                "components": [{"name": n} for n in PRODUCT_FIELDS],
            }]}
        assert LedgerGateway._output_names(Function()) == list(PRODUCT_FIELDS)


class TestEstimateGas:

    @pytest.mark.asyncio
    async def test_passes_sender_and_value(self, fake_contract, gateway):
        gas = await gateway.estimate_gas("startShipping", 1, ACCOUNT, value=10 * WEI)

        assert gas == 85000
        assert fake_contract.estimates == [
            ("startShipping", (1,), {"from": ACCOUNT, "value": 10 * WEI}),
        ]

    @pytest.mark.asyncio
    async def test_any_failure_becomes_estimation_failed(self, fake_contract, gateway):
        fake_contract.estimate_error = ContractLogicError("execution reverted")

        with pytest.raises(EstimationFailedError) as exc_info:
            await gateway.estimate_gas("startShipping", 1, ACCOUNT)

        assert exc_info.value.operation == "startShipping"
        assert exc_info.value.product_id == 1

    @pytest.mark.asyncio
    async def test_rejects_read_methods(self, gateway):
        with pytest.raises(ValueError):
            await gateway.estimate_gas("medicineCtr", 1, ACCOUNT)


class TestSendTransition:

    @pytest.mark.asyncio
    async def test_sends_from_gas_value(self, fake_contract, gateway):
        tx_hash = await gateway.send_transition("startManufacturing", 2, ACCOUNT, 90000, 5 * WEI)

        assert tx_hash == TX_HASH
        assert fake_contract.transactions == [
            ("startManufacturing", (2,), {"from": ACCOUNT, "gas": 90000, "value": 5 * WEI}),
        ]

    @pytest.mark.asyncio
    async def test_revert(self, fake_contract, gateway):
        fake_contract.transact_error = ContractLogicError("execution reverted: wrong stage")

        with pytest.raises(LedgerRejectedError) as exc_info:
            await gateway.send_transition("startShipping", 1, ACCOUNT, 90000, 0)

        assert exc_info.value.message.startswith("Transaction reverted:")
        assert "wrong stage" in exc_info.value.message
        assert exc_info.value.operation == "startShipping"

    @pytest.mark.asyncio
    async def test_wallet_refusal(self, fake_contract, gateway):
        fake_contract.transact_error = ValueError("User denied transaction signature")

        with pytest.raises(LedgerRejectedError) as exc_info:
            await gateway.send_transition("startShipping", 1, ACCOUNT, 90000, 0)

        assert exc_info.value.reason == "User denied transaction signature"

    @pytest.mark.asyncio
    async def test_unreachable(self, fake_contract, gateway):
        refused = ClientConnectionError("refused")
        fake_contract.transact_error = refused

        with pytest.raises(NetworkUnavailableError) as exc_info:
            await gateway.send_transition("startShipping", 1, ACCOUNT, 90000, 0)

        assert exc_info.value.__cause__ is refused

    @pytest.mark.asyncio
    async def test_unknown_method_never_sent(self, fake_contract, gateway):
        with pytest.raises(ValueError):
            await gateway.send_transition("selfDestruct", 1, ACCOUNT, 90000, 0)
        assert fake_contract.transactions == []
