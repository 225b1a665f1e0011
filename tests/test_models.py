"""
Unit tests for the data models: products, snapshots, operations,
receipts and the view state.
"""

from datetime import datetime, timezone

import pytest

from core.exceptions import LedgerRejectedError, UnknownOperationError
from models.product import PRODUCT_FIELDS, CatalogEntry, CatalogSnapshot, Product
from models.transition import Operation, TransitionReceipt, TransitionState
from models.view_state import ViewState
from fakes import WEI, make_record


def make_product(product_id=1, price=2 * WEI):
    return Product.from_ledger(make_record(product_id, price=price))


class TestProduct:

    def test_from_tuple(self):
        product = make_product()

        assert product.id == 1
        assert product.destination_company_name == "City Pharmacy"
        assert product.price == 2 * WEI
        assert product.expiration_date == 1767225600

    def test_from_mapping(self):
        record = dict(zip(PRODUCT_FIELDS, make_record(4)))
        assert Product.from_ledger(record).id == 4

    def test_named_outputs_in_other_order(self):
        names = list(reversed(PRODUCT_FIELDS))
        record = tuple(reversed(make_record(6, quantity=9)))

        product = Product.from_ledger(record, names)

        assert product.id == 6
        assert product.quantity == 9

    def test_short_record(self):
        with pytest.raises(ValueError):
            Product.from_ledger((1, "x"))

    def test_mapping_missing_fields(self):
        with pytest.raises(ValueError) as exc_info:
            Product.from_ledger({"id": 1, "name": "x"})
        assert "price" in str(exc_info.value)

    def test_display_helpers(self):
        product = make_product(price=15 * 10 ** 17)

        assert product.price_display() == "1.5"
        assert product.expiration_display == "2026-01-01"
        assert product.timestamp_display.endswith("UTC")

    def test_to_dict_price_is_string(self):
        data = make_product().to_dict()
        assert data["price"] == str(2 * WEI)
        assert data["price_display"] == "2"


class TestCatalogSnapshot:

    def test_empty(self):
        snapshot = CatalogSnapshot.create_empty()
        assert snapshot.is_empty
        assert snapshot.ids == ()
        assert snapshot.get(1) is None

    def test_order_and_lookup(self):
        entries = [CatalogEntry(make_product(i), f"stage {i}") for i in (1, 2, 3)]
        snapshot = CatalogSnapshot.from_entries(entries, product_count=3)

        assert snapshot.ids == (1, 2, 3)
        assert snapshot.get(2).stage == "stage 2"
        assert [e.product_id for e in snapshot] == [1, 2, 3]
        assert snapshot.age_seconds >= 0

    def test_frozen(self):
        snapshot = CatalogSnapshot.create_empty()
        with pytest.raises(Exception):
            snapshot.entries = ()

    def test_to_dict(self):
        snapshot = CatalogSnapshot.from_entries([CatalogEntry(make_product(), "Medicine Ordered")], 1)
        data = snapshot.to_dict()
        assert data["product_count"] == 1
        assert data["products"][0]["stage"] == "Medicine Ordered"


class TestOperation:

    @pytest.mark.parametrize("raw,expected", [
        ("Manufacture", Operation.MANUFACTURE),
        ("ship", Operation.SHIP),
        ("DISTRIBUTE", Operation.DISTRIBUTE),
        ("storeInWarehouse", Operation.WAREHOUSE),
        (" Warehouse ", Operation.WAREHOUSE),
        (Operation.SHIP, Operation.SHIP),
    ])
    def test_parse(self, raw, expected):
        assert Operation.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["Recall", "", None, 2])
    def test_parse_unknown(self, raw):
        with pytest.raises(UnknownOperationError):
            Operation.parse(raw)

    def test_ledger_methods(self):
        assert [op.ledger_method for op in Operation] == [
            "startManufacturing",
            "startShipping",
            "startDistribution",
            "storeInWarehouse",
        ]

    def test_steps(self):
        assert [op.step for op in Operation] == [1, 2, 3, 4]


class TestTransitionReceipt:

    def test_accepted(self):
        receipt = TransitionReceipt.create_accepted(
            operation="startShipping",
            product_id=7,
            transaction_hash="0xabc",
            payment=10 * WEI,
            gas_limit=50000,
        )

        assert receipt.accepted
        assert receipt.message == "Successfully called startShipping with result: 0xabc"
        assert receipt.history == [TransitionState.ACCEPTED]
        assert receipt.state.is_terminal

    def test_rejected_uses_error_message(self):
        error = LedgerRejectedError("Transaction reverted: wrong stage", "startShipping", 7)

        receipt = TransitionReceipt.create_rejected("startShipping", 7, error)

        assert not receipt.accepted
        assert receipt.message == "Error in startShipping: Transaction reverted: wrong stage"
        assert receipt.error_type == "LedgerRejectedError"

    def test_rejected_plain_exception(self):
        receipt = TransitionReceipt.create_rejected("startShipping", 7, RuntimeError("boom"))
        assert receipt.message == "Error in startShipping: boom"

    def test_to_dict(self):
        receipt = TransitionReceipt.create_accepted("startManufacturing", 1, "0xabc", 10 * WEI, 1)
        data = receipt.to_dict()

        assert data["payment"] == "10000000000000000000"
        assert data["state"] == "accepted"
        assert data["history"] == ["accepted"]
        assert "error" not in data


class TestViewState:

    def test_initial(self):
        view = ViewState()
        assert not view.has_loaded
        assert not view.is_loading
        assert view.snapshot.is_empty

    def test_load_cycle(self):
        view = ViewState()
        view.begin_loading()
        assert view.is_loading

        snapshot = CatalogSnapshot.from_entries([CatalogEntry(make_product(), "s")], 1)
        view.apply_snapshot(snapshot)

        assert view.snapshot is snapshot
        assert view.has_loaded
        assert not view.is_loading

    def test_failed_load_keeps_previous_snapshot(self):
        view = ViewState()
        snapshot = CatalogSnapshot.from_entries([CatalogEntry(make_product(), "s")], 1)
        view.apply_snapshot(snapshot)

        view.begin_loading()
        view.fail_loading("Ledger endpoint unreachable")

        assert view.snapshot is snapshot
        assert view.blocking_notice == "Ledger endpoint unreachable"
        assert not view.is_loading

        view.apply_snapshot(snapshot)
        assert view.blocking_notice is None

    def test_transition_outcomes(self):
        view = ViewState()
        snapshot = view.snapshot

        rejected = TransitionReceipt.create_rejected("startShipping", 1, RuntimeError("boom"))
        view.record_transition(rejected)
        assert view.last_error == "Error in startShipping: boom"
        assert view.snapshot is snapshot

        accepted = TransitionReceipt.create_accepted("startShipping", 1, "0xabc", 0, 1)
        view.record_transition(accepted)
        assert view.last_error is None
        assert view.last_receipt is accepted
        assert view.snapshot is snapshot

    def test_to_dict(self):
        view = ViewState()
        view.set_account("0xA")
        data = view.to_dict()
        assert data["current_account"] == "0xA"
        assert data["last_receipt"] is None
        assert data["snapshot"]["products"] == []

    def test_snapshot_loaded_at_is_utc(self):
        assert CatalogSnapshot.create_empty().loaded_at.tzinfo == timezone.utc
        assert CatalogSnapshot.from_entries([], 0).loaded_at <= datetime.now(timezone.utc)
