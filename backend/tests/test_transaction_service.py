"""
Transaction effect engine tests.

A SALE moves stock (-1 per linked product) and customer debt (+amount).
An EXPENSE moves nothing. Side effects are attempted independently and a
failure leaves the transaction recorded.
"""

from datetime import datetime

import pytest

from gestion360.models import COLLECTION_CUSTOMERS, COLLECTION_PRODUCTS, COLLECTION_TRANSACTIONS
from gestion360.services.remote_ledger import LedgerWriteError
from gestion360.services.transaction_service import (
    TransactionSideEffectError,
    validate_transaction_draft,
)
from gestion360.validation import ValidationError


def _sale(amount, **refs):
    return {"type": "SALE", "description": "Taza", "amount": amount, **refs}


# =============================================================================
# SALES
# =============================================================================


class TestSaleEffects:
    def test_sale_decrements_stock(self, engine, store, product_p1):
        transaction_id = engine.record_transaction(_sale(500, productId=product_p1))

        assert store.get(COLLECTION_PRODUCTS, product_p1)["stock"] == 9
        recorded = store.get(COLLECTION_TRANSACTIONS, transaction_id)
        assert recorded["type"] == "SALE"
        assert recorded["amount"] == 500

    def test_sales_accumulate_customer_debt(self, engine, store, customer_c1):
        engine.record_transaction(_sale(1200, customerId=customer_c1))
        assert store.get(COLLECTION_CUSTOMERS, customer_c1)["debt"] == 1200

        engine.record_transaction(_sale(300, customerId=customer_c1))
        assert store.get(COLLECTION_CUSTOMERS, customer_c1)["debt"] == 1500

    def test_sale_with_both_references(self, engine, store, product_p1, customer_c1):
        engine.record_transaction(_sale(500, productId=product_p1, customerId=customer_c1))

        assert store.get(COLLECTION_PRODUCTS, product_p1)["stock"] == 9
        assert store.get(COLLECTION_CUSTOMERS, customer_c1)["debt"] == 500

    def test_sale_without_references_only_records(self, engine, store, product_p1, customer_c1):
        engine.record_transaction(_sale(80))

        assert len(store.transactions) == 1
        assert store.get(COLLECTION_PRODUCTS, product_p1)["stock"] == 10
        assert store.get(COLLECTION_CUSTOMERS, customer_c1)["debt"] == 0

    def test_stock_can_go_negative(self, engine, store):
        store.upsert_by_id(COLLECTION_PRODUCTS, "p0", {"name": "Agotado", "price": 1, "stock": 0})

        engine.record_transaction(_sale(1, productId="p0"))

        assert store.get(COLLECTION_PRODUCTS, "p0")["stock"] == -1


class TestExpenses:
    def test_expense_has_no_side_effect(self, engine, store, product_p1, customer_c1):
        engine.record_transaction({
            "type": "EXPENSE",
            "description": "Pago proveedor",
            "amount": 400,
            "productId": product_p1,
            "customerId": customer_c1,
        })

        assert store.get(COLLECTION_PRODUCTS, product_p1)["stock"] == 10
        assert store.get(COLLECTION_CUSTOMERS, customer_c1)["debt"] == 0
        assert store.transactions[0]["type"] == "EXPENSE"


# =============================================================================
# PARTIAL FAILURE
# =============================================================================


class TestPartialFailure:
    def test_missing_product_keeps_transaction_and_debt(self, engine, store, customer_c1):
        with pytest.raises(TransactionSideEffectError) as excinfo:
            engine.record_transaction(_sale(700, productId="gone", customerId=customer_c1))

        err = excinfo.value
        assert isinstance(err, LedgerWriteError)
        assert [f["effect"] for f in err.failures] == ["stock"]
        assert err.details["transaction_id"] == err.transaction_id

        # Transaction stays, the other effect still applied
        assert store.get(COLLECTION_TRANSACTIONS, err.transaction_id) is not None
        assert store.get(COLLECTION_CUSTOMERS, customer_c1)["debt"] == 700

    def test_both_effects_fail(self, engine, store):
        with pytest.raises(TransactionSideEffectError) as excinfo:
            engine.record_transaction(_sale(10, productId="gone", customerId="ghost"))

        assert [f["effect"] for f in excinfo.value.failures] == ["stock", "debt"]
        assert len(store.transactions) == 1

    def test_invalid_draft_writes_nothing(self, engine, store, product_p1):
        with pytest.raises(ValidationError):
            engine.record_transaction({"type": "REFUND", "description": "x", "amount": 1, "productId": product_p1})

        assert store.transactions == []
        assert store.get(COLLECTION_PRODUCTS, product_p1)["stock"] == 10


# =============================================================================
# DRAFTS AND PLAIN WRITES
# =============================================================================


class TestDrafts:
    def test_date_defaults_to_now(self, app):
        document = validate_transaction_draft(_sale(1))
        assert isinstance(document["date"], datetime)

    def test_explicit_date_kept(self, app):
        document = validate_transaction_draft({**_sale(1), "date": "2026-03-02T10:00:00Z"})
        assert document["date"] == datetime(2026, 3, 2, 10, 0)

    @pytest.mark.parametrize("missing", ["type", "description", "amount"])
    def test_required_fields(self, app, missing):
        draft = _sale(1)
        draft.pop(missing)
        with pytest.raises(ValidationError):
            validate_transaction_draft(draft)

    def test_amount_must_be_numeric(self, app):
        with pytest.raises(ValidationError):
            validate_transaction_draft(_sale("mucho"))


class TestPlainWrites:
    def test_update_does_not_touch_stock(self, engine, store, product_p1):
        transaction_id = engine.record_transaction(_sale(500, productId=product_p1))

        engine.update_transaction(transaction_id, {"amount": 450})

        assert store.get(COLLECTION_TRANSACTIONS, transaction_id)["amount"] == 450
        assert store.get(COLLECTION_PRODUCTS, product_p1)["stock"] == 9

    def test_delete_does_not_restore_stock(self, engine, store, product_p1):
        transaction_id = engine.record_transaction(_sale(500, productId=product_p1))

        engine.delete_transaction(transaction_id)

        assert store.transactions == []
        assert store.get(COLLECTION_PRODUCTS, product_p1)["stock"] == 9
