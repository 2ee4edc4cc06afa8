"""
Replicated store tests.

Verifies:
- loading depends on usuarios and transacciones only
- mirrors change only through inbound snapshots and duplicates are dropped
- write-through operations reach the ledger and come back as snapshots
- write failures propagate unchanged
"""

import pytest

from gestion360.models import (
    COLLECTION_CUSTOMERS,
    COLLECTION_PRODUCTS,
    COLLECTION_TRANSACTIONS,
    COLLECTION_USERS,
)
from gestion360.services.remote_ledger import (
    DocumentNotFoundError,
    LedgerError,
    RemoteLedger,
    UnknownCollectionError,
)
from gestion360.services.replicated_store import ReplicatedStore


class TestLoading:
    def test_not_started_store_is_loading(self, ledger):
        store = ReplicatedStore(ledger)

        assert store.loading is True
        assert store.users == []
        assert store.get(COLLECTION_USERS, "admin_initial") is None

    def test_started_store_is_ready(self, store):
        assert store.started
        assert store.loading is False

    def test_products_and_customers_do_not_gate_readiness(self, ledger):
        store = ReplicatedStore(ledger)

        store._apply_snapshot(COLLECTION_USERS, [])
        assert store.loading is True

        store._apply_snapshot(COLLECTION_TRANSACTIONS, [])
        assert store.loading is False
        assert not store.is_loaded(COLLECTION_PRODUCTS)
        assert not store.is_loaded(COLLECTION_CUSTOMERS)

    def test_start_twice_keeps_one_subscription_per_collection(self, store, ledger):
        received = []
        store.subscribe(COLLECTION_CUSTOMERS, received.append)
        store.start()

        ledger.add(COLLECTION_CUSTOMERS, {"name": "Ana"})

        # Initial delivery plus exactly one update
        assert len(received) == 2

    def test_stop_keeps_last_snapshot(self, store, ledger):
        store.create(COLLECTION_PRODUCTS, {"name": "Taza", "price": 500, "stock": 10})
        store.stop()

        ledger.add(COLLECTION_PRODUCTS, {"name": "Vaso", "price": 100, "stock": 1})

        assert [p["name"] for p in store.products] == ["Taza"]
        assert not store.started

    def test_failed_start_closes_opened_subscriptions(self, app, monkeypatch):
        ledger = RemoteLedger()
        original = ledger.subscribe

        def flaky(collection, callback):
            if collection == COLLECTION_CUSTOMERS:
                raise LedgerError("Read of clientes failed")
            return original(collection, callback)

        monkeypatch.setattr(ledger, "subscribe", flaky)
        store = ReplicatedStore(ledger)

        with pytest.raises(LedgerError):
            store.start()

        assert store.started is False
        assert not any(ledger._listeners.values())

        monkeypatch.setattr(ledger, "subscribe", original)
        store.start()
        assert store.started
        store.stop()

    def test_unknown_collection(self, store):
        with pytest.raises(UnknownCollectionError):
            store.mirror("facturas")


class TestSnapshots:
    def test_identical_snapshot_dropped(self, store, ledger):
        received = []
        store.subscribe(COLLECTION_PRODUCTS, received.append)
        store.create(COLLECTION_PRODUCTS, {"name": "Taza", "price": 500, "stock": 10})
        assert len(received) == 2

        ledger.poll()
        ledger.poll()

        assert len(received) == 2

    def test_mirror_is_a_copy(self, store):
        store.create(COLLECTION_PRODUCTS, {"name": "Taza", "price": 500, "stock": 10})

        store.products[0]["stock"] = 0

        assert store.products[0]["stock"] == 10

    def test_observer_teardown(self, store):
        received = []
        sub = store.subscribe(COLLECTION_CUSTOMERS, received.append)
        sub.unsubscribe()

        store.create(COLLECTION_CUSTOMERS, {"name": "Ana"})

        assert received == [[]]

    def test_other_writer_reaches_mirror_on_poll(self, store, ledger):
        # A second ledger on the same database stands in for another process
        other = RemoteLedger()
        doc_id = other.add(COLLECTION_CUSTOMERS, {"name": "Externa", "debt": 0})
        assert store.get(COLLECTION_CUSTOMERS, doc_id) is None

        ledger.poll()

        assert store.get(COLLECTION_CUSTOMERS, doc_id)["name"] == "Externa"


class TestWriteThrough:
    def test_create_then_read_back(self, store):
        product_id = store.create(COLLECTION_PRODUCTS, {"name": "Taza", "price": 500, "stock": 10})

        assert store.get(COLLECTION_PRODUCTS, product_id) == {
            "id": product_id, "name": "Taza", "price": 500.0, "stock": 10,
        }

    def test_update_and_delete(self, store, product_p1):
        store.update(COLLECTION_PRODUCTS, product_p1, {"stock": 3})
        assert store.get(COLLECTION_PRODUCTS, product_p1)["stock"] == 3

        store.delete(COLLECTION_PRODUCTS, product_p1)
        assert store.get(COLLECTION_PRODUCTS, product_p1) is None

    def test_upsert_by_id(self, store):
        store.upsert_by_id(COLLECTION_USERS, "caja1", {"name": "Luis", "pin": "5678"})
        store.upsert_by_id(COLLECTION_USERS, "caja1", {"name": "Luis R.", "pin": "5678"})

        assert [u["name"] for u in store.users] == ["Luis R."]

    def test_increment(self, store, customer_c1):
        store.increment(COLLECTION_CUSTOMERS, customer_c1, "debt", 99.5)

        assert store.get(COLLECTION_CUSTOMERS, customer_c1)["debt"] == 99.5

    def test_failure_propagates(self, store):
        with pytest.raises(DocumentNotFoundError):
            store.update(COLLECTION_CUSTOMERS, "ghost", {"name": "x"})
