# Overview: In-memory mirror of the ledger collections with write-through mutations.

"""
Replicated Store

WHY: Screens and services read collections many times per request but the
ledger is the only source of truth. The store keeps one standing subscription
per collection and replaces its mirror with each inbound snapshot.

RULES:
- Mirrors change only when a snapshot arrives. Writes go straight to the
  ledger and callers see their own writes once the ledger pushes them back.
- A snapshot equal to the current mirror is dropped and observers are not
  notified.
- loading is True until both usuarios and transacciones have been received;
  productos and clientes do not gate readiness.
- Write failures propagate to the caller untouched. No retry.
"""
from __future__ import annotations

import copy
import itertools
from functools import partial
from typing import Callable

from flask import current_app

from ..models import (
    COLLECTION_CUSTOMERS,
    COLLECTION_PRODUCTS,
    COLLECTION_TRANSACTIONS,
    COLLECTION_USERS,
)
from .remote_ledger import LedgerError, RemoteLedger, Subscription, UnknownCollectionError

COLLECTIONS = (
    COLLECTION_USERS,
    COLLECTION_PRODUCTS,
    COLLECTION_CUSTOMERS,
    COLLECTION_TRANSACTIONS,
)

# Collections that must arrive before consumers may read
READINESS_COLLECTIONS = (COLLECTION_USERS, COLLECTION_TRANSACTIONS)


class ReplicatedStore:
    def __init__(self, ledger: RemoteLedger):
        self._ledger = ledger
        self._mirrors: dict[str, list[dict] | None] = {c: None for c in COLLECTIONS}
        self._upstream: list[Subscription] = []
        self._observers: dict[str, dict[int, Callable[[list[dict]], None]]] = {c: {} for c in COLLECTIONS}
        self._observer_ids = itertools.count(1)

    # -- lifecycle -------------------------------------------------------------

    @property
    def started(self) -> bool:
        return bool(self._upstream)

    def start(self) -> None:
        """
        Open one ledger subscription per collection. Calling twice is a no-op.

        If any subscription fails the ones already opened are torn down and
        the LedgerError propagates; start() can be retried later.
        """
        if self.started:
            return
        try:
            for collection in COLLECTIONS:
                self._upstream.append(
                    self._ledger.subscribe(collection, partial(self._apply_snapshot, collection))
                )
        except LedgerError:
            self.stop()
            raise

    def stop(self) -> None:
        """Tear down ledger subscriptions. Mirrors keep their last snapshot."""
        for subscription in self._upstream:
            subscription.unsubscribe()
        self._upstream.clear()

    def _apply_snapshot(self, collection: str, documents: list[dict]) -> None:
        if self._mirrors[collection] == documents:
            return
        self._mirrors[collection] = documents
        current_app.logger.debug("Mirror %s replaced (%d documents)", collection, len(documents))
        for callback in list(self._observers[collection].values()):
            callback(self.mirror(collection))

    # -- reads -----------------------------------------------------------------

    def _check(self, collection: str) -> None:
        if collection not in self._mirrors:
            raise UnknownCollectionError(f"Unknown collection: {collection}")

    def is_loaded(self, collection: str) -> bool:
        self._check(collection)
        return self._mirrors[collection] is not None

    @property
    def loading(self) -> bool:
        return not all(self.is_loaded(c) for c in READINESS_COLLECTIONS)

    def mirror(self, collection: str) -> list[dict]:
        """Copy of the mirrored collection; empty until the first snapshot."""
        self._check(collection)
        return copy.deepcopy(self._mirrors[collection] or [])

    def get(self, collection: str, doc_id: str) -> dict | None:
        self._check(collection)
        for document in self._mirrors[collection] or []:
            if document["id"] == doc_id:
                return copy.deepcopy(document)
        return None

    @property
    def users(self) -> list[dict]:
        return self.mirror(COLLECTION_USERS)

    @property
    def products(self) -> list[dict]:
        return self.mirror(COLLECTION_PRODUCTS)

    @property
    def customers(self) -> list[dict]:
        return self.mirror(COLLECTION_CUSTOMERS)

    @property
    def transactions(self) -> list[dict]:
        return self.mirror(COLLECTION_TRANSACTIONS)

    def subscribe(self, collection: str, callback: Callable[[list[dict]], None]) -> Subscription:
        """
        Observe mirror changes for one collection.

        The current mirror is delivered right away if it has loaded.
        """
        self._check(collection)
        observer_id = next(self._observer_ids)
        observers = self._observers[collection]
        observers[observer_id] = callback

        def _teardown():
            observers.pop(observer_id, None)

        if self._mirrors[collection] is not None:
            callback(self.mirror(collection))
        return Subscription(collection, _teardown)

    # -- write-through ---------------------------------------------------------

    def create(self, collection: str, record: dict) -> str:
        return self._ledger.add(collection, record)

    def update(self, collection: str, doc_id: str, partial_record: dict) -> None:
        self._ledger.update(collection, doc_id, partial_record)

    def delete(self, collection: str, doc_id: str) -> None:
        self._ledger.delete(collection, doc_id)

    def upsert_by_id(self, collection: str, doc_id: str, record: dict) -> None:
        """Full write under a caller-chosen id (used for usuarios)."""
        self._ledger.set(collection, doc_id, record)

    def increment(self, collection: str, doc_id: str, field: str, delta: int | float) -> None:
        self._ledger.increment(collection, doc_id, field, delta)
