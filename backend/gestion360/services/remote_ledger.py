# Overview: Document-store facade over the ledger tables; the only code that writes them.

"""
Remote Ledger Invariants (authoritative)

- Four collections addressed by id: usuarios, productos, clientes, transacciones.
- Every write commits on its own. There is no cross-document transaction and
  no retry: a failed write rolls back and raises LedgerWriteError.
- increment() is a field-level signed add executed in SQL
  (UPDATE ... SET f = f + :delta), so concurrent increments never lose updates.
- Subscribers get the full ordered snapshot on subscribe and again after each
  committed write touching the collection. Snapshots for one collection are
  delivered in commit order; nothing orders snapshots across collections.
- Snapshot order: productos and clientes by name ascending, transacciones by
  date descending, usuarios in storage order.
- Each write also bumps the collection's row in ledger_revisions inside the
  same commit. poll() re-reads only collections whose revision moved since
  this process last published them.
"""
from __future__ import annotations

import copy
import itertools
import uuid
from typing import Callable

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import (
    COLLECTION_MODELS,
    COLLECTION_CUSTOMERS,
    COLLECTION_PRODUCTS,
    COLLECTION_TRANSACTIONS,
    LedgerRevision,
    LedgerTransaction,
)

SnapshotCallback = Callable[[list[dict]], None]

# Fields that support increment(); everything else is overwrite-only
INCREMENTABLE_FIELDS = {"stock", "debt", "price", "amount"}


class LedgerError(Exception):
    """Raised when a ledger operation cannot be completed."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class LedgerWriteError(LedgerError):
    """The backing store rejected or failed a write (connectivity, constraint, lock)."""


class DocumentNotFoundError(LedgerError):
    """update() or increment() addressed a document that does not exist."""


class UnknownCollectionError(LedgerError):
    """Collection name is not part of the wire contract."""


class Subscription:
    """
    Handle for a registered listener.

    unsubscribe() is idempotent: the teardown runs at most once.
    """
    def __init__(self, collection: str, teardown: Callable[[], None]):
        self.collection = collection
        self._teardown = teardown
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._teardown()


def new_document_id() -> str:
    """Store-assigned id: 20 url-safe characters like other document stores hand out."""
    return uuid.uuid4().hex[:20]


class RemoteLedger:
    def __init__(self):
        self._listeners: dict[str, dict[int, SnapshotCallback]] = {}
        self._listener_ids = itertools.count(1)
        self._published: dict[str, int] = {}

    # -- reads ---------------------------------------------------------------

    def _model(self, collection: str):
        model = COLLECTION_MODELS.get(collection)
        if model is None:
            raise UnknownCollectionError(f"Unknown collection: {collection}")
        return model

    def _ordered_query(self, collection: str):
        model = self._model(collection)
        query = db.session.query(model)
        if collection in (COLLECTION_PRODUCTS, COLLECTION_CUSTOMERS):
            return query.order_by(model.name.asc(), model.id.asc())
        if collection == COLLECTION_TRANSACTIONS:
            return query.order_by(LedgerTransaction.date.desc(), LedgerTransaction.id.asc())
        return query

    def snapshot(self, collection: str) -> list[dict]:
        """Full ordered collection as wire documents."""
        try:
            return [row.to_document() for row in self._ordered_query(collection).all()]
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise LedgerError(f"Read of {collection} failed") from exc

    def get(self, collection: str, doc_id: str) -> dict | None:
        row = db.session.get(self._model(collection), doc_id)
        return row.to_document() if row is not None else None

    def _revisions(self) -> dict[str, int]:
        """Current write counter per collection (0 for never written)."""
        try:
            rows = db.session.query(LedgerRevision.collection, LedgerRevision.revision).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise LedgerError("Read of ledger revisions failed") from exc
        return {collection: revision for collection, revision in rows}

    # -- subscriptions ---------------------------------------------------------

    def subscribe(self, collection: str, callback: SnapshotCallback) -> Subscription:
        """
        Register callback and deliver the current snapshot right away.

        The snapshot is read before the listener is registered, so a failed
        read raises LedgerError and leaves nothing behind.
        """
        self._model(collection)
        revision = self._revisions().get(collection, 0)
        documents = self.snapshot(collection)

        listener_id = next(self._listener_ids)
        listeners = self._listeners.setdefault(collection, {})
        listeners[listener_id] = callback
        # Earlier listeners may be behind; keep their revision so poll() catches them up
        self._published.setdefault(collection, revision)

        def _teardown():
            listeners.pop(listener_id, None)

        subscription = Subscription(collection, _teardown)
        callback(documents)
        return subscription

    def publish(self, collection: str) -> None:
        """Push the current snapshot of collection to every listener."""
        listeners = list(self._listeners.get(collection, {}).values())
        if not listeners:
            return
        try:
            revision = self._revisions().get(collection, 0)
            documents = self.snapshot(collection)
        except LedgerError:
            # The write already committed; listeners catch up on the next poll.
            current_app.logger.exception("Failed to publish %s snapshot", collection)
            return
        self._published[collection] = revision
        for callback in listeners:
            callback(copy.deepcopy(documents))

    def poll(self) -> None:
        """
        Re-publish subscribed collections written since they were last published.

        Picks up writes from other processes. Costs one small revisions query
        when nothing changed.

        Raises:
            LedgerError: the revisions could not be read
        """
        active = [collection for collection, listeners in self._listeners.items() if listeners]
        if not active:
            return
        revisions = self._revisions()
        for collection in active:
            if revisions.get(collection, 0) != self._published.get(collection):
                self.publish(collection)

    # -- writes ----------------------------------------------------------------

    def _bump_revision(self, collection: str) -> None:
        result = db.session.execute(
            update(LedgerRevision)
            .where(LedgerRevision.collection == collection)
            .values(revision=LedgerRevision.revision + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.session.add(LedgerRevision(collection=collection, revision=1))

    def _write(self, collection: str, op: Callable):
        try:
            result = op()
            self._bump_revision(collection)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise LedgerWriteError(f"Write to {collection} failed") from exc
        except Exception:
            db.session.rollback()
            raise
        self.publish(collection)
        return result

    def add(self, collection: str, document: dict) -> str:
        """Create a document with a store-assigned id."""
        model = self._model(collection)

        def _op():
            row = model(id=new_document_id())
            row.apply_document(document)
            db.session.add(row)
            db.session.flush()
            return row.id

        return self._write(collection, _op)

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        """Create or fully overwrite the document stored under a caller-chosen id."""
        model = self._model(collection)
        if not doc_id:
            raise LedgerError("Document id is required")

        def _op():
            existing = db.session.get(model, doc_id)
            if existing is not None:
                db.session.delete(existing)
                db.session.flush()
            row = model(id=doc_id)
            row.apply_document(document)
            db.session.add(row)

        self._write(collection, _op)

    def update(self, collection: str, doc_id: str, patch: dict) -> None:
        """Partial update; only the keys present in patch change."""
        model = self._model(collection)

        def _op():
            row = db.session.get(model, doc_id)
            if row is None:
                raise DocumentNotFoundError(
                    f"No document {doc_id} in {collection}",
                    details={"collection": collection, "id": doc_id},
                )
            row.apply_document(patch)

        self._write(collection, _op)

    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is a no-op."""
        model = self._model(collection)

        def _op():
            row = db.session.get(model, doc_id)
            if row is not None:
                db.session.delete(row)

        self._write(collection, _op)

    def increment(self, collection: str, doc_id: str, field: str, delta: int | float) -> None:
        """Atomically add delta (signed) to one numeric field of one document."""
        model = self._model(collection)
        attr = model.WIRE_COLUMNS.get(field)
        if attr is None or field not in INCREMENTABLE_FIELDS:
            raise LedgerError(f"Field {field} of {collection} cannot be incremented")
        if isinstance(delta, bool) or not isinstance(delta, (int, float)):
            raise LedgerError("Increment delta must be a number")

        column = getattr(model, attr)

        def _op():
            result = db.session.execute(
                update(model)
                .where(model.id == doc_id)
                .values({attr: column + delta})
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise DocumentNotFoundError(
                    f"No document {doc_id} in {collection}",
                    details={"collection": collection, "id": doc_id},
                )
            # Rows already loaded in the session must not shadow the new value
            db.session.expire_all()

        self._write(collection, _op)
