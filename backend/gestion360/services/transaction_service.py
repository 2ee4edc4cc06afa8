"""
Transaction Effect Engine - recording a sale moves stock and customer debt

WHY: A SALE is not only a ledger row. Selling a product takes one unit out of
stock and selling on credit adds the amount to the customer's debt.

CONSISTENCY MODEL (at-least-attempted, not atomic):
1. The transaction document is written first. If that fails nothing else runs.
2. For a SALE, the stock decrement and the debt increment are then issued as
   separate ledger increments. Each is attempted even if the other fails and
   neither is rolled back, so a failure here leaves stock/debt out of step
   with the transaction log. That drift is reported to the caller through
   TransactionSideEffectError.
3. An EXPENSE has no side effect. Customer payments do not reduce debt.
"""
from __future__ import annotations

from flask import current_app

from ..models import (
    COLLECTION_CUSTOMERS,
    COLLECTION_PRODUCTS,
    COLLECTION_TRANSACTIONS,
    LedgerTransaction,
    TransactionType,
)
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_transaction
from gestion360.time_utils import utcnow
from .remote_ledger import LedgerError, LedgerWriteError
from .replicated_store import ReplicatedStore

# Units removed from stock per SALE linked to a product
SALE_STOCK_DELTA = -1

TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={"type", "description", "amount", "date", "productId", "customerId"},
    required_on_create={"type", "description", "amount"},
)


class TransactionSideEffectError(LedgerWriteError):
    """
    The transaction was stored but at least one stock/debt write failed.

    details carries transaction_id and one entry per failed effect.
    """
    def __init__(self, transaction_id: str, failures: list[dict]):
        super().__init__(
            f"Transaction {transaction_id} recorded but {len(failures)} side effect(s) failed",
            details={"transaction_id": transaction_id, "failures": failures},
        )
        self.transaction_id = transaction_id
        self.failures = failures


def validate_transaction_draft(draft: dict) -> dict:
    """Normalize a draft transaction; date defaults to now."""
    document = validate_payload(
        model=LedgerTransaction, payload=draft, policy=TRANSACTION_POLICY, partial=False
    )
    enforce_rules_transaction(document)
    if document.get("date") is None:
        document["date"] = utcnow()
    return document


class TransactionEffectEngine:
    def __init__(self, store: ReplicatedStore):
        self._store = store

    def record_transaction(self, draft: dict) -> str:
        """
        Persist a transaction, then apply its SALE side effects.

        Returns the new transaction id.

        Raises:
            ValidationError: draft is malformed (nothing written)
            LedgerError: the transaction write failed (nothing written)
            TransactionSideEffectError: transaction written, stock/debt write failed
        """
        document = validate_transaction_draft(draft)
        transaction_id = self._store.create(COLLECTION_TRANSACTIONS, document)

        if document["type"] != TransactionType.SALE.value:
            return transaction_id

        failures = []

        product_id = document.get("productId")
        if product_id:
            try:
                self._store.increment(COLLECTION_PRODUCTS, product_id, "stock", SALE_STOCK_DELTA)
            except LedgerError as exc:
                failures.append({"effect": "stock", "collection": COLLECTION_PRODUCTS, "id": product_id, "error": str(exc)})

        customer_id = document.get("customerId")
        if customer_id:
            try:
                self._store.increment(COLLECTION_CUSTOMERS, customer_id, "debt", document["amount"])
            except LedgerError as exc:
                failures.append({"effect": "debt", "collection": COLLECTION_CUSTOMERS, "id": customer_id, "error": str(exc)})

        if failures:
            current_app.logger.warning(
                "Side effects failed for transaction %s: %s",
                transaction_id,
                ", ".join(f"{f['effect']}({f['id']})" for f in failures),
            )
            raise TransactionSideEffectError(transaction_id, failures)

        return transaction_id

    def update_transaction(self, transaction_id: str, patch: dict) -> None:
        """Plain write-through. Stock and debt are not re-derived."""
        document = validate_payload(
            model=LedgerTransaction, payload=patch, policy=TRANSACTION_POLICY, partial=True
        )
        enforce_rules_transaction(document)
        self._store.update(COLLECTION_TRANSACTIONS, transaction_id, document)

    def delete_transaction(self, transaction_id: str) -> None:
        """Plain write-through. Effects of the deleted sale are not reversed."""
        self._store.delete(COLLECTION_TRANSACTIONS, transaction_id)
