from __future__ import annotations

import enum

from ..extensions import db
from ..validation import enforce_rules_transaction
from gestion360.time_utils import to_utc_z, utcnow
from .base import DocumentMixin


class TransactionType(str, enum.Enum):
    SALE = "SALE"
    EXPENSE = "EXPENSE"


class LedgerTransaction(DocumentMixin, db.Model):
    """
    Sales and expenses ("transacciones" collection).

    productId / customerId are plain back-references: no foreign keys, no
    ownership. description doubles as the grouping key for top sellers.
    """
    __tablename__ = "transacciones"
    __table_args__ = (
        db.Index("ix_transacciones_date", "date"),
    )

    COLLECTION = "transacciones"
    WIRE_COLUMNS = {
        "type": "type",
        "description": "description",
        "amount": "amount",
        "date": "date",
        "productId": "product_id",
        "customerId": "customer_id",
    }
    RULES = staticmethod(enforce_rules_transaction)

    id = db.Column(db.String(64), primary_key=True)
    type = db.Column(db.String(16), nullable=False, default=TransactionType.SALE.value)
    description = db.Column(db.String(255), nullable=False, default="")
    amount = db.Column(db.Float, nullable=False, default=0.0)
    date = db.Column(db.DateTime, nullable=False, default=utcnow)
    product_id = db.Column(db.String(64), nullable=True)
    customer_id = db.Column(db.String(64), nullable=True)

    def to_document(self) -> dict:
        doc = {
            "id": self.id,
            "type": self.type,
            "description": self.description,
            "amount": self.amount,
            "date": to_utc_z(self.date),
        }
        # Optional references are omitted rather than sent as null
        if self.product_id:
            doc["productId"] = self.product_id
        if self.customer_id:
            doc["customerId"] = self.customer_id
        return doc
