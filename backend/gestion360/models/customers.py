from __future__ import annotations

from ..extensions import db
from ..validation import enforce_rules_customer
from .base import DocumentMixin


class Customer(DocumentMixin, db.Model):
    """
    Customer accounts ("clientes" collection).

    WHY: Sales on credit accumulate into debt. debt is a stored counter that
    only SALE transactions move; nothing currently lowers it.
    """
    __tablename__ = "clientes"
    __table_args__ = (
        db.Index("ix_clientes_name", "name"),
    )

    COLLECTION = "clientes"
    WIRE_COLUMNS = {"name": "name", "debt": "debt"}
    RULES = staticmethod(enforce_rules_customer)

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False, default="")
    debt = db.Column(db.Float, nullable=False, default=0.0)

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "debt": self.debt,
        }
