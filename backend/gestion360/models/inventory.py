from __future__ import annotations

from ..extensions import db
from ..validation import enforce_rules_product
from .base import DocumentMixin


class Product(DocumentMixin, db.Model):
    """
    Product master data ("productos" collection).

    stock is a stored counter: direct edits set it, every SALE linked to the
    product decrements it by one. It is never recomputed from the
    transaction log and may go negative.
    """
    __tablename__ = "productos"
    __table_args__ = (
        db.Index("ix_productos_name", "name"),
    )

    COLLECTION = "productos"
    WIRE_COLUMNS = {"name": "name", "price": "price", "stock": "stock"}
    RULES = staticmethod(enforce_rules_product)

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False, default="")
    price = db.Column(db.Float, nullable=False, default=0.0)
    stock = db.Column(db.Integer, nullable=False, default=0)

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "stock": self.stock,
        }
