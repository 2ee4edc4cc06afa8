from __future__ import annotations

from ..extensions import db
from ..permissions import Capability, capabilities_to_map
from ..validation import enforce_rules_user
from .base import DocumentMixin


class User(DocumentMixin, db.Model):
    """
    Staff accounts ("usuarios" collection).

    The id is chosen by the caller (the first admin is always
    "admin_initial"). The PIN is compared by exact string match.
    Capabilities are stored as a Capability bitmask and exposed on the wire
    as permissions{inventory, sales, customers, reports}.
    """
    __tablename__ = "usuarios"

    COLLECTION = "usuarios"
    WIRE_COLUMNS = {
        "name": "name",
        "pin": "pin",
        "role": "role",
        "avatarUrl": "avatar_url",
        "permissions": "permissions_mask",
    }
    RULES = staticmethod(enforce_rules_user)

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(128), nullable=False, default="")
    pin = db.Column(db.String(16), nullable=False, default="")
    role = db.Column(db.String(32), nullable=False, default="staff")
    avatar_url = db.Column(db.String(512), nullable=True)
    permissions_mask = db.Column(db.Integer, nullable=False, default=0)

    @property
    def capabilities(self) -> Capability:
        return Capability(self.permissions_mask or 0)

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "pin": self.pin,
            "role": self.role,
            "avatarUrl": self.avatar_url,
            "permissions": capabilities_to_map(self.capabilities),
        }
