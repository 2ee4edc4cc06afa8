from __future__ import annotations

from ..extensions import db


class LedgerRevision(db.Model):
    """
    Write counter per collection.

    Every ledger write bumps its collection's revision in the same commit, so
    poll() can tell which collections changed without re-reading them.
    Not a wire collection.
    """
    __tablename__ = "ledger_revisions"

    collection = db.Column(db.String(32), primary_key=True)
    revision = db.Column(db.Integer, nullable=False, default=0)
