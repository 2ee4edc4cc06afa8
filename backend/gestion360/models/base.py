from __future__ import annotations

from ..validation import coerce_document


class DocumentMixin:
    """
    Row <-> wire document conversion shared by every ledger collection.

    WIRE_COLUMNS maps wire field names (the compatibility contract) to the
    mapped column attribute holding the value. RULES runs after coercion
    on whatever keys the document carries.
    """
    COLLECTION = ""
    WIRE_COLUMNS = {}
    RULES = None

    def apply_document(self, document: dict) -> None:
        patch = coerce_document(type(self), document)
        rules = type(self).RULES
        if rules is not None:
            rules(patch)
        for key, value in patch.items():
            setattr(self, self.WIRE_COLUMNS[key], value)

    def to_document(self) -> dict:
        raise NotImplementedError
