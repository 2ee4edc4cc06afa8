from __future__ import annotations
from datetime import datetime
from gestion360.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any
import re

from sqlalchemy import Float, Integer, String, DateTime
from sqlalchemy.orm import DeclarativeMeta

from gestion360.permissions import CAPABILITY_KEYS, Capability, capabilities_from_map


PIN_PATTERN = re.compile(r"^\d{4}$")
TRANSACTION_TYPES = {"SALE", "EXPENSE"}


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate PIN)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: wire fields clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_wire_key(model: DeclarativeMeta) -> dict[str, Any]:
    columns = {c.key: c for c in model.__mapper__.columns}
    return {wire: columns[attr] for wire, attr in model.WIRE_COLUMNS.items()}


def _coerce_permissions(value: Any) -> int:
    # Already a stored bitmask
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return Capability(value).value
        except ValueError:
            raise ValidationError("permissions mask is out of range")
    if not isinstance(value, dict):
        raise ValidationError("permissions must be an object")
    for key, flag in value.items():
        if key not in CAPABILITY_KEYS.values():
            raise ValidationError(f"Unknown permission: {key}")
        if not isinstance(flag, bool):
            raise ValidationError(f"permissions.{key} must be a boolean")
    return capabilities_from_map(value).value


def _coerce_value(key: str, col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if key == "permissions":
        return _coerce_permissions(value)

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{key} must be an integer")
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{key} must be an integer")
        # Reject floats explicitly
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise ValidationError(f"{key} must be an integer, not a decimal")
        # Other types
        raise ValidationError(f"{key} must be an integer")

    # Currency amounts
    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{key} must be a number")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise ValidationError(f"{key} must be a number")
        raise ValidationError(f"{key} must be a number")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return parse_iso_datetime(value.isoformat())
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{key} must be a datetime")

    # Strings
    if isinstance(coltype, String):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes an incoming wire document against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned document keyed by wire field names.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_wire_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(k, col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, String) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def coerce_document(model: DeclarativeMeta, document: dict) -> dict:
    """
    Normalize a document written straight to the ledger (no client allowlist).

    The "id" key is never part of a document body and is dropped.
    """
    body = {k: v for k, v in (document or {}).items() if k != "id"}
    policy = ModelValidationPolicy(writable_fields=set(model.WIRE_COLUMNS))
    return validate_payload(model=model, payload=body, policy=policy, partial=True)


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if patch.get("price") is not None and patch["price"] < 0:
        raise ValidationError("price must be >= 0")


def enforce_rules_customer(patch: dict) -> None:
    if patch.get("debt") is not None and patch["debt"] < 0:
        raise ValidationError("debt must be >= 0")


def enforce_rules_transaction(patch: dict) -> None:
    # Every transaction is exactly one of SALE or EXPENSE
    if "type" in patch and patch["type"] not in TRANSACTION_TYPES:
        raise ValidationError("type must be SALE or EXPENSE")


def enforce_rules_user(patch: dict) -> None:
    if "pin" in patch and (patch["pin"] is None or not PIN_PATTERN.match(patch["pin"])):
        raise ValidationError("pin must be exactly 4 digits")
