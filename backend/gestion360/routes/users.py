# Overview: Flask API routes for staff accounts; parses input and returns JSON responses.

# backend/gestion360/routes/users.py
"""
Staff account routes (admin only).

Users are stored under caller-chosen ids and written as whole records, so PUT
replaces the full document. PINs never appear in responses.
"""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_store
from ..models import User, COLLECTION_USERS
from ..permissions import ROLE_STAFF
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_user,
    ValidationError,
    ConflictError,
)
from ..services.remote_ledger import LedgerError, new_document_id
from ..services.session_service import avatar_url_for, public_user
from ..decorators import require_auth, require_admin

USER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "pin", "role", "avatarUrl", "permissions"},
    required_on_create={"name", "pin"},
)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _ensure_pin_unused(pin: str, user_id: str) -> None:
    # Login takes the first matching PIN, so two users cannot share one
    for user in get_store().users:
        if user["id"] != user_id and user.get("pin") == pin:
            raise ConflictError("PIN already in use")


def _user_document(payload: dict, user_id: str) -> dict:
    document = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)
    enforce_rules_user(document)
    _ensure_pin_unused(document["pin"], user_id)
    document.setdefault("role", ROLE_STAFF)
    if not document.get("avatarUrl"):
        document["avatarUrl"] = avatar_url_for(document["name"])
    return document


@users_bp.get("")
@require_auth
@require_admin
def list_users():
    items = [public_user(u) for u in get_store().users]
    return jsonify({"items": items, "count": len(items)}), 200


@users_bp.post("")
@require_auth
@require_admin
def create_user_route():
    """
    Create a staff account.

    Request body:
    {
        "id": "caja2",             // optional, generated when omitted
        "name": "Luis",
        "pin": "4321",
        "role": "staff",            // optional
        "permissions": {"sales": true, "customers": true}
    }
    """
    payload = dict(request.get_json(silent=True) or {})
    user_id = str(payload.pop("id", "") or "").strip() or new_document_id()

    store = get_store()
    if store.get(COLLECTION_USERS, user_id) is not None:
        return jsonify({"error": "User id already exists"}), 409

    try:
        document = _user_document(payload, user_id)
        store.upsert_by_id(COLLECTION_USERS, user_id, document)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except LedgerError:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Operation failed"}), 503

    return jsonify(public_user(store.get(COLLECTION_USERS, user_id))), 201


@users_bp.put("/<user_id>")
@require_auth
@require_admin
def replace_user_route(user_id: str):
    """Replace a user record. The whole record must be sent."""
    payload = dict(request.get_json(silent=True) or {})
    payload.pop("id", None)

    store = get_store()
    if store.get(COLLECTION_USERS, user_id) is None:
        return jsonify({"error": "User not found"}), 404

    try:
        document = _user_document(payload, user_id)
        store.upsert_by_id(COLLECTION_USERS, user_id, document)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except LedgerError:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Operation failed"}), 503

    return jsonify(public_user(store.get(COLLECTION_USERS, user_id))), 200


@users_bp.delete("/<user_id>")
@require_auth
@require_admin
def delete_user_route(user_id: str):
    store = get_store()
    if store.get(COLLECTION_USERS, user_id) is None:
        return jsonify({"error": "User not found"}), 404

    try:
        store.delete(COLLECTION_USERS, user_id)
    except LedgerError:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Operation failed"}), 503

    return jsonify({"ok": True}), 200
