# Overview: Flask API routes for PIN sessions; parses input and returns JSON responses.

# backend/gestion360/routes/session.py
"""
PIN session routes.

Login and bootstrap hand out a bearer token. Every other route expects it as
"Authorization: Bearer <token>". Each token has its own session, so logging
out only ends the caller's session. While the user mirror is empty the
bootstrap route creates the first administrator.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import bearer_token
from ..extensions import get_sessions, get_store
from ..permissions import CAPABILITY_KEYS
from ..services.remote_ledger import LedgerError
from ..services.session_service import BootstrapError, public_user


session_bp = Blueprint("session", __name__, url_prefix="/api/session")


def _session_payload(gate, token: str | None = None) -> dict:
    authenticated = gate is not None
    payload = {
        "authenticated": authenticated,
        "user": public_user(gate.current_user) if authenticated else None,
        "capabilities": [key for cap, key in CAPABILITY_KEYS.items() if gate.has_capability(cap)]
        if authenticated else [],
        "needs_bootstrap": get_sessions().needs_bootstrap,
        "loading": get_store().loading,
    }
    if token is not None:
        payload["token"] = token
    return payload


@session_bp.get("")
def session_status():
    """Session of the caller's token; anonymous when there is none."""
    gate = get_sessions().validate_session(bearer_token())
    return jsonify(_session_payload(gate)), 200


@session_bp.post("/login")
def login_route():
    """
    Log in with a PIN.

    Request body: {"pin": "1234"}
    Response carries "token" for the Authorization header.
    A wrong PIN returns 401 and opens nothing.
    """
    if get_store().loading:
        return jsonify({"error": "Ledger is still loading"}), 503

    data = request.get_json(silent=True) or {}
    pin = data.get("pin")
    if not isinstance(pin, str) or not pin:
        return jsonify({"error": "pin is required"}), 400

    sessions = get_sessions()
    token = sessions.create_session(pin)
    if token is None:
        return jsonify({"error": "Invalid PIN"}), 401

    return jsonify(_session_payload(sessions.validate_session(token), token)), 200


@session_bp.post("/logout")
def logout_route():
    """End the caller's session. Other clients stay logged in."""
    get_sessions().revoke_session(bearer_token())
    return jsonify({"ok": True}), 200


@session_bp.post("/bootstrap")
def bootstrap_route():
    """
    Create the first administrator ("admin_initial") and log in.

    Request body: {"name": "Ana", "pin": "1234"}
    Only available while the user collection is loaded and empty.
    """
    sessions = get_sessions()
    if not sessions.needs_bootstrap:
        return jsonify({"error": "Setup already completed"}), 409

    data = request.get_json(silent=True) or {}
    try:
        token = sessions.bootstrap_session(data.get("name"), data.get("pin"))
    except BootstrapError as e:
        return jsonify({"error": str(e)}), 400
    except LedgerError:
        current_app.logger.exception("Failed to create initial admin")
        return jsonify({"error": "Operation failed"}), 503

    return jsonify(_session_payload(sessions.validate_session(token), token)), 201
