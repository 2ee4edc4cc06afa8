# Overview: Session and capability decorators for API routes.

from functools import wraps
from flask import jsonify, g, request, current_app

from .extensions import get_sessions
from .permissions import Capability


def bearer_token() -> str | None:
    """Token from the Authorization header, if any."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def _is_authenticated() -> bool:
    return hasattr(g, 'session_gate')


def require_auth(f):
    """
    Require a PIN session opened by /api/session/login or /bootstrap.

    Sets the following Flask g attributes:
    - g.session_gate: the caller's SessionGate
    - g.current_user: the session's user document

    Returns 401 if:
    - No Authorization header
    - Unknown, expired or revoked token
    - The user record was deleted since login
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        gate = get_sessions().validate_session(token)
        if gate is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.session_gate = gate
        g.current_user = gate.current_user
        return f(*args, **kwargs)

    return decorated_function


def require_capability(capability: Capability):
    """
    Require a capability flag on the current user (admins hold all).

    Must be applied after @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            gate = g.session_gate
            if not gate.has_capability(capability):
                current_app.logger.info(
                    "Capability %s denied for user %s on %s %s",
                    capability.name,
                    (gate.current_user or {}).get("id"),
                    request.method,
                    request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "capability": capability.name.lower(),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_admin(f):
    """Require the admin role. Must be applied after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not g.session_gate.is_admin:
            return jsonify({"error": "Admin role required"}), 403
        return f(*args, **kwargs)

    return decorated_function
