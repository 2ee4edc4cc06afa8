# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

# backend/gestion360/routes/customers.py
"""
Customer management routes.

Customers are read from the mirror in name order. debt can be edited here
directly (e.g. to settle an account by hand); sales only ever raise it.

SECURITY: All routes require a session with the customers capability.
"""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_store
from ..models import Customer, COLLECTION_CUSTOMERS
from ..permissions import Capability
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_customer,
    ValidationError,
)
from ..services.remote_ledger import LedgerError, DocumentNotFoundError
from ..decorators import require_auth, require_capability

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "debt"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_capability(Capability.CUSTOMERS)
def list_customers():
    """List all customers, ascending by name."""
    items = get_store().customers
    return jsonify({"items": items, "count": len(items)}), 200


@customers_bp.get("/<customer_id>")
@require_auth
@require_capability(Capability.CUSTOMERS)
def get_customer(customer_id: str):
    customer = get_store().get(COLLECTION_CUSTOMERS, customer_id)
    if customer is None:
        return jsonify({"error": "Customer not found"}), 404
    return jsonify(customer), 200


@customers_bp.post("")
@require_auth
@require_capability(Capability.CUSTOMERS)
def create_customer_route():
    """
    Create a new customer.

    Request body: {"name": "Ana"}
    debt defaults to 0 and afterwards grows with every SALE charged to the customer.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_rules_customer(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    store = get_store()
    try:
        customer_id = store.create(COLLECTION_CUSTOMERS, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except LedgerError:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Operation failed"}), 503

    return jsonify(store.get(COLLECTION_CUSTOMERS, customer_id) or {"id": customer_id}), 201


@customers_bp.route("/<customer_id>", methods=["PUT", "PATCH"])
@require_auth
@require_capability(Capability.CUSTOMERS)
def update_customer_route(customer_id: str):
    """Update a customer. Only the fields present in the body change."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        enforce_rules_customer(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    store = get_store()
    try:
        store.update(COLLECTION_CUSTOMERS, customer_id, patch)
    except DocumentNotFoundError:
        return jsonify({"error": "Customer not found"}), 404
    except LedgerError:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Operation failed"}), 503

    return jsonify(store.get(COLLECTION_CUSTOMERS, customer_id)), 200


@customers_bp.delete("/<customer_id>")
@require_auth
@require_capability(Capability.CUSTOMERS)
def delete_customer_route(customer_id: str):
    """Delete a customer. Transactions that reference it keep their customerId."""
    store = get_store()
    if store.get(COLLECTION_CUSTOMERS, customer_id) is None:
        return jsonify({"error": "Customer not found"}), 404

    try:
        store.delete(COLLECTION_CUSTOMERS, customer_id)
    except LedgerError:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Operation failed"}), 503

    return jsonify({"ok": True}), 200
