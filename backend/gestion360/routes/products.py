# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/gestion360/routes/products.py
"""
Product management routes.

Reads come from the replicated mirror (ordered by name); writes go through
to the ledger and the response reflects the mirror after the push-back.

SECURITY: All routes require a session with the inventory capability.
"""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_store
from ..models import Product, COLLECTION_PRODUCTS
from ..permissions import Capability
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
)
from ..services.remote_ledger import LedgerError, DocumentNotFoundError
from ..decorators import require_auth, require_capability

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price", "stock"},
    required_on_create={"name", "price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_capability(Capability.INVENTORY)
def list_products():
    """List all products, ascending by name."""
    items = get_store().products
    return jsonify({"items": items, "count": len(items)}), 200


@products_bp.get("/<product_id>")
@require_auth
@require_capability(Capability.INVENTORY)
def get_product(product_id: str):
    product = get_store().get(COLLECTION_PRODUCTS, product_id)
    if product is None:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product), 200


@products_bp.post("")
@require_auth
@require_capability(Capability.INVENTORY)
def create_product_route():
    """
    Create a new product.

    Request body: {"name": "Taza", "price": 500, "stock": 10}
    stock defaults to 0.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    store = get_store()
    try:
        product_id = store.create(COLLECTION_PRODUCTS, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except LedgerError:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Operation failed"}), 503

    return jsonify(store.get(COLLECTION_PRODUCTS, product_id) or {"id": product_id}), 201


@products_bp.route("/<product_id>", methods=["PUT", "PATCH"])
@require_auth
@require_capability(Capability.INVENTORY)
def update_product_route(product_id: str):
    """Update a product. Only the fields present in the body change."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    store = get_store()
    try:
        store.update(COLLECTION_PRODUCTS, product_id, patch)
    except DocumentNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except LedgerError:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Operation failed"}), 503

    return jsonify(store.get(COLLECTION_PRODUCTS, product_id)), 200


@products_bp.delete("/<product_id>")
@require_auth
@require_capability(Capability.INVENTORY)
def delete_product_route(product_id: str):
    """
    Delete a product.

    Transactions that reference it keep their productId.
    """
    store = get_store()
    if store.get(COLLECTION_PRODUCTS, product_id) is None:
        return jsonify({"error": "Product not found"}), 404

    try:
        store.delete(COLLECTION_PRODUCTS, product_id)
    except LedgerError:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Operation failed"}), 503

    return jsonify({"ok": True}), 200
