# Overview: Flask API routes for sales and expenses; parses input and returns JSON responses.

# backend/gestion360/routes/transactions.py
"""
Transaction routes.

POST goes through the effect engine: a SALE also decrements the linked
product's stock and raises the linked customer's debt. Those follow-up writes
are not atomic with the transaction itself; when one fails the transaction
stays recorded and the response is 502 with the failed effects listed.

PUT/PATCH/DELETE are plain write-through and never touch stock or debt.
"""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_engine, get_store
from ..models import COLLECTION_TRANSACTIONS
from ..permissions import Capability
from ..validation import ValidationError
from ..services.remote_ledger import LedgerError, DocumentNotFoundError
from ..services.transaction_service import TransactionSideEffectError
from ..decorators import require_auth, require_capability

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
@require_capability(Capability.SALES)
def list_transactions():
    """
    List transactions, newest first.

    Query params:
    - type: SALE | EXPENSE (optional)
    - customer_id: str (optional) - only transactions charged to this customer
    - limit: int (optional)
    """
    tx_type = request.args.get("type")
    customer_id = request.args.get("customer_id")
    limit = request.args.get("limit", type=int)

    items = get_store().transactions
    if tx_type:
        items = [t for t in items if t["type"] == tx_type.upper()]
    if customer_id:
        items = [t for t in items if t.get("customerId") == customer_id]
    if limit is not None and limit >= 0:
        items = items[:limit]

    return jsonify({"items": items, "count": len(items)}), 200


@transactions_bp.get("/<transaction_id>")
@require_auth
@require_capability(Capability.SALES)
def get_transaction(transaction_id: str):
    transaction = get_store().get(COLLECTION_TRANSACTIONS, transaction_id)
    if transaction is None:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify(transaction), 200


@transactions_bp.post("")
@require_auth
@require_capability(Capability.SALES)
def record_transaction_route():
    """
    Record a sale or an expense.

    Request body:
    {
        "type": "SALE",             // required, SALE | EXPENSE
        "description": "Taza",     // required
        "amount": 500,              // required
        "date": "2026-10-19T14:00:00Z",  // optional, defaults to now
        "productId": "p1",          // optional
        "customerId": "c1"          // optional
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        transaction_id = get_engine().record_transaction(payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TransactionSideEffectError as e:
        return jsonify({
            "error": "Transaction recorded but stock/debt update failed",
            "transaction_id": e.transaction_id,
            "failures": e.failures,
        }), 502
    except LedgerError:
        current_app.logger.exception("Failed to record transaction")
        return jsonify({"error": "Operation failed"}), 503

    store = get_store()
    return jsonify(store.get(COLLECTION_TRANSACTIONS, transaction_id) or {"id": transaction_id}), 201


@transactions_bp.route("/<transaction_id>", methods=["PUT", "PATCH"])
@require_auth
@require_capability(Capability.SALES)
def update_transaction_route(transaction_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        get_engine().update_transaction(transaction_id, payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DocumentNotFoundError:
        return jsonify({"error": "Transaction not found"}), 404
    except LedgerError:
        current_app.logger.exception("Failed to update transaction")
        return jsonify({"error": "Operation failed"}), 503

    return jsonify(get_store().get(COLLECTION_TRANSACTIONS, transaction_id)), 200


@transactions_bp.delete("/<transaction_id>")
@require_auth
@require_capability(Capability.SALES)
def delete_transaction_route(transaction_id: str):
    if get_store().get(COLLECTION_TRANSACTIONS, transaction_id) is None:
        return jsonify({"error": "Transaction not found"}), 404

    try:
        get_engine().delete_transaction(transaction_id)
    except LedgerError:
        current_app.logger.exception("Failed to delete transaction")
        return jsonify({"error": "Operation failed"}), 503

    return jsonify({"ok": True}), 200
