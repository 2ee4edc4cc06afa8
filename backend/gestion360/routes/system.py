# backend/gestion360/routes/system.py
"""
System health endpoint.

Reports ledger reachability and mirror readiness for deployment debugging.
"""

import time
from flask import Blueprint, current_app

from ..extensions import get_ledger, get_store
from ..services.remote_ledger import LedgerError
from ..services.replicated_store import COLLECTIONS
from gestion360.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_ledger_health() -> dict:
    """
    Count documents per collection straight from the ledger.

    Returns dict with status and details.
    """
    start_time = time.time()
    ledger = get_ledger()
    try:
        counts = {collection: len(ledger.snapshot(collection)) for collection in COLLECTIONS}
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": counts,
        }
    except LedgerError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Ledger health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Ledger error",
        }


def check_mirror_health() -> dict:
    store = get_store()
    return {
        "status": "healthy" if store.started and not store.loading else "loading",
        "details": {collection: store.is_loaded(collection) for collection in COLLECTIONS},
    }


@system_bp.get("/api/health")
def health():
    ledger = check_ledger_health()
    mirror = check_mirror_health()
    healthy = ledger["status"] == "healthy"
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"ledger": ledger, "mirror": mirror},
    }
    return body, 200 if healthy else 503
