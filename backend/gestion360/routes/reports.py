from flask import Blueprint, jsonify, request, current_app

from gestion360.decorators import require_auth, require_capability
from gestion360.extensions import get_store
from gestion360.permissions import Capability
from gestion360.services import reporting_service
from gestion360.time_utils import resolve_timezone


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("")
@require_auth
@require_capability(Capability.REPORTS)
def cash_flow_report():
    store = get_store()
    if store.loading:
        return jsonify({"error": "Ledger is still loading"}), 503

    timeframe = request.args.get("timeframe", "month")
    baseline = request.args.get("baseline", type=float)
    if baseline is None:
        baseline = current_app.config["REPORT_GROWTH_BASELINE"]

    try:
        report = reporting_service.compute_report(
            store.transactions,
            timeframe,
            tz=resolve_timezone(current_app.config["REPORT_TIMEZONE"]),
            growth_baseline=baseline,
        )
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/dashboard")
@require_auth
@require_capability(Capability.REPORTS)
def dashboard():
    return jsonify(reporting_service.dashboard_summary(get_store())), 200
