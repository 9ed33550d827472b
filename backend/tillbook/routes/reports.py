from flask import Blueprint, jsonify, request

from tillbook.services import credit_service, reconciliation_service
from tillbook.time_utils import parse_iso_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")
customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@reports_bp.get("/daily-count")
def daily_count_report():
    """Per-staff daily reconciliation. Query params: staffId (required), date (yyyy-MM-dd)."""
    staff_id = request.args.get("staffId")
    if not staff_id:
        return jsonify({"error": "staffId is required"}), 400

    try:
        day = parse_iso_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be formatted yyyy-MM-dd"}), 400

    try:
        summary = reconciliation_service.reconcile(staff_id, day)
        return jsonify(summary.to_dict()), 200
    except reconciliation_service.ReconciliationError as exc:
        return jsonify({"error": str(exc)}), 400


@customers_bp.get("/<customer_id>/credit")
def customer_credit(customer_id: str):
    try:
        return jsonify(credit_service.get_credit_summary(customer_id)), 200
    except credit_service.CreditError as exc:
        return jsonify({"error": str(exc)}), 400
