# Overview: Flask API routes for expenses; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import expense_service
from ..services.expense_service import ExpenseError
from tillbook.time_utils import parse_iso_datetime


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.post("/")
def create_expense_route():
    """
    Record an expense paid from the drawer.

    Request body:
    {
        "amount": 50,
        "staffId": "S1",
        "category": "Supplies",
        "description": "Receipt rolls",   (optional)
        "date": "2024-05-01T12:00:00Z"     (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}

        expense = expense_service.create_expense(
            amount=data.get("amount"),
            staff_id=data.get("staffId"),
            category=data.get("category"),
            description=data.get("description"),
            expense_date=data.get("date"),
        )
        return jsonify({"expense": expense.to_dict()}), 201

    except ExpenseError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.get("/")
def list_expenses_route():
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 datetimes"}), 400

    expenses = expense_service.list_expenses(
        staff_id=request.args.get("staffId"),
        start=start,
        end=end,
    )
    return jsonify({"expenses": [e.to_dict() for e in expenses]}), 200
