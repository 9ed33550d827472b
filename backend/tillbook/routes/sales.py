# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/tillbook/routes/sales.py
"""Sales API routes: record sales, append credit settlements, read sales."""

from flask import Blueprint, request, jsonify, current_app

from ..services import sales_service
from ..services.sales_service import SaleError, SaleNotFoundError
from tillbook.time_utils import parse_iso_datetime


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/")
def create_sale_route():
    """
    Record a completed sale.

    Request body:
    {
        "id": "sale-1",                 (optional)
        "staffId": "S1",
        "customerId": "cust-42",        (optional)
        "customerName": "...",          (optional)
        "totalAmount": 1500,
        "paidAmountCash": 1000,         (optional)
        "paidAmountCheque": 0,          (optional)
        "paidAmountBankTransfer": 0,    (optional)
        "creditUsed": 500,              (optional)
        "status": "completed",          (optional)
        "saleDate": "2024-05-01T10:00:00Z"  (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}

        sale = sales_service.create_sale(
            sale_id=data.get("id"),
            staff_id=data.get("staffId"),
            customer_id=data.get("customerId"),
            customer_name=data.get("customerName"),
            total_amount=data.get("totalAmount"),
            paid_amount_cash=data.get("paidAmountCash"),
            paid_amount_cheque=data.get("paidAmountCheque"),
            paid_amount_bank_transfer=data.get("paidAmountBankTransfer"),
            credit_used=data.get("creditUsed"),
            status=data.get("status", sales_service.SALE_STATUS_COMPLETED),
            sale_date=data.get("saleDate"),
        )

        return jsonify({"sale": sale.to_dict()}), 201

    except SaleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
def list_sales_route():
    """
    List sales, newest first.

    Query params: staffId, customerId, start, end (ISO-8601)
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 datetimes"}), 400

    sales = sales_service.list_sales(
        staff_id=request.args.get("staffId"),
        customer_id=request.args.get("customerId"),
        start=start,
        end=end,
    )
    return jsonify({"sales": [s.to_dict() for s in sales]}), 200


@sales_bp.get("/<sale_id>")
def get_sale_route(sale_id: str):
    sale = sales_service.get_sale(sale_id)
    if not sale:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.post("/<sale_id>/payments")
def add_payment_route(sale_id: str):
    """
    Append an additional payment (credit settlement) to a sale.

    Request body:
    {
        "amount": 200,
        "method": "Cash",          (Cash, Cheque, BankTransfer)
        "staffId": "S1",
        "date": "2024-05-01T15:30:00Z"  (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}

        payment = sales_service.record_additional_payment(
            sale_id,
            amount=data.get("amount"),
            method=data.get("method"),
            staff_id=data.get("staffId"),
            paid_at=data.get("date"),
        )

        sale = sales_service.get_sale(sale_id)
        return jsonify({"payment": payment.to_dict(), "sale": sale.to_dict()}), 201

    except SaleNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except SaleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add payment")
        return jsonify({"error": "Internal server error"}), 500
