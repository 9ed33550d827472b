# Overview: Flask API routes for returns and direct refunds; parses input and returns JSON responses.

# backend/tillbook/routes/returns.py
"""
Return Processing API Routes

DESIGN:
- Record returns/exchanges referencing an original sale
- Pay out store credit as cash (direct refund), not tied to any sale
- Read returns for the customer and daily count screens

The direct refund endpoint is served both at /returns/direct-refund (the
path existing clients call) and at /api/returns/direct-refund.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import refund_service, return_service
from ..services.refund_service import InsufficientCreditError, RefundValidationError
from ..services.return_service import ReturnError
from tillbook.time_utils import parse_iso_datetime


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")
direct_refund_bp = Blueprint("direct_refund", __name__)


# =============================================================================
# DIRECT REFUND
# =============================================================================

@direct_refund_bp.post("/returns/direct-refund")
@returns_bp.post("/direct-refund")
def direct_refund_route():
    """
    Pay out cash against a customer's store credit.

    Request body:
    {
        "customerId": "cust-42",
        "customerName": "Nimal Perera",
        "cashPaidOut": 3000,
        "staffId": "S1"
    }

    Returns:
        200: {"message": ..., "returnData": ReturnTransaction}
        400: Missing/invalid fields, or amount exceeds available credit
        500: Unexpected failure (details attached)
    """
    try:
        data = request.get_json(silent=True) or {}

        return_txn = refund_service.process_direct_refund(
            customer_id=data.get("customerId"),
            customer_name=data.get("customerName"),
            cash_paid_out=data.get("cashPaidOut"),
            staff_id=data.get("staffId"),
        )

        return jsonify({
            "message": "Direct refund processed successfully.",
            "returnData": return_txn.to_dict(),
        }), 200

    except RefundValidationError as e:
        return jsonify({
            "error": "Missing required fields (customerId, staffId, cashPaidOut)",
            "details": str(e),
        }), 400
    except InsufficientCreditError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Error processing direct refund")
        return jsonify({"error": "Failed to process direct refund", "details": str(e)}), 500


# =============================================================================
# RETURNS
# =============================================================================

@returns_bp.post("/")
def create_return_route():
    """
    Record a return against a previous sale.

    Request body:
    {
        "originalSaleId": "sale-1",
        "staffId": "S1",
        "refundAmount": 5000,          (positive grants store credit)
        "cashPaidOut": 0,              (optional)
        "customerId": "cust-42",       (optional, defaults to the sale's)
        "customerName": "...",         (optional)
        "returnedItems": [...],        (optional)
        "exchangedItems": [...],       (optional)
        "returnDate": "2024-05-01T10:00:00Z"  (optional)
    }

    Returns:
        201: Return recorded
        400: Invalid input or unknown sale
    """
    try:
        data = request.get_json(silent=True) or {}

        return_txn = return_service.record_return(
            original_sale_id=data.get("originalSaleId"),
            staff_id=data.get("staffId"),
            refund_amount=data.get("refundAmount", 0),
            customer_id=data.get("customerId"),
            customer_name=data.get("customerName"),
            cash_paid_out=data.get("cashPaidOut"),
            returned_items=data.get("returnedItems"),
            exchanged_items=data.get("exchangedItems"),
            return_date=data.get("returnDate"),
        )

        return jsonify({"return": return_txn.to_dict()}), 201

    except ReturnError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("/")
def list_returns_route():
    """
    List returns.

    Query params: staffId, customerId, start, end (ISO-8601)
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 datetimes"}), 400

    returns = return_service.list_returns(
        staff_id=request.args.get("staffId"),
        customer_id=request.args.get("customerId"),
        start=start,
        end=end,
    )
    return jsonify({"returns": [r.to_dict() for r in returns]}), 200


@returns_bp.get("/<return_id>")
def get_return_route(return_id: str):
    return_txn = return_service.get_return(return_id)
    if not return_txn:
        return jsonify({"error": "Return not found"}), 404
    return jsonify({"return": return_txn.to_dict()}), 200
