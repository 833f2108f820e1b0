# Overview: Flask API routes for sales; parses input and returns JSON responses.

"""Sales API routes"""

from flask import Blueprint, current_app, jsonify, request

from ..events import get_dispatcher
from ..services import sales_service
from ..services.sales_service import (
    InsufficientStockError,
    NotFoundError,
    SaleError,
    SalePersistenceError,
    SaleValidationError,
)
from ..validation import ValidationError, parse_create_sale


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
def create_sale_route():
    """
    Complete a sale.

    400: malformed input or empty cart
    404: unknown/inactive product or unknown customer
    409: insufficient stock (details name the product)
    """
    try:
        sale_input = parse_create_sale(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        sale = sales_service.create_sale(sale_input, dispatcher=get_dispatcher())
        return jsonify({"sale": sale.to_dict(include_lines=True)}), 201

    except SaleValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except SalePersistenceError:
        return jsonify({"error": "Failed to persist sale"}), 500
    except SaleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<transaction_id>")
def get_sale_route(transaction_id: str):
    tenant_id = request.args.get("tenant_id")
    if not tenant_id:
        return jsonify({"error": "tenant_id required"}), 400

    sale = sales_service.get_sale(transaction_id, tenant_id)
    if not sale:
        return jsonify({"error": "Sale not found"}), 404

    return jsonify({"sale": sale.to_dict(include_lines=True)}), 200
