# backend/saleflow/routes/inventory.py
"""
Stock ledger routes.

Every stock change goes through services.stock_ledger so each one leaves a
StockMovement behind. There is no route that writes StockRecord directly.
"""
from flask import Blueprint, current_app, jsonify, request

from ..services import stock_ledger
from ..services.stock_ledger import (
    InsufficientStockError,
    InvalidStockOperationError,
    ProductNotFoundError,
    StockRecordNotFoundError,
)
from ..validation import ValidationError, optional_str, require_int, require_str


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _ledger_error_response(e: Exception):
    if isinstance(e, InvalidStockOperationError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, (ProductNotFoundError, StockRecordNotFoundError)):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, InsufficientStockError):
        return jsonify({
            "error": str(e),
            "details": {
                "product_id": e.product_id,
                "requested_quantity": e.requested,
                "available_quantity": e.available,
            },
        }), 409
    raise e


@inventory_bp.post("/adjust")
def adjust_stock_route():
    """Apply a signed delta (restock or correction)."""
    payload = request.get_json(silent=True) or {}
    try:
        tenant_id = require_str(payload, "tenant_id")
        product_id = require_str(payload, "product_id")
        delta = require_int(payload, "delta")
        location_id = optional_str(payload, "location_id")
        reason = optional_str(payload, "reason") or ("restock" if delta > 0 else "adjustment")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        movement = stock_ledger.adjust(product_id, tenant_id, location_id, delta, reason=reason)
        return jsonify({"movement": movement.to_dict()}), 200
    except (InvalidStockOperationError, ProductNotFoundError, StockRecordNotFoundError, InsufficientStockError) as e:
        return _ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/stock")
def set_stock_route():
    """Overwrite on-hand quantity (initial stocking, count reconciliation)."""
    payload = request.get_json(silent=True) or {}
    try:
        tenant_id = require_str(payload, "tenant_id")
        product_id = require_str(payload, "product_id")
        quantity = require_int(payload, "quantity")
        location_id = optional_str(payload, "location_id")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        movement = stock_ledger.set_absolute(product_id, tenant_id, location_id, quantity)
        return jsonify({"movement": movement.to_dict()}), 200
    except (InvalidStockOperationError, ProductNotFoundError) as e:
        return _ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to set stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<product_id>")
def get_stock_route(product_id: str):
    tenant_id = request.args.get("tenant_id")
    if not tenant_id:
        return jsonify({"error": "tenant_id required"}), 400
    location_id = request.args.get("location_id")

    quantity = stock_ledger.get_quantity(product_id, tenant_id, location_id)
    if quantity is None:
        return jsonify({"error": "Stock record not found"}), 404

    movements = stock_ledger.list_movements(product_id, tenant_id, limit=50)
    return jsonify({
        "product_id": product_id,
        "tenant_id": tenant_id,
        "quantity_on_hand": quantity,
        "movements": [m.to_dict() for m in movements],
    }), 200
