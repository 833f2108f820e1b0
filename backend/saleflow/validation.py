from __future__ import annotations

from typing import Any

from .services.sales_service import CreateSaleInput, SaleItemInput


class ValidationError(ValueError):
    """400-level input problem."""


def require_str(payload: dict, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} required")
    return value.strip()


def optional_str(payload: dict, key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip() or None


def coerce_int(value: Any, key: str) -> int:
    """Strict integer: rejects bools, floats and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        digits = stripped[1:] if stripped.startswith("-") else stripped
        if digits.isdigit():
            return int(stripped)
    raise ValidationError(f"{key} must be an integer")


def require_int(payload: dict, key: str) -> int:
    if payload.get(key) is None:
        raise ValidationError(f"{key} required")
    return coerce_int(payload[key], key)


def parse_create_sale(payload: dict) -> CreateSaleInput:
    """
    Shape-check a sale request body.

    Business rules (empty cart, positive quantities, discount bounds) are
    enforced by the sales service so every caller gets the same errors.
    """
    items_raw = payload.get("items")
    if items_raw is None:
        items_raw = []
    if not isinstance(items_raw, list):
        raise ValidationError("items must be a list")

    items = []
    for raw in items_raw:
        if not isinstance(raw, dict):
            raise ValidationError("each item must be an object")
        items.append(SaleItemInput(
            product_id=require_str(raw, "product_id"),
            quantity=require_int(raw, "quantity"),
        ))

    discount = payload.get("discount_cents")
    return CreateSaleInput(
        tenant_id=require_str(payload, "tenant_id"),
        items=items,
        payment_method=optional_str(payload, "payment_method") or "",
        customer_id=optional_str(payload, "customer_id"),
        notes=optional_str(payload, "notes"),
        discount_cents=0 if discount is None else coerce_int(discount, "discount_cents"),
    )
