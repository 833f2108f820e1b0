# Overview: Read-only catalog lookups consumed by the sale pipeline.

from __future__ import annotations

from typing import Optional

from ..extensions import db
from ..models import Customer, Product
from . import stock_ledger


def get_product(product_id: str, tenant_id: str) -> Optional[Product]:
    """Tenant-scoped product read. Inactive products are returned; callers decide."""
    return db.session.query(Product).filter_by(id=product_id, tenant_id=tenant_id).first()


def get_customer(customer_id: str, tenant_id: str) -> Optional[Customer]:
    return db.session.query(Customer).filter_by(id=customer_id, tenant_id=tenant_id).first()


def check_stock_availability(product_id: str, tenant_id: str, quantity: int) -> bool:
    return stock_ledger.check_availability(product_id, tenant_id, quantity)
