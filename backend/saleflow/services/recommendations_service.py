# Overview: Purchase-pattern counters behind "frequently bought together".

from __future__ import annotations

from datetime import datetime
from itertools import combinations
from typing import Iterable

from sqlalchemy.dialects import postgresql, sqlite

from ..extensions import db
from ..models import CoPurchasePattern, PurchasePattern
from saleflow.time_utils import utcnow
from .concurrency import begin_write, run_with_retry
"""
Purchase pattern semantics

- PurchasePattern.purchase_count accumulates units sold per product.
- CoPurchasePattern counts sales, not units: a sale containing A and B adds
  one to the (A, B) pair however many of each were sold, and a product
  repeated on several lines of the same sale is one product.
- Pairs are stored as (min(id), max(id)); the pair is unordered.
- Counters are upserted with INSERT ... ON CONFLICT DO UPDATE, so concurrent
  handlers for different sales never lose increments.
"""


def _insert(model):
    dialect = db.engine.dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upsert not supported for dialect {dialect!r}")


def canonical_pair(product_id_1: str, product_id_2: str) -> tuple[str, str]:
    return (product_id_1, product_id_2) if product_id_1 < product_id_2 else (product_id_2, product_id_1)


def _upsert_purchase(tenant_id: str, product_id: str, quantity: int, purchased_at: datetime) -> None:
    stmt = _insert(PurchasePattern).values(
        tenant_id=tenant_id,
        product_id=product_id,
        purchase_count=quantity,
        last_purchased_at=purchased_at,
        updated_at=utcnow(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["product_id", "tenant_id"],
        set_={
            "purchase_count": PurchasePattern.purchase_count + stmt.excluded.purchase_count,
            "last_purchased_at": stmt.excluded.last_purchased_at,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    db.session.execute(stmt)


def _upsert_pair(tenant_id: str, product_a_id: str, product_b_id: str) -> None:
    stmt = _insert(CoPurchasePattern).values(
        tenant_id=tenant_id,
        product_a_id=product_a_id,
        product_b_id=product_b_id,
        co_purchase_count=1,
        updated_at=utcnow(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["tenant_id", "product_a_id", "product_b_id"],
        set_={
            "co_purchase_count": CoPurchasePattern.co_purchase_count + 1,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    db.session.execute(stmt)


def update_purchase_patterns(
    items: Iterable[tuple[str, int]],
    tenant_id: str,
    *,
    purchased_at: datetime | None = None,
) -> None:
    """
    Record one sale's (product_id, quantity) items. One transaction.

    On failure nothing from this sale is recorded and the error propagates.
    """
    purchased_at = purchased_at or utcnow()

    units: dict[str, int] = {}
    for product_id, quantity in items:
        units[product_id] = units.get(product_id, 0) + quantity

    def _op():
        begin_write()
        for product_id in sorted(units):
            _upsert_purchase(tenant_id, product_id, units[product_id], purchased_at)
        for product_a_id, product_b_id in combinations(sorted(units), 2):
            _upsert_pair(tenant_id, product_a_id, product_b_id)
        db.session.commit()

    run_with_retry(_op)


def get_co_purchase_count(tenant_id: str, product_id_1: str, product_id_2: str) -> int:
    product_a_id, product_b_id = canonical_pair(product_id_1, product_id_2)
    count = (
        db.session.query(CoPurchasePattern.co_purchase_count)
        .filter_by(tenant_id=tenant_id, product_a_id=product_a_id, product_b_id=product_b_id)
        .scalar()
    )
    return count or 0
