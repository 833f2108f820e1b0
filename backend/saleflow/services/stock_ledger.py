# Overview: Stock ledger; the only writer of StockRecord and StockMovement.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from flask import current_app

from ..extensions import db
from ..models import Product, StockRecord, StockMovement
from saleflow.time_utils import utcnow
from .concurrency import begin_write, lock_for_update, run_with_retry
"""
Stock Ledger Invariants (authoritative)

- StockRecord.quantity is the on-hand quantity for (product, tenant, location).
  It is never negative; the DB check constraint backs the service check.
- Every StockRecord write appends exactly one StockMovement in the same DB
  transaction, with old_quantity + quantity_change == new_quantity.
- Deductions lock each StockRecord row (SELECT ... FOR UPDATE, or BEGIN
  IMMEDIATE on SQLite) before reading it, so two checkouts racing for the
  last unit serialize: the second one re-reads the decremented quantity.
- A batch is all-or-nothing. Any missing record or shortfall rolls the
  whole batch back; no partial deduction is ever committed.
- Rows in a batch are locked in product-id order so two overlapping
  batches cannot deadlock on each other.
"""

DEFAULT_LOCATION = "main"

# Reasons a manual adjustment may carry; "sale" is written only by deductions
ADJUSTMENT_REASONS = ("restock", "adjustment")


class StockLedgerError(Exception):
    """Base class for stock ledger failures."""


class ProductNotFoundError(StockLedgerError):
    def __init__(self, product_id: str, tenant_id: str):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id
        self.tenant_id = tenant_id


class StockRecordNotFoundError(StockLedgerError):
    def __init__(self, product_id: str, tenant_id: str, location_id: str):
        super().__init__(f"Stock record not found for product: {product_id} at {location_id}")
        self.product_id = product_id
        self.tenant_id = tenant_id
        self.location_id = location_id


class InsufficientStockError(StockLedgerError):
    def __init__(self, product_id: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product: {product_id} "
            f"(requested {requested}, available {available})"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidStockOperationError(StockLedgerError, ValueError):
    """Rejected input: non-positive deduction, zero delta, negative absolute."""


@dataclass(frozen=True)
class StockUpdate:
    product_id: str
    tenant_id: str
    quantity: int
    reason: str = "sale"
    location_id: str = DEFAULT_LOCATION
    reference: Optional[str] = None


def _default_location(location_id: Optional[str]) -> str:
    if location_id:
        return location_id
    return current_app.config.get("DEFAULT_STOCK_LOCATION", DEFAULT_LOCATION)


def _ensure_product_in_tenant(product_id: str, tenant_id: str) -> None:
    exists = (
        db.session.query(Product.id)
        .filter_by(id=product_id, tenant_id=tenant_id)
        .first()
    )
    if exists is None:
        raise ProductNotFoundError(product_id, tenant_id)


def _find_record(product_id: str, tenant_id: str, location_id: str, *, lock: bool = False) -> Optional[StockRecord]:
    query = db.session.query(StockRecord).filter_by(
        product_id=product_id,
        tenant_id=tenant_id,
        location_id=location_id,
    )
    if lock:
        query = lock_for_update(query)
    return query.first()


def _write(
    record: StockRecord,
    new_quantity: int,
    *,
    reason: str,
    reference: Optional[str],
) -> StockMovement:
    """Apply a new quantity to a locked record and append its movement row."""
    old_quantity = record.quantity or 0
    record.quantity = new_quantity
    record.last_updated = utcnow()

    movement = StockMovement(
        tenant_id=record.tenant_id,
        product_id=record.product_id,
        location_id=record.location_id,
        quantity_change=new_quantity - old_quantity,
        reason=reason,
        old_quantity=old_quantity,
        new_quantity=new_quantity,
        reference=reference,
        created_at=utcnow(),
    )
    db.session.add(movement)
    return movement


# =============================================================================
# Reads (non-locking)
# =============================================================================

def get_quantity(product_id: str, tenant_id: str, location_id: Optional[str] = None) -> Optional[int]:
    record = _find_record(product_id, tenant_id, _default_location(location_id))
    return record.quantity if record else None


def check_availability(
    product_id: str,
    tenant_id: str,
    quantity: int,
    location_id: Optional[str] = None,
) -> bool:
    """
    Whether on-hand stock covers quantity. Does not lock.

    A product that was never stocked at the location is unavailable.
    """
    on_hand = get_quantity(product_id, tenant_id, location_id)
    if on_hand is None:
        return False
    return on_hand >= quantity


def list_movements(product_id: str, tenant_id: str, *, limit: int = 200) -> list[StockMovement]:
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id, tenant_id=tenant_id)
        .order_by(StockMovement.created_at.desc())
        .limit(limit)
        .all()
    )


# =============================================================================
# Deductions
# =============================================================================

def _deduct_locked(updates: Iterable[StockUpdate]) -> list[StockMovement]:
    movements = []
    for update in sorted(updates, key=lambda u: (u.tenant_id, u.location_id, u.product_id)):
        if update.quantity <= 0:
            raise InvalidStockOperationError(
                f"Deduction quantity must be positive for product: {update.product_id}"
            )

        record = _find_record(update.product_id, update.tenant_id, update.location_id, lock=True)
        if record is None:
            raise StockRecordNotFoundError(update.product_id, update.tenant_id, update.location_id)

        new_quantity = record.quantity - update.quantity
        if new_quantity < 0:
            raise InsufficientStockError(update.product_id, update.quantity, record.quantity)

        movements.append(_write(record, new_quantity, reason=update.reason, reference=update.reference))
        # Flush per row so a later row in the same batch sees this write
        db.session.flush()
    return movements


def deduct(update: StockUpdate) -> StockMovement:
    """Deduct one item atomically."""
    return bulk_deduct([update])[0]


def bulk_deduct(updates: list[StockUpdate]) -> list[StockMovement]:
    """
    Deduct several items as one unit of work.

    Either every item has enough stock and all are decremented together,
    or nothing changes and the first failure is raised.
    """
    if not updates:
        return []

    def _op():
        begin_write()
        movements = _deduct_locked(updates)
        db.session.commit()
        return movements

    return run_with_retry(_op)


# =============================================================================
# Adjustments
# =============================================================================

def adjust(
    product_id: str,
    tenant_id: str,
    location_id: Optional[str],
    delta: int,
    *,
    reason: str = "adjustment",
    reference: Optional[str] = None,
) -> StockMovement:
    """
    Apply a signed delta (restock, shrinkage, manual correction).

    The result may not go below zero. A product never stocked at the
    location gets a record created at 0 for a positive delta.
    """
    if delta == 0:
        raise InvalidStockOperationError("Adjustment delta must be non-zero")
    if reason not in ADJUSTMENT_REASONS:
        raise InvalidStockOperationError(f"Adjustment reason must be one of {ADJUSTMENT_REASONS}, got {reason!r}")
    location_id = _default_location(location_id)

    def _op():
        begin_write()
        _ensure_product_in_tenant(product_id, tenant_id)
        record = _find_record(product_id, tenant_id, location_id, lock=True)
        if record is None:
            if delta < 0:
                raise StockRecordNotFoundError(product_id, tenant_id, location_id)
            record = StockRecord(product_id=product_id, tenant_id=tenant_id, location_id=location_id, quantity=0)
            db.session.add(record)

        new_quantity = (record.quantity or 0) + delta
        if new_quantity < 0:
            raise InsufficientStockError(product_id, -delta, record.quantity)

        movement = _write(record, new_quantity, reason=reason, reference=reference)
        db.session.commit()
        return movement

    return run_with_retry(_op)


def set_absolute(
    product_id: str,
    tenant_id: str,
    location_id: Optional[str],
    quantity: int,
    *,
    reference: Optional[str] = None,
) -> StockMovement:
    """
    Overwrite on-hand quantity (initial stocking, count reconciliation).

    Audited as an 'adjustment' movement even when the quantity is unchanged.
    """
    if quantity < 0:
        raise InvalidStockOperationError("Stock quantity cannot be negative")
    location_id = _default_location(location_id)

    def _op():
        begin_write()
        _ensure_product_in_tenant(product_id, tenant_id)
        record = _find_record(product_id, tenant_id, location_id, lock=True)
        if record is None:
            record = StockRecord(product_id=product_id, tenant_id=tenant_id, location_id=location_id, quantity=0)
            db.session.add(record)

        movement = _write(record, quantity, reason="adjustment", reference=reference)
        db.session.commit()
        return movement

    return run_with_retry(_op)
