"""
Sales Service - atomic sale completion

WHY: A sale is recorded (transaction, lines, loyalty) in one DB transaction,
and only after that commit is the SaleCompleted event published. Stock is
not deducted here: the inventory handler does that from the event, so a
stock-accounting failure can never unwind a sale that was already paid for.
The availability check below is a non-locking read that gates recording;
the authoritative, locked check happens at deduction time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..events import EventDispatcher, SaleCompleted, SaleCompletedItem
from ..models import Customer, SaleLineItem, SaleTransaction
from saleflow.time_utils import utcnow
from . import catalog_service, stock_ledger
from .concurrency import begin_write, run_with_retry
from .sequence_service import next_transaction_number


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class SaleValidationError(SaleError):
    """Malformed sale input (no items, no payment method, bad quantity)."""


class NotFoundError(SaleError):
    """A referenced product or customer does not exist for the tenant."""


class ProductNotFoundError(NotFoundError):
    pass


class CustomerNotFoundError(NotFoundError):
    pass


class InsufficientStockError(SaleError):
    """Requested quantity is not on hand at recording time."""


class SalePersistenceError(SaleError):
    """The database rejected or failed the sale's unit of work."""


@dataclass(frozen=True)
class SaleItemInput:
    product_id: str
    quantity: int


@dataclass
class CreateSaleInput:
    tenant_id: str
    items: list[SaleItemInput]
    payment_method: str
    customer_id: Optional[str] = None
    notes: Optional[str] = None
    discount_cents: int = 0


@dataclass
class _PricedLine:
    product_id: str
    quantity: int
    unit_price_cents: int
    subtotal_cents: int = field(init=False)

    def __post_init__(self):
        self.subtotal_cents = self.unit_price_cents * self.quantity


def compute_tax_cents(subtotal_cents: int, rate: float) -> int:
    """Order-level tax, rounded half-up to the cent."""
    tax = Decimal(subtotal_cents) * Decimal(str(rate))
    return int(tax.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _validate_input(sale_input: CreateSaleInput) -> None:
    if not sale_input.tenant_id:
        raise SaleValidationError("tenant_id is required")

    if not sale_input.items:
        raise SaleValidationError("Sale must have at least one item")

    if not sale_input.payment_method or not str(sale_input.payment_method).strip():
        raise SaleValidationError("Payment method is required")

    for item in sale_input.items:
        if not item.product_id:
            raise SaleValidationError("Every item needs a product_id")
        if isinstance(item.quantity, bool) or not isinstance(item.quantity, int) or item.quantity <= 0:
            raise SaleValidationError(
                f"Quantity must be a positive integer for product: {item.product_id}",
                details={"product_id": item.product_id, "quantity": item.quantity},
            )

    if isinstance(sale_input.discount_cents, bool) or not isinstance(sale_input.discount_cents, int):
        raise SaleValidationError("discount_cents must be an integer")
    if sale_input.discount_cents < 0:
        raise SaleValidationError("Discount cannot be negative")


def _price_lines(sale_input: CreateSaleInput) -> list[_PricedLine]:
    """Resolve current selling prices and gate on availability (no locks)."""
    tenant_id = sale_input.tenant_id
    lines: list[_PricedLine] = []
    requested: dict[str, int] = {}
    names: dict[str, str] = {}

    for item in sale_input.items:
        product = catalog_service.get_product(item.product_id, tenant_id)
        if product is None or not product.is_active:
            raise ProductNotFoundError(
                f"Product not found: {item.product_id}",
                details={"product_id": item.product_id},
            )
        names[product.id] = product.name
        requested[product.id] = requested.get(product.id, 0) + item.quantity
        lines.append(_PricedLine(product.id, item.quantity, product.selling_price_cents))

    # Lines for the same product are checked against their combined quantity
    for product_id, quantity in requested.items():
        if not catalog_service.check_stock_availability(product_id, tenant_id, quantity):
            available = stock_ledger.get_quantity(product_id, tenant_id) or 0
            raise InsufficientStockError(
                f"Insufficient stock for product: {names[product_id]}",
                details={
                    "product_id": product_id,
                    "product_name": names[product_id],
                    "requested_quantity": quantity,
                    "available_quantity": available,
                },
            )

    return lines


def _accrue_loyalty(customer_id: str, tenant_id: str, total_cents: int) -> None:
    cents_per_point = current_app.config.get("LOYALTY_CENTS_PER_POINT", 10000)
    stmt = (
        update(Customer)
        .where(Customer.id == customer_id, Customer.tenant_id == tenant_id)
        .values(
            loyalty_points=Customer.loyalty_points + (total_cents // cents_per_point),
            total_spent_cents=Customer.total_spent_cents + total_cents,
            total_visits=Customer.total_visits + 1,
            last_visit_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    db.session.execute(stmt)


def _record_sale(sale_input: CreateSaleInput) -> tuple[SaleTransaction, list[_PricedLine]]:
    tenant_id = sale_input.tenant_id

    begin_write()

    if sale_input.customer_id:
        if catalog_service.get_customer(sale_input.customer_id, tenant_id) is None:
            raise CustomerNotFoundError(
                f"Customer not found: {sale_input.customer_id}",
                details={"customer_id": sale_input.customer_id},
            )

    lines = _price_lines(sale_input)

    subtotal_cents = sum(line.subtotal_cents for line in lines)
    tax_cents = compute_tax_cents(subtotal_cents, current_app.config.get("SALES_TAX_RATE", 0.07))
    discount_cents = sale_input.discount_cents
    if discount_cents > subtotal_cents + tax_cents:
        raise SaleValidationError(
            "Discount cannot exceed the sale total",
            details={"discount_cents": discount_cents, "max_discount_cents": subtotal_cents + tax_cents},
        )
    total_cents = subtotal_cents + tax_cents - discount_cents

    sale = SaleTransaction(
        tenant_id=tenant_id,
        transaction_number=next_transaction_number(tenant_id=tenant_id),
        customer_id=sale_input.customer_id or None,
        subtotal_cents=subtotal_cents,
        tax_cents=tax_cents,
        discount_cents=discount_cents,
        total_cents=total_cents,
        payment_method=sale_input.payment_method.strip(),
        status="completed",
        notes=sale_input.notes or None,
        created_at=utcnow(),
    )
    db.session.add(sale)
    db.session.flush()

    for i, line in enumerate(lines):
        db.session.add(SaleLineItem(
            transaction_id=sale.id,
            line_number=i + 1,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            subtotal_cents=line.subtotal_cents,
        ))

    if sale_input.customer_id:
        _accrue_loyalty(sale_input.customer_id, tenant_id, total_cents)

    db.session.commit()
    return sale, lines


def create_sale(sale_input: CreateSaleInput, *, dispatcher: EventDispatcher) -> SaleTransaction:
    """
    Record a completed sale and announce it.

    Steps 1-7 (validate, price, number, insert, loyalty, commit) are one DB
    transaction: any failure rolls everything back and nothing is published.
    Publication happens after commit and can never fail the sale.
    """
    _validate_input(sale_input)

    try:
        sale, lines = run_with_retry(lambda: _record_sale(sale_input))
    except SaleError:
        raise
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to persist sale for tenant %s", sale_input.tenant_id)
        raise SalePersistenceError("Failed to persist sale", details={"error": str(exc)}) from exc

    current_app.logger.info(
        "Sale %s (%s) completed for tenant %s: total_cents=%d",
        sale.transaction_number, sale.id, sale.tenant_id, sale.total_cents,
    )

    event = SaleCompleted(
        transaction_id=sale.id,
        tenant_id=sale.tenant_id,
        items=tuple(
            SaleCompletedItem(product_id=line.product_id, quantity=line.quantity, price=line.unit_price_cents)
            for line in lines
        ),
        total_amount=sale.total_cents,
        customer_id=sale.customer_id,
        timestamp=sale.created_at,
    )
    _publish_safely(dispatcher, event)

    return sale


def _publish_safely(dispatcher: EventDispatcher, event: SaleCompleted) -> None:
    try:
        dispatcher.publish(event)
    except Exception:
        # The sale is committed; a broken bus must not make it look failed
        current_app.logger.exception("Failed to publish %s for transaction %s", event.topic, event.transaction_id)


def get_sale(transaction_id: str, tenant_id: str) -> Optional[SaleTransaction]:
    return (
        db.session.query(SaleTransaction)
        .filter_by(id=transaction_id, tenant_id=tenant_id)
        .first()
    )
