from __future__ import annotations

from ..extensions import db
from saleflow.time_utils import to_utc_z
from .base import new_uuid

SALE_STATUSES = ("completed", "refunded", "cancelled")


class SaleTransaction(db.Model):
    """
    A completed sale.

    Created once, together with its line items, inside a single DB
    transaction. Amounts are integer cents and always balance:
        total_cents == subtotal_cents + tax_cents - discount_cents
        subtotal_cents == sum(line.subtotal_cents)
    """
    __tablename__ = "sale_transactions"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "transaction_number", name="uq_sale_transactions_tenant_number"),
        db.Index("ix_sale_transactions_tenant_status_created", "tenant_id", "status", "created_at"),
        db.CheckConstraint(
            "total_cents = subtotal_cents + tax_cents - discount_cents",
            name="totals_balance",
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)

    # Human-readable number (e.g., "TXN-20261019-000042")
    transaction_number = db.Column(db.String(64), nullable=False)

    customer_id = db.Column(db.String(36), db.ForeignKey("customers.id"), nullable=True, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="completed", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "SaleLineItem",
        backref="transaction",
        lazy=True,
        order_by="SaleLineItem.line_number",
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "transaction_number": self.transaction_number,
            "customer_id": self.customer_id,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLineItem(db.Model):
    """One product line on a SaleTransaction. Never mutated after insert."""
    __tablename__ = "sale_line_items"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", "line_number", name="uq_sale_line_items_transaction_line"),
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        db.CheckConstraint("subtotal_cents = unit_price_cents * quantity", name="line_balances"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    transaction_id = db.Column(db.String(36), db.ForeignKey("sale_transactions.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    # Captured at sale time; later catalog price changes do not touch it
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
        }
