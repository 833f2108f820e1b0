from __future__ import annotations

from ..extensions import db
from saleflow.time_utils import to_utc_z
from .base import new_uuid


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are scoped to tenants via tenant_id.
    SKUs are unique within a tenant; barcodes are optional scannable codes.

    Catalog management owns the lifecycle of this row. The sale pipeline only
    reads it (selling price and active flag at the moment of sale).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        db.Index("ix_products_tenant_barcode", "tenant_id", "barcode"),
        db.Index("ix_products_tenant_active", "tenant_id", "is_active"),
        db.CheckConstraint("cost_price_cents >= 0", name="cost_price_non_negative"),
        db.CheckConstraint("selling_price_cents >= 0", name="selling_price_non_negative"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    barcode = db.Column(db.String(128), nullable=True)
    category = db.Column(db.String(128), nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    # Percentage (7.0 = 7%). Informational: sales apply the configured order rate.
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    tenant = db.relationship("Tenant", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "sku": self.sku,
            "barcode": self.barcode,
            "category": self.category,
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "tax_rate": float(self.tax_rate or 0),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockRecord(db.Model):
    """
    Authoritative on-hand quantity for one (product, tenant, location).

    OWNERSHIP: Only services.stock_ledger writes this table. Every write is
    paired with exactly one StockMovement in the same DB transaction, so the
    movement log always explains the current quantity.
    """
    __tablename__ = "stock_records"
    __table_args__ = (
        db.UniqueConstraint("product_id", "tenant_id", "location_id", name="uq_stock_product_tenant_location"),
        db.CheckConstraint("quantity >= 0", name="quantity_non_negative"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    location_id = db.Column(db.String(64), nullable=False, default="main")

    quantity = db.Column(db.Integer, nullable=False, default=0)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_id": self.product_id,
            "location_id": self.location_id,
            "quantity": self.quantity,
            "last_updated": to_utc_z(self.last_updated),
        }


class StockMovement(db.Model):
    """
    Append-only audit row for one StockRecord change.

    Invariant: old_quantity + quantity_change == new_quantity.
    Rows are never updated or deleted.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_tenant_product_created", "tenant_id", "product_id", "created_at"),
        db.CheckConstraint("old_quantity + quantity_change = new_quantity", name="movement_balances"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    location_id = db.Column(db.String(64), nullable=False)

    quantity_change = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(16), nullable=False, index=True)  # sale, restock, adjustment
    old_quantity = db.Column(db.Integer, nullable=False)
    new_quantity = db.Column(db.Integer, nullable=False)

    # What caused the change (sale transaction id, count sheet, etc.)
    reference = db.Column(db.String(64), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_id": self.product_id,
            "location_id": self.location_id,
            "quantity_change": self.quantity_change,
            "reason": self.reason,
            "old_quantity": self.old_quantity,
            "new_quantity": self.new_quantity,
            "reference": self.reference,
            "created_at": to_utc_z(self.created_at),
        }
