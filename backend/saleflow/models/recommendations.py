from __future__ import annotations

from ..extensions import db
from saleflow.time_utils import to_utc_z


class PurchasePattern(db.Model):
    """
    Rolling per-product sales counter for a tenant.

    Best-effort: advanced by the recommendation handler after a sale commits,
    outside the sale's own transaction.
    """
    __tablename__ = "purchase_patterns"
    __table_args__ = (
        db.UniqueConstraint("product_id", "tenant_id", name="uq_purchase_patterns_product_tenant"),
        db.Index("ix_purchase_patterns_tenant_count", "tenant_id", "purchase_count"),
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False)

    # Units sold, not number of sales
    purchase_count = db.Column(db.Integer, nullable=False, default=0)
    last_purchased_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_id": self.product_id,
            "purchase_count": self.purchase_count,
            "last_purchased_at": to_utc_z(self.last_purchased_at) if self.last_purchased_at else None,
            "updated_at": to_utc_z(self.updated_at),
        }


class CoPurchasePattern(db.Model):
    """
    How many sales contained both products of an unordered pair.

    The pair is stored in canonical order (product_a_id < product_b_id) so
    (A, B) and (B, A) always address the same row.
    """
    __tablename__ = "co_purchase_patterns"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "product_a_id", "product_b_id", name="uq_co_purchase_tenant_pair"),
        db.Index("ix_co_purchase_tenant_b", "tenant_id", "product_b_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_a_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False)
    product_b_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False)

    co_purchase_count = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_a_id": self.product_a_id,
            "product_b_id": self.product_b_id,
            "co_purchase_count": self.co_purchase_count,
            "updated_at": to_utc_z(self.updated_at),
        }
