from __future__ import annotations

from ..extensions import db
from saleflow.time_utils import to_utc_z
from .base import new_uuid


class Customer(db.Model):
    """
    Customer master data for tracking purchases and loyalty.

    MULTI-TENANT: Customers are scoped to tenants via tenant_id.

    Denormalized aggregates (loyalty_points, total_spent_cents, total_visits,
    last_visit_at) are advanced inside the same DB transaction that records
    a completed sale.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "email", name="uq_customers_tenant_email"),
        db.Index("ix_customers_tenant_active", "tenant_id", "is_active"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    loyalty_points = db.Column(db.Integer, nullable=False, default=0)
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)
    total_visits = db.Column(db.Integer, nullable=False, default=0)
    last_visit_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("customers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "is_active": self.is_active,
            "loyalty_points": self.loyalty_points,
            "total_spent_cents": self.total_spent_cents,
            "total_visits": self.total_visits,
            "last_visit_at": to_utc_z(self.last_visit_at) if self.last_visit_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
