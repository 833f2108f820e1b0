from __future__ import annotations

from ..extensions import db
from saleflow.time_utils import to_utc_z
from .base import new_uuid


class ReconciliationFlag(db.Model):
    """
    Operational follow-up for a committed sale whose side effects failed.

    A sale is never rolled back because downstream stock accounting failed;
    instead a flag is raised here for someone to reconcile by hand.
    """
    __tablename__ = "reconciliation_flags"
    __table_args__ = (
        db.Index("ix_reconciliation_flags_tenant_resolved", "tenant_id", "is_resolved"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    transaction_id = db.Column(db.String(36), db.ForeignKey("sale_transactions.id"), nullable=False, index=True)

    kind = db.Column(db.String(32), nullable=False)  # stock_deduction_failed
    detail = db.Column(db.Text, nullable=True)

    is_resolved = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "transaction_id": self.transaction_id,
            "kind": self.kind,
            "detail": self.detail,
            "is_resolved": self.is_resolved,
            "created_at": to_utc_z(self.created_at),
            "resolved_at": to_utc_z(self.resolved_at) if self.resolved_at else None,
        }
