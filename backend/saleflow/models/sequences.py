from __future__ import annotations

from ..extensions import db
from saleflow.time_utils import to_utc_z


class TransactionSequence(db.Model):
    """
    Atomic per-tenant number sequences.

    WHY: Two registers finishing a sale in the same instant must never be
    handed the same human-readable transaction number.
    """
    __tablename__ = "transaction_sequences"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sequence_type", name="uq_transaction_sequences_tenant_type"),
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    sequence_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "sequence_type": self.sequence_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
