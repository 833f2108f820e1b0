from __future__ import annotations

from ..extensions import db
from saleflow.time_utils import to_utc_z
from .base import new_uuid


class Tenant(db.Model):
    """
    Multi-tenant root: every business account is a Tenant.

    All catalog, stock, sale and pattern rows carry tenant_id and every
    query in the services is scoped by it. No data crosses tenants.
    """
    __tablename__ = "tenants"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)  # Short code for lookups

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
