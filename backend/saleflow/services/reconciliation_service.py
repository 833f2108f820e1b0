# Overview: Reconciliation flags for sales whose downstream bookkeeping failed.

from __future__ import annotations

from ..extensions import db
from ..models import ReconciliationFlag
from saleflow.time_utils import utcnow
from .concurrency import run_with_retry

KIND_STOCK_DEDUCTION_FAILED = "stock_deduction_failed"


class ReconciliationError(Exception):
    """Raised for reconciliation flag operation errors."""
    pass


def flag_stock_deduction_failure(*, tenant_id: str, transaction_id: str, detail: str) -> ReconciliationFlag:
    """Record that stock for a committed sale was not deducted. Own transaction."""
    def _op():
        flag = ReconciliationFlag(
            tenant_id=tenant_id,
            transaction_id=transaction_id,
            kind=KIND_STOCK_DEDUCTION_FAILED,
            detail=detail,
        )
        db.session.add(flag)
        db.session.commit()
        return flag

    return run_with_retry(_op)


def list_open_flags(tenant_id: str) -> list[ReconciliationFlag]:
    return (
        db.session.query(ReconciliationFlag)
        .filter_by(tenant_id=tenant_id, is_resolved=False)
        .order_by(ReconciliationFlag.created_at.asc())
        .all()
    )


def resolve_flag(flag_id: str, tenant_id: str) -> ReconciliationFlag:
    def _op():
        flag = db.session.query(ReconciliationFlag).filter_by(id=flag_id, tenant_id=tenant_id).first()
        if not flag:
            raise ReconciliationError("Reconciliation flag not found")
        if flag.is_resolved:
            raise ReconciliationError("Reconciliation flag already resolved")
        flag.is_resolved = True
        flag.resolved_at = utcnow()
        db.session.commit()
        return flag

    return run_with_retry(_op)
