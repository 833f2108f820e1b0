# Overview: Per-tenant human-readable transaction numbers.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import TransactionSequence
from saleflow.time_utils import date_stamp


class SequenceError(Exception):
    """Raised when number allocation fails."""
    pass


def next_transaction_number(
    *,
    tenant_id: str,
    sequence_type: str = "SALE",
    prefix: str = "TXN",
    pad: int = 6,
) -> str:
    """
    Allocate the next number for a tenant/type inside the caller's transaction.

    The sequence row is incremented with a single UPDATE, which takes the
    row lock until the caller commits; concurrent sales for the same tenant
    queue behind it instead of reading the same counter. The date stamp makes
    numbers readable and keeps them distinct across counter resets.

    Does not commit. Roll back with the caller's unit of work.
    """
    if not tenant_id:
        raise SequenceError("tenant_id is required")
    if not sequence_type:
        raise SequenceError("sequence_type is required")

    stmt = (
        update(TransactionSequence)
        .where(
            TransactionSequence.tenant_id == tenant_id,
            TransactionSequence.sequence_type == sequence_type,
        )
        .values(next_number=TransactionSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        seq = TransactionSequence(tenant_id=tenant_id, sequence_type=sequence_type, next_number=2)
        try:
            # Savepoint: losing the insert race must not discard the caller's work
            with db.session.begin_nested():
                db.session.add(seq)
            next_num = 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _current(tenant_id, sequence_type) - 1
    else:
        next_num = _current(tenant_id, sequence_type) - 1

    return f"{prefix}-{date_stamp()}-{next_num:0{pad}d}"


def _current(tenant_id: str, sequence_type: str) -> int:
    return (
        db.session.query(TransactionSequence.next_number)
        .filter_by(tenant_id=tenant_id, sequence_type=sequence_type)
        .scalar()
    )
