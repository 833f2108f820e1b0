# Overview: Learns purchase and co-purchase counts from completed sales.

from __future__ import annotations

from flask import current_app

from ..events import SaleCompleted
from ..services import recommendations_service


def handle_sale_completed(event: SaleCompleted) -> None:
    """
    SaleCompleted subscriber updating purchase patterns in one transaction.

    Best-effort: a failure rolls back this sale's pattern updates only and is
    logged, never raised.
    """
    try:
        recommendations_service.update_purchase_patterns(
            [(item.product_id, item.quantity) for item in event.items],
            event.tenant_id,
            purchased_at=event.timestamp,
        )
    except Exception:
        current_app.logger.exception(
            "Purchase pattern update failed for transaction %s (tenant %s)",
            event.transaction_id, event.tenant_id,
        )
        return

    current_app.logger.info("Purchase patterns updated for transaction %s", event.transaction_id)
