# Overview: Deducts stock for completed sales; failures become reconciliation flags.

from __future__ import annotations

from flask import current_app

from ..events import EventDispatcher, SaleCompleted, StockDeductionFailed, StockUpdated
from ..services import reconciliation_service, stock_ledger
from ..services.stock_ledger import StockUpdate


class InventoryCompletionHandler:
    """
    SaleCompleted subscriber that deducts the sold items from the ledger.

    The sale is already committed when this runs. If deduction fails (stock
    ran out between recording and deduction, or no stock record exists) the
    error is logged, a reconciliation flag is raised and StockDeductionFailed
    is published. Nothing is retried and the sale is never touched.
    """

    def __init__(self, dispatcher: EventDispatcher):
        self.dispatcher = dispatcher

    def __call__(self, event: SaleCompleted) -> None:
        location_id = current_app.config.get("DEFAULT_STOCK_LOCATION", stock_ledger.DEFAULT_LOCATION)
        updates = [
            StockUpdate(
                product_id=item.product_id,
                tenant_id=event.tenant_id,
                quantity=item.quantity,
                reason="sale",
                location_id=location_id,
                reference=event.transaction_id,
            )
            for item in event.items
        ]

        try:
            movements = stock_ledger.bulk_deduct(updates)
        except Exception as exc:
            self._on_failure(event, exc)
            return

        current_app.logger.info(
            "Stock deducted for transaction %s (%d movements)",
            event.transaction_id, len(movements),
        )
        for movement in movements:
            self.dispatcher.publish(StockUpdated(
                product_id=movement.product_id,
                tenant_id=movement.tenant_id,
                location_id=movement.location_id,
                old_quantity=movement.old_quantity,
                new_quantity=movement.new_quantity,
                reason=movement.reason,
            ))

    def _on_failure(self, event: SaleCompleted, exc: Exception) -> None:
        current_app.logger.error(
            "Stock deduction failed for transaction %s (tenant %s, items %s): %s",
            event.transaction_id,
            event.tenant_id,
            [item.to_payload() for item in event.items],
            exc,
            exc_info=not isinstance(exc, stock_ledger.StockLedgerError),
        )

        try:
            reconciliation_service.flag_stock_deduction_failure(
                tenant_id=event.tenant_id,
                transaction_id=event.transaction_id,
                detail=str(exc),
            )
        except Exception:
            current_app.logger.exception(
                "Could not record reconciliation flag for transaction %s", event.transaction_id
            )

        self.dispatcher.publish(StockDeductionFailed(
            transaction_id=event.transaction_id,
            tenant_id=event.tenant_id,
            error=str(exc),
            items=event.items,
        ))
