from ..events import EventDispatcher, SaleCompleted
from .inventory import InventoryCompletionHandler
from .recommendations import handle_sale_completed as update_recommendations


def register_handlers(dispatcher: EventDispatcher) -> None:
    """Subscribe the downstream consumers of completed sales."""
    dispatcher.subscribe(SaleCompleted, InventoryCompletionHandler(dispatcher))
    dispatcher.subscribe(SaleCompleted, update_recommendations)


__all__ = ['InventoryCompletionHandler', 'update_recommendations', 'register_handlers']
