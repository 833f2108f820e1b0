from .types import Event, SaleCompleted, SaleCompletedItem, StockUpdated, StockDeductionFailed
from .dispatcher import EventDispatcher, get_dispatcher

__all__ = [
    'Event', 'SaleCompleted', 'SaleCompletedItem', 'StockUpdated', 'StockDeductionFailed',
    'EventDispatcher', 'get_dispatcher',
]
