from .tenancy import Tenant
from .inventory import Product, StockRecord, StockMovement
from .customers import Customer
from .sales import SaleTransaction, SaleLineItem
from .sequences import TransactionSequence
from .recommendations import PurchasePattern, CoPurchasePattern
from .reconciliation import ReconciliationFlag

__all__ = [
    'Tenant',
    'Product', 'StockRecord', 'StockMovement',
    'Customer',
    'SaleTransaction', 'SaleLineItem',
    'TransactionSequence',
    'PurchasePattern', 'CoPurchasePattern',
    'ReconciliationFlag',
]
