from .inventory import Product, StockEntry
from .sales import Sale, PAYMENT_MODES, PAYMENT_STATUSES

__all__ = [
    'Product', 'StockEntry',
    'Sale', 'PAYMENT_MODES', 'PAYMENT_STATUSES',
]
