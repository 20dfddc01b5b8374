from .auth import Worker, SessionToken
from .catalog import Product
from .sales import Sale, SaleLine
from .inventory import StockMovement

__all__ = [
    'Worker', 'SessionToken',
    'Product',
    'Sale', 'SaleLine',
    'StockMovement',
]
