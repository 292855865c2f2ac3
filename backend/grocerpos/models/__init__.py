from .auth import User, SessionToken
from .catalog import Product, Customer, Supplier
from .inventory import ProductBatch, StockMovement, MOVEMENT_TYPES
from .sales import Sale, SaleLine, PAYMENT_METHODS, PAYMENT_STATUSES
from .purchases import Purchase, PurchaseLine
from .audit import AuditLog, AppendOnlyViolation

__all__ = [
    'User', 'SessionToken',
    'Product', 'Customer', 'Supplier',
    'ProductBatch', 'StockMovement', 'MOVEMENT_TYPES',
    'Sale', 'SaleLine', 'PAYMENT_METHODS', 'PAYMENT_STATUSES',
    'Purchase', 'PurchaseLine',
    'AuditLog', 'AppendOnlyViolation',
]
