from .catalog import Product
from .sales import (
    Sale,
    SaleItem,
    SALE_STATUSES,
    SALE_STATUS_PENDING,
    SALE_STATUS_COMPLETED,
    SALE_STATUS_CANCELLED,
)
from .auth import User, USER_STATUS_PENDING, USER_STATUS_APPROVED

__all__ = [
    'Product',
    'Sale', 'SaleItem',
    'SALE_STATUSES', 'SALE_STATUS_PENDING', 'SALE_STATUS_COMPLETED', 'SALE_STATUS_CANCELLED',
    'User', 'USER_STATUS_PENDING', 'USER_STATUS_APPROVED',
]
