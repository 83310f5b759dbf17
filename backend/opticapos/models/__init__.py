from .auth import User
from .catalog import Category, Product
from .sales import Sale, SaleItem
from .notifications import Notification

__all__ = [
    'User',
    'Category', 'Product',
    'Sale', 'SaleItem',
    'Notification',
]
