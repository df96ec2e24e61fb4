from .inventory import Category, Product, SellerStock
from .assignments import SellerProduct
from .auth import User
from .documents import Transfer
from .sales import Sale

__all__ = [
    'Category', 'Product', 'SellerStock',
    'SellerProduct',
    'User',
    'Transfer',
    'Sale',
]
