from .auth import User, Profile, UserRole, SessionToken
from .catalog import Category, Brand, Product, RefillOption
from .discounts import Discount
from .sales import Sale, SaleItem
from .settings import StoreSettings
from .activity import ActivityLog

__all__ = [
    'User', 'Profile', 'UserRole', 'SessionToken',
    'Category', 'Brand', 'Product', 'RefillOption',
    'Discount',
    'Sale', 'SaleItem',
    'StoreSettings',
    'ActivityLog',
]
