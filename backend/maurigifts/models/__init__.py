from .auth import User, SessionToken, OtpCode
from .catalog import Category, Product, PaymentMethod, ProductGuide
from .orders import Order
from .notifications import Notification
from .audit import AuditLog
from .settings import Setting

__all__ = [
    'User', 'SessionToken', 'OtpCode',
    'Category', 'Product', 'PaymentMethod', 'ProductGuide',
    'Order',
    'Notification',
    'AuditLog',
    'Setting',
]
