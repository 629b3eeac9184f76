# ------ cakeshop/model/__init__.py ------

from .user import User
from .category import Category
from .product import Product
from .coupon import Coupon
from .order import Order, OrderStatus, DeliveryType
from .draft import BookingDraft
from .notification import Notification

__all__ = [
    "User",
    "Category",
    "Product",
    "Coupon",
    "Order",
    "OrderStatus",
    "DeliveryType",
    "BookingDraft",
    "Notification",
]
