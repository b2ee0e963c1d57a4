"""Single import point that registers every mapped class on ``Base.metadata``."""

from database.base import Base
from database.enums import LocationType, OrderStatus
from database.inventory import Product, Storage
from database.locations import Location, LocationPrice
from database.orders import Order, OrderRow

__all__ = [
    "Base",
    "Location",
    "LocationPrice",
    "LocationType",
    "Order",
    "OrderRow",
    "OrderStatus",
    "Product",
    "Storage",
]
