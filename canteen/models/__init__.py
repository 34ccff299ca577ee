# canteen/models/__init__.py
from .canteen import Canteen, MenuItem
from .enums import TimeBand
from .hold import Hold, HoldItem
from .order import ActiveOrder, ActiveOrderItem, PastOrder, PastOrderItem
from .user import User

# Export all models
__all__ = [
    "ActiveOrder",
    "ActiveOrderItem",
    "Canteen",
    "Hold",
    "HoldItem",
    "MenuItem",
    "PastOrder",
    "PastOrderItem",
    "TimeBand",
    "User",
]
