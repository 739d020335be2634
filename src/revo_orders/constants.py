"""
Application constants and enums.
"""

from decimal import Decimal
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    PAID = "paid"
    CANCELLED = "cancelled"


class ItemStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    CANCELLED = "cancelled"


class OrderType(str, Enum):
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


class TableStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    MOBILE_PAYMENT = "mobile_payment"
    ZELLE = "zelle"
    MIXED = "mixed"


ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.SERVED, OrderStatus.CANCELLED}),
    OrderStatus.SERVED: frozenset({OrderStatus.PAID}),
    OrderStatus.PAID: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

ITEM_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    ItemStatus.PENDING: frozenset({ItemStatus.PREPARING, ItemStatus.CANCELLED}),
    ItemStatus.PREPARING: frozenset({ItemStatus.READY, ItemStatus.CANCELLED}),
    ItemStatus.READY: frozenset({ItemStatus.SERVED}),
    ItemStatus.SERVED: frozenset(),
    ItemStatus.CANCELLED: frozenset(),
}

TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.PAID, OrderStatus.CANCELLED})

TERMINAL_ITEM_STATUSES = frozenset({ItemStatus.SERVED, ItemStatus.CANCELLED})

OPEN_ORDER_STATUSES = frozenset(set(OrderStatus) - TERMINAL_ORDER_STATUSES)

# Orders shown on the kitchen display
KITCHEN_ORDER_STATUSES = frozenset(
    {
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
    }
)

# Absolute tolerance when matching itemized payments against an order total
PAYMENT_TOLERANCE = Decimal("0.01")

MONEY_QUANTUM = Decimal("0.01")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
TOP_PRODUCTS_LIMIT = 5

# Storage ranges: INTEGER primary keys and Numeric(10, 2) money columns
MAX_ID = 2**31 - 1
MAX_MONEY = Decimal("99999999.99")
MAX_ITEM_QUANTITY = 999
MAX_USER_ID_LENGTH = 64
