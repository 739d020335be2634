"""
Serializers for consistent API responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from revo_orders.constants import ItemStatus
from revo_orders.models import Order, OrderItem, RestaurantTable


def _money(value) -> str:
    if value is None:
        return "0.00"
    return f"{Decimal(value):.2f}"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_order_item(order_item: OrderItem) -> dict[str, Any]:
    """Serialize OrderItem model."""
    return {
        "id": order_item.id,
        "order_id": order_item.order_id,
        "product_id": order_item.product_id,
        "product_name": order_item.product_name,
        "quantity": order_item.quantity,
        "unit_price": _money(order_item.unit_price),
        "line_total": _money(order_item.line_total),
        "modifiers": order_item.modifiers or [],
        "status": order_item.status,
        "notes": order_item.notes,
        "created_at": _iso(order_item.created_at),
    }


def serialize_table(table: RestaurantTable | None) -> dict[str, Any] | None:
    if table is None:
        return None
    return {
        "id": table.id,
        "number": table.number,
        "zone_id": table.zone_id,
        "capacity": table.capacity,
        "status": table.status,
    }


def serialize_order(order: Order, *, include_items: bool = True) -> dict[str, Any]:
    """Serialize Order model."""
    data = {
        "id": order.id,
        "order_number": order.order_number,
        "order_type": order.order_type,
        "status": order.status,
        "table": serialize_table(order.table),
        "user_id": order.user_id,
        "subtotal": _money(order.subtotal),
        "total": _money(order.total),
        "payment_method": order.payment_method,
        "payments": (order.payment_meta or {}).get("payments", []),
        "paid_at": _iso(order.paid_at),
        "cancelled_at": _iso(order.cancelled_at),
        "notes": order.notes,
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
    }
    if include_items:
        data["items"] = [serialize_order_item(item) for item in order.items]
    return data


def serialize_kitchen_order(order: Order) -> dict[str, Any]:
    """Compact view for the kitchen display: live items only."""
    return {
        "id": order.id,
        "order_number": order.order_number,
        "order_type": order.order_type,
        "status": order.status,
        "table": order.table.number if order.table else None,
        "notes": order.notes,
        "created_at": _iso(order.created_at),
        "items": [
            {
                "id": item.id,
                "name": item.product_name,
                "quantity": item.quantity,
                "notes": item.notes,
                "status": item.status,
                "created_at": _iso(item.created_at),
            }
            for item in order.items
            if item.status != ItemStatus.CANCELLED.value
        ],
    }


def success_response(data: Any, message: str | None = None) -> dict[str, Any]:
    """Create a standardized success response."""
    response = {"status": "success", "data": data, "error": None}
    if message:
        response["message"] = message
    return response


def error_response(error: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Create a standardized error response."""
    response = {"status": "error", "data": None, "error": error}
    if details:
        response["details"] = details
    return response
