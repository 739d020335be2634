"""
Typed errors raised by the order lifecycle engine.

Every rejected precondition maps to exactly one error class. Each class
carries an HTTP status so the web layer can translate it without knowing
the business rule that produced it.
"""

from __future__ import annotations

from decimal import Decimal
from http import HTTPStatus
from typing import Any


class OrderingError(Exception):
    """Base class for all engine errors."""

    code = "ORDERING_ERROR"
    http_status = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, **{k: _jsonable(v) for k, v in self.details.items()}}


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "value"):
        return value.value
    return value


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(OrderingError):
    """Raised when the request itself is malformed."""

    code = "VALIDATION_ERROR"
    http_status = HTTPStatus.BAD_REQUEST


class MissingTableError(ValidationError):
    code = "MISSING_TABLE"

    def __init__(self):
        super().__init__("Dine-in orders require a table")


class ProductUnavailableError(ValidationError):
    code = "PRODUCT_UNAVAILABLE"

    def __init__(self, product_id: int, product_name: str):
        super().__init__(
            f'"{product_name}" is not available',
            product_id=product_id,
            product_name=product_name,
        )


class OrderClosedError(ValidationError):
    code = "ORDER_CLOSED"

    def __init__(self, order_id: int, status):
        super().__init__(
            f"Order {order_id} is closed ({_jsonable(status)})",
            order_id=order_id,
            status=status,
        )


# ---------------------------------------------------------------------------
# Not found (cross-tenant lookups land here too)
# ---------------------------------------------------------------------------


class NotFoundError(OrderingError):
    code = "NOT_FOUND"
    http_status = HTTPStatus.NOT_FOUND


class TenantNotFoundError(NotFoundError):
    code = "TENANT_NOT_FOUND"

    def __init__(self, tenant_id: int):
        super().__init__("Tenant not found", tenant_id=tenant_id)


class OrderNotFoundError(NotFoundError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: int):
        super().__init__("Order not found", order_id=order_id)


class ItemNotFoundError(NotFoundError):
    code = "ITEM_NOT_FOUND"

    def __init__(self, order_id: int, item_id: int):
        super().__init__("Order item not found", order_id=order_id, item_id=item_id)


class TableNotFoundError(NotFoundError):
    code = "TABLE_NOT_FOUND"

    def __init__(self, table_id: int):
        super().__init__("Table not found", table_id=table_id)


class ProductNotFoundError(NotFoundError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found", product_id=product_id)


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------


class ConflictError(OrderingError):
    code = "CONFLICT"
    http_status = HTTPStatus.CONFLICT


class AlreadyPaidError(ConflictError):
    code = "ALREADY_PAID"

    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} has already been paid", order_id=order_id)


class DuplicateTableNumberError(ConflictError):
    code = "DUPLICATE_TABLE_NUMBER"

    def __init__(self, number: str):
        super().__init__(f"Table number {number} already exists", number=number)


class InvalidTransitionError(OrderingError):
    """Raised when a status change is not in the transition table."""

    code = "INVALID_TRANSITION"
    http_status = HTTPStatus.CONFLICT

    def __init__(self, current, requested, entity: str = "order"):
        super().__init__(
            f"Cannot change {entity} from {_jsonable(current)} to {_jsonable(requested)}",
            entity=entity,
            current=current,
            requested=requested,
        )
        self.current = current
        self.requested = requested
        self.entity = entity


class InsufficientPaymentError(OrderingError):
    """Raised when itemized payments do not cover the order total."""

    code = "INSUFFICIENT_PAYMENT"
    http_status = HTTPStatus.UNPROCESSABLE_ENTITY

    def __init__(self, paid: Decimal, total: Decimal):
        super().__init__(
            f"Payments (${paid:.2f}) do not cover the total (${total:.2f})",
            paid=paid,
            total=total,
        )
        self.paid = paid
        self.total = total


class TransactionFailedError(OrderingError):
    """The unit of work was aborted by the store; safe to retry as a whole."""

    code = "TRANSACTION_FAILED"
    http_status = HTTPStatus.SERVICE_UNAVAILABLE
