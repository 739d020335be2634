"""
Pydantic schemas for request validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from revo_orders.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_ID,
    MAX_ITEM_QUANTITY,
    MAX_MONEY,
    MAX_PAGE_SIZE,
    OrderStatus,
    OrderType,
    PaymentMethod,
)


def _normalize_enum_value(v):
    if isinstance(v, str):
        return v.strip().lower()
    return v


class OrderItemRequest(BaseModel):
    product_id: int = Field(..., gt=0, le=MAX_ID)
    quantity: int = Field(default=1, ge=1, le=MAX_ITEM_QUANTITY)
    modifiers: list[dict[str, Any]] | None = None
    notes: str | None = Field(None, max_length=200)


class CreateOrderRequest(BaseModel):
    order_type: OrderType
    table_id: int | None = Field(None, gt=0, le=MAX_ID)
    notes: str | None = Field(None, max_length=500)
    items: list[OrderItemRequest] = Field(..., min_length=1)

    @field_validator("order_type", mode="before")
    @classmethod
    def normalize_order_type(cls, v):
        return _normalize_enum_value(v)


class AddItemsRequest(BaseModel):
    items: list[OrderItemRequest] = Field(..., min_length=1)


class UpdateStatusRequest(BaseModel):
    status: str = Field(..., min_length=1)


class PaymentLineRequest(BaseModel):
    method: PaymentMethod
    amount: Decimal = Field(..., gt=0, le=MAX_MONEY)

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v):
        return _normalize_enum_value(v)

    @field_validator("method")
    @classmethod
    def reject_nested_mixed(cls, v):
        if v == PaymentMethod.MIXED:
            raise ValueError("Itemized payments must use a concrete method")
        return v


class PayOrderRequest(BaseModel):
    payment_method: PaymentMethod
    payments: list[PaymentLineRequest] | None = None

    @field_validator("payment_method", mode="before")
    @classmethod
    def normalize_payment_method(cls, v):
        return _normalize_enum_value(v)


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class OrderListParams(BaseModel):
    status: OrderStatus | None = None
    order_type: OrderType | None = None
    table_id: int | None = Field(None, gt=0, le=MAX_ID)
    date_from: datetime | None = None
    date_to: datetime | None = None
    page: int = Field(default=1, ge=1, le=MAX_ID)
    per_page: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("status", "order_type", mode="before")
    @classmethod
    def normalize_filters(cls, v):
        return _normalize_enum_value(v) or None


class DailySummaryParams(BaseModel):
    day: date | None = None


class CreateTableRequest(BaseModel):
    number: str = Field(..., min_length=1, max_length=10)
    capacity: int = Field(default=4, ge=1, le=50)
    zone_id: int | None = Field(None, gt=0, le=MAX_ID)
