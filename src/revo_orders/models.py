"""
SQLAlchemy ORM models for the order lifecycle engine.

Every tenant owned row carries `tenant_id`; the engine never queries one of
these tables without filtering on it.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from .constants import ItemStatus, OrderStatus, OrderType, TableStatus
from .datetime_utils import utcnow_naive


class JSONBType(TypeDecorator):
    """
    JSONB on PostgreSQL, TEXT with JSON serialization everywhere else.

    This allows tests to run with SQLite while production uses PostgreSQL JSONB.
    """

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        return json.dumps(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        if isinstance(value, str):
            return json.loads(value)
        return value

    @property
    def python_type(self):
        return object


JSONB_TYPE = JSONBType()


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class Tenant(Base):
    __tablename__ = "revo_tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Tenant scoped counter row for order numbering; locked while allocating
    last_order_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow_naive, server_default=func.now(), nullable=False
    )


class Zone(Base):
    __tablename__ = "revo_zones"
    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_zone_tenant_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("revo_tenants.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(80), nullable=False)

    tables: Mapped[list[RestaurantTable]] = relationship("RestaurantTable", back_populates="zone")


class RestaurantTable(Base):
    """
    Physical table. `status` is derived from order activity and written only
    by the order lifecycle engine.
    """

    __tablename__ = "revo_tables"
    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name="uq_table_tenant_number"),
        Index("ix_table_tenant_status", "tenant_id", "status"),
        CheckConstraint("capacity > 0", name="chk_table_capacity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("revo_tenants.id"), nullable=False)
    zone_id: Mapped[int | None] = mapped_column(ForeignKey("revo_zones.id"), nullable=True)
    number: Mapped[str] = mapped_column(String(10), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=TableStatus.AVAILABLE.value
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow_naive, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False
    )

    zone: Mapped[Zone | None] = relationship("Zone", back_populates="tables")
    orders: Mapped[list[Order]] = relationship("Order", back_populates="table")


class Product(Base):
    """Catalog entry. Read-only from the engine's point of view."""

    __tablename__ = "revo_products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="chk_product_price_positive"),
        Index("ix_product_tenant", "tenant_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("revo_tenants.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Order(Base):
    __tablename__ = "revo_orders"
    __table_args__ = (
        UniqueConstraint("tenant_id", "order_number", name="uq_order_tenant_number"),
        Index("ix_order_tenant_status", "tenant_id", "status"),
        Index("ix_order_tenant_table", "tenant_id", "table_id"),
        Index("ix_order_tenant_created", "tenant_id", "created_at"),
        CheckConstraint("total >= 0", name="chk_order_total_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("revo_tenants.id"), nullable=False)
    order_number: Mapped[int] = mapped_column(Integer, nullable=False)
    order_type: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=OrderStatus.PENDING.value
    )
    table_id: Mapped[int | None] = mapped_column(ForeignKey("revo_tables.id"), nullable=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    payment_method: Mapped[str | None] = mapped_column(String(32), nullable=True)
    payment_meta: Mapped[dict[str, Any] | None] = mapped_column(JSONB_TYPE, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow_naive, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False
    )

    table: Mapped[RestaurantTable | None] = relationship("RestaurantTable", back_populates="orders")
    items: Mapped[list[OrderItem]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    @property
    def is_dine_in(self) -> bool:
        return self.order_type == OrderType.DINE_IN.value

    def __repr__(self):
        return f"<Order #{self.order_number} tenant={self.tenant_id} {self.status}>"


class OrderItem(Base):
    __tablename__ = "revo_order_items"
    __table_args__ = (
        Index("ix_order_item_order_id", "order_id"),
        Index("ix_order_item_product_id", "product_id"),
        CheckConstraint("quantity > 0", name="chk_order_item_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("revo_orders.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("revo_products.id"), nullable=False)
    # Snapshots taken when the item was added; later catalog edits do not apply
    product_name: Mapped[str] = mapped_column(String(120), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    modifiers: Mapped[list[Any] | None] = mapped_column(JSONB_TYPE, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ItemStatus.PENDING.value
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow_naive, server_default=func.now(), nullable=False
    )

    order: Mapped[Order] = relationship("Order", back_populates="items")

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.unit_price) * self.quantity
