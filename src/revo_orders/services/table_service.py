"""
Table lookups and occupancy writes used by the order engine.

Occupancy (`RestaurantTable.status`) is derived from order activity. Only
the order engine calls `set_table_status`, always inside the unit of work
that changed the order, and always after `lock_table` so the decision and
the write see the same data.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from revo_orders.constants import TERMINAL_ORDER_STATUSES, TableStatus
from revo_orders.db import get_session
from revo_orders.errors import (
    DuplicateTableNumberError,
    TableNotFoundError,
    TenantNotFoundError,
    ValidationError,
)
from revo_orders.logging_config import get_logger
from revo_orders.models import Order, RestaurantTable, Zone
from revo_orders.validation import is_storable_id

logger = get_logger(__name__)


def find_table(db_session: Session, tenant_id: int, table_id: int) -> RestaurantTable | None:
    if not (is_storable_id(tenant_id) and is_storable_id(table_id)):
        return None
    return db_session.scalar(
        select(RestaurantTable).where(
            RestaurantTable.tenant_id == tenant_id,
            RestaurantTable.id == table_id,
        )
    )


def lock_table(db_session: Session, tenant_id: int, table_id: int) -> RestaurantTable:
    """Load the table row with a write lock held until the unit of work ends."""
    if not (is_storable_id(tenant_id) and is_storable_id(table_id)):
        raise TableNotFoundError(table_id)
    table = db_session.scalar(
        select(RestaurantTable)
        .where(RestaurantTable.tenant_id == tenant_id, RestaurantTable.id == table_id)
        .with_for_update()
    )
    if table is None:
        raise TableNotFoundError(table_id)
    return table


def set_table_status(
    db_session: Session, tenant_id: int, table_id: int, status: TableStatus
) -> RestaurantTable:
    table = lock_table(db_session, tenant_id, table_id)
    if table.status != status.value:
        logger.info(
            "Table %s of tenant %s: %s -> %s", table.number, tenant_id, table.status, status.value
        )
        table.status = status.value
    return table


def count_active_orders_on_table(
    db_session: Session,
    tenant_id: int,
    table_id: int,
    excluding_order_id: int | None = None,
) -> int:
    """Count non-terminal orders attached to the table, optionally skipping one."""
    stmt = select(func.count(Order.id)).where(
        Order.tenant_id == tenant_id,
        Order.table_id == table_id,
        Order.status.not_in([status.value for status in TERMINAL_ORDER_STATUSES]),
    )
    if excluding_order_id is not None:
        stmt = stmt.where(Order.id != excluding_order_id)
    return db_session.scalar(stmt) or 0


def release_table_if_idle(
    db_session: Session, order: Order, released_status: TableStatus
) -> bool:
    """
    Move the order's table to `released_status` unless another active order
    still holds it. Returns True when the table status was written.
    """
    if not order.is_dine_in or order.table_id is None:
        return False

    # Lock first, then count: a concurrent settlement on the same table waits
    # here and sees this transaction's result once it commits.
    lock_table(db_session, order.tenant_id, order.table_id)
    others = count_active_orders_on_table(
        db_session, order.tenant_id, order.table_id, excluding_order_id=order.id
    )
    if others:
        logger.info(
            "Table %s keeps its status: %s other active order(s)", order.table_id, others
        )
        return False

    set_table_status(db_session, order.tenant_id, order.table_id, released_status)
    return True


# ---------------------------------------------------------------------------
# Table administration (seeding, back office)
# ---------------------------------------------------------------------------


def create_table(
    tenant_id: int,
    number: str,
    *,
    capacity: int = 4,
    zone_id: int | None = None,
) -> RestaurantTable:
    number = (number or "").strip()
    if not number or len(number) > 10:
        raise ValidationError("Table number must have between 1 and 10 characters")
    if capacity < 1 or capacity > 50:
        raise ValidationError("Table capacity must be between 1 and 50")

    if not is_storable_id(tenant_id):
        raise TenantNotFoundError(tenant_id)
    if zone_id is not None and not is_storable_id(zone_id):
        raise ValidationError("Zone not found", zone_id=zone_id)

    with get_session() as db_session:
        if zone_id is not None:
            zone = db_session.scalar(
                select(Zone).where(Zone.tenant_id == tenant_id, Zone.id == zone_id)
            )
            if zone is None:
                raise ValidationError("Zone not found", zone_id=zone_id)

        existing = db_session.scalar(
            select(RestaurantTable.id).where(
                RestaurantTable.tenant_id == tenant_id, RestaurantTable.number == number
            )
        )
        if existing is not None:
            raise DuplicateTableNumberError(number)

        table = RestaurantTable(
            tenant_id=tenant_id,
            number=number,
            capacity=capacity,
            zone_id=zone_id,
            status=TableStatus.AVAILABLE.value,
        )
        db_session.add(table)
        db_session.flush()
        logger.info("Created table %s for tenant %s", number, tenant_id)
        return table


def list_tables(tenant_id: int) -> list[RestaurantTable]:
    if not is_storable_id(tenant_id):
        raise TenantNotFoundError(tenant_id)
    with get_session() as db_session:
        stmt = (
            select(RestaurantTable)
            .where(RestaurantTable.tenant_id == tenant_id, RestaurantTable.is_active.is_(True))
            .order_by(RestaurantTable.number)
        )
        return list(db_session.scalars(stmt))


def get_table(tenant_id: int, table_id: int) -> RestaurantTable:
    with get_session() as db_session:
        table = find_table(db_session, tenant_id, table_id)
        if table is None:
            raise TableNotFoundError(table_id)
        return table
