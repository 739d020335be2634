"""
Domain logic around orders: the order lifecycle engine.

Every public function takes the tenant id as its first argument and runs as
one unit of work (`get_session()`): it reads, validates, mutates order, item
and table rows, and then commits or rolls back as a whole. All queries are
filtered by tenant, so an order of another tenant looks exactly like an order
that does not exist.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from revo_orders.constants import (
    DEFAULT_PAGE_SIZE,
    KITCHEN_ORDER_STATUSES,
    MAX_ID,
    MAX_PAGE_SIZE,
    MAX_USER_ID_LENGTH,
    OPEN_ORDER_STATUSES,
    TERMINAL_ITEM_STATUSES,
    TERMINAL_ORDER_STATUSES,
    TOP_PRODUCTS_LIMIT,
    ItemStatus,
    OrderStatus,
    OrderType,
    PaymentMethod,
    TableStatus,
)
from revo_orders.datetime_utils import day_bounds, utcnow, utcnow_naive
from revo_orders.db import get_session
from revo_orders.errors import (
    AlreadyPaidError,
    ItemNotFoundError,
    MissingTableError,
    OrderClosedError,
    OrderNotFoundError,
    ProductNotFoundError,
    ProductUnavailableError,
    TableNotFoundError,
    TenantNotFoundError,
    ValidationError,
)
from revo_orders.logging_config import get_logger, tenant_logger
from revo_orders.models import Order, OrderItem
from revo_orders.schemas import OrderItemRequest, PaymentLineRequest
from revo_orders.services.catalog_reader import find_products_by_ids
from revo_orders.services.order_number_allocator import allocate_order_number
from revo_orders.services.order_state_machine import item_state_machine, order_state_machine
from revo_orders.services.payment_reconciler import (
    parse_payment_method,
    reconcile_payment,
    to_money,
)
from revo_orders.services.table_service import (
    find_table,
    release_table_if_idle,
    set_table_status,
)
from revo_orders.validation import is_storable_id, validate_money

logger = get_logger(__name__)

CANCEL_NOTE_PREFIX = "Cancelled: "
NOTE_SEPARATOR = " | "
MAX_NOTE_LENGTH = 500


# ---------------------------------------------------------------------------
# Input normalization (runs before any store access)
# ---------------------------------------------------------------------------


def _coerce_items(items: Iterable[OrderItemRequest | dict] | None) -> list[OrderItemRequest]:
    parsed: list[OrderItemRequest] = []
    for raw in items or []:
        if isinstance(raw, OrderItemRequest):
            parsed.append(raw)
            continue
        try:
            parsed.append(OrderItemRequest.model_validate(raw))
        except PydanticValidationError as exc:
            raise ValidationError(
                "Invalid order item",
                errors=exc.errors(include_url=False, include_context=False, include_input=False),
            ) from exc
    if not parsed:
        raise ValidationError("Add at least one product to the order")
    return parsed


def _parse_order_type(value: OrderType | str) -> OrderType:
    if isinstance(value, OrderType):
        return value
    try:
        return OrderType(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(order_type.value for order_type in OrderType)
        raise ValidationError(
            f"Invalid order type '{value}'. Allowed values: {allowed}", order_type=str(value)
        ) from None


def _clean_user_id(user_id) -> str | None:
    if user_id is None:
        return None
    user_id = str(user_id).strip()
    if len(user_id) > MAX_USER_ID_LENGTH:
        raise ValidationError(f"User id cannot exceed {MAX_USER_ID_LENGTH} characters")
    return user_id or None


def _check_tenant(tenant_id: int) -> None:
    if not is_storable_id(tenant_id):
        raise TenantNotFoundError(tenant_id)


def _clean_note(value: str | None, field: str = "notes") -> str | None:
    if value is None:
        return None
    value = value.strip()
    if len(value) > MAX_NOTE_LENGTH:
        raise ValidationError(f"{field} cannot exceed {MAX_NOTE_LENGTH} characters")
    return value or None


# ---------------------------------------------------------------------------
# Tenant scoped loading
# ---------------------------------------------------------------------------


def _order_stmt(tenant_id: int):
    return (
        select(Order)
        .where(Order.tenant_id == tenant_id)
        .options(selectinload(Order.items), selectinload(Order.table))
    )


def _get_order(db_session: Session, tenant_id: int, order_id: int, *, lock: bool = False) -> Order:
    if not (is_storable_id(tenant_id) and is_storable_id(order_id)):
        raise OrderNotFoundError(order_id)
    stmt = _order_stmt(tenant_id).where(Order.id == order_id)
    if lock:
        stmt = stmt.with_for_update(of=Order)
    order = db_session.scalar(stmt)
    if order is None:
        raise OrderNotFoundError(order_id)
    return order


def _reload(db_session: Session, order: Order) -> Order:
    """Refresh the order with its items and table so it is usable detached."""
    db_session.flush()
    stmt = (
        _order_stmt(order.tenant_id)
        .where(Order.id == order.id)
        .execution_options(populate_existing=True)
    )
    return db_session.scalar(stmt)


def _build_items(
    db_session: Session, tenant_id: int, requests: list[OrderItemRequest]
) -> tuple[list[OrderItem], Decimal]:
    """
    Validate products against the tenant's catalog and snapshot name and price.

    Returns the new (unsaved) items and the amount they add to the order.
    """
    products = find_products_by_ids(db_session, tenant_id, [r.product_id for r in requests])

    for request in requests:
        product = products.get(request.product_id)
        if product is None:
            raise ProductNotFoundError(request.product_id)
        if not product.is_available:
            raise ProductUnavailableError(product.id, product.name)

    order_items = []
    amount = Decimal("0.00")
    for request in requests:
        product = products[request.product_id]
        unit_price = to_money(product.price)
        order_items.append(
            OrderItem(
                product_id=product.id,
                product_name=product.name,
                unit_price=unit_price,
                quantity=request.quantity,
                modifiers=request.modifiers,
                notes=request.notes,
                status=ItemStatus.PENDING.value,
            )
        )
        amount += unit_price * request.quantity
    return order_items, to_money(amount)


def _ensure_open(order: Order) -> None:
    if OrderStatus(order.status) in TERMINAL_ORDER_STATUSES:
        raise OrderClosedError(order.id, order.status)


def _append_note(order: Order, note: str) -> None:
    current_notes = order.notes or ""
    order.notes = f"{current_notes}{NOTE_SEPARATOR}{note}" if current_notes else note


def _cancel_open_items(order: Order) -> int:
    """Cancel every item that has not been served or cancelled yet."""
    cancelled = 0
    for item in order.items:
        if ItemStatus(item.status) not in TERMINAL_ITEM_STATUSES:
            item.status = ItemStatus.CANCELLED.value
            cancelled += 1
    return cancelled


def _apply_cancellation(db_session: Session, order: Order, reason: str | None) -> int:
    cancelled_items = _cancel_open_items(order)
    order.status = OrderStatus.CANCELLED.value
    order.cancelled_at = utcnow_naive()
    if reason:
        _append_note(order, f"{CANCEL_NOTE_PREFIX}{reason}")
    db_session.flush()
    release_table_if_idle(db_session, order, TableStatus.AVAILABLE)
    return cancelled_items


def _apply_settlement(
    db_session: Session,
    order: Order,
    payment_method: PaymentMethod,
    payment_lines: list,
) -> None:
    unresolved = [
        item.id for item in order.items if ItemStatus(item.status) not in TERMINAL_ITEM_STATUSES
    ]
    if unresolved:
        # Allowed: settling does not serve or cancel items implicitly.
        tenant_logger(logger, order.tenant_id, order_id=order.id).info(
            "Order %s settled with %s unresolved item(s)", order.order_number, len(unresolved)
        )

    order.status = OrderStatus.PAID.value
    order.paid_at = utcnow_naive()
    order.payment_method = payment_method.value
    order.payment_meta = {
        "payments": [line.to_dict() for line in payment_lines],
        "settled_at": utcnow().isoformat(),
    }
    db_session.flush()
    release_table_if_idle(db_session, order, TableStatus.CLEANING)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def create_order(
    tenant_id: int,
    user_id: str | None,
    *,
    order_type: OrderType | str,
    items: Iterable[OrderItemRequest | dict],
    table_id: int | None = None,
    notes: str | None = None,
) -> Order:
    """
    Create an order with its items and the next order number of the tenant.

    Dine-in orders need a table and mark it occupied in the same unit of work.

    Raises:
        MissingTableError, TableNotFoundError, ProductNotFoundError,
        ProductUnavailableError, TenantNotFoundError, ValidationError
    """
    _check_tenant(tenant_id)
    channel = _parse_order_type(order_type)
    requests = _coerce_items(items)
    notes = _clean_note(notes)
    user_id = _clean_user_id(user_id)
    if channel == OrderType.DINE_IN and not table_id:
        raise MissingTableError()

    log = tenant_logger(logger, tenant_id)
    with get_session() as db_session:
        if table_id:
            if find_table(db_session, tenant_id, table_id) is None:
                raise TableNotFoundError(table_id)

        order_items, amount = _build_items(db_session, tenant_id, requests)
        validate_money(amount)

        order = Order(
            tenant_id=tenant_id,
            user_id=user_id,
            order_number=allocate_order_number(db_session, tenant_id),
            order_type=channel.value,
            status=OrderStatus.PENDING.value,
            table_id=table_id,
            notes=notes,
            subtotal=amount,
            total=amount,
        )
        order.items = order_items
        db_session.add(order)
        db_session.flush()

        if channel == OrderType.DINE_IN:
            set_table_status(db_session, tenant_id, table_id, TableStatus.OCCUPIED)

        order = _reload(db_session, order)
        log.info(
            "Order %s created (%s, %s items, total %s)",
            order.order_number,
            channel.value,
            len(order_items),
            amount,
            extra={"order_id": order.id},
        )
        return order


def add_items(tenant_id: int, order_id: int, items: Iterable[OrderItemRequest | dict]) -> Order:
    """
    Append items to an open order.

    Totals are incremented by the added amount in SQL rather than recomputed
    from the item list, so concurrent appends never lose an update.

    Raises:
        OrderNotFoundError, OrderClosedError, ProductNotFoundError,
        ProductUnavailableError, ValidationError
    """
    requests = _coerce_items(items)

    log = tenant_logger(logger, tenant_id, order_id=order_id)
    with get_session() as db_session:
        order = _get_order(db_session, tenant_id, order_id, lock=True)
        _ensure_open(order)

        new_items, amount = _build_items(db_session, tenant_id, requests)
        validate_money(to_money(Decimal(order.total) + amount))
        for item in new_items:
            item.order_id = order.id
        db_session.add_all(new_items)
        db_session.flush()

        db_session.execute(
            update(Order)
            .where(Order.tenant_id == tenant_id, Order.id == order.id)
            .values(
                subtotal=Order.subtotal + amount,
                total=Order.total + amount,
                updated_at=utcnow_naive(),
            )
            .execution_options(synchronize_session=False)
        )

        order = _reload(db_session, order)
        log.info("Added %s item(s) to order %s (+%s)", len(new_items), order.order_number, amount)
        return order


def update_order_status(tenant_id: int, order_id: int, new_status: OrderStatus | str) -> Order:
    """
    Move an order to `new_status` following the order transition table.

    Only the status is written. Table occupancy, payment data and item
    statuses are left to `pay_order` and `cancel_order`.

    Raises:
        OrderNotFoundError, InvalidTransitionError, ValidationError
    """
    requested = order_state_machine.parse(new_status)

    log = tenant_logger(logger, tenant_id, order_id=order_id)
    with get_session() as db_session:
        order = _get_order(db_session, tenant_id, order_id, lock=True)
        previous = order.status
        target = order_state_machine.transition(order.status, requested)
        order.status = target.value

        order = _reload(db_session, order)
        log.info("Order %s: %s -> %s", order.order_number, previous, target.value)
        return order


def update_item_status(
    tenant_id: int, order_id: int, item_id: int, new_status: ItemStatus | str
) -> Order:
    """
    Move one order item along the item transition table.

    Raises:
        OrderNotFoundError, ItemNotFoundError, InvalidTransitionError, ValidationError
    """
    requested = item_state_machine.parse(new_status)
    if not is_storable_id(item_id):
        raise ItemNotFoundError(order_id, item_id)

    log = tenant_logger(logger, tenant_id, order_id=order_id)
    with get_session() as db_session:
        order = _get_order(db_session, tenant_id, order_id, lock=True)
        item = next((candidate for candidate in order.items if candidate.id == item_id), None)
        if item is None:
            raise ItemNotFoundError(order_id, item_id)

        previous = item.status
        item.status = item_state_machine.transition(item.status, requested).value

        order = _reload(db_session, order)
        log.info("Order %s item %s: %s -> %s", order.order_number, item_id, previous, requested.value)
        return order


def pay_order(
    tenant_id: int,
    order_id: int,
    payment_method: PaymentMethod | str,
    payments: Iterable[PaymentLineRequest | dict] | None = None,
) -> Order:
    """
    Settle an order.

    MIXED payments must add up to the order total. The order is marked paid
    with the method and settlement time; a dine-in table moves to cleaning
    unless another active order still holds it.

    Raises:
        OrderNotFoundError, AlreadyPaidError, OrderClosedError,
        InsufficientPaymentError, ValidationError
    """
    method = parse_payment_method(payment_method)

    log = tenant_logger(logger, tenant_id, order_id=order_id)
    with get_session() as db_session:
        order = _get_order(db_session, tenant_id, order_id, lock=True)
        if order.status == OrderStatus.PAID.value:
            log.warning("Rejected repeated payment for order %s", order.order_number)
            raise AlreadyPaidError(order_id)
        if order.status == OrderStatus.CANCELLED.value:
            raise OrderClosedError(order_id, order.status)

        payment_lines = reconcile_payment(order.total, method, payments)
        _apply_settlement(db_session, order, method, payment_lines)

        order = _reload(db_session, order)
        log.info("Order %s paid with %s (%s)", order.order_number, method.value, order.total)
        return order


def cancel_order(tenant_id: int, order_id: int, reason: str | None = None) -> Order:
    """
    Cancel an open order.

    Items that were already served stay served; every other live item is
    cancelled. The reason is appended to the existing notes. A dine-in table
    becomes available unless another active order still holds it.

    Raises:
        OrderNotFoundError, OrderClosedError, ValidationError
    """
    reason = _clean_note(reason, field="reason")

    log = tenant_logger(logger, tenant_id, order_id=order_id)
    with get_session() as db_session:
        order = _get_order(db_session, tenant_id, order_id, lock=True)
        _ensure_open(order)

        cancelled_items = _apply_cancellation(db_session, order, reason)

        order = _reload(db_session, order)
        log.info("Order %s cancelled (%s item(s) cancelled)", order.order_number, cancelled_items)
        return order


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def get_order(tenant_id: int, order_id: int) -> Order:
    with get_session() as db_session:
        return _get_order(db_session, tenant_id, order_id)


def list_orders(
    tenant_id: int,
    *,
    status: OrderStatus | str | None = None,
    order_type: OrderType | str | None = None,
    table_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    page: int = 1,
    per_page: int = DEFAULT_PAGE_SIZE,
) -> dict[str, Any]:
    """
    List the tenant's orders, newest first, with pagination.

    Returns:
        Dict with `orders` and `meta` (total, page, per_page, total_pages)
    """
    _check_tenant(tenant_id)
    page = min(max(1, page), MAX_ID)
    per_page = min(max(1, per_page), MAX_PAGE_SIZE)

    filters = [Order.tenant_id == tenant_id]
    if status:
        filters.append(Order.status == order_state_machine.parse(status).value)
    if order_type:
        filters.append(Order.order_type == _parse_order_type(order_type).value)
    if table_id:
        if not is_storable_id(table_id):
            raise TableNotFoundError(table_id)
        filters.append(Order.table_id == table_id)
    if date_from:
        filters.append(Order.created_at >= date_from)
    if date_to:
        filters.append(Order.created_at <= date_to)

    with get_session() as db_session:
        total = db_session.scalar(select(func.count(Order.id)).where(*filters)) or 0
        stmt = (
            select(Order)
            .where(*filters)
            .options(selectinload(Order.items), selectinload(Order.table))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        orders = list(db_session.scalars(stmt))

    return {
        "orders": orders,
        "meta": {
            "total": total,
            "page": page,
            "per_page": per_page,
            "total_pages": (total + per_page - 1) // per_page if total else 0,
        },
    }


def list_active_orders(tenant_id: int) -> list[Order]:
    """Non-terminal orders of the tenant, oldest first (POS view)."""
    return _list_by_status(tenant_id, OPEN_ORDER_STATUSES)


def get_kitchen_orders(tenant_id: int) -> list[Order]:
    """Orders the kitchen still has to work on, oldest first."""
    return _list_by_status(tenant_id, KITCHEN_ORDER_STATUSES)


def get_kitchen_stats(tenant_id: int, day: date | None = None) -> dict[str, int]:
    """
    Item counts per status for the orders created on `day` (UTC, defaults to
    today). Cancelled items are left out.
    """
    _check_tenant(tenant_id)
    day = day or utcnow().date()
    start, end = day_bounds(day)

    with get_session() as db_session:
        stmt = (
            select(OrderItem.status, func.count(OrderItem.id))
            .join(Order, Order.id == OrderItem.order_id)
            .where(
                Order.tenant_id == tenant_id,
                Order.created_at >= start,
                Order.created_at < end,
                OrderItem.status != ItemStatus.CANCELLED.value,
            )
            .group_by(OrderItem.status)
        )
        counts = dict(db_session.execute(stmt).all())

    stats = {
        status.value: counts.get(status.value, 0)
        for status in ItemStatus
        if status != ItemStatus.CANCELLED
    }
    stats["total"] = sum(stats.values())
    return stats


def _list_by_status(tenant_id: int, statuses: Iterable[OrderStatus]) -> list[Order]:
    _check_tenant(tenant_id)
    with get_session() as db_session:
        stmt = (
            _order_stmt(tenant_id)
            .where(Order.status.in_([status.value for status in statuses]))
            .order_by(Order.created_at.asc(), Order.id.asc())
        )
        return list(db_session.scalars(stmt))


def get_daily_summary(tenant_id: int, day: date | None = None) -> dict[str, Any]:
    """
    Revenue summary over the orders paid on `day` (UTC, defaults to today).
    """
    _check_tenant(tenant_id)
    day = day or utcnow().date()
    start, end = day_bounds(day)

    with get_session() as db_session:
        stmt = (
            select(Order)
            .where(
                Order.tenant_id == tenant_id,
                Order.status == OrderStatus.PAID.value,
                Order.paid_at >= start,
                Order.paid_at < end,
            )
            .options(selectinload(Order.items))
        )
        orders = list(db_session.scalars(stmt))

    total_revenue = to_money(sum((Decimal(order.total) for order in orders), Decimal("0")))
    products: dict[str, dict[str, Any]] = {}
    for order in orders:
        for item in order.items:
            entry = products.setdefault(
                item.product_name,
                {"product_name": item.product_name, "quantity": 0, "revenue": Decimal("0.00")},
            )
            entry["quantity"] += item.quantity
            entry["revenue"] = to_money(entry["revenue"] + item.line_total)

    top_products = sorted(products.values(), key=lambda p: (-p["quantity"], p["product_name"]))

    return {
        "date": day.isoformat(),
        "total_orders": len(orders),
        "total_revenue": total_revenue,
        "average_ticket": to_money(total_revenue / len(orders)) if orders else Decimal("0.00"),
        "top_products": top_products[:TOP_PRODUCTS_LIMIT],
    }
