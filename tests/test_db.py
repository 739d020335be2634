from decimal import Decimal
from http import HTTPStatus

import pytest

from revo_orders.db import get_session
from revo_orders.errors import TransactionFailedError
from revo_orders.models import Order
from revo_orders.services import order_service


def _bare_order(tenant_id: int, order_number: int) -> Order:
    return Order(
        tenant_id=tenant_id,
        order_number=order_number,
        order_type="takeaway",
        status="pending",
        subtotal=Decimal("0.00"),
        total=Decimal("0.00"),
    )


def test_store_failure_aborts_the_whole_unit_of_work(tenant):
    existing = order_service.create_order(
        tenant.id, None, order_type="takeaway", items=[{"product_id": tenant.products["Soda"]}]
    )

    with pytest.raises(TransactionFailedError) as exc_info:
        with get_session() as db_session:
            db_session.add(_bare_order(tenant.id, existing.order_number + 1))
            db_session.flush()
            # Same (tenant_id, order_number) as the committed order
            db_session.add(_bare_order(tenant.id, existing.order_number))
            db_session.flush()

    assert exc_info.value.http_status == HTTPStatus.SERVICE_UNAVAILABLE
    assert exc_info.value.details["reason"] == "IntegrityError"

    listed = order_service.list_orders(tenant.id)
    assert listed["meta"]["total"] == 1
    assert [order.id for order in listed["orders"]] == [existing.id]


def test_session_is_usable_after_an_aborted_unit_of_work(tenant):
    with pytest.raises(TransactionFailedError):
        with get_session() as db_session:
            db_session.add(_bare_order(tenant.id, 1))
            db_session.add(_bare_order(tenant.id, 1))
            db_session.flush()

    order = order_service.create_order(
        tenant.id, None, order_type="takeaway", items=[{"product_id": tenant.products["Soda"]}]
    )
    assert order.order_number == 1
