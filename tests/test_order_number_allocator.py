from concurrent.futures import ThreadPoolExecutor

import pytest

from revo_orders.db import get_session
from revo_orders.errors import ProductUnavailableError, TenantNotFoundError
from revo_orders.services import order_service
from revo_orders.services.order_number_allocator import allocate_order_number


def _takeaway(tenant, product="Soda"):
    return order_service.create_order(
        tenant.id,
        "cashier-1",
        order_type="takeaway",
        items=[{"product_id": tenant.products[product], "quantity": 1}],
    )


def test_numbers_start_at_one_and_increase(tenant):
    numbers = [_takeaway(tenant).order_number for _ in range(3)]
    assert numbers == [1, 2, 3]


def test_numbers_are_independent_per_tenant(tenant, other_tenant):
    _takeaway(tenant)
    _takeaway(tenant)
    first_other = _takeaway(other_tenant, product="Taco")
    assert first_other.order_number == 1


def test_concurrent_creations_get_distinct_contiguous_numbers(tenant):
    with ThreadPoolExecutor(max_workers=8) as executor:
        orders = list(executor.map(lambda _: _takeaway(tenant), range(20)))

    numbers = sorted(order.order_number for order in orders)
    assert numbers == list(range(1, 21))


def test_rolled_back_allocation_is_reused(tenant):
    _takeaway(tenant)

    with pytest.raises(RuntimeError):
        with get_session() as db_session:
            assert allocate_order_number(db_session, tenant.id) == 2
            raise RuntimeError("abort")

    assert _takeaway(tenant).order_number == 2


def test_failed_creation_does_not_consume_a_number(tenant):
    _takeaway(tenant)
    with pytest.raises(ProductUnavailableError):
        order_service.create_order(
            tenant.id,
            None,
            order_type="takeaway",
            items=[{"product_id": tenant.products["Soup of the day"]}],
        )
    assert _takeaway(tenant).order_number == 2


def test_unknown_tenant(database):
    with pytest.raises(TenantNotFoundError):
        with get_session() as db_session:
            allocate_order_number(db_session, 999)
