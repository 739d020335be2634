import pytest

from revo_orders.constants import ITEM_TRANSITIONS, ORDER_TRANSITIONS, ItemStatus, OrderStatus
from revo_orders.errors import InvalidTransitionError, ValidationError
from revo_orders.services.order_state_machine import item_state_machine, order_state_machine

ALLOWED_ORDER_MOVES = {
    (OrderStatus.PENDING, OrderStatus.CONFIRMED),
    (OrderStatus.PENDING, OrderStatus.CANCELLED),
    (OrderStatus.CONFIRMED, OrderStatus.PREPARING),
    (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    (OrderStatus.PREPARING, OrderStatus.READY),
    (OrderStatus.PREPARING, OrderStatus.CANCELLED),
    (OrderStatus.READY, OrderStatus.SERVED),
    (OrderStatus.READY, OrderStatus.CANCELLED),
    (OrderStatus.SERVED, OrderStatus.PAID),
}

ALLOWED_ITEM_MOVES = {
    (ItemStatus.PENDING, ItemStatus.PREPARING),
    (ItemStatus.PENDING, ItemStatus.CANCELLED),
    (ItemStatus.PREPARING, ItemStatus.READY),
    (ItemStatus.PREPARING, ItemStatus.CANCELLED),
    (ItemStatus.READY, ItemStatus.SERVED),
}


@pytest.mark.parametrize("current", list(OrderStatus))
@pytest.mark.parametrize("requested", list(OrderStatus))
def test_order_moves_follow_the_table(current, requested):
    if (current, requested) in ALLOWED_ORDER_MOVES:
        assert order_state_machine.transition(current, requested) == requested
    else:
        with pytest.raises(InvalidTransitionError) as exc_info:
            order_state_machine.transition(current, requested)
        assert exc_info.value.current == current
        assert exc_info.value.requested == requested
        assert exc_info.value.entity == "order"


@pytest.mark.parametrize("current", list(ItemStatus))
@pytest.mark.parametrize("requested", list(ItemStatus))
def test_item_moves_follow_the_table(current, requested):
    if (current, requested) in ALLOWED_ITEM_MOVES:
        assert item_state_machine.transition(current, requested) == requested
    else:
        with pytest.raises(InvalidTransitionError):
            item_state_machine.transition(current, requested)


def test_tables_cover_every_status():
    assert set(ORDER_TRANSITIONS) == set(OrderStatus)
    assert set(ITEM_TRANSITIONS) == set(ItemStatus)


def test_terminal_statuses():
    assert order_state_machine.is_terminal(OrderStatus.PAID)
    assert order_state_machine.is_terminal("cancelled")
    assert not order_state_machine.is_terminal(OrderStatus.SERVED)
    assert item_state_machine.is_terminal(ItemStatus.SERVED)
    assert not item_state_machine.is_terminal(ItemStatus.READY)


def test_ready_items_cannot_be_cancelled_individually():
    assert not item_state_machine.can_transition(ItemStatus.READY, ItemStatus.CANCELLED)


def test_parse_accepts_raw_strings_case_insensitively():
    assert order_state_machine.parse(" Confirmed ") == OrderStatus.CONFIRMED
    assert item_state_machine.transition("pending", "PREPARING") == ItemStatus.PREPARING


def test_parse_rejects_unknown_status():
    with pytest.raises(ValidationError) as exc_info:
        order_state_machine.parse("delivered")
    assert "delivered" in exc_info.value.message


def test_invalid_transition_error_payload():
    with pytest.raises(InvalidTransitionError) as exc_info:
        order_state_machine.transition(OrderStatus.PENDING, OrderStatus.SERVED)
    payload = exc_info.value.to_dict()
    assert payload == {
        "code": "INVALID_TRANSITION",
        "entity": "order",
        "current": "pending",
        "requested": "served",
    }
