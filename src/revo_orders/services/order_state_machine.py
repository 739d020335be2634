"""
Order State Machine - keeps transition rules out of the ORM models.

Both orders and order items move through a closed set of statuses. The
allowed moves live in static tables (`ORDER_TRANSITIONS`, `ITEM_TRANSITIONS`)
and nothing else may change a status: a move that is not in the table is
rejected with InvalidTransitionError carrying both states.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Generic, TypeVar

from revo_orders.constants import (
    ITEM_TRANSITIONS,
    ORDER_TRANSITIONS,
    ItemStatus,
    OrderStatus,
)
from revo_orders.errors import InvalidTransitionError, ValidationError

S = TypeVar("S", bound=Enum)


class StateMachine(Generic[S]):
    """
    Validates status changes against a fixed successor table.

    Responsibilities:
    - Parse raw status values into the closed enumeration
    - Answer whether a move is allowed
    - Reject moves that are not in the table
    """

    def __init__(self, entity: str, status_enum: type[S], transitions: Mapping[S, frozenset[S]]):
        self.entity = entity
        self.status_enum = status_enum
        self._transitions = transitions

    def parse(self, value: S | str) -> S:
        """Coerce a raw value into the status enum or raise ValidationError."""
        if isinstance(value, self.status_enum):
            return value
        if isinstance(value, str):
            try:
                return self.status_enum(value.strip().lower())
            except ValueError:
                pass
        allowed = ", ".join(status.value for status in self.status_enum)
        raise ValidationError(
            f"Invalid {self.entity} status '{value}'. Allowed values: {allowed}",
            status=str(value),
        )

    def successors(self, current: S | str) -> frozenset[S]:
        return self._transitions[self.parse(current)]

    def is_terminal(self, status: S | str) -> bool:
        return not self.successors(status)

    def can_transition(self, current: S | str, requested: S | str) -> bool:
        return self.parse(requested) in self.successors(current)

    def transition(self, current: S | str, requested: S | str) -> S:
        """Return the requested status if the move is allowed."""
        current_status = self.parse(current)
        requested_status = self.parse(requested)
        if requested_status not in self._transitions[current_status]:
            raise InvalidTransitionError(current_status, requested_status, entity=self.entity)
        return requested_status


order_state_machine: StateMachine[OrderStatus] = StateMachine(
    "order", OrderStatus, ORDER_TRANSITIONS
)
item_state_machine: StateMachine[ItemStatus] = StateMachine("item", ItemStatus, ITEM_TRANSITIONS)
