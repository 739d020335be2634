"""
Input range checks applied before any value reaches the database.
"""

from decimal import Decimal

from revo_orders.constants import MAX_ID, MAX_MONEY
from revo_orders.errors import ValidationError


def is_storable_id(value) -> bool:
    """True when `value` fits the integer id columns."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 < value <= MAX_ID


def validate_money(amount: Decimal, field: str = "total") -> Decimal:
    """Reject amounts that do not fit a Numeric(10, 2) column."""
    if amount < 0 or amount > MAX_MONEY:
        raise ValidationError(
            f"The order {field} must be between 0.00 and {MAX_MONEY}",
            field=field,
            amount=amount,
        )
    return amount
