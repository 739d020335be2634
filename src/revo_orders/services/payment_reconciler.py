"""
Payment reconciliation: checks that the submitted payments settle an order.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from revo_orders.constants import MONEY_QUANTUM, PAYMENT_TOLERANCE, PaymentMethod
from revo_orders.errors import InsufficientPaymentError, ValidationError
from revo_orders.schemas import PaymentLineRequest


@dataclass(frozen=True)
class PaymentLine:
    """One tender used to settle an order."""

    method: PaymentMethod
    amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"method": self.method.value, "amount": str(self.amount)}


def to_money(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def parse_payment_method(value: PaymentMethod | str) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    try:
        return PaymentMethod(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(method.value for method in PaymentMethod)
        raise ValidationError(
            f"Invalid payment method '{value}'. Allowed values: {allowed}",
            payment_method=str(value),
        ) from None


def _parse_lines(payments: Iterable[PaymentLineRequest | dict] | None) -> list[PaymentLineRequest]:
    lines = []
    for raw in payments or []:
        if isinstance(raw, PaymentLineRequest):
            lines.append(raw)
            continue
        try:
            lines.append(PaymentLineRequest.model_validate(raw))
        except PydanticValidationError as exc:
            raise ValidationError(
                "Invalid payment line",
                errors=exc.errors(include_url=False, include_context=False, include_input=False),
            ) from exc
    return lines


def reconcile_payment(
    total,
    payment_method: PaymentMethod | str,
    payments: Iterable[PaymentLineRequest | dict] | None = None,
) -> list[PaymentLine]:
    """
    Validate that the proposed payments cover the order total.

    For MIXED payments the itemized amounts must add up to the total; the
    fixed tolerance only absorbs sub-cent rounding noise, so a one cent gap is
    already a mismatch. Any other method is assumed to collect the full total
    and needs no itemization.

    Returns:
        The payment lines to record on the order.

    Raises:
        ValidationError: unknown method or malformed payment lines
        InsufficientPaymentError: itemized amounts do not match the total
    """
    method = parse_payment_method(payment_method)
    order_total = to_money(total)

    if method != PaymentMethod.MIXED:
        return [PaymentLine(method=method, amount=order_total)]

    lines = _parse_lines(payments)
    paid = sum((Decimal(str(line.amount)) for line in lines), Decimal("0"))
    if abs(paid - order_total) >= PAYMENT_TOLERANCE:
        raise InsufficientPaymentError(paid=to_money(paid), total=order_total)

    return [PaymentLine(method=line.method, amount=to_money(line.amount)) for line in lines]
