"""
Per-tenant sequential order numbers.

Numbers are allocated inside the unit of work that creates the order. The
tenant row acts as the counter row and is locked for the rest of that
transaction, so concurrent creations for the same tenant queue behind each
other instead of reading the same maximum. If the transaction rolls back,
the number was never persisted and the next creation reuses it.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from revo_orders.errors import TenantNotFoundError
from revo_orders.logging_config import get_logger
from revo_orders.models import Order, Tenant
from revo_orders.validation import is_storable_id

logger = get_logger(__name__)


def allocate_order_number(db_session: Session, tenant_id: int) -> int:
    """
    Return the next order number for the tenant.

    Must be called with the session of the unit of work that persists the
    order; the lock taken here is held until that session commits or rolls
    back.
    """
    if not is_storable_id(tenant_id):
        raise TenantNotFoundError(tenant_id)
    tenant = db_session.scalar(
        select(Tenant).where(Tenant.id == tenant_id, Tenant.is_active.is_(True)).with_for_update()
    )
    if tenant is None:
        raise TenantNotFoundError(tenant_id)

    last_number = db_session.scalar(
        select(func.max(Order.order_number)).where(Order.tenant_id == tenant_id)
    )
    next_number = max(last_number or 0, tenant.last_order_number or 0) + 1
    tenant.last_order_number = next_number

    logger.debug("Allocated order number %s for tenant %s", next_number, tenant_id)
    return next_number
