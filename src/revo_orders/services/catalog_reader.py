"""
Read-only access to the menu catalog for the order engine.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from revo_orders.models import Product


def find_products_by_ids(
    db_session: Session, tenant_id: int, product_ids: Iterable[int]
) -> dict[int, Product]:
    """
    Return the tenant's active products among `product_ids`, keyed by id.

    Products of other tenants and inactive products are simply missing from
    the result, so callers cannot tell them apart from ids that never existed.
    """
    ids = set(product_ids)
    if not ids:
        return {}
    stmt = select(Product).where(
        Product.tenant_id == tenant_id,
        Product.id.in_(ids),
        Product.is_active.is_(True),
    )
    return {product.id: product for product in db_session.scalars(stmt)}
