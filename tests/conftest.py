"""
Shared fixtures: a fresh SQLite database file per test, seeded with two
tenants, their tables and a small catalog.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

import pytest

from revo_orders.config import AppConfig
from revo_orders.db import dispose_engine, get_session, init_db, init_engine
from revo_orders.models import Base, Product, RestaurantTable, Tenant


@dataclass
class SeededTenant:
    id: int
    tables: dict[str, int] = field(default_factory=dict)
    products: dict[str, int] = field(default_factory=dict)


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        app_name="revo-orders-test",
        database_url=f"sqlite:///{tmp_path / 'orders.db'}",
        log_level="DEBUG",
        cors_origins=[],
    )


@pytest.fixture
def database(config):
    dispose_engine()
    init_engine(config)
    init_db(Base.metadata)
    yield
    dispose_engine()


def _seed_tenant(slug: str, products: dict[str, tuple[str, bool]]) -> SeededTenant:
    with get_session() as db_session:
        tenant = Tenant(name=slug.title(), slug=slug)
        db_session.add(tenant)
        db_session.flush()

        tables = [
            RestaurantTable(tenant_id=tenant.id, number=number, capacity=4)
            for number in ("1", "2", "3")
        ]
        catalog = [
            Product(tenant_id=tenant.id, name=name, price=Decimal(price), is_available=available)
            for name, (price, available) in products.items()
        ]
        db_session.add_all(tables + catalog)
        db_session.flush()

        return SeededTenant(
            id=tenant.id,
            tables={table.number: table.id for table in tables},
            products={product.name: product.id for product in catalog},
        )


@pytest.fixture
def tenant(database) -> SeededTenant:
    return _seed_tenant(
        "bistro",
        {
            "Burger": ("8.50", True),
            "Fries": ("3.00", True),
            "Soda": ("1.50", True),
            "Coffee": ("2.25", True),
            "Soup of the day": ("6.00", False),
        },
    )


@pytest.fixture
def other_tenant(database) -> SeededTenant:
    return _seed_tenant("cantina", {"Taco": ("4.00", True)})


@pytest.fixture
def app(config, database):
    from api_app.app import create_app

    flask_app = create_app(config)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
