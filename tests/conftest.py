"""
Shared fixtures: a fresh SQLite database per test, seeded helpers, and a
Flask test client bound to its own database file.
"""

from __future__ import annotations

import pytest

from stockroom.config import load_settings
from stockroom.db import connect, ensure_schema
from stockroom.services.components import create_component
from stockroom.services.products import create_product


@pytest.fixture
def conn(tmp_path):
    c = connect(tmp_path / "test.db")
    ensure_schema(c)
    yield c
    c.close()


@pytest.fixture
def make_product(conn):
    def _make(name="Lavender Honey", size="Small", lid="Gold", bottle="Amber", price=12.0, stock=0):
        return create_product(
            conn,
            name=name,
            size=size,
            lid_color=lid,
            bottle_type=bottle,
            price=price,
            current_stock=stock,
        )

    return _make


@pytest.fixture
def make_component(conn):
    def _make(category, key, quantity=0, average_cost=0.0):
        return create_component(conn, category=category, type=key, quantity=quantity, average_cost=average_cost)

    return _make


@pytest.fixture
def stocked_product(conn, make_product, make_component):
    """Lavender Honey (Small) with 20 gold lids, 15 amber bottles, 30 lavender labels."""
    make_component("lids", "gold", quantity=20, average_cost=0.20)
    make_component("bottles", "amber", quantity=15, average_cost=0.60)
    make_component("labels", "lavender_label", quantity=30, average_cost=0.10)
    return make_product()


@pytest.fixture
def app(tmp_path):
    from stockroom.api.app import create_app

    settings = load_settings(str(tmp_path))
    application = create_app(settings)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()
