from __future__ import annotations

import sqlite3

import pytest

from stockroom.db import ensure_schema, one, transaction, x
from stockroom.errors import PersistenceError, ValidationError
from stockroom.services.production import record_quick_batch
from stockroom.services.products import get_product
from stockroom.services.sales import (
    SaleLineInput,
    create_sales_event,
    get_sales_event,
    list_sales_events,
    update_sales_event,
)


def _count(conn):
    return one(conn, "SELECT COUNT(1) AS n FROM products")["n"]


def _insert(conn, name):
    return x(
        conn,
        "INSERT INTO products (name, created_at, updated_at) VALUES (?, '2024-01-01', '2024-01-01')",
        (name,),
    )


class TestTransaction:

    def test_commits_on_success(self, conn):
        with transaction(conn):
            _insert(conn, "A")
            _insert(conn, "B")
        assert _count(conn) == 2

    def test_rolls_back_on_domain_error(self, conn):
        with pytest.raises(ValidationError):
            with transaction(conn):
                _insert(conn, "A")
                raise ValidationError("nope")
        assert _count(conn) == 0

    def test_sqlite_errors_become_persistence_errors(self, conn):
        with pytest.raises(PersistenceError):
            with transaction(conn):
                _insert(conn, "A")
                conn.execute("INSERT INTO no_such_table VALUES (1)")
        assert _count(conn) == 0

    def test_nested_blocks_join_outer(self, conn):
        with pytest.raises(ValidationError):
            with transaction(conn):
                with transaction(conn):
                    _insert(conn, "A")
                raise ValidationError("outer failed")
        assert _count(conn) == 0
        assert conn.tx_depth == 0

    def test_needs_stockroom_connection(self, tmp_path):
        plain = sqlite3.connect(str(tmp_path / "plain.db"))
        try:
            with pytest.raises(TypeError):
                with transaction(plain):
                    pass
        finally:
            plain.close()


class TestSchema:

    def test_ensure_schema_is_idempotent(self, conn):
        ensure_schema(conn)
        ensure_schema(conn)
        assert _count(conn) == 0


# =============================================================================
# A failed write inside a service leaves no partial changes
# =============================================================================


def _fail_inserts(conn, table, when=""):
    conn.execute(
        f"""
        CREATE TRIGGER fail_{table} BEFORE INSERT ON {table}
        {when}
        BEGIN SELECT RAISE(ABORT, 'write failed'); END;
        """
    )
    conn.commit()


def _component(conn, category, key):
    return one(conn, "SELECT * FROM components WHERE category=? AND type=?", (category, key))


class TestServiceRollback:

    def test_batch_history_failure_restores_stock_and_components(self, conn, stocked_product):
        _fail_inserts(conn, "production_history")

        with pytest.raises(PersistenceError):
            record_quick_batch(conn, stocked_product, 10)

        assert get_product(conn, stocked_product)["current_stock"] == 0
        lid = _component(conn, "lids", "gold")
        bottle = _component(conn, "bottles", "amber")
        assert (lid["quantity"], bottle["quantity"]) == (20, 15)
        assert lid["total_value"] == pytest.approx(4.0)
        assert bottle["total_value"] == pytest.approx(9.0)
        assert conn.tx_depth == 0

    def test_sale_create_failure_after_first_item(self, conn, make_product):
        first = make_product(name="Lavender Honey", stock=50)
        second = make_product(name="Citrus Glow", stock=30)
        _fail_inserts(conn, "sales_items", when=f"WHEN NEW.product_id = {second}")

        with pytest.raises(PersistenceError):
            create_sales_event(
                conn,
                event_name="Market",
                event_date="2024-06-01",
                lines=[
                    SaleLineInput(product_id=first, unit_price=12.0, quantity_sold=4),
                    SaleLineInput(product_id=second, unit_price=10.0, quantity_sold=2),
                ],
            )

        assert get_product(conn, first)["current_stock"] == 50
        assert get_product(conn, second)["current_stock"] == 30
        assert list_sales_events(conn) == []

    def test_sale_update_failure_keeps_old_items_and_stock(self, conn, make_product):
        pid = make_product(stock=50)
        event_id = create_sales_event(
            conn,
            event_name="Market",
            event_date="2024-06-01",
            lines=[SaleLineInput(product_id=pid, unit_price=12.0, quantity_sold=5)],
        )
        _fail_inserts(conn, "sales_items")

        with pytest.raises(PersistenceError):
            update_sales_event(
                conn,
                event_id,
                event_name="Market (edited)",
                event_date="2024-06-02",
                lines=[SaleLineInput(product_id=pid, unit_price=12.0, quantity_sold=2)],
            )

        found = get_sales_event(conn, event_id)
        assert get_product(conn, pid)["current_stock"] == 45
        assert found["event"]["event_name"] == "Market"
        assert found["event"]["total_revenue"] == pytest.approx(60.0)
        assert [i["quantity_sold"] for i in found["items"]] == [5]
