"""
Tests for market-day sales: derived quantities, totals, and stock
reversal on edit and delete.
"""

from __future__ import annotations

import pytest

from stockroom.db import q
from stockroom.errors import NotFoundError, ValidationError
from stockroom.services.products import get_product
from stockroom.services.sales import (
    SaleLineInput,
    create_sales_event,
    delete_sales_event,
    get_sales_event,
    list_sales_events,
    list_sales_items,
    quantity_sold_from_counts,
    update_sales_event,
)


def _stock(conn, product_id):
    return int(get_product(conn, product_id)["current_stock"])


@pytest.fixture
def two_products(make_product):
    a = make_product(name="Lavender Honey", stock=50, price=12.0)
    b = make_product(name="Citrus Glow", lid="White", bottle="Clear", stock=30, price=10.0)
    return a, b


class TestQuantitySoldFromCounts:

    def test_brought_minus_remaining(self):
        assert quantity_sold_from_counts(20, 5) == 15

    def test_never_negative(self):
        assert quantity_sold_from_counts(5, 9) == 0

    def test_pending_count(self):
        assert quantity_sold_from_counts(5, None) is None


# =============================================================================
# Create
# =============================================================================


class TestCreateSalesEvent:

    def test_total_is_sum_of_subtotals(self, conn, two_products):
        a, b = two_products
        event_id = create_sales_event(
            conn,
            event_name="Farmers Market",
            event_date="2024-06-01",
            lines=[
                SaleLineInput(product_id=a, unit_price=12.0, quantity_sold=3),
                SaleLineInput(product_id=b, unit_price=10.0, quantity_sold=2),
            ],
        )

        found = get_sales_event(conn, event_id)
        assert found["event"]["total_revenue"] == pytest.approx(56.0)
        assert [i["subtotal"] for i in found["items"]] == [36.0, 20.0]
        assert _stock(conn, a) == 47
        assert _stock(conn, b) == 28

    def test_brought_and_remaining_counts(self, conn, two_products):
        a, _ = two_products
        event_id = create_sales_event(
            conn,
            event_name="Saturday Market",
            event_date="2024-06-08",
            lines=[SaleLineInput(product_id=a, unit_price=12.0, starting_stock=20, ending_stock=5)],
        )

        item = get_sales_event(conn, event_id)["items"][0]
        assert item["quantity_sold"] == 15
        assert item["starting_stock"] == 20
        assert item["ending_stock"] == 5
        assert _stock(conn, a) == 35

    def test_pending_and_empty_lines_are_skipped(self, conn, two_products):
        a, b = two_products
        event_id = create_sales_event(
            conn,
            event_name="Night Market",
            event_date="2024-06-09",
            lines=[
                SaleLineInput(product_id=a, unit_price=12.0, starting_stock=10, ending_stock=None),
                SaleLineInput(product_id=b, unit_price=10.0, starting_stock=0, ending_stock=0),
                SaleLineInput(product_id=b, unit_price=10.0, starting_stock=6, ending_stock=6),
            ],
        )

        found = get_sales_event(conn, event_id)
        assert found["items"] == []
        assert found["event"]["total_revenue"] == 0
        assert _stock(conn, a) == 50

    def test_display_name_used_when_not_given(self, conn, two_products):
        a, _ = two_products
        event_id = create_sales_event(
            conn,
            event_name="Market",
            event_date="2024-06-01",
            lines=[SaleLineInput(product_id=a, unit_price=12.0, quantity_sold=1)],
        )
        assert get_sales_event(conn, event_id)["items"][0]["product_name"] == "Lavender Honey (Small)"

    def test_unknown_product_writes_nothing(self, conn, two_products):
        with pytest.raises(NotFoundError):
            create_sales_event(
                conn,
                event_name="Market",
                event_date="2024-06-01",
                lines=[SaleLineInput(product_id=999, unit_price=1.0, quantity_sold=1)],
            )
        assert list_sales_events(conn) == []

    def test_requires_event_name(self, conn, two_products):
        with pytest.raises(ValidationError):
            create_sales_event(conn, event_name="  ", event_date="2024-06-01", lines=[])

    @pytest.mark.parametrize("price", [float("nan"), float("inf")])
    def test_non_finite_price_rejected(self, conn, two_products, price):
        a, _ = two_products
        with pytest.raises(ValidationError) as err:
            create_sales_event(
                conn,
                event_name="Market",
                event_date="2024-06-01",
                lines=[SaleLineInput(product_id=a, unit_price=price, quantity_sold=1)],
            )
        assert err.value.field == "unit_price"
        assert list_sales_events(conn) == []
        assert _stock(conn, a) == 50

    @pytest.mark.parametrize(
        "counts",
        [
            {"quantity_sold": 2.9},
            {"starting_stock": 10.5, "ending_stock": 2},
            {"starting_stock": 10, "ending_stock": float("inf")},
        ],
    )
    def test_fractional_or_infinite_counts_rejected(self, conn, two_products, counts):
        a, _ = two_products
        with pytest.raises(ValidationError, match="whole number"):
            create_sales_event(
                conn,
                event_name="Market",
                event_date="2024-06-01",
                lines=[SaleLineInput(product_id=a, unit_price=12.0, **counts)],
            )
        assert _stock(conn, a) == 50

    def test_negative_price_rejected(self, conn, two_products):
        a, _ = two_products
        with pytest.raises(ValidationError):
            create_sales_event(
                conn,
                event_name="Market",
                event_date="2024-06-01",
                lines=[SaleLineInput(product_id=a, unit_price=-1, quantity_sold=1)],
            )


# =============================================================================
# Update and delete
# =============================================================================


class TestUpdateSalesEvent:

    def test_reverse_then_reapply(self, conn, two_products):
        a, b = two_products
        event_id = create_sales_event(
            conn,
            event_name="Market",
            event_date="2024-06-01",
            lines=[SaleLineInput(product_id=a, unit_price=12.0, quantity_sold=10)],
        )
        assert _stock(conn, a) == 40

        update_sales_event(
            conn,
            event_id,
            event_name="Market (edited)",
            event_date="2024-06-02",
            lines=[
                SaleLineInput(product_id=a, unit_price=12.0, quantity_sold=4),
                SaleLineInput(product_id=b, unit_price=10.0, quantity_sold=3),
            ],
        )

        found = get_sales_event(conn, event_id)
        assert _stock(conn, a) == 46
        assert _stock(conn, b) == 27
        assert found["event"]["event_name"] == "Market (edited)"
        assert found["event"]["total_revenue"] == pytest.approx(78.0)
        assert len(found["items"]) == 2

    def test_failed_update_keeps_old_items(self, conn, two_products):
        a, _ = two_products
        event_id = create_sales_event(
            conn,
            event_name="Market",
            event_date="2024-06-01",
            lines=[SaleLineInput(product_id=a, unit_price=12.0, quantity_sold=5)],
        )

        with pytest.raises(NotFoundError):
            update_sales_event(
                conn,
                event_id,
                event_name="Market",
                event_date="2024-06-01",
                lines=[SaleLineInput(product_id=999, unit_price=1.0, quantity_sold=1)],
            )

        assert _stock(conn, a) == 45
        assert len(get_sales_event(conn, event_id)["items"]) == 1

    def test_update_unknown_event(self, conn, two_products):
        with pytest.raises(NotFoundError):
            update_sales_event(conn, 77, event_name="x", event_date="2024-01-01", lines=[])


class TestDeleteSalesEvent:

    def test_restores_stock(self, conn, two_products):
        a, _ = two_products
        event_id = create_sales_event(
            conn,
            event_name="Market",
            event_date="2024-06-01",
            lines=[SaleLineInput(product_id=a, unit_price=12.0, starting_stock=20, ending_stock=5)],
        )
        assert _stock(conn, a) == 35

        delete_sales_event(conn, event_id)

        assert _stock(conn, a) == 50
        assert get_sales_event(conn, event_id) is None
        assert q(conn, "SELECT * FROM sales_items") == []

    def test_delete_unknown_event(self, conn):
        with pytest.raises(NotFoundError):
            delete_sales_event(conn, 5)


class TestListing:

    def test_month_filter(self, conn, two_products):
        a, _ = two_products
        for d in ("2024-05-31", "2024-06-01", "2024-06-30", "2024-07-01"):
            create_sales_event(
                conn,
                event_name=f"Market {d}",
                event_date=d,
                lines=[SaleLineInput(product_id=a, unit_price=1.0, quantity_sold=1)],
            )

        june = list_sales_events(conn, month="2024-06")
        assert [e["event_date"] for e in june] == ["2024-06-30", "2024-06-01"]
        assert len(list_sales_events(conn)) == 4

    def test_december_rolls_over(self, conn, two_products):
        a, _ = two_products
        create_sales_event(
            conn,
            event_name="Holiday Market",
            event_date="2024-12-31",
            lines=[SaleLineInput(product_id=a, unit_price=1.0, quantity_sold=1)],
        )
        assert len(list_sales_events(conn, month="2024-12")) == 1

    def test_bad_month(self, conn):
        with pytest.raises(ValidationError):
            list_sales_events(conn, month="June")

    def test_items_by_event(self, conn, two_products):
        a, b = two_products
        first = create_sales_event(
            conn,
            event_name="One",
            event_date="2024-06-01",
            lines=[SaleLineInput(product_id=a, unit_price=1.0, quantity_sold=1)],
        )
        create_sales_event(
            conn,
            event_name="Two",
            event_date="2024-06-02",
            lines=[SaleLineInput(product_id=b, unit_price=1.0, quantity_sold=1)],
        )

        assert len(list_sales_items(conn)) == 2
        assert [i["sales_event_id"] for i in list_sales_items(conn, [first])] == [first]
        assert list_sales_items(conn, []) == []
