from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from stockroom.db import one, q, transaction, x
from stockroom.errors import NotFoundError, ValidationError
from stockroom.logger import get_logger
from stockroom.services.products import adjust_product_stock, get_product
from stockroom.utils import display_name, finite_number, iso_now, whole_number

logger = get_logger(__name__)


@dataclass
class SaleLineInput:
    """
    One product line of a market day.

    Either give `quantity_sold` directly, or `starting_stock` (brought) and
    `ending_stock` (remaining) and let the sold count be derived.
    """

    product_id: int
    unit_price: float
    quantity_sold: Optional[int] = None
    starting_stock: Optional[int] = None
    ending_stock: Optional[int] = None
    product_name: Optional[str] = None


@dataclass
class SaleLine:
    product_id: int
    product_name: str
    starting_stock: Optional[int]
    ending_stock: Optional[int]
    quantity_sold: int
    unit_price: float
    subtotal: float


def _int_or_none(v, field_name: str) -> Optional[int]:
    if v is None or v == "":
        return None
    n = whole_number(v, field_name)
    if n < 0:
        raise ValidationError(f"{field_name} must be >= 0.", field=field_name)
    return n


def quantity_sold_from_counts(starting_stock: int, ending_stock: Optional[int]) -> Optional[int]:
    """Brought minus remaining, floored at 0. None while the remaining count is unknown."""
    if ending_stock is None:
        return None
    return max(0, int(starting_stock) - int(ending_stock))


def normalize_lines(conn, lines: list[SaleLineInput]) -> list[SaleLine]:
    """
    Validate lines and compute subtotals.

    Lines brought with 0 units, lines still pending a remaining count, and
    lines with nothing sold are dropped.
    """
    out: list[SaleLine] = []
    for line in lines:
        price = finite_number(line.unit_price, "unit_price")
        if price < 0:
            raise ValidationError("Unit price must be >= 0.", field="unit_price")

        starting = _int_or_none(line.starting_stock, "starting_stock")
        ending = _int_or_none(line.ending_stock, "ending_stock")

        if starting is not None:
            if starting <= 0:
                continue
            sold = quantity_sold_from_counts(starting, ending)
            if not sold:
                continue
        else:
            sold = _int_or_none(line.quantity_sold, "quantity_sold")
            if not sold:
                continue

        product = get_product(conn, line.product_id)
        if product is None:
            logger.warning("Sale rejected: unknown product %s", line.product_id)
            raise NotFoundError("Product", line.product_id)

        out.append(
            SaleLine(
                product_id=int(product["id"]),
                product_name=line.product_name or display_name(product["name"], product["size"]),
                starting_stock=starting,
                ending_stock=ending,
                quantity_sold=int(sold),
                unit_price=price,
                subtotal=int(sold) * price,
            )
        )
    return out


def _clean_event_name(event_name: Optional[str]) -> str:
    s = str(event_name or "").strip()
    if not s:
        raise ValidationError("Event name is required.", field="event_name")
    return s


def _clean_event_date(event_date: Optional[str]) -> str:
    s = str(event_date or "").strip()
    if not s:
        raise ValidationError("Event date is required.", field="event_date")
    return s


def _insert_items(conn, event_id: int, items: list[SaleLine]) -> None:
    now = iso_now()
    for it in items:
        x(
            conn,
            """
            INSERT INTO sales_items (
                sales_event_id, product_id, product_name,
                starting_stock, ending_stock, quantity_sold,
                unit_price, subtotal, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(event_id),
                it.product_id,
                it.product_name,
                it.starting_stock,
                it.ending_stock,
                it.quantity_sold,
                it.unit_price,
                it.subtotal,
                now,
            ),
        )
        adjust_product_stock(conn, it.product_id, -it.quantity_sold)


def _restore_items(conn, event_id: int) -> int:
    old = q(conn, "SELECT product_id, quantity_sold FROM sales_items WHERE sales_event_id=?", (int(event_id),))
    for it in old:
        adjust_product_stock(conn, int(it["product_id"]), int(it["quantity_sold"]))
    x(conn, "DELETE FROM sales_items WHERE sales_event_id=?", (int(event_id),))
    return len(old)


def create_sales_event(
    conn,
    *,
    event_name: str,
    event_date: str,
    lines: list[SaleLineInput],
    notes: Optional[str] = None,
) -> int:
    event_name = _clean_event_name(event_name)
    event_date = _clean_event_date(event_date)
    items = normalize_lines(conn, lines)
    total_revenue = sum(it.subtotal for it in items)

    with transaction(conn):
        now = iso_now()
        event_id = x(
            conn,
            """
            INSERT INTO sales_events (event_date, event_name, total_revenue, notes, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (event_date, event_name, float(total_revenue), str(notes or ""), now, now),
        )
        _insert_items(conn, event_id, items)

    logger.info(
        "Sales event %s (%s, %s): %s item(s), revenue %.2f",
        event_id,
        event_name,
        event_date,
        len(items),
        total_revenue,
    )
    return int(event_id)


def update_sales_event(
    conn,
    event_id: int,
    *,
    event_name: str,
    event_date: str,
    lines: list[SaleLineInput],
    notes: Optional[str] = None,
) -> None:
    """
    Replace an event's items: give back the old sold units, then apply the new ones.
    """
    ev = require_sales_event(conn, event_id)
    event_name = _clean_event_name(event_name)
    event_date = _clean_event_date(event_date)
    items = normalize_lines(conn, lines)
    total_revenue = sum(it.subtotal for it in items)

    with transaction(conn):
        restored = _restore_items(conn, event_id)
        x(
            conn,
            """
            UPDATE sales_events
            SET event_name=?, event_date=?, total_revenue=?, notes=?, updated_at=?
            WHERE id=?
            """,
            (
                event_name,
                event_date,
                float(total_revenue),
                str(notes) if notes is not None else ev["notes"],
                iso_now(),
                int(event_id),
            ),
        )
        _insert_items(conn, event_id, items)

    logger.info(
        "Sales event %s updated: %s old item(s) reversed, %s applied, revenue %.2f -> %.2f",
        event_id,
        restored,
        len(items),
        float(ev["total_revenue"]),
        total_revenue,
    )


def delete_sales_event(conn, event_id: int) -> None:
    require_sales_event(conn, event_id)

    with transaction(conn):
        restored = _restore_items(conn, event_id)
        x(conn, "DELETE FROM sales_events WHERE id=?", (int(event_id),))

    logger.info("Sales event %s deleted, %s item(s) returned to stock", event_id, restored)


def get_sales_event(conn, event_id: int) -> Optional[dict]:
    ev = one(conn, "SELECT * FROM sales_events WHERE id=?", (int(event_id),))
    if ev is None:
        return None
    items = q(conn, "SELECT * FROM sales_items WHERE sales_event_id=? ORDER BY id", (int(event_id),))
    return {"event": dict(ev), "items": [dict(i) for i in items]}


def require_sales_event(conn, event_id: int):
    ev = one(conn, "SELECT * FROM sales_events WHERE id=?", (int(event_id),))
    if ev is None:
        raise NotFoundError("Sales event", event_id)
    return ev


def _month_bounds(month: str) -> tuple[str, str]:
    try:
        year, mon = (int(p) for p in str(month).split("-")[:2])
    except ValueError:
        raise ValidationError("Month must look like YYYY-MM.", field="month")
    if not 1 <= mon <= 12:
        raise ValidationError("Month must look like YYYY-MM.", field="month")
    start = f"{year:04d}-{mon:02d}-01"
    end = f"{year + 1:04d}-01-01" if mon == 12 else f"{year:04d}-{mon + 1:02d}-01"
    return start, end


def list_sales_events(conn, month: Optional[str] = None):
    if month:
        start, end = _month_bounds(month)
        return q(
            conn,
            """
            SELECT * FROM sales_events
            WHERE event_date >= ? AND event_date < ?
            ORDER BY event_date DESC, id DESC
            """,
            (start, end),
        )
    return q(conn, "SELECT * FROM sales_events ORDER BY event_date DESC, id DESC")


def list_sales_items(conn, event_ids: Optional[list[int]] = None):
    if event_ids is not None:
        if not event_ids:
            return []
        marks = ",".join("?" for _ in event_ids)
        return q(
            conn,
            f"SELECT * FROM sales_items WHERE sales_event_id IN ({marks}) ORDER BY id DESC",
            [int(i) for i in event_ids],
        )
    return q(conn, "SELECT * FROM sales_items ORDER BY id DESC")
