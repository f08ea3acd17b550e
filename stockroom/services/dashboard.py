from __future__ import annotations

from stockroom.db import one, x
from stockroom.errors import NotFoundError
from stockroom.logger import get_logger
from stockroom.utils import iso_now

logger = get_logger(__name__)

# A product is low on stock below this many units (dashboard and inventory).
LOW_STOCK_THRESHOLD = 15

NOTES_ID = 1


def dashboard_stats(conn, threshold: int = LOW_STOCK_THRESHOLD) -> dict:
    r = one(
        conn,
        """
        SELECT
          (SELECT COUNT(1) FROM products) AS total_products,
          (SELECT COUNT(1) FROM products WHERE current_stock < ?) AS low_stock,
          (SELECT COALESCE(SUM(total_revenue), 0) FROM sales_events) AS total_revenue,
          (SELECT COUNT(1) FROM sales_events) AS total_sales
        """,
        (int(threshold),),
    )
    return {
        "totalProducts": int(r["total_products"]),
        "lowStockItems": int(r["low_stock"]),
        "totalRevenue": float(r["total_revenue"]),
        "totalSales": int(r["total_sales"]),
    }


def get_notes(conn):
    return one(conn, "SELECT * FROM dashboard_notes WHERE id=?", (NOTES_ID,))


def save_notes(conn, content: str) -> bool:
    """Create the note on first save, update it afterwards. Returns True when created."""
    created = get_notes(conn) is None
    x(
        conn,
        """
        INSERT INTO dashboard_notes (id, content, updated_at) VALUES (?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET content=excluded.content, updated_at=excluded.updated_at
        """,
        (NOTES_ID, str(content or ""), iso_now()),
    )
    logger.info("Dashboard notes %s", "created" if created else "updated")
    return created


def update_notes(conn, notes_id: int, content: str) -> None:
    if int(notes_id) != NOTES_ID or get_notes(conn) is None:
        raise NotFoundError("Notes", notes_id)
    save_notes(conn, content)
