from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

import pandas as pd

from stockroom.db import q
from stockroom.errors import ValidationError

DATE_PRESETS = {
    "all": "All Time",
    "last7": "Last 7 Days",
    "last30": "Last 30 Days",
    "last90": "Last 90 Days",
    "last180": "Last 180 Days",
    "thisMonth": "This Month",
    "lastMonth": "Last Month",
    "ytd": "Year to Date",
    "custom": "Custom Range",
}

_ROLLING_DAYS = {"last7": 7, "last30": 30, "last90": 90, "last180": 180}


def resolve_date_range(
    preset: str,
    today: Optional[date] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> tuple[Optional[str], Optional[str]]:
    """
    Translate a filter preset into an inclusive (start, end) ISO date pair.

    "all" (and an incomplete "custom" range) returns (None, None): no filter.
    """
    today = today or date.today()
    if preset not in DATE_PRESETS:
        raise ValidationError(f"Unknown date filter '{preset}'.", field="preset")

    if preset == "all":
        return None, None
    if preset in _ROLLING_DAYS:
        return (today - timedelta(days=_ROLLING_DAYS[preset])).isoformat(), today.isoformat()
    if preset == "thisMonth":
        return today.replace(day=1).isoformat(), today.isoformat()
    if preset == "lastMonth":
        first_this = today.replace(day=1)
        last_prev = first_this - timedelta(days=1)
        return last_prev.replace(day=1).isoformat(), last_prev.isoformat()
    if preset == "ytd":
        return date(today.year, 1, 1).isoformat(), today.isoformat()

    # custom
    if start and end:
        return str(start), str(end)
    return None, None


def _frames(conn, start: Optional[str], end: Optional[str]) -> tuple[pd.DataFrame, pd.DataFrame]:
    if start and end:
        events = q(
            conn,
            "SELECT * FROM sales_events WHERE event_date >= ? AND event_date <= ? ORDER BY event_date",
            (start, end),
        )
        items = q(
            conn,
            """
            SELECT si.*
            FROM sales_items si
            JOIN sales_events se ON se.id = si.sales_event_id
            WHERE se.event_date >= ? AND se.event_date <= ?
            """,
            (start, end),
        )
    else:
        events = q(conn, "SELECT * FROM sales_events ORDER BY event_date")
        items = q(conn, "SELECT * FROM sales_items")

    ev_df = pd.DataFrame([dict(r) for r in events], columns=["id", "event_date", "event_name", "total_revenue"])
    it_df = pd.DataFrame(
        [dict(r) for r in items],
        columns=["sales_event_id", "product_id", "product_name", "quantity_sold", "subtotal"],
    )
    return ev_df, it_df


def sales_analytics(conn, start: Optional[str] = None, end: Optional[str] = None) -> dict:
    """
    Totals, per-product breakdown and per-event trend for events in [start, end].
    """
    ev_df, it_df = _frames(conn, start, end)

    total_revenue = float(pd.to_numeric(ev_df["total_revenue"], errors="coerce").fillna(0).sum())
    total_units = int(pd.to_numeric(it_df["quantity_sold"], errors="coerce").fillna(0).sum())
    market_days = int(len(ev_df))
    avg_per_market = total_revenue / market_days if market_days else 0.0

    if it_df.empty:
        breakdown: list[dict] = []
        units_by_event: dict = {}
    else:
        grouped = (
            it_df.groupby("product_name", as_index=False)
            .agg(units=("quantity_sold", "sum"), revenue=("subtotal", "sum"))
            .sort_values(["units", "product_name"], ascending=[False, True])
        )
        breakdown = [
            {"name": str(r.product_name), "units": int(r.units), "revenue": round(float(r.revenue), 2)}
            for r in grouped.itertuples(index=False)
        ]
        units_by_event = it_df.groupby("sales_event_id")["quantity_sold"].sum().to_dict()

    trend = [
        {
            "date": str(r.event_date),
            "units": int(units_by_event.get(r.id, 0)),
            "revenue": float(r.total_revenue),
        }
        for r in ev_df.sort_values(["event_date", "id"]).itertuples(index=False)
    ]

    return {
        "totalUnits": total_units,
        "totalRevenue": round(total_revenue, 2),
        "avgPerMarket": round(avg_per_market, 2),
        "marketDays": market_days,
        "productBreakdown": breakdown,
        "salesTrend": trend,
    }
