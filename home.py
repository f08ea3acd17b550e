from __future__ import annotations

import streamlit as st
import pandas as pd

from stockroom.config import get_settings
from stockroom.db import get_conn, ensure_schema, q
from stockroom.services.dashboard import LOW_STOCK_THRESHOLD, dashboard_stats, get_notes, save_notes

st.title("🧴 Stockroom")
st.caption("Finished goods, components, production batches and market sales in one place.")

settings = get_settings()
conn = get_conn(settings.db_path)
ensure_schema(conn)

with st.sidebar:
    st.subheader("Environment")
    st.write(f"**Data directory:** `{settings.data_dir}`")
    st.write(f"**Database:** `{settings.db_path.name}`")
    st.write(f"**API:** `{settings.api_base_url}`")

stats = dashboard_stats(conn)

c1, c2, c3, c4 = st.columns(4)
c1.metric("Products", f"{stats['totalProducts']}")
c2.metric("Low stock", f"{stats['lowStockItems']}", help=f"Below {LOW_STOCK_THRESHOLD} units")
c3.metric("Revenue", f"{settings.currency} {stats['totalRevenue']:,.2f}")
c4.metric("Market days", f"{stats['totalSales']}")

col1, col2 = st.columns([1, 1], gap="large")

with col1:
    st.subheader("Low stock")
    low = q(
        conn,
        "SELECT name, size, current_stock FROM products WHERE current_stock < ? ORDER BY current_stock",
        (LOW_STOCK_THRESHOLD,),
    )
    if low:
        st.dataframe(pd.DataFrame([dict(r) for r in low]), use_container_width=True, hide_index=True)
    else:
        st.success("Everything is stocked.")

with col2:
    st.subheader("Notes")
    existing = get_notes(conn)
    text = st.text_area(
        "Daily notes",
        value=existing["content"] if existing else "",
        height=180,
        placeholder="Enter your daily notes here...",
        label_visibility="collapsed",
    )
    if st.button("Save notes", type="primary"):
        try:
            save_notes(conn, text)
            st.success("Notes saved.")
        except Exception as e:
            st.error(str(e))
    if existing:
        st.caption(f"Last saved {existing['updated_at']}")
