from __future__ import annotations

import random
from datetime import date, timedelta

from stockroom.db import ensure_schema, one
from stockroom.services.components import create_component, record_component_purchase
from stockroom.services.dashboard import get_notes, save_notes
from stockroom.services.production import record_full_batch, record_quick_batch
from stockroom.services.products import create_product
from stockroom.services.recipes import save_recipe
from stockroom.services.sales import SaleLineInput, create_sales_event


DEFAULT_COMPONENTS = [
    ("lids", "gold"),
    ("lids", "black"),
    ("lids", "white"),
    ("bottles", "amber"),
    ("bottles", "clear"),
    ("labels", "lavender_label"),
    ("labels", "citrus_label"),
    ("labels", "heat_label"),
]

DEMO_PRODUCTS = [
    # name, size, lid, bottle, price
    ("Lavender Honey", "Small", "Gold", "Amber", 12.0),
    ("Lavender Honey", "Big", "Gold", "Amber", 20.0),
    ("Citrus Glow", "Small", "White", "Clear", 11.0),
    ("Heat Wave", "Small", "Black", "Clear", 13.0),
]


def upsert_reference_data(conn) -> None:
    ensure_schema(conn)
    for category, key in DEFAULT_COMPONENTS:
        if one(conn, "SELECT id FROM components WHERE category=? AND type=?", (category, key)) is None:
            create_component(conn, category=category, type=key)


def wipe_all(conn) -> None:
    # Keep schema, delete data (order matters for FKs).
    for t in [
        "sales_items",
        "sales_events",
        "production_history",
        "component_purchases",
        "product_components",
        "recipes",
        "dashboard_notes",
        "components",
        "products",
    ]:
        conn.execute(f"DELETE FROM {t};")
    conn.commit()


def load_demo_data(conn, *, seed: int = 7) -> None:
    rnd = random.Random(seed)
    upsert_reference_data(conn)

    comp_ids = {
        (r["category"], r["type"]): int(r["id"])
        for r in conn.execute("SELECT id, category, type FROM components").fetchall()
    }
    for key, cid in comp_ids.items():
        qty = rnd.randint(150, 400)
        unit_cost = {"lids": 0.18, "bottles": 0.65, "labels": 0.12}[key[0]]
        record_component_purchase(conn, cid, quantity=qty, total_paid=round(qty * unit_cost, 2))

    product_ids = []
    for name, size, lid, bottle, price in DEMO_PRODUCTS:
        product_ids.append(
            create_product(
                conn,
                name=name,
                size=size,
                lid_color=lid,
                bottle_type=bottle,
                price=price,
                description=f"{name} ({size}) demo product",
            )
        )

    save_recipe(
        conn,
        product_ids[0],
        ingredients=[
            {"name": "Honey", "amount": 1200, "unit": "g"},
            {"name": "Lavender", "amount": 35.5, "unit": "g"},
            {"name": "Water", "amount": 400, "unit": "g"},
        ],
        original_batch_size=24,
    )

    # Production a few days back, then one market day.
    base = date.today() - timedelta(days=14)
    for i, pid in enumerate(product_ids):
        made = rnd.randint(30, 60)
        if i == 0:
            record_full_batch(conn, pid, made, production_date=base.isoformat(), notes="Demo batch")
        else:
            record_quick_batch(conn, pid, made, production_date=base.isoformat(), notes="Demo batch")

    lines = []
    for pid, (_, _, _, _, price) in zip(product_ids, DEMO_PRODUCTS):
        brought = rnd.randint(10, 25)
        lines.append(
            SaleLineInput(
                product_id=pid,
                unit_price=price,
                starting_stock=brought,
                ending_stock=rnd.randint(0, brought),
            )
        )
    create_sales_event(
        conn,
        event_name="Farmers Market",
        event_date=(base + timedelta(days=7)).isoformat(),
        lines=lines,
        notes="Demo market day",
    )

    if get_notes(conn) is None:
        save_notes(conn, "Restock amber bottles before the next market.")
