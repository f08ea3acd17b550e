from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Optional

from stockroom.db import one, q, transaction, x
from stockroom.errors import InsufficientStockError, NotFoundError, ValidationError
from stockroom.logger import get_logger
from stockroom.services.components import set_component_quantity
from stockroom.services.products import (
    adjust_product_stock,
    derived_component_key,
    require_product,
    resolve_component,
)
from stockroom.utils import display_name, iso_now, iso_today, whole_number

logger = get_logger(__name__)

QUICK_BATCH_ROLES = ("lids", "bottles")
FULL_BATCH_ROLES = ("lids", "bottles", "labels")


@dataclass
class BatchResult:
    batch_id: int
    product_id: int
    quantity: int
    new_stock: int
    components_used: dict[str, str] = field(default_factory=dict)


def _positive_int(value, field_name: str) -> int:
    n = whole_number(value, field_name)
    if n <= 0:
        raise ValidationError(f"{field_name} must be a positive whole number.", field=field_name)
    return n


def _load_components(conn, product, roles: tuple[str, ...]) -> dict:
    found = {role: resolve_component(conn, product, role) for role in roles}
    missing = [role for role, c in found.items() if c is None]
    if missing:
        keys = ", ".join(f"{r} '{derived_component_key(product, r)}'" for r in missing)
        logger.warning("Batch rejected for product %s: missing %s", product["id"], keys)
        raise ValidationError(f"Missing component data: {keys}.", field="product_id")
    return found


def check_batch(conn, product_id: int, quantity: int, *, roles: tuple[str, ...] = QUICK_BATCH_ROLES) -> dict:
    """
    Validate a batch without writing. Returns the resolved components by role.

    Raises ValidationError, NotFoundError or InsufficientStockError.
    """
    quantity = _positive_int(quantity, "quantity")
    product = require_product(conn, product_id)
    comps = _load_components(conn, product, roles)

    if any(int(c["quantity"]) < quantity for c in comps.values()):
        err = InsufficientStockError(quantity, {role: int(c["quantity"]) for role, c in comps.items()})
        logger.warning("Batch rejected for product %s: %s", product_id, err)
        raise err
    return comps


def _make_batch(
    conn,
    product_id: int,
    quantity: int,
    *,
    roles: tuple[str, ...],
    production_date: Optional[str],
    batch_number: Optional[str],
    notes: Optional[str],
) -> BatchResult:
    quantity = _positive_int(quantity, "quantity")
    product = require_product(conn, product_id)
    comps = check_batch(conn, product_id, quantity, roles=roles)

    components_used = {role: f"{c['type']}: {quantity}" for role, c in comps.items()}

    with transaction(conn):
        adjust_product_stock(conn, int(product_id), quantity)
        for c in comps.values():
            set_component_quantity(conn, c, int(c["quantity"]) - quantity)

        now = iso_now()
        batch_id = x(
            conn,
            """
            INSERT INTO production_history (
                production_date, product_id, product_name, quantity_made,
                components_used, batch_number, notes, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                production_date or iso_today(),
                int(product_id),
                display_name(product["name"], product["size"]),
                quantity,
                json.dumps(components_used),
                batch_number,
                str(notes or ""),
                now,
                now,
            ),
        )

    new_stock = int(product["current_stock"]) + quantity
    logger.info(
        "Batch %s: made %s of product %s (%s), stock %s -> %s",
        batch_id,
        quantity,
        product_id,
        "+".join(roles),
        product["current_stock"],
        new_stock,
    )
    return BatchResult(
        batch_id=int(batch_id),
        product_id=int(product_id),
        quantity=quantity,
        new_stock=new_stock,
        components_used=components_used,
    )


def record_quick_batch(
    conn,
    product_id: int,
    quantity: int,
    *,
    production_date: Optional[str] = None,
    batch_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> BatchResult:
    """Make `quantity` units consuming one lid and one bottle each."""
    return _make_batch(
        conn,
        product_id,
        quantity,
        roles=QUICK_BATCH_ROLES,
        production_date=production_date,
        batch_number=batch_number,
        notes=notes,
    )


def record_full_batch(
    conn,
    product_id: int,
    quantity: int,
    *,
    production_date: Optional[str] = None,
    batch_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> BatchResult:
    """Make `quantity` units consuming one lid, one bottle and one label each."""
    return _make_batch(
        conn,
        product_id,
        quantity,
        roles=FULL_BATCH_ROLES,
        production_date=production_date,
        batch_number=batch_number,
        notes=notes,
    )


def record_production(
    conn,
    product_id: int,
    quantity: int,
    *,
    production_date: Optional[str] = None,
    batch_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> int:
    """Log finished units without touching component stock."""
    quantity = _positive_int(quantity, "quantity")
    product = require_product(conn, product_id)

    with transaction(conn):
        now = iso_now()
        batch_id = x(
            conn,
            """
            INSERT INTO production_history (
                production_date, product_id, product_name, quantity_made,
                components_used, batch_number, notes, created_at, updated_at
            ) VALUES (?, ?, ?, ?, '{}', ?, ?, ?, ?)
            """,
            (
                production_date or iso_today(),
                int(product_id),
                display_name(product["name"], product["size"]),
                quantity,
                batch_number,
                str(notes or ""),
                now,
                now,
            ),
        )
        adjust_product_stock(conn, int(product_id), quantity)

    logger.info("Production %s: logged %s of product %s (no components)", batch_id, quantity, product_id)
    return int(batch_id)


def get_production(conn, batch_id: int):
    return one(conn, "SELECT * FROM production_history WHERE id=?", (int(batch_id),))


def require_production(conn, batch_id: int):
    b = get_production(conn, batch_id)
    if b is None:
        raise NotFoundError("Production batch", batch_id)
    return b


def list_production(conn, product_id: Optional[int] = None):
    if product_id is not None:
        return q(
            conn,
            """
            SELECT * FROM production_history
            WHERE product_id=?
            ORDER BY production_date DESC, id DESC
            """,
            (int(product_id),),
        )
    return q(conn, "SELECT * FROM production_history ORDER BY production_date DESC, id DESC")


def update_production(
    conn,
    batch_id: int,
    *,
    quantity_made: int,
    production_date: Optional[str] = None,
    notes: Optional[str] = None,
    product_id: Optional[int] = None,
    batch_number: Optional[str] = None,
) -> None:
    """
    Edit a batch and carry the quantity change into finished-goods stock.

    Components consumed by the original batch are left as they are.
    """
    new_qty = _positive_int(quantity_made, "quantity_made")
    old = require_production(conn, batch_id)
    old_qty = int(old["quantity_made"])
    old_product_id = int(old["product_id"])
    new_product_id = int(product_id) if product_id is not None else old_product_id
    new_product = require_product(conn, new_product_id)

    with transaction(conn):
        if new_product_id == old_product_id:
            diff = new_qty - old_qty
            if diff != 0:
                adjust_product_stock(conn, old_product_id, diff)
        else:
            adjust_product_stock(conn, old_product_id, -old_qty)
            adjust_product_stock(conn, new_product_id, new_qty)

        x(
            conn,
            """
            UPDATE production_history
            SET product_id=?, product_name=?, quantity_made=?, production_date=?,
                notes=?, batch_number=?, updated_at=?
            WHERE id=?
            """,
            (
                new_product_id,
                display_name(new_product["name"], new_product["size"])
                if new_product_id != old_product_id
                else old["product_name"],
                new_qty,
                production_date or old["production_date"],
                str(notes) if notes is not None else old["notes"],
                batch_number if batch_number is not None else old["batch_number"],
                iso_now(),
                int(batch_id),
            ),
        )

    logger.info("Batch %s edited: quantity %s -> %s", batch_id, old_qty, new_qty)


def delete_production(conn, batch_id: int) -> None:
    """Remove a batch and take its units back out of finished-goods stock."""
    b = require_production(conn, batch_id)

    with transaction(conn):
        adjust_product_stock(conn, int(b["product_id"]), -int(b["quantity_made"]))
        x(conn, "DELETE FROM production_history WHERE id=?", (int(batch_id),))

    logger.info("Batch %s deleted: product %s stock -%s", batch_id, b["product_id"], b["quantity_made"])


def production_by_month(conn, product_id: Optional[int] = None) -> list[dict]:
    """History grouped by YYYY-MM, newest month first, with unit totals."""
    groups: dict[str, dict] = {}
    for r in list_production(conn, product_id):
        month = str(r["production_date"])[:7]
        g = groups.setdefault(month, {"month": month, "total_units": 0, "records": []})
        g["total_units"] += int(r["quantity_made"])
        g["records"].append(dict(r))
    return [groups[m] for m in sorted(groups, reverse=True)]


def components_used(batch) -> dict:
    try:
        return json.loads(batch["components_used"] or "{}")
    except json.JSONDecodeError:
        return {}
