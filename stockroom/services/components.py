from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from stockroom.db import one, q, transaction, x
from stockroom.errors import NotFoundError, ValidationError
from stockroom.logger import get_logger
from stockroom.services.products import COMPONENT_ROLES
from stockroom.utils import finite_number, iso_now, iso_today, normalize_key, safe_div, whole_number

logger = get_logger(__name__)


@dataclass
class PurchaseResult:
    purchase_id: int
    new_quantity: int
    new_average_cost: float
    new_total_value: float
    cost_per_unit: float


def list_components(conn, category: Optional[str] = None):
    if category:
        return q(conn, "SELECT * FROM components WHERE category=? ORDER BY type", (category,))
    return q(conn, "SELECT * FROM components ORDER BY category, type")


def get_component(conn, component_id: int):
    return one(conn, "SELECT * FROM components WHERE id=?", (int(component_id),))


def require_component(conn, component_id: int):
    c = get_component(conn, component_id)
    if c is None:
        raise NotFoundError("Component", component_id)
    return c


def create_component(
    conn,
    *,
    category: str,
    type: str,
    quantity: int = 0,
    average_cost: float = 0.0,
) -> int:
    category = normalize_key(category)
    if category not in COMPONENT_ROLES:
        raise ValidationError(f"Category must be one of: {', '.join(COMPONENT_ROLES)}.", field="category")
    key = normalize_key(type)
    if not key:
        raise ValidationError("Component type is required.", field="type")
    quantity = whole_number(quantity, "quantity")
    average_cost = finite_number(average_cost, "average_cost")
    if quantity < 0:
        raise ValidationError("Quantity must be >= 0.", field="quantity")
    if average_cost < 0:
        raise ValidationError("Average cost must be >= 0.", field="average_cost")

    existing = one(conn, "SELECT id FROM components WHERE category=? AND type=?", (category, key))
    if existing is not None:
        raise ValidationError(f"Component {category}/{key} already exists.", field="type")

    now = iso_now()
    component_id = x(
        conn,
        """
        INSERT INTO components (category, type, quantity, average_cost, total_value, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            category,
            key,
            int(quantity),
            float(average_cost),
            float(int(quantity) * float(average_cost)),
            now,
            now,
        ),
    )
    logger.info("Created component %s (%s/%s)", component_id, category, key)
    return component_id


def set_component_quantity(conn, component, new_quantity: int) -> None:
    """Write a new quantity and the matching total_value. Callers own the transaction."""
    x(
        conn,
        "UPDATE components SET quantity=?, total_value=?, updated_at=? WHERE id=?",
        (
            int(new_quantity),
            float(int(new_quantity) * float(component["average_cost"])),
            iso_now(),
            int(component["id"]),
        ),
    )


def adjust_component_quantity(conn, component_id: int, new_quantity: int) -> None:
    """Manual count correction (stocktake). Average cost is unchanged."""
    new_quantity = whole_number(new_quantity, "quantity")
    if new_quantity < 0:
        raise ValidationError("Quantity must be >= 0.", field="quantity")

    c = require_component(conn, component_id)
    with transaction(conn):
        set_component_quantity(conn, c, new_quantity)
    logger.info("Component %s counted: %s -> %s", component_id, c["quantity"], new_quantity)


def weighted_average_cost(
    old_quantity: int, old_avg_cost: float, quantity: int, cost_per_unit: float
) -> float:
    new_quantity = int(old_quantity) + int(quantity)
    return safe_div(
        int(old_quantity) * float(old_avg_cost) + int(quantity) * float(cost_per_unit),
        new_quantity,
    )


def record_component_purchase(
    conn,
    component_id: int,
    *,
    quantity: int,
    total_paid: float,
    purchase_date: Optional[str] = None,
) -> PurchaseResult:
    """
    Add purchased units to a component and re-average its unit cost:

      new_quantity    = old_quantity + quantity
      new_avg_cost    = (old_quantity * old_avg_cost + quantity * cost_per_unit) / new_quantity
      new_total_value = new_quantity * new_avg_cost

    The component update and the ledger row are written in one transaction.
    """
    quantity = whole_number(quantity, "quantity")
    total_paid = finite_number(total_paid, "total_paid")

    if quantity <= 0:
        raise ValidationError("Quantity must be > 0.", field="quantity")
    if total_paid <= 0:
        raise ValidationError("Total paid must be > 0.", field="total_paid")

    c = require_component(conn, component_id)

    cost_per_unit = total_paid / quantity
    old_qty = int(c["quantity"])
    old_cost = float(c["average_cost"])
    new_qty = old_qty + quantity
    new_avg = weighted_average_cost(old_qty, old_cost, quantity, cost_per_unit)
    new_total = new_qty * new_avg

    with transaction(conn):
        x(
            conn,
            """
            UPDATE components
            SET quantity=?, average_cost=?, total_value=?, updated_at=?
            WHERE id=?
            """,
            (new_qty, float(new_avg), float(new_total), iso_now(), int(component_id)),
        )
        purchase_id = x(
            conn,
            """
            INSERT INTO component_purchases (
                component_id, purchase_date, quantity, total_paid, cost_per_unit, created_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                int(component_id),
                purchase_date or iso_today(),
                quantity,
                total_paid,
                float(cost_per_unit),
                iso_now(),
            ),
        )

    logger.info(
        "Purchase %s: %s x %s/%s at %.4f (avg %.4f -> %.4f)",
        purchase_id,
        quantity,
        c["category"],
        c["type"],
        cost_per_unit,
        old_cost,
        new_avg,
    )
    return PurchaseResult(
        purchase_id=int(purchase_id),
        new_quantity=int(new_qty),
        new_average_cost=float(new_avg),
        new_total_value=float(new_total),
        cost_per_unit=float(cost_per_unit),
    )


def list_component_purchases(conn, component_id: Optional[int] = None):
    if component_id is not None:
        return q(
            conn,
            """
            SELECT cp.*, c.category, c.type
            FROM component_purchases cp
            JOIN components c ON c.id = cp.component_id
            WHERE cp.component_id=?
            ORDER BY cp.purchase_date DESC, cp.id DESC
            """,
            (int(component_id),),
        )
    return q(
        conn,
        """
        SELECT cp.*, c.category, c.type
        FROM component_purchases cp
        JOIN components c ON c.id = cp.component_id
        ORDER BY cp.purchase_date DESC, cp.id DESC
        """,
    )
