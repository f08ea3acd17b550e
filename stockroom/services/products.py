from __future__ import annotations

from typing import Optional

from stockroom.db import one, q, transaction, x
from stockroom.errors import NotFoundError, ValidationError
from stockroom.logger import get_logger
from stockroom.utils import finite_number, iso_now, normalize_key, whole_number

logger = get_logger(__name__)

COMPONENT_ROLES = ("lids", "bottles", "labels")

# Label cost is not tracked per product yet; the product page uses a flat estimate.
LABEL_COST_ESTIMATE = 0.30


def list_products(conn):
    return q(conn, "SELECT * FROM products ORDER BY name ASC, size ASC")


def get_product(conn, product_id: int):
    return one(conn, "SELECT * FROM products WHERE id=?", (int(product_id),))


def require_product(conn, product_id: int):
    p = get_product(conn, product_id)
    if p is None:
        raise NotFoundError("Product", product_id)
    return p


def _clean_name(name: Optional[str]) -> str:
    s = str(name or "").strip()
    if not s:
        raise ValidationError("Product name is required.", field="name")
    return s


def _clean_price(price) -> float:
    p = finite_number(price or 0, "price")
    if p < 0:
        raise ValidationError("Price must be >= 0.", field="price")
    return p


def create_product(
    conn,
    *,
    name: str,
    size: str = "",
    lid_color: str = "",
    bottle_type: str = "",
    price: float = 0.0,
    description: str = "",
    current_stock: int = 0,
) -> int:
    now = iso_now()
    product_id = x(
        conn,
        """
        INSERT INTO products (
            name, size, current_stock, lid_color, bottle_type, price, description,
            created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            _clean_name(name),
            str(size or "").strip(),
            whole_number(current_stock or 0, "current_stock"),
            str(lid_color or "").strip(),
            str(bottle_type or "").strip(),
            _clean_price(price),
            str(description or ""),
            now,
            now,
        ),
    )
    logger.info("Created product %s (%s)", product_id, name)
    return product_id


_EDITABLE_FIELDS = ("name", "size", "current_stock", "lid_color", "bottle_type", "price", "description")


def update_product(conn, product_id: int, **fields) -> None:
    """Direct edit of product fields. `current_stock` here is a manual correction."""
    require_product(conn, product_id)

    unknown = set(fields) - set(_EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown product field(s): {', '.join(sorted(unknown))}.")

    clean: dict = {}
    for key, value in fields.items():
        if value is None:
            continue
        if key == "name":
            clean[key] = _clean_name(value)
        elif key == "price":
            clean[key] = _clean_price(value)
        elif key == "current_stock":
            clean[key] = whole_number(value, "current_stock")
        else:
            clean[key] = str(value).strip() if key != "description" else str(value)

    if not clean:
        return

    assignments = ", ".join(f"{k}=?" for k in clean)
    x(
        conn,
        f"UPDATE products SET {assignments}, updated_at=? WHERE id=?",
        (*clean.values(), iso_now(), int(product_id)),
    )
    logger.info("Updated product %s: %s", product_id, sorted(clean))


def delete_product(conn, product_id: int) -> None:
    require_product(conn, product_id)

    refs = one(
        conn,
        """
        SELECT
          (SELECT COUNT(1) FROM production_history WHERE product_id=?) AS batches,
          (SELECT COUNT(1) FROM sales_items WHERE product_id=?) AS sales
        """,
        (int(product_id), int(product_id)),
    )
    if int(refs["batches"]) or int(refs["sales"]):
        logger.warning(
            "Delete of product %s rejected: %s batch(es), %s sale line(s)",
            product_id,
            refs["batches"],
            refs["sales"],
        )
        raise ValidationError(
            "Product has production or sales history and cannot be deleted.",
            field="product_id",
        )

    with transaction(conn):
        x(conn, "DELETE FROM recipes WHERE product_id=?", (int(product_id),))
        x(conn, "DELETE FROM product_components WHERE product_id=?", (int(product_id),))
        x(conn, "DELETE FROM products WHERE id=?", (int(product_id),))
    logger.info("Deleted product %s", product_id)


def adjust_product_stock(conn, product_id: int, delta: int) -> None:
    """Add `delta` (may be negative) to current_stock. Callers own the transaction."""
    x(
        conn,
        "UPDATE products SET current_stock = current_stock + ?, updated_at=? WHERE id=?",
        (int(delta), iso_now(), int(product_id)),
    )


# -------------------------
# Product -> component lookup
# -------------------------

def label_key(product) -> str:
    """
    Derived label key: "Lavender Honey" + size "Big" -> "lavender_honey_big".
    """
    key = normalize_key(product["name"]).replace(" ", "_")
    if str(product["size"] or "").strip() == "Big":
        key += "_big"
    return key


def derived_component_key(product, role: str) -> str:
    if role == "lids":
        return normalize_key(product["lid_color"])
    if role == "bottles":
        return normalize_key(product["bottle_type"])
    if role == "labels":
        return label_key(product)
    raise ValidationError(f"Unknown component role '{role}'.", field="role")


def _match_by_key(conn, product, role: str):
    key = derived_component_key(product, role)
    if not key:
        return None

    if role == "labels":
        # Labels match on the first word of the key, e.g. 'lavender' in 'lavender_label'.
        token = key.split("_")[0]
        rows = q(
            conn,
            "SELECT * FROM components WHERE category='labels' ORDER BY id",
        )
        for r in rows:
            if token in normalize_key(r["type"]):
                return r
        return None

    return one(
        conn,
        "SELECT * FROM components WHERE category=? AND LOWER(type)=? ORDER BY id LIMIT 1",
        (role, key),
    )


def resolve_component(conn, product, role: str):
    """
    Component consumed by `product` for `role`.

    An explicit product_components mapping wins; otherwise the component is
    found from the product's lid_color / bottle_type / name.
    """
    mapped = one(
        conn,
        """
        SELECT c.*
        FROM product_components pc
        JOIN components c ON c.id = pc.component_id
        WHERE pc.product_id=? AND pc.role=?
        """,
        (int(product["id"]), role),
    )
    if mapped is not None:
        return mapped
    return _match_by_key(conn, product, role)


def product_components(conn, product_id: int) -> list[dict]:
    product = require_product(conn, product_id)
    out: list[dict] = []
    for role in COMPONENT_ROLES:
        c = resolve_component(conn, product, role)
        explicit = one(
            conn,
            "SELECT 1 FROM product_components WHERE product_id=? AND role=?",
            (int(product_id), role),
        )
        out.append(
            {
                "role": role,
                "key": derived_component_key(product, role),
                "explicit": explicit is not None,
                "component": dict(c) if c is not None else None,
            }
        )
    return out


def link_component(conn, product_id: int, role: str, component_id: int) -> None:
    if role not in COMPONENT_ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(COMPONENT_ROLES)}.", field="role")
    require_product(conn, product_id)

    c = one(conn, "SELECT * FROM components WHERE id=?", (int(component_id),))
    if c is None:
        raise NotFoundError("Component", component_id)
    if c["category"] != role:
        raise ValidationError(
            f"Component {component_id} is a '{c['category']}' component, not '{role}'.",
            field="component_id",
        )

    x(
        conn,
        """
        INSERT INTO product_components (product_id, role, component_id) VALUES (?, ?, ?)
        ON CONFLICT(product_id, role) DO UPDATE SET component_id=excluded.component_id
        """,
        (int(product_id), role, int(component_id)),
    )
    logger.info("Linked product %s %s -> component %s", product_id, role, component_id)


def unit_component_cost(conn, product_id: int) -> float:
    """Lid + bottle average cost plus the flat label estimate."""
    product = require_product(conn, product_id)
    lid = resolve_component(conn, product, "lids")
    bottle = resolve_component(conn, product, "bottles")
    lid_cost = float(lid["average_cost"]) if lid is not None else 0.0
    bottle_cost = float(bottle["average_cost"]) if bottle is not None else 0.0
    return round(lid_cost + bottle_cost + LABEL_COST_ESTIMATE, 4)
