from __future__ import annotations

import json
import math
from dataclasses import dataclass

from stockroom.db import one, x
from stockroom.errors import ValidationError
from stockroom.services.products import require_product
from stockroom.utils import iso_now, whole_number


@dataclass
class Ingredient:
    name: str
    amount: float
    unit: str = "g"


def _parse_ingredients(raw) -> list[Ingredient]:
    if isinstance(raw, str):
        raw = json.loads(raw or "[]")
    out: list[Ingredient] = []
    for item in raw or []:
        if isinstance(item, Ingredient):
            out.append(item)
            continue
        try:
            out.append(Ingredient(name=str(item["name"]), amount=float(item["amount"]), unit=str(item.get("unit", "g"))))
        except (KeyError, TypeError, ValueError, OverflowError):
            raise ValidationError("Each ingredient needs a name and a numeric amount.", field="ingredients")
        if not math.isfinite(out[-1].amount):
            raise ValidationError("Ingredient amounts must be finite.", field="ingredients")
    return out


def get_recipe(conn, product_id: int):
    return one(conn, "SELECT * FROM recipes WHERE product_id=?", (int(product_id),))


def recipe_ingredients(recipe) -> list[Ingredient]:
    return _parse_ingredients(recipe["ingredients"])


def save_recipe(
    conn,
    product_id: int,
    *,
    ingredients: list,
    original_batch_size: int,
    total_recipe_weight: float | None = None,
) -> int:
    require_product(conn, product_id)
    parsed = _parse_ingredients(ingredients)
    if whole_number(original_batch_size, "original_batch_size") <= 0:
        raise ValidationError("Original batch size must be > 0.", field="original_batch_size")
    if total_recipe_weight is None:
        total_recipe_weight = sum(i.amount for i in parsed)

    payload = json.dumps([{"name": i.name, "amount": i.amount, "unit": i.unit} for i in parsed])
    now = iso_now()
    x(
        conn,
        """
        INSERT INTO recipes (product_id, ingredients, original_batch_size, total_recipe_weight, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(product_id) DO UPDATE SET
          ingredients=excluded.ingredients,
          original_batch_size=excluded.original_batch_size,
          total_recipe_weight=excluded.total_recipe_weight,
          updated_at=excluded.updated_at
        """,
        (int(product_id), payload, int(original_batch_size), float(total_recipe_weight), now, now),
    )
    return int(get_recipe(conn, product_id)["id"])


def _round1(v: float) -> float:
    # Half-up to one decimal.
    return math.floor(v * 10 + 0.5) / 10


def scale_recipe(recipe, desired: int) -> dict:
    """Scale ingredient amounts to `desired` bottles, rounded to one decimal."""
    desired = whole_number(desired, "desired")
    if desired <= 0:
        raise ValidationError("Desired bottle count must be > 0.", field="desired")
    batch_size = int(recipe["original_batch_size"])
    if batch_size <= 0:
        raise ValidationError("Recipe has no original batch size.", field="original_batch_size")

    factor = desired / batch_size
    scaled = [
        Ingredient(name=i.name, amount=_round1(i.amount * factor), unit=i.unit)
        for i in recipe_ingredients(recipe)
    ]
    return {"factor": factor, "ingredients": scaled}


GRAMS_PER_POUND = 453.592


def format_weight(grams: float, unit: str = "g") -> str:
    if unit == "lbs":
        return f"{math.floor(float(grams) / GRAMS_PER_POUND * 100 + 0.5) / 100:.2f}lbs"
    return f"{float(grams):g}g"
