from __future__ import annotations

import pytest

from stockroom.errors import ValidationError
from stockroom.services.recipes import (
    format_weight,
    get_recipe,
    recipe_ingredients,
    save_recipe,
    scale_recipe,
)

INGREDIENTS = [
    {"name": "Honey", "amount": 1200, "unit": "g"},
    {"name": "Lavender", "amount": 35.5, "unit": "g"},
]


class TestSaveRecipe:

    def test_round_trips_ingredients(self, conn, make_product):
        pid = make_product()
        save_recipe(conn, pid, ingredients=INGREDIENTS, original_batch_size=24)

        recipe = get_recipe(conn, pid)
        assert [i.name for i in recipe_ingredients(recipe)] == ["Honey", "Lavender"]
        assert recipe["total_recipe_weight"] == pytest.approx(1235.5)

    def test_second_save_replaces(self, conn, make_product):
        pid = make_product()
        first = save_recipe(conn, pid, ingredients=INGREDIENTS, original_batch_size=24)
        second = save_recipe(conn, pid, ingredients=INGREDIENTS[:1], original_batch_size=12)

        assert first == second
        assert get_recipe(conn, pid)["original_batch_size"] == 12

    def test_bad_ingredient(self, conn, make_product):
        pid = make_product()
        with pytest.raises(ValidationError):
            save_recipe(conn, pid, ingredients=[{"name": "Honey"}], original_batch_size=24)

    def test_bad_batch_size(self, conn, make_product):
        pid = make_product()
        with pytest.raises(ValidationError):
            save_recipe(conn, pid, ingredients=INGREDIENTS, original_batch_size=0)


class TestScaleRecipe:

    RECIPE = {
        "original_batch_size": 24,
        "ingredients": '[{"name": "Honey", "amount": 1200, "unit": "g"},'
        ' {"name": "Lavender", "amount": 35.5, "unit": "g"}]',
    }

    def test_double(self):
        scaled = scale_recipe(self.RECIPE, 48)
        assert scaled["factor"] == pytest.approx(2.0)
        assert [i.amount for i in scaled["ingredients"]] == [2400.0, 71.0]

    def test_rounds_to_one_decimal(self):
        # 35.5 * 10 / 24 = 14.791...
        scaled = scale_recipe(self.RECIPE, 10)
        assert [i.amount for i in scaled["ingredients"]] == [500.0, 14.8]

    def test_half_rounds_up(self):
        recipe = {"original_batch_size": 2, "ingredients": '[{"name": "Salt", "amount": 0.5}]'}
        assert scale_recipe(recipe, 1)["ingredients"][0].amount == 0.3

    def test_desired_must_be_positive(self):
        with pytest.raises(ValidationError):
            scale_recipe(self.RECIPE, 0)


class TestFormatWeight:

    def test_grams(self):
        assert format_weight(35.5) == "35.5g"

    def test_pounds(self):
        assert format_weight(453.592, "lbs") == "1.00lbs"
