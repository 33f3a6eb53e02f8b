"""Tests for detection rule tables and the food classifier."""

import pytest

from scanlyf.domain.meal.detection.models import (
    DetectedFoodItem,
    DetectionSource,
    FoodCategory,
)
from scanlyf.domain.meal.detection.rules import (
    FoodClassifier,
    is_excluded_label,
    match_rule,
    names_known_food,
)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Grilled chicken breast", (4, "oz")),
        ("Whole wheat bread", (2, "slices")),
        ("Orange juice", (8, "oz")),
        ("Quinoa", (1, "serving")),
    ],
)
def test_portion_rules(name: str, expected: tuple) -> None:
    assert FoodClassifier().portion(name) == expected


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Greek yogurt", FoodCategory.DAIRY),
        ("Brown rice", FoodCategory.CARBS),
        ("Spinach salad", FoodCategory.VEGETABLE),
        ("Mango", FoodCategory.FRUIT),
        ("Black coffee", FoodCategory.BEVERAGE),
        ("Tofu stir fry", FoodCategory.PROTEIN),
        ("Mystery stew", FoodCategory.OTHER),
    ],
)
def test_category_rules(name: str, expected: FoodCategory) -> None:
    assert FoodClassifier().category(name) == expected


def test_first_matching_rule_wins() -> None:
    # "chicken salad" hits the protein rule before the vegetable rule
    assert FoodClassifier().category("Chicken salad") == FoodCategory.PROTEIN


def test_custom_rule_tables_replace_defaults() -> None:
    classifier = FoodClassifier(
        portion_rules=[(("dosa",), (1, "dosa"))],
        category_rules=[(("dosa",), FoodCategory.CARBS)],
    )

    assert classifier.portion("Masala dosa") == (1, "dosa")
    assert classifier.category("Masala dosa") == FoodCategory.CARBS
    assert classifier.portion("bread") == (1, "serving")


def test_match_rule_default() -> None:
    assert match_rule("anything", [], "fallback") == "fallback"


@pytest.mark.parametrize("label", ["Indian cuisine", "Food", "Breakfast", "Staple food"])
def test_generic_labels_are_excluded(label: str) -> None:
    assert is_excluded_label(label)


def test_concrete_label_is_not_excluded() -> None:
    assert not is_excluded_label("Banana")


@pytest.mark.parametrize("label", ["Masala dosa", "Pizza", "Chocolate chip cookies", "naan"])
def test_known_foods(label: str) -> None:
    assert names_known_food(label)


@pytest.mark.parametrize("label", ["Table", "Tableware", "", "Plate"])
def test_unknown_labels(label: str) -> None:
    assert not names_known_food(label)


def test_item_display_drops_integral_decimals() -> None:
    whole = DetectedFoodItem(name="apple", quantity=1, unit="medium")
    half = DetectedFoodItem(name="rice", quantity=0.5, unit="cup")

    assert whole.display() == "apple - 1 medium"
    assert half.display() == "rice - 0.5 cup"
    assert whole.source == DetectionSource.USER
