"""
Substring rule tables for detection enrichment.

Each table is an ordered list of ``(patterns, outcome)`` pairs; the first
pair with a pattern contained in the lower-cased food name wins. Tables are
plain data so they can be extended (or replaced through the classifier's
constructor) without touching control flow.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence, Tuple, TypeVar

from scanlyf.domain.meal.detection.models import FoodCategory

T = TypeVar("T")
RuleTable = Sequence[Tuple[Sequence[str], T]]

Portion = Tuple[float, str]

DEFAULT_PORTION: Portion = (1, "serving")

PORTION_RULES: RuleTable[Portion] = [
    (("bread",), (2, "slices")),
    (("rice",), (1, "cup")),
    (("pasta",), (1, "cup")),
    (("chicken",), (4, "oz")),
    (("fish",), (4, "oz")),
    (("salad",), (2, "cups")),
    (("pizza",), (2, "slices")),
    (("sandwich",), (1, "sandwich")),
    (("apple",), (1, "medium")),
    (("banana",), (1, "medium")),
    (("egg",), (2, "eggs")),
    (("milk",), (1, "cup")),
    (("coffee",), (1, "cup")),
    (("juice",), (8, "oz")),
]

CATEGORY_RULES: RuleTable[FoodCategory] = [
    (("chicken", "fish", "meat", "egg", "tofu", "beans", "lentils"), FoodCategory.PROTEIN),
    (("bread", "rice", "pasta", "potato", "cereal", "oats"), FoodCategory.CARBS),
    (
        ("salad", "broccoli", "carrot", "spinach", "tomato", "cucumber"),
        FoodCategory.VEGETABLE,
    ),
    (("apple", "banana", "orange", "berries", "mango", "grapes"), FoodCategory.FRUIT),
    (("milk", "cheese", "yogurt", "butter"), FoodCategory.DAIRY),
    (("water", "juice", "coffee", "tea", "soda"), FoodCategory.BEVERAGE),
]

# Vision labels naming a category rather than a food.
EXCLUDED_LABELS: Sequence[str] = (
    "cuisine",
    "food",
    "ingredient",
    "recipe",
    "dish",
    "meal",
    "breakfast",
    "lunch",
    "dinner",
    "snack",
    "staple food",
)

KNOWN_FOODS: Sequence[str] = (
    "dosa", "masala dosa", "idli", "vada", "uttapam", "sambar", "chutney",
    "rice", "dal", "biryani", "pulao", "fried rice",
    "chapati", "roti", "naan", "paratha", "paneer", "palak paneer",
    "chicken", "mutton", "fish", "egg", "omelette",
    "salad", "sandwich", "pizza", "burger", "pasta", "noodles",
    "bhujia", "sev", "namkeen", "chivda", "chakli", "murukku",
    "chips", "kurkure", "pringles", "maggi", "instant noodles", "ramen",
    "biscuit", "oreo", "cookies", "chocolate", "kitkat", "snickers",
    "samosa", "kachori", "pakora", "vada pav", "pav bhaji", "chole bhature",
    "ladoo", "barfi", "gulab jamun", "rasgulla", "jalebi",
    "poha", "upma", "dhokla",
    "lassi", "chai", "coffee", "tea", "milk",
    "cola", "pepsi", "sprite", "fanta",
    "apple", "banana", "orange", "mango", "grapes", "berries",
    "bread", "toast", "cheese", "yogurt", "soup", "steak", "burrito", "taco",
    "sushi", "cake", "donut", "ice cream", "fries", "potato", "broccoli",
)


def match_rule(name: str, rules: RuleTable[T], default: T) -> T:
    """Return the outcome of the first rule with a pattern inside ``name``."""
    lowered = name.lower()
    for patterns, outcome in rules:
        if any(p in lowered for p in patterns):
            return outcome
    return default


def is_excluded_label(label: str, excluded: Sequence[str] = EXCLUDED_LABELS) -> bool:
    """True when the label is a generic category (``Indian cuisine``)."""
    lowered = label.lower()
    return any(cat in lowered for cat in excluded)


def names_known_food(label: str, known: Sequence[str] = KNOWN_FOODS) -> bool:
    """
    True when a vision label names a concrete food.

    Matches when the label contains a known food, a known food contains
    the label, or any word (3+ letters) of a known food appears as a whole
    word in the label (``Masala dosa`` -> ``dosa``).
    """
    lowered = label.lower().strip()
    if not lowered:
        return False
    for food in known:
        if food in lowered or lowered in food:
            return True
        for word in food.split():
            if len(word) >= 3 and re.search(rf"\b{re.escape(word)}\b", lowered):
                return True
    return False


class FoodClassifier:
    """
    Portion and category estimation from the rule tables.

    Example:
        >>> FoodClassifier().portion("Grilled chicken breast")
        (4, 'oz')
        >>> FoodClassifier().category("Greek yogurt")
        <FoodCategory.DAIRY: 'dairy'>
    """

    def __init__(
        self,
        portion_rules: Optional[RuleTable[Portion]] = None,
        category_rules: Optional[RuleTable[FoodCategory]] = None,
    ) -> None:
        self.portion_rules = portion_rules if portion_rules is not None else PORTION_RULES
        self.category_rules = (
            category_rules if category_rules is not None else CATEGORY_RULES
        )

    def portion(self, name: str) -> Portion:
        return match_rule(name, self.portion_rules, DEFAULT_PORTION)

    def category(self, name: str) -> FoodCategory:
        return match_rule(name, self.category_rules, FoodCategory.OTHER)
