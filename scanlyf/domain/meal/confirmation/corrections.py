"""
Free-text correction parsing and application.

Turns replies like ``"change 1 to brown rice, add salad, remove item 3"``
into a CorrectionSet and applies it to the pending item list.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from scanlyf.domain.meal.confirmation.models import CorrectionSet
from scanlyf.domain.meal.detection.models import DetectedFoodItem, DetectionSource
from scanlyf.domain.meal.detection.rules import FoodClassifier

AFFIRMATIVE_PATTERN = re.compile(r"\b(?:yes|correct|confirm)\b")
UPDATE_PATTERN = re.compile(
    r"\b(?:change|update)\s+(?:item\s+)?(\d+)\s+to\s+(.+?)(?=\.|,|$)", re.IGNORECASE
)
ADD_PATTERN = re.compile(r"\badd\s+(.+?)(?=\.|,|$)", re.IGNORECASE)
REMOVE_PATTERN = re.compile(r"\bremove\s+(?:item\s+)?(\d+)", re.IGNORECASE)


def parse_corrections(text: str) -> CorrectionSet:
    """
    Parse a user reply into a CorrectionSet.

    An affirmative word short-circuits everything else. Otherwise the
    update, addition and removal patterns are extracted independently
    from the raw text (case preserved for new names). Item numbers are
    1-based in the text and 0-based in the result.

    Example:
        >>> parse_corrections("change 1 to X, add Y")
        CorrectionSet(confirmed=False, updates=[(0, 'X')], additions=['Y'], removals=[])
    """
    if AFFIRMATIVE_PATTERN.search(text.lower()):
        return CorrectionSet(confirmed=True)

    updates = [
        (int(m.group(1)) - 1, m.group(2).strip())
        for m in UPDATE_PATTERN.finditer(text)
        if m.group(2).strip()
    ]
    additions = [
        m.group(1).strip() for m in ADD_PATTERN.finditer(text) if m.group(1).strip()
    ]
    removals = [int(m.group(1)) - 1 for m in REMOVE_PATTERN.finditer(text)]

    return CorrectionSet(updates=updates, additions=additions, removals=removals)


def apply_corrections(
    items: Sequence[DetectedFoodItem],
    corrections: CorrectionSet,
    classifier: Optional[FoodClassifier] = None,
) -> list[DetectedFoodItem]:
    """
    Apply corrections to items, returning a new list.

    Order: updates in place, then additions appended, then removals in
    descending index order so one removal never shifts another. Indices
    outside the list are ignored.

    Example:
        >>> names = lambda xs: [i.name for i in xs]
        >>> names(apply_corrections(abc, parse_corrections("remove item 1, remove item 3")))
        ['B']
    """
    classifier = classifier or FoodClassifier()
    result = list(items)

    if corrections.confirmed:
        return result

    for index, new_name in corrections.updates:
        if 0 <= index < len(result):
            result[index] = result[index].model_copy(
                update={
                    "name": new_name,
                    "category": classifier.category(new_name),
                    "confidence": 1.0,
                    "source": DetectionSource.USER,
                }
            )

    for name in corrections.additions:
        result.append(
            DetectedFoodItem(
                name=name,
                quantity=1,
                unit="serving",
                confidence=1.0,
                category=classifier.category(name),
                source=DetectionSource.USER,
            )
        )

    for index in sorted(set(corrections.removals), reverse=True):
        if 0 <= index < len(result):
            del result[index]

    return result


def format_confirmation_message(items: Sequence[DetectedFoodItem]) -> str:
    """Numbered item list followed by reply instructions."""
    lines = ["I detected the following items in your image:", ""]
    lines += [f"{n}. {item.display()}" for n, item in enumerate(items, start=1)]
    lines += [
        "",
        "Is this correct? You can:",
        '- Say "yes" to confirm all items',
        '- Update specific items (e.g., "change 1 to grilled chicken breast")',
        '- Add missing items (e.g., "add 1 cup of brown rice")',
        '- Remove items (e.g., "remove item 2")',
    ]
    return "\n".join(lines)
