"""Slot specification parsing and recipe lookup by title."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from weekplan.models import DayOfWeek, MealType, Recipe

logger = logging.getLogger(__name__)


class RecipeNotFoundError(LookupError):
    pass


@dataclass
class SlotSpec:
    """A parsed 'day:meal[:Recipe Name]' specification."""
    day: DayOfWeek
    meal_type: MealType
    recipe_query: str | None


def parse_slot_spec(raw: str, require_recipe: bool = True) -> SlotSpec:
    """Parse 'day:meal:Recipe Name' into a SlotSpec.

    day: a day name or three-letter abbreviation
    meal: breakfast, lunch, dinner, snack
    recipe: everything after the second colon
    """
    parts = raw.split(":", maxsplit=2)
    if len(parts) < 2 or (require_recipe and len(parts) != 3):
        expected = "'day:meal:Recipe Name'" if require_recipe else "'day:meal'"
        raise ValueError(f"Invalid slot format: '{raw}'. Expected {expected}")

    day_str, meal_str = parts[0].strip(), parts[1].strip().lower()
    recipe_str = parts[2].strip() if len(parts) == 3 else ""

    if require_recipe and not recipe_str:
        raise ValueError(f"Empty recipe name in slot: '{raw}'")

    try:
        day = DayOfWeek.parse(day_str)
    except ValueError:
        raise ValueError(f"Unknown day '{day_str}' in slot. Use a day name like 'monday' or 'mon'.")

    try:
        meal_type = MealType(meal_str)
    except ValueError:
        valid = ", ".join(m.value for m in MealType)
        raise ValueError(f"Unknown meal type '{meal_str}' in slot. Valid: {valid}")

    return SlotSpec(day=day, meal_type=meal_type, recipe_query=recipe_str or None)


def find_recipe(query: str, recipes: list[Recipe]) -> Recipe:
    """Find a recipe by title: exact match first, then the shortest substring match."""
    query_lower = query.strip().lower()

    for r in recipes:
        if r.title.lower() == query_lower:
            return r

    matches = [r for r in recipes if query_lower in r.title.lower()]
    if matches:
        matches.sort(key=lambda r: len(r.title))
        if len(matches) > 1:
            logger.debug(
                "'%s' matched %d recipes; using '%s'", query, len(matches), matches[0].title
            )
        return matches[0]

    raise RecipeNotFoundError(f"No recipe found matching '{query}'")
