"""Demo data for screenshots and demos, created through normal scheduler operations."""

from __future__ import annotations

import logging
from datetime import date, datetime

from weekplan.models import DayOfWeek, Household, Ingredient, MealType, Recipe, WeekPlanStatus
from weekplan.scheduler import WeekPlanScheduler
from weekplan.store import fetch_with_logging, save_with_logging

logger = logging.getLogger(__name__)

DEMO_HOUSEHOLD_NAME = "Demo Household"

DEMO_RECIPES = [
    # (title, summary, prep, cook, tags)
    ("Mushroom Risotto", "Creamy Italian rice dish with porcini mushrooms", 15, 35, ["Italian", "Vegetarian"]),
    ("Grilled Salmon", "Fresh Atlantic salmon with lemon herb butter", 10, 15, ["Seafood", "Quick"]),
    ("Chicken Tikka Masala", "Classic British-Indian curry with tender chicken", 20, 30, ["Indian", "Curry"]),
    ("Sunday Roast", "Traditional roast beef with Yorkshire puddings", 30, 120, ["British", "Sunday"]),
    ("Vegetable Stir Fry", "Quick and healthy Asian-inspired vegetables", 10, 10, ["Asian", "Vegetarian", "Quick"]),
    ("Pasta Carbonara", "Classic Roman pasta with eggs, cheese, and pancetta", 10, 15, ["Italian", "Quick"]),
]

# Per recipe, for DEMO_SERVINGS: (qty, unit, item)
DEMO_INGREDIENTS = {
    "Mushroom Risotto": [(300, "g", "arborio rice"), (250, "g", "mushrooms"), (1, None, "onion"), (1, "l", "vegetable stock")],
    "Grilled Salmon": [(4, None, "salmon fillets"), (1, None, "lemon"), (30, "g", "butter")],
    "Chicken Tikka Masala": [(600, "g", "chicken thighs"), (1, None, "onion"), (400, "ml", "coconut milk"), (2, "Tbsp", "curry paste")],
    "Sunday Roast": [(1.5, "kg", "beef roasting joint"), (1, "kg", "potatoes"), (4, None, "carrots")],
    "Vegetable Stir Fry": [(2, None, "peppers"), (200, "g", "broccoli"), (250, "g", "noodles"), (3, "Tbsp", "soy sauce")],
    "Pasta Carbonara": [(400, "g", "spaghetti"), (3, None, "eggs"), (150, "g", "pancetta"), (50, "g", "parmesan")],
}

# (day, meal, recipe index or None, custom name)
DEMO_SLOTS = [
    (DayOfWeek.MONDAY, MealType.DINNER, 0, None),
    (DayOfWeek.TUESDAY, MealType.DINNER, 1, None),
    (DayOfWeek.WEDNESDAY, MealType.DINNER, 4, None),
    (DayOfWeek.THURSDAY, MealType.DINNER, 2, None),
    (DayOfWeek.FRIDAY, MealType.DINNER, 5, None),
    (DayOfWeek.SATURDAY, MealType.LUNCH, None, "Pub Lunch"),
    (DayOfWeek.SATURDAY, MealType.DINNER, 3, None),
    (DayOfWeek.SUNDAY, MealType.DINNER, 3, "Leftover Roast"),
]

DEMO_SERVINGS = 4


def find_household(scheduler: WeekPlanScheduler, name: str) -> Household | None:
    result = fetch_with_logging(scheduler.store, Household, lambda h: h.name == name, context="household")
    if result.failed:
        raise result.error
    return min(result.items, key=lambda h: h.created_at) if result.items else None


def seed_demo_data(scheduler: WeekPlanScheduler, now: date | datetime) -> Household | None:
    """Populate the store with a demo household, recipes and this week's plan.

    Does nothing if any recipe already exists, returning the existing
    household instead (None if the store holds recipes but no household).
    """
    store = scheduler.store
    existing = fetch_with_logging(store, Recipe, context="demo recipe check")
    if existing.failed:
        raise existing.error
    if existing.items:
        logger.info("Demo data skipped: store already has %d recipe(s)", len(existing.items))
        household = find_household(scheduler, DEMO_HOUSEHOLD_NAME)
        if household is None:
            households = store.fetch(Household)
            household = households[0] if households else None
        return household

    household = Household(name=DEMO_HOUSEHOLD_NAME)
    store.insert(household)

    recipes = []
    for title, summary, prep, cook, tags in DEMO_RECIPES:
        recipe = Recipe(
            title=title,
            household_id=household.id,
            summary=summary,
            servings=DEMO_SERVINGS,
            prep_time_min=prep,
            cook_time_min=cook,
            tags=tags,
            instructions=[f"Demo recipe instructions for {title}."],
            ingredients=[
                Ingredient(item=item, qty=qty, unit=unit)
                for qty, unit, item in DEMO_INGREDIENTS[title]
            ],
        )
        store.insert(recipe)
        recipes.append(recipe)
    save_with_logging(store, context="demo recipes")

    plan = scheduler.find_or_create_plan(household.id, now, status=WeekPlanStatus.ACTIVE)
    for day, meal_type, recipe_idx, custom_name in DEMO_SLOTS:
        scheduler.add_slot(
            plan,
            day,
            meal_type,
            servings=DEMO_SERVINGS,
            recipes=[recipes[recipe_idx]] if recipe_idx is not None else [],
            custom_name=custom_name,
        )

    logger.info("Seeded demo household with %d recipes and %d slots", len(recipes), len(plan.slots))
    return household
