"""Shopping list generation from a week plan."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum

from weekplan.models import WeekPlan
from weekplan.scheduler import WeekPlanScheduler
from weekplan.weeks import week_range_display

logger = logging.getLogger(__name__)


class IngredientCategory(Enum):
    PRODUCE = "produce"
    PROTEIN = "protein"
    DAIRY = "dairy"
    GRAIN = "grain"
    PANTRY = "pantry"
    FROZEN = "frozen"
    CONDIMENT = "condiment"
    BEVERAGE = "beverage"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return _CATEGORY_NAMES[self]

    @property
    def sort_order(self) -> int:
        return list(IngredientCategory).index(self)


_CATEGORY_NAMES = {
    IngredientCategory.PRODUCE: "Produce",
    IngredientCategory.PROTEIN: "Protein",
    IngredientCategory.DAIRY: "Dairy",
    IngredientCategory.GRAIN: "Grains & Bread",
    IngredientCategory.PANTRY: "Pantry",
    IngredientCategory.FROZEN: "Frozen",
    IngredientCategory.CONDIMENT: "Condiments & Sauces",
    IngredientCategory.BEVERAGE: "Beverages",
    IngredientCategory.OTHER: "Other",
}

CATEGORY_KEYWORDS: dict[IngredientCategory, list[str]] = {
    IngredientCategory.PRODUCE: [
        "lettuce", "tomato", "onion", "garlic", "pepper", "carrot", "celery",
        "potato", "broccoli", "spinach", "kale", "cabbage", "courgette",
        "zucchini", "mushroom", "avocado", "lemon", "lime", "ginger",
        "coriander", "cilantro", "parsley", "basil", "mint", "spring onion",
        "cucumber", "peas", "apple", "banana", "berry", "berries", "orange",
        "squash", "cauliflower", "asparagus", "aubergine", "leek", "parsnip",
    ],
    IngredientCategory.PROTEIN: [
        "chicken", "beef", "pork", "lamb", "turkey", "salmon", "cod", "prawn",
        "shrimp", "fish", "sausage", "bacon", "pancetta", "mince", "steak",
        "tofu", "tempeh", "tuna",
    ],
    IngredientCategory.DAIRY: [
        "cheese", "milk", "cream", "yogurt", "yoghurt", "butter", "egg",
        "parmesan", "mozzarella", "cheddar", "creme fraiche",
    ],
    IngredientCategory.GRAIN: [
        "rice", "pasta", "spaghetti", "penne", "noodle", "bread", "tortilla",
        "flour", "oats", "couscous", "quinoa", "pitta", "wrap", "bun",
    ],
    IngredientCategory.PANTRY: [
        "stock", "broth", "oil", "vinegar", "sugar", "tinned", "canned",
        "chickpea", "lentil", "beans", "coconut milk", "tomato paste",
        "passata", "honey",
    ],
    IngredientCategory.FROZEN: ["frozen", "ice cream"],
    IngredientCategory.CONDIMENT: [
        "salt", "black pepper", "soy sauce", "curry paste", "mustard",
        "ketchup", "mayonnaise", "hot sauce", "paprika", "cumin", "oregano",
        "thyme", "cinnamon", "turmeric", "chilli flakes", "worcestershire",
    ],
    IngredientCategory.BEVERAGE: ["juice", "wine", "beer", "coffee", "tea bags"],
}

UNIT_ALIASES = {
    "tablespoon": "Tbsp", "tablespoons": "Tbsp", "tbsp": "Tbsp", "tbs": "Tbsp",
    "teaspoon": "tsp", "teaspoons": "tsp", "tsp": "tsp",
    "cup": "cup", "cups": "cup",
    "ounce": "oz", "ounces": "oz", "oz": "oz",
    "pound": "lb", "pounds": "lb", "lb": "lb", "lbs": "lb",
    "gram": "g", "grams": "g", "g": "g",
    "kilogram": "kg", "kilograms": "kg", "kg": "kg",
    "millilitre": "ml", "millilitres": "ml", "milliliter": "ml", "milliliters": "ml", "ml": "ml",
    "litre": "l", "litres": "l", "liter": "l", "liters": "l", "l": "l",
    "can": "can", "cans": "can", "tin": "can", "tins": "can",
    "clove": "clove", "cloves": "clove",
    "slice": "slice", "slices": "slice",
    "pinch": "pinch", "handful": "handful",
}

# Quantities in these units are rounded to whole numbers instead of fractions
METRIC_UNITS = {"g", "ml"}


def normalize_unit(unit: str | None) -> str:
    """Map unit spellings onto one canonical form ('' for no unit)."""
    if not unit:
        return ""
    return UNIT_ALIASES.get(unit.lower().strip().rstrip("."), unit)


def is_known_unit(token: str) -> bool:
    return token.lower().rstrip(".") in UNIT_ALIASES


def classify_category(item_name: str) -> IngredientCategory:
    """Pick the category of the longest keyword found in the item name."""
    name = item_name.lower()
    best, best_len = IngredientCategory.OTHER, 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        for kw in keywords:
            if kw in name and len(kw) > best_len:
                best, best_len = category, len(kw)
    return best


@dataclass
class GroceryItem:
    item: str
    unit: str
    qty: float = 0.0
    category: IngredientCategory = IngredientCategory.OTHER
    notes: list[str] = field(default_factory=list)
    recipes: list[str] = field(default_factory=list)
    slots: list[str] = field(default_factory=list)


def generate_grocery_list(
    scheduler: WeekPlanScheduler,
    plan: WeekPlan,
    pantry_staples: list[str] | None = None,
) -> list[GroceryItem]:
    """Aggregate ingredients of every planned recipe in the week.

    Each recipe is scaled by the slot's planned servings over the recipe's
    base servings. Skipped slots and custom meals contribute nothing. Items
    matching a pantry staple are left off.
    """
    pantry = {p.lower().strip() for p in (pantry_staples or []) if p.strip()}
    agg: dict[tuple[str, str], GroceryItem] = {}

    for slot in plan.slots:
        if slot.is_skipped:
            continue
        for recipe in scheduler.resolve_recipes(slot):
            scale = slot.servings_planned / max(recipe.servings, 1)
            if not recipe.ingredients:
                logger.debug("No ingredients for %s", recipe.title)
            for ing in recipe.ingredients:
                item_key = ing.item.lower().strip()
                if any(p in item_key for p in pantry):
                    continue

                unit = normalize_unit(ing.unit)
                entry = agg.get((item_key, unit))
                if entry is None:
                    entry = GroceryItem(
                        item=ing.item.strip(),
                        unit=unit,
                        category=classify_category(ing.item),
                    )
                    agg[(item_key, unit)] = entry

                if ing.qty is not None:
                    entry.qty += ing.qty * scale
                if ing.notes and ing.notes not in entry.notes:
                    entry.notes.append(ing.notes)
                if recipe.title not in entry.recipes:
                    entry.recipes.append(recipe.title)
                if slot.description not in entry.slots:
                    entry.slots.append(slot.description)

    return sorted(agg.values(), key=lambda g: (g.category.sort_order, g.item.lower(), g.unit))


def group_by_category(items: list[GroceryItem]) -> dict[IngredientCategory, list[GroceryItem]]:
    grouped: dict[IngredientCategory, list[GroceryItem]] = {}
    for category in IngredientCategory:
        in_category = [g for g in items if g.category == category]
        if in_category:
            grouped[category] = in_category
    return grouped


def format_qty(qty: float, unit: str = "") -> str:
    """Format a quantity for shopping: whole grams/ml, kitchen fractions otherwise."""
    if qty <= 0:
        return ""
    if unit in METRIC_UNITS:
        return str(max(1, round(qty)))

    whole = int(qty)
    frac = qty - whole
    if frac < 0.05:
        return str(whole)
    if frac > 0.95:
        return str(whole + 1)

    fractions = {0.25: "1/4", 1 / 3: "1/3", 0.5: "1/2", 2 / 3: "2/3", 0.75: "3/4"}
    closest = min(fractions, key=lambda f: abs(f - frac))
    if abs(closest - frac) < 0.05:
        return f"{whole} {fractions[closest]}" if whole else fractions[closest]
    return f"{qty:.1f}"


def format_shopping_markdown(plan: WeekPlan, items: list[GroceryItem]) -> str:
    """Format the grocery list as markdown checkboxes grouped by category."""
    lines = [f"# Shopping List: {week_range_display(plan.week_start)}", ""]

    for category, entries in group_by_category(items).items():
        lines.append(f"## {category.display_name}")
        lines.append("")
        for entry in entries:
            qty_str = format_qty(entry.qty, entry.unit)
            notes_str = f" ({', '.join(entry.notes)})" if entry.notes else ""
            if qty_str:
                unit_str = f" {entry.unit}" if entry.unit else ""
                lines.append(f"- [ ] {qty_str}{unit_str} {entry.item}{notes_str}")
            else:
                lines.append(f"- [ ] {entry.item}{notes_str}")
        lines.append("")

    return "\n".join(lines)


def format_shopping_json(plan: WeekPlan, items: list[GroceryItem]) -> str:
    data = {
        "week_start": plan.week_start.isoformat(),
        "categories": {
            category.value: [
                {
                    "item": g.item,
                    "qty": round(g.qty, 2),
                    "unit": g.unit,
                    "notes": g.notes,
                    "recipes": g.recipes,
                    "slots": g.slots,
                }
                for g in entries
            ]
            for category, entries in group_by_category(items).items()
        },
    }
    return json.dumps(data, indent=2)
