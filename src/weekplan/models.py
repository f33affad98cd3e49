"""Shared data models for week plans, meal slots and the recipe library."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DayOfWeek(Enum):
    """Days of the week, Monday=1 through Sunday=7 (ISO weekday numbering)."""

    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7

    @property
    def display_name(self) -> str:
        return self.name.title()

    @property
    def short_name(self) -> str:
        return self.display_name[:3]

    @property
    def initial(self) -> str:
        return self.display_name[0]

    @property
    def is_weekend(self) -> bool:
        return self in (DayOfWeek.SATURDAY, DayOfWeek.SUNDAY)

    @classmethod
    def from_date(cls, value: date) -> DayOfWeek:
        return cls(value.isoweekday())

    @classmethod
    def from_sunday_first(cls, weekday: int) -> DayOfWeek:
        """Convert a Sunday=1 ... Saturday=7 weekday index."""
        if not 1 <= weekday <= 7:
            raise ValueError(f"Weekday index out of range: {weekday}")
        return cls(7 if weekday == 1 else weekday - 1)

    @classmethod
    def parse(cls, raw: str) -> DayOfWeek:
        key = raw.strip().lower()
        for day in cls:
            if key in (day.name.lower(), day.short_name.lower()):
                return day
        raise ValueError(f"Unknown day '{raw}'")


class MealType(Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"

    @property
    def display_name(self) -> str:
        return self.value.title()

    @property
    def sort_order(self) -> int:
        # Display ordering only; identity is the value.
        return _MEAL_SORT_ORDER[self]


_MEAL_SORT_ORDER = {
    MealType.BREAKFAST: 0,
    MealType.LUNCH: 1,
    MealType.DINNER: 2,
    MealType.SNACK: 3,
}


class WeekPlanStatus(Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @property
    def display_name(self) -> str:
        return self.value.title()

    @property
    def description(self) -> str:
        return {
            WeekPlanStatus.DRAFT: "Being planned",
            WeekPlanStatus.ACTIVE: "Current week",
            WeekPlanStatus.COMPLETED: "Past week",
            WeekPlanStatus.ARCHIVED: "Hidden from planning",
        }[self]


@dataclass
class Household:
    name: str = "My Household"
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Ingredient:
    """One ingredient line; qty is per the recipe's base servings."""
    item: str
    qty: float | None = None
    unit: str | None = None
    notes: str | None = None


@dataclass
class Recipe:
    title: str
    household_id: str | None = None
    id: str = field(default_factory=new_id)
    summary: str | None = None
    servings: int = 4
    prep_time_min: int | None = None
    cook_time_min: int | None = None
    tags: list[str] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    ingredients: list[Ingredient] = field(default_factory=list)
    is_favorite: bool = False
    times_cooked: int = 0
    last_cooked: date | None = None
    # Nutrition per serving
    calories: float | None = None
    protein_g: float | None = None
    carbs_g: float | None = None
    fat_g: float | None = None
    source_path: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    modified_at: datetime = field(default_factory=utcnow)

    @property
    def total_time_min(self) -> int | None:
        if self.prep_time_min is None and self.cook_time_min is None:
            return None
        return (self.prep_time_min or 0) + (self.cook_time_min or 0)


@dataclass
class MealSlot:
    day: DayOfWeek
    meal_type: MealType
    servings_planned: int = 2
    # Weak references: ids resolved lazily, missing targets tolerated
    recipe_ids: list[str] = field(default_factory=list)
    custom_meal_name: str | None = None
    notes: str | None = None
    is_skipped: bool = False
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    modified_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if self.servings_planned < 1:
            raise ValueError(f"servings_planned must be positive, got {self.servings_planned}")

    @property
    def is_planned(self) -> bool:
        return not self.is_skipped and (bool(self.recipe_ids) or bool(self.custom_meal_name))

    @property
    def is_empty(self) -> bool:
        return not self.is_skipped and not self.recipe_ids and not self.custom_meal_name

    @property
    def description(self) -> str:
        return f"{self.day.display_name} {self.meal_type.display_name}"

    def touch(self) -> None:
        self.modified_at = utcnow()


@dataclass
class WeekPlan:
    household_id: str
    week_start: date
    status: WeekPlanStatus = WeekPlanStatus.DRAFT
    household_note: str | None = None
    slots: list[MealSlot] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    modified_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        from weekplan.weeks import normalize_to_week_start

        self.week_start = normalize_to_week_start(self.week_start)

    @property
    def week_end(self) -> date:
        from weekplan.weeks import week_end

        return week_end(self.week_start)

    def date_for(self, day: DayOfWeek) -> date:
        from weekplan.weeks import date_for_day

        return date_for_day(self.week_start, day)

    @property
    def planned_slots(self) -> list[MealSlot]:
        return [s for s in self.slots if s.is_planned]

    @property
    def empty_slots(self) -> list[MealSlot]:
        return [s for s in self.slots if s.is_empty]

    @property
    def active_slots_count(self) -> int:
        return sum(1 for s in self.slots if not s.is_skipped)

    @property
    def planning_progress(self) -> float:
        """Fraction of non-skipped slots that have a meal assigned."""
        if not self.slots:
            return 0.0
        active = self.active_slots_count
        if active == 0:
            return 1.0
        return len(self.planned_slots) / active

    def find_slot(self, slot_id: str) -> MealSlot | None:
        for slot in self.slots:
            if slot.id == slot_id:
                return slot
        return None

    def touch(self) -> None:
        self.modified_at = utcnow()


# --- dict (de)serialization for the JSON store ---


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _d(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def household_to_dict(h: Household) -> dict:
    return {"id": h.id, "name": h.name, "created_at": h.created_at.isoformat()}


def household_from_dict(data: dict) -> Household:
    return Household(
        id=data["id"],
        name=data.get("name", "My Household"),
        created_at=_dt(data.get("created_at")) or utcnow(),
    )


def ingredient_to_dict(i: Ingredient) -> dict:
    return {"item": i.item, "qty": i.qty, "unit": i.unit, "notes": i.notes}


def ingredient_from_dict(data: dict) -> Ingredient:
    return Ingredient(
        item=data["item"],
        qty=data.get("qty"),
        unit=data.get("unit"),
        notes=data.get("notes"),
    )


def recipe_to_dict(r: Recipe) -> dict:
    return {
        "id": r.id,
        "title": r.title,
        "household_id": r.household_id,
        "summary": r.summary,
        "servings": r.servings,
        "prep_time_min": r.prep_time_min,
        "cook_time_min": r.cook_time_min,
        "tags": list(r.tags),
        "instructions": list(r.instructions),
        "ingredients": [ingredient_to_dict(i) for i in r.ingredients],
        "is_favorite": r.is_favorite,
        "times_cooked": r.times_cooked,
        "last_cooked": r.last_cooked.isoformat() if r.last_cooked else None,
        "calories": r.calories,
        "protein_g": r.protein_g,
        "carbs_g": r.carbs_g,
        "fat_g": r.fat_g,
        "source_path": r.source_path,
        "created_at": r.created_at.isoformat(),
        "modified_at": r.modified_at.isoformat(),
    }


def recipe_from_dict(data: dict) -> Recipe:
    return Recipe(
        id=data["id"],
        title=data["title"],
        household_id=data.get("household_id"),
        summary=data.get("summary"),
        servings=data.get("servings") or 4,
        prep_time_min=data.get("prep_time_min"),
        cook_time_min=data.get("cook_time_min"),
        tags=list(data.get("tags") or []),
        instructions=list(data.get("instructions") or []),
        ingredients=[ingredient_from_dict(i) for i in data.get("ingredients") or []],
        is_favorite=bool(data.get("is_favorite")),
        times_cooked=data.get("times_cooked") or 0,
        last_cooked=_d(data.get("last_cooked")),
        calories=data.get("calories"),
        protein_g=data.get("protein_g"),
        carbs_g=data.get("carbs_g"),
        fat_g=data.get("fat_g"),
        source_path=data.get("source_path"),
        created_at=_dt(data.get("created_at")) or utcnow(),
        modified_at=_dt(data.get("modified_at")) or utcnow(),
    )


def slot_to_dict(s: MealSlot) -> dict:
    return {
        "id": s.id,
        "day": s.day.value,
        "meal_type": s.meal_type.value,
        "servings_planned": s.servings_planned,
        "recipe_ids": list(s.recipe_ids),
        "custom_meal_name": s.custom_meal_name,
        "notes": s.notes,
        "is_skipped": s.is_skipped,
        "created_at": s.created_at.isoformat(),
        "modified_at": s.modified_at.isoformat(),
    }


def slot_from_dict(data: dict) -> MealSlot:
    return MealSlot(
        id=data["id"],
        day=DayOfWeek(data["day"]),
        meal_type=MealType(data["meal_type"]),
        servings_planned=data.get("servings_planned", 2),
        recipe_ids=list(data.get("recipe_ids") or []),
        custom_meal_name=data.get("custom_meal_name"),
        notes=data.get("notes"),
        is_skipped=bool(data.get("is_skipped")),
        created_at=_dt(data.get("created_at")) or utcnow(),
        modified_at=_dt(data.get("modified_at")) or utcnow(),
    )


def plan_to_dict(p: WeekPlan) -> dict:
    return {
        "id": p.id,
        "household_id": p.household_id,
        "week_start": p.week_start.isoformat(),
        "status": p.status.value,
        "household_note": p.household_note,
        "created_at": p.created_at.isoformat(),
        "modified_at": p.modified_at.isoformat(),
        "slots": [slot_to_dict(s) for s in p.slots],
    }


def plan_from_dict(data: dict) -> WeekPlan:
    return WeekPlan(
        id=data["id"],
        household_id=data["household_id"],
        week_start=date.fromisoformat(data["week_start"]),
        status=WeekPlanStatus(data.get("status", "draft")),
        household_note=data.get("household_note"),
        created_at=_dt(data.get("created_at")) or utcnow(),
        modified_at=_dt(data.get("modified_at")) or utcnow(),
        slots=[slot_from_dict(s) for s in data.get("slots") or []],
    )
