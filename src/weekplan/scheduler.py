"""Week plan scheduling: locate plans by canonical week, query and edit slots."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from enum import Enum

from weekplan.models import (
    DayOfWeek,
    MealSlot,
    MealType,
    Recipe,
    WeekPlan,
    WeekPlanStatus,
)
from weekplan.store import (
    FetchResult,
    MemoryStore,
    StoreUnavailableError,
    delete_with_logging,
    fetch_with_logging,
    save_with_logging,
)
from weekplan.weeks import normalize_to_week_start, to_local_date

logger = logging.getLogger(__name__)

DEFAULT_MEAL_TYPES = (MealType.BREAKFAST, MealType.LUNCH, MealType.DINNER)

SKIPPED_TITLE = "Skipped"
UNPLANNED_TITLE = "Unplanned"


class LoadState(Enum):
    LOADED = "loaded"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class WeekLoad:
    """What a display surface needs to render a week (or a single day)."""
    state: LoadState
    week_start: date
    plan: WeekPlan | None = None
    slots: list[MealSlot] = field(default_factory=list)
    message: str | None = None


@dataclass
class NutritionTotals:
    calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0

    def add(self, recipe: Recipe, servings: float) -> None:
        self.calories += (recipe.calories or 0) * servings
        self.protein_g += (recipe.protein_g or 0) * servings
        self.carbs_g += (recipe.carbs_g or 0) * servings
        self.fat_g += (recipe.fat_g or 0) * servings


def canonical_order(plans: list[WeekPlan]) -> list[WeekPlan]:
    """Order duplicate plans so the oldest (then lowest id) comes first."""
    return sorted(plans, key=lambda p: (p.created_at, p.id))


class WeekPlanScheduler:
    def __init__(
        self,
        store: MemoryStore,
        tz: tzinfo | None = None,
        default_status: WeekPlanStatus = WeekPlanStatus.DRAFT,
        default_servings: int = 2,
    ) -> None:
        self.store = store
        self.tz = tz
        self.default_status = default_status
        self.default_servings = default_servings

    # -- weeks and plans --

    def week_start(self, reference: date | datetime) -> date:
        return normalize_to_week_start(reference, self.tz)

    def find_plan(self, household_id: str, reference: date | datetime) -> FetchResult:
        """Read-only lookup of the plan for the week containing reference.

        Never creates or merges. If a sync race left duplicates, the canonical
        plan is listed first.
        """
        start = self.week_start(reference)
        result = fetch_with_logging(
            self.store,
            WeekPlan,
            lambda p: p.household_id == household_id and p.week_start == start,
            context=f"week plan {start}",
        )
        if result.ok:
            result.items = canonical_order(result.items)
        return result

    def find_or_create_plan(
        self,
        household_id: str,
        reference: date | datetime,
        status: WeekPlanStatus | None = None,
    ) -> WeekPlan:
        """Return the household's plan for the week of reference, creating it if absent.

        Duplicates for the same (household, week) are merged into the
        canonical plan. Raises StoreUnavailableError when the lookup fails,
        since creating blind could add yet another duplicate.
        """
        start = self.week_start(reference)
        result = self.find_plan(household_id, start)
        if result.failed:
            raise StoreUnavailableError(f"Could not look up week plan for {start}: {result.error}")

        if not result.items:
            plan = WeekPlan(
                household_id=household_id,
                week_start=start,
                status=status or self.default_status,
            )
            self.store.insert(plan)
            logger.info("Created %s week plan for %s", plan.status.value, start)
            save_with_logging(self.store, context=f"create week plan {start}")
            return plan

        plan, *duplicates = result.items
        if duplicates:
            self._merge_duplicates(plan, duplicates)
        return plan

    def _merge_duplicates(self, plan: WeekPlan, duplicates: list[WeekPlan]) -> None:
        logger.warning(
            "Found %d duplicate week plan(s) for %s; merging into %s",
            len(duplicates), plan.week_start, plan.id,
        )
        known = {s.id for s in plan.slots}
        for dup in duplicates:
            for slot in dup.slots:
                if slot.id not in known:
                    plan.slots.append(slot)
                    known.add(slot.id)
            if plan.household_note is None and dup.household_note:
                plan.household_note = dup.household_note
            self.store.delete(dup)
        plan.touch()
        save_with_logging(self.store, context=f"merge week plans {plan.week_start}")

    def plans_for_household(self, household_id: str) -> FetchResult:
        result = fetch_with_logging(
            self.store,
            WeekPlan,
            lambda p: p.household_id == household_id,
            context="household week plans",
        )
        if result.ok:
            result.items.sort(key=lambda p: p.week_start)
        return result

    # -- slot queries --

    def slots_for_day(self, plan: WeekPlan, day: DayOfWeek) -> list[MealSlot]:
        # sorted() is stable, so slots sharing a meal type keep insertion order
        return sorted(
            (s for s in plan.slots if s.day == day),
            key=lambda s: s.meal_type.sort_order,
        )

    def slots_by_day(self, plan: WeekPlan) -> dict[DayOfWeek, list[MealSlot]]:
        return {day: self.slots_for_day(plan, day) for day in DayOfWeek}

    def slot_for(self, plan: WeekPlan, day: DayOfWeek, meal_type: MealType) -> MealSlot | None:
        for slot in plan.slots:
            if slot.day == day and slot.meal_type == meal_type:
                return slot
        return None

    def resolve_recipes(self, slot: MealSlot) -> list[Recipe]:
        """Resolve the slot's recipe references, skipping any that were deleted."""
        recipes = []
        for recipe_id in slot.recipe_ids:
            recipe = self.store.get(Recipe, recipe_id)
            if recipe is None:
                logger.debug("Recipe %s referenced by %s no longer exists", recipe_id, slot.description)
                continue
            recipes.append(recipe)
        return recipes

    def display_title(self, slot: MealSlot) -> str:
        if slot.is_skipped:
            return SKIPPED_TITLE
        recipes = self.resolve_recipes(slot)
        if recipes:
            return " & ".join(r.title for r in recipes)
        if slot.custom_meal_name:
            return slot.custom_meal_name
        return UNPLANNED_TITLE

    def unique_recipes(self, plan: WeekPlan) -> list[Recipe]:
        seen: set[str] = set()
        result = []
        for slot in plan.slots:
            for recipe in self.resolve_recipes(slot):
                if recipe.id not in seen:
                    seen.add(recipe.id)
                    result.append(recipe)
        return result

    def plan_nutrition(self, plan: WeekPlan) -> tuple[dict[DayOfWeek, NutritionTotals], NutritionTotals]:
        """Planned nutrition per day and for the week, computed on read."""
        per_day = {day: NutritionTotals() for day in DayOfWeek}
        total = NutritionTotals()
        for slot in plan.slots:
            if slot.is_skipped:
                continue
            for recipe in self.resolve_recipes(slot):
                per_day[slot.day].add(recipe, slot.servings_planned)
                total.add(recipe, slot.servings_planned)
        return per_day, total

    # -- display loading --

    def load_week(self, household_id: str, now: date | datetime) -> WeekLoad:
        start = self.week_start(now)
        try:
            self.store.refresh()
        except StoreUnavailableError as e:
            logger.error("Could not refresh store: %s", e)
            return WeekLoad(LoadState.FAILED, start, message=str(e))

        result = self.find_plan(household_id, start)
        if result.failed:
            return WeekLoad(LoadState.FAILED, start, message=str(result.error))
        plan = result.first
        if plan is None or not plan.slots:
            return WeekLoad(LoadState.EMPTY, start, plan=plan)
        return WeekLoad(LoadState.LOADED, start, plan=plan, slots=list(plan.slots))

    def load_day(self, household_id: str, now: date | datetime, day: DayOfWeek | None = None) -> WeekLoad:
        week = self.load_week(household_id, now)
        if week.state == LoadState.FAILED or week.plan is None:
            return week
        if day is None:
            day = DayOfWeek.from_date(to_local_date(now, self.tz))
        slots = self.slots_for_day(week.plan, day)
        state = LoadState.LOADED if slots else LoadState.EMPTY
        return WeekLoad(state, week.week_start, plan=week.plan, slots=slots)

    # -- mutations: one in-memory update, then an opportunistic save --

    def _commit(self, plan: WeekPlan | None, slot: MealSlot | None, context: str) -> bool:
        if slot is not None:
            slot.touch()
        if plan is not None:
            plan.touch()
        return save_with_logging(self.store, context=context)

    def add_slot(
        self,
        plan: WeekPlan,
        day: DayOfWeek,
        meal_type: MealType,
        servings: int | None = None,
        recipes: list[Recipe] | tuple = (),
        custom_name: str | None = None,
    ) -> MealSlot:
        slot = MealSlot(
            day=day,
            meal_type=meal_type,
            servings_planned=servings if servings is not None else self.default_servings,
            recipe_ids=[r.id for r in recipes],
            custom_meal_name=custom_name or None,
        )
        plan.slots.append(slot)
        self._commit(plan, None, context=f"add slot {slot.description}")
        return slot

    def remove_slot(self, plan: WeekPlan, slot: MealSlot) -> bool:
        if plan.find_slot(slot.id) is None:
            raise LookupError(f"Slot {slot.description} is not part of this plan")
        plan.slots = [s for s in plan.slots if s.id != slot.id]
        return self._commit(plan, None, context=f"remove slot {slot.description}")

    def assign_recipe(self, slot: MealSlot, recipe: Recipe, plan: WeekPlan | None = None) -> bool:
        if recipe is None or not recipe.id:
            raise ValueError("A recipe reference is required")
        if recipe.id not in slot.recipe_ids:
            slot.recipe_ids.append(recipe.id)
        slot.custom_meal_name = None
        slot.is_skipped = False
        return self._commit(plan, slot, context=f"assign {recipe.title} to {slot.description}")

    def remove_recipe(self, slot: MealSlot, recipe: Recipe | str, plan: WeekPlan | None = None) -> bool:
        recipe_id = recipe if isinstance(recipe, str) else recipe.id
        slot.recipe_ids = [r for r in slot.recipe_ids if r != recipe_id]
        return self._commit(plan, slot, context=f"remove recipe from {slot.description}")

    def set_custom_name(self, slot: MealSlot, name: str | None, plan: WeekPlan | None = None) -> bool:
        name = (name or "").strip() or None
        slot.custom_meal_name = name
        if name is not None:
            slot.recipe_ids = []
            slot.is_skipped = False
        return self._commit(plan, slot, context=f"rename {slot.description}")

    def set_servings(self, slot: MealSlot, servings: int, plan: WeekPlan | None = None) -> bool:
        if servings < 1:
            raise ValueError(f"Servings must be a positive integer, got {servings}")
        slot.servings_planned = servings
        return self._commit(plan, slot, context=f"servings for {slot.description}")

    def skip_slot(self, slot: MealSlot, plan: WeekPlan | None = None) -> bool:
        slot.is_skipped = True
        slot.recipe_ids = []
        slot.custom_meal_name = None
        return self._commit(plan, slot, context=f"skip {slot.description}")

    def clear_slot(self, slot: MealSlot, plan: WeekPlan | None = None) -> bool:
        slot.is_skipped = False
        slot.recipe_ids = []
        slot.custom_meal_name = None
        return self._commit(plan, slot, context=f"clear {slot.description}")

    def clear_all(self, plan: WeekPlan) -> bool:
        for slot in plan.slots:
            slot.is_skipped = False
            slot.recipe_ids = []
            slot.custom_meal_name = None
            slot.touch()
        return self._commit(plan, None, context=f"clear week {plan.week_start}")

    def create_default_slots(
        self,
        plan: WeekPlan,
        meal_types: tuple[MealType, ...] | list[MealType] = DEFAULT_MEAL_TYPES,
    ) -> bool:
        for day in DayOfWeek:
            for meal_type in meal_types:
                plan.slots.append(
                    MealSlot(day=day, meal_type=meal_type, servings_planned=self.default_servings)
                )
        return self._commit(plan, None, context=f"default slots {plan.week_start}")

    def copy_from(self, plan: WeekPlan, other: WeekPlan) -> bool:
        """Copy meal assignments from other into matching (day, meal type) slots."""
        for source in other.slots:
            target = self.slot_for(plan, source.day, source.meal_type)
            if target is None:
                continue
            if source.recipe_ids:
                target.recipe_ids = list(source.recipe_ids)
                target.custom_meal_name = None
                target.is_skipped = False
            elif source.custom_meal_name:
                target.custom_meal_name = source.custom_meal_name
                target.recipe_ids = []
                target.is_skipped = False
            target.servings_planned = source.servings_planned
            target.touch()
        return self._commit(plan, None, context=f"copy {other.week_start} into {plan.week_start}")

    def set_status(self, plan: WeekPlan, status: WeekPlanStatus) -> bool:
        plan.status = status
        return self._commit(plan, None, context=f"status {status.value} for {plan.week_start}")

    def activate(self, plan: WeekPlan) -> bool:
        return self.set_status(plan, WeekPlanStatus.ACTIVE)

    def complete(self, plan: WeekPlan) -> bool:
        return self.set_status(plan, WeekPlanStatus.COMPLETED)

    def archive(self, plan: WeekPlan) -> bool:
        return self.set_status(plan, WeekPlanStatus.ARCHIVED)

    def delete_plan(self, plan: WeekPlan) -> bool:
        """Hard-delete a plan and its slots. Normal flows archive instead."""
        return delete_with_logging(self.store, plan, context=f"week plan {plan.week_start}")
