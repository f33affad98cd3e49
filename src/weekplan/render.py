"""Read-only rendering of weeks, days and the recipe library for display surfaces."""

from __future__ import annotations

import json
from datetime import date

from weekplan.models import DayOfWeek, MealSlot, Recipe
from weekplan.scheduler import LoadState, WeekLoad, WeekPlanScheduler
from weekplan.weeks import date_for_day, week_end, week_range_display

NO_MEALS = "No meals planned"
LOAD_FAILED_TITLE = "Unable to Load Data"


def format_load_failure(message: str | None = None) -> str:
    lines = [f"# {LOAD_FAILED_TITLE}", ""]
    lines.append("The shared meal plan could not be loaded. It will be retried next time this view opens.")
    if message:
        lines.append("")
        lines.append(f"Details: {message}")
    lines.append("")
    return "\n".join(lines)


def _slot_row(scheduler: WeekPlanScheduler, slot: MealSlot) -> str:
    recipes = scheduler.resolve_recipes(slot)
    total_time = next((r.total_time_min for r in recipes if r.total_time_min), None)
    time_note = f"{total_time} min" if total_time else ""
    return (
        f"| {slot.meal_type.display_name} "
        f"| {scheduler.display_title(slot)} "
        f"| {slot.servings_planned} "
        f"| {time_note} |"
    )


def _day_section(
    scheduler: WeekPlanScheduler,
    day: DayOfWeek,
    day_date: date,
    slots: list[MealSlot],
    today: date | None,
) -> list[str]:
    marker = " (today)" if today == day_date else ""
    lines = [f"## {day.display_name} {day_date:%b} {day_date.day}{marker}", ""]
    if not slots:
        lines.append(f"*{NO_MEALS}*")
        lines.append("")
        return lines

    lines.append("| Meal | Dish | Servings | Time |")
    lines.append("|------|------|----------|------|")
    for slot in slots:
        lines.append(_slot_row(scheduler, slot))
    lines.append("")
    return lines


def format_week_markdown(scheduler: WeekPlanScheduler, load: WeekLoad, today: date | None = None) -> str:
    """Format a loaded week as markdown, one section per day, Monday first."""
    if load.state == LoadState.FAILED:
        return format_load_failure(load.message)

    lines = [f"# {week_range_display(load.week_start)}", ""]
    if load.plan is not None:
        lines.append(f"Status: {load.plan.status.display_name}")
        if load.plan.household_note:
            lines.append(f"Note: {load.plan.household_note}")
        lines.append("")

    for day in DayOfWeek:
        slots = scheduler.slots_for_day(load.plan, day) if load.plan is not None else []
        lines.extend(_day_section(scheduler, day, date_for_day(load.week_start, day), slots, today))

    if load.plan is not None and load.plan.slots:
        progress = load.plan.planning_progress
        lines.append(
            f"Planned: {len(load.plan.planned_slots)} of {load.plan.active_slots_count} meals "
            f"({progress:.0%})"
        )
        lines.append("")

    return "\n".join(lines)


def format_day_markdown(
    scheduler: WeekPlanScheduler,
    load: WeekLoad,
    day: DayOfWeek,
    today: date | None = None,
) -> str:
    if load.state == LoadState.FAILED:
        return format_load_failure(load.message)
    day_date = date_for_day(load.week_start, day)
    return "\n".join(_day_section(scheduler, day, day_date, load.slots, today))


def format_week_json(scheduler: WeekPlanScheduler, load: WeekLoad) -> str:
    """Format a loaded week as JSON, including the load state."""
    data: dict = {
        "state": load.state.value,
        "week_start": load.week_start.isoformat(),
        "week_end": week_end(load.week_start).isoformat(),
    }
    if load.state == LoadState.FAILED:
        data["message"] = load.message
        return json.dumps(data, indent=2)

    plan = load.plan
    data["plan_id"] = plan.id if plan else None
    data["status"] = plan.status.value if plan else None
    data["days"] = [
        {
            "day": day.display_name,
            "date": date_for_day(load.week_start, day).isoformat(),
            "slots": [
                {
                    "id": s.id,
                    "meal_type": s.meal_type.value,
                    "title": scheduler.display_title(s),
                    "servings": s.servings_planned,
                    "recipes": [r.title for r in scheduler.resolve_recipes(s)],
                    "custom_meal_name": s.custom_meal_name,
                    "skipped": s.is_skipped,
                }
                for s in (scheduler.slots_for_day(plan, day) if plan else [])
            ],
        }
        for day in DayOfWeek
    ]
    return json.dumps(data, indent=2)


def format_recipe_table(recipes: list[Recipe]) -> str:
    """Format the recipe library as a readable table."""
    lines = []
    header = f"{'#':<3} {'Time':<7} {'Svgs':<5} {'Fav':<4} {'Recipe'}"
    lines.append(header)
    lines.append("-" * len(header))

    for i, r in enumerate(sorted(recipes, key=lambda r: r.title.lower()), 1):
        time_str = f"{r.total_time_min}m" if r.total_time_min else "?"
        fav = "*" if r.is_favorite else ""
        lines.append(f"{i:<3} {time_str:<7} {r.servings:<5} {fav:<4} {r.title}")

    return "\n".join(lines)
