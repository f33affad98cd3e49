import json
from datetime import date

from weekplan.models import DayOfWeek, MealType, Recipe
from weekplan.render import (
    LOAD_FAILED_TITLE,
    NO_MEALS,
    format_day_markdown,
    format_recipe_table,
    format_week_json,
    format_week_markdown,
)


def seeded_week(scheduler, household, recipes):
    plan = scheduler.find_or_create_plan(household.id, date(2025, 1, 20))
    scheduler.add_slot(plan, DayOfWeek.WEDNESDAY, MealType.DINNER, recipes=[recipes[0]])
    scheduler.add_slot(plan, DayOfWeek.WEDNESDAY, MealType.LUNCH, custom_name="Soup")
    return scheduler.load_week(household.id, date(2025, 1, 22))


class TestWeekMarkdown:
    def test_days_and_slots(self, scheduler, household, sample_recipes):
        load = seeded_week(scheduler, household, sample_recipes)
        out = format_week_markdown(scheduler, load, today=date(2025, 1, 22))
        assert out.startswith("# Jan 20 - 26, 2025")
        assert "## Wednesday Jan 22 (today)" in out
        assert "| Dinner | Mushroom Risotto | 2 | 50 min |" in out
        assert out.index("| Lunch | Soup") < out.index("| Dinner | Mushroom Risotto")
        assert out.count(NO_MEALS) == 6
        assert "Planned: 2 of 2 meals (100%)" in out

    def test_empty_week(self, scheduler, household):
        load = scheduler.load_week(household.id, date(2025, 1, 22))
        out = format_week_markdown(scheduler, load)
        assert out.count(NO_MEALS) == 7
        assert LOAD_FAILED_TITLE not in out

    def test_failed_load(self, scheduler, household, store):
        store.fail_fetch = True
        load = scheduler.load_week(household.id, date(2025, 1, 22))
        out = format_week_markdown(scheduler, load)
        assert out.startswith(f"# {LOAD_FAILED_TITLE}")
        assert NO_MEALS not in out


class TestDayMarkdown:
    def test_empty_day(self, scheduler, household, sample_recipes):
        seeded_week(scheduler, household, sample_recipes)
        load = scheduler.load_day(household.id, date(2025, 1, 23))
        out = format_day_markdown(scheduler, load, DayOfWeek.THURSDAY)
        assert "## Thursday Jan 23" in out
        assert NO_MEALS in out


class TestWeekJson:
    def test_loaded(self, scheduler, household, sample_recipes):
        load = seeded_week(scheduler, household, sample_recipes)
        data = json.loads(format_week_json(scheduler, load))
        assert data["state"] == "loaded"
        assert data["week_start"] == "2025-01-20"
        wednesday = data["days"][2]
        assert [s["title"] for s in wednesday["slots"]] == ["Soup", "Mushroom Risotto"]
        assert wednesday["slots"][1]["recipes"] == ["Mushroom Risotto"]

    def test_empty_and_failed_are_distinct(self, scheduler, household, store):
        empty = json.loads(format_week_json(scheduler, scheduler.load_week(household.id, date(2025, 1, 22))))
        store.fail_fetch = True
        failed = json.loads(format_week_json(scheduler, scheduler.load_week(household.id, date(2025, 1, 22))))
        assert empty["state"] == "empty"
        assert failed["state"] == "failed"
        assert "days" not in failed


class TestRecipeTable:
    def test_sorted_by_title(self):
        table = format_recipe_table([
            Recipe(title="Stew", prep_time_min=10, cook_time_min=50, is_favorite=True),
            Recipe(title="Apple Pie"),
        ])
        lines = table.splitlines()
        assert lines[2].endswith("Apple Pie")
        assert "60m" in lines[3] and "*" in lines[3]
