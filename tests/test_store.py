import json
from datetime import date

import pytest
from weekplan.models import DayOfWeek, Household, MealSlot, MealType, Recipe, WeekPlan
from weekplan.store import (
    FetchResult,
    JsonStore,
    MemoryStore,
    ReadOnlyStoreError,
    SaveError,
    StoreUnavailableError,
    delete_with_logging,
    fetch_with_logging,
    save_with_logging,
)


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "data" / "store.json"


class TestMemoryStore:
    def test_fetch_with_predicate(self):
        store = MemoryStore()
        store.insert(Recipe(title="A", household_id="h1"))
        store.insert(Recipe(title="B", household_id="h2"))
        assert [r.title for r in store.fetch(Recipe, lambda r: r.household_id == "h1")] == ["A"]
        assert len(store.fetch(Recipe)) == 2

    def test_delete(self):
        store = MemoryStore()
        r = Recipe(title="A")
        store.insert(r)
        store.delete(r)
        assert store.get(Recipe, r.id) is None

    def test_read_only_rejects_writes(self):
        store = MemoryStore(read_only=True)
        with pytest.raises(ReadOnlyStoreError):
            store.insert(Recipe(title="A"))
        with pytest.raises(ReadOnlyStoreError):
            store.save()

    def test_unsupported_record(self):
        with pytest.raises(TypeError):
            MemoryStore().insert(object())


class TestJsonStore:
    def test_missing_file_starts_empty(self, store_path):
        store = JsonStore(store_path)
        assert store.fetch(WeekPlan) == []
        assert not store_path.exists()

    def test_save_and_reload(self, store_path):
        store = JsonStore(store_path)
        h = Household(name="Home")
        plan = WeekPlan(household_id=h.id, week_start=date(2025, 1, 22))
        plan.slots.append(MealSlot(DayOfWeek.WEDNESDAY, MealType.DINNER, custom_meal_name="Tacos"))
        store.insert(h)
        store.insert(plan)
        store.save()

        reopened = JsonStore(store_path, read_only=True)
        loaded = reopened.get(WeekPlan, plan.id)
        assert loaded.week_start == date(2025, 1, 20)
        assert loaded.slots[0].custom_meal_name == "Tacos"
        assert reopened.get(Household, h.id).name == "Home"

    def test_file_is_plain_json(self, store_path):
        store = JsonStore(store_path)
        store.insert(Recipe(title="Stew"))
        store.save()
        data = json.loads(store_path.read_text())
        assert data["recipes"][0]["title"] == "Stew"
        assert data["week_plans"] == []

    def test_refresh_picks_up_other_writers(self, store_path):
        reader = JsonStore(store_path, read_only=True)
        writer = JsonStore(store_path)
        writer.insert(Recipe(title="Stew"))
        writer.save()
        assert reader.fetch(Recipe) == []
        reader.refresh()
        assert [r.title for r in reader.fetch(Recipe)] == ["Stew"]

    def test_corrupt_file_is_unavailable(self, store_path):
        store_path.parent.mkdir(parents=True)
        store_path.write_text("{not json")
        with pytest.raises(StoreUnavailableError):
            JsonStore(store_path)

    def test_unwritable_location_raises_save_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = JsonStore(blocker / "store.json")
        store.insert(Recipe(title="Stew"))
        with pytest.raises(SaveError):
            store.save()


class TestLoggedHelpers:
    def test_save_success(self, store):
        assert save_with_logging(store, context="test") is True
        assert store.saves == 1

    def test_save_failure_is_logged(self, store, caplog):
        store.fail_save = True
        assert save_with_logging(store, context="assign dinner") is False
        assert "Save failed (assign dinner)" in caplog.text

    def test_fetch_empty_vs_failed(self, store):
        empty = fetch_with_logging(store, WeekPlan)
        assert empty.ok and empty.items == [] and empty.first is None

        store.fail_fetch = True
        failed = fetch_with_logging(store, WeekPlan)
        assert failed.failed
        assert isinstance(failed.error, StoreUnavailableError)

    def test_delete_reports_save_failure(self, store):
        r = Recipe(title="Stew")
        store.insert(r)
        store.fail_save = True
        assert delete_with_logging(store, r) is False
        assert store.get(Recipe, r.id) is None

    def test_fetch_result_first(self):
        assert FetchResult(items=["a", "b"]).first == "a"


class TestSharedFile:
    """Two editing clients (say a phone and a tablet) on one store file."""

    def test_save_keeps_records_written_by_other_client(self, store_path):
        from weekplan.scheduler import WeekPlanScheduler

        phone = JsonStore(store_path)
        tablet = JsonStore(store_path)

        WeekPlanScheduler(phone).find_or_create_plan("h1", date(2025, 1, 22))
        tablet.insert(Recipe(title="Stew", household_id="h1"))
        tablet.save()

        reloaded = JsonStore(store_path, read_only=True)
        assert len(reloaded.fetch(WeekPlan)) == 1
        assert len(reloaded.fetch(Recipe)) == 1

    def test_save_picks_up_new_records_from_disk(self, store_path):
        phone = JsonStore(store_path)
        tablet = JsonStore(store_path)
        phone.insert(Recipe(title="Stew"))
        phone.save()

        tablet.insert(Recipe(title="Curry"))
        tablet.save()
        assert sorted(r.title for r in tablet.fetch(Recipe)) == ["Curry", "Stew"]

    def test_unchanged_stale_record_does_not_overwrite(self, store_path):
        seed = JsonStore(store_path)
        stew = Recipe(title="Stew", servings=4)
        seed.insert(stew)
        seed.save()

        phone = JsonStore(store_path)
        tablet = JsonStore(store_path)
        phone.get(Recipe, stew.id).servings = 6
        phone.save()
        tablet.insert(Recipe(title="Curry"))
        tablet.save()

        assert JsonStore(store_path).get(Recipe, stew.id).servings == 6

    def test_same_record_last_write_wins(self, store_path):
        seed = JsonStore(store_path)
        stew = Recipe(title="Stew")
        seed.insert(stew)
        seed.save()

        phone = JsonStore(store_path)
        tablet = JsonStore(store_path)
        phone.get(Recipe, stew.id).summary = "from phone"
        phone.save()
        tablet.get(Recipe, stew.id).summary = "from tablet"
        tablet.save()

        assert JsonStore(store_path).get(Recipe, stew.id).summary == "from tablet"

    def test_delete_removes_record_only(self, store_path):
        seed = JsonStore(store_path)
        stew, curry = Recipe(title="Stew"), Recipe(title="Curry")
        seed.insert(stew)
        seed.insert(curry)
        seed.save()

        phone = JsonStore(store_path)
        tablet = JsonStore(store_path)
        tablet.insert(Recipe(title="Soup"))
        tablet.save()
        phone.delete(phone.get(Recipe, stew.id))
        phone.save()

        titles = sorted(r.title for r in JsonStore(store_path).fetch(Recipe))
        assert titles == ["Curry", "Soup"]

    def test_racing_plans_are_merged_on_next_lookup(self, store_path):
        from weekplan.scheduler import WeekPlanScheduler

        phone = WeekPlanScheduler(JsonStore(store_path))
        tablet = WeekPlanScheduler(JsonStore(store_path))
        a = phone.find_or_create_plan("h1", date(2025, 1, 20))
        phone.add_slot(a, DayOfWeek.MONDAY, MealType.DINNER, custom_name="Tacos")
        b = tablet.find_or_create_plan("h1", date(2025, 1, 21))
        tablet.add_slot(b, DayOfWeek.TUESDAY, MealType.DINNER, custom_name="Curry")
        assert len(JsonStore(store_path).fetch(WeekPlan)) == 2

        reader = WeekPlanScheduler(JsonStore(store_path))
        plan = reader.find_or_create_plan("h1", date(2025, 1, 22))
        titles = sorted(s.custom_meal_name for s in plan.slots)
        assert titles == ["Curry", "Tacos"]
        assert len(JsonStore(store_path).fetch(WeekPlan)) == 1

    def test_corrupt_file_at_save_time(self, store_path):
        store = JsonStore(store_path)
        store.insert(Recipe(title="Stew"))
        store_path.parent.mkdir(parents=True, exist_ok=True)
        store_path.write_text("{broken")
        with pytest.raises(SaveError):
            store.save()
