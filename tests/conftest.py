import pytest
from datetime import date

from weekplan.models import Household, Recipe
from weekplan.scheduler import WeekPlanScheduler
from weekplan.store import MemoryStore, SaveError, StoreUnavailableError


class FlakyStore(MemoryStore):
    """In-memory store whose save and fetch can be made to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_save = False
        self.fail_fetch = False
        self.saves = 0

    def save(self) -> None:
        if self.fail_save:
            raise SaveError("backend unreachable")
        self.saves += 1

    def fetch(self, kind, predicate=None):
        if self.fail_fetch:
            raise StoreUnavailableError("backend unreachable")
        return super().fetch(kind, predicate)


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def scheduler(store) -> WeekPlanScheduler:
    return WeekPlanScheduler(store)


@pytest.fixture
def household(store) -> Household:
    h = Household(name="Test Household")
    store.insert(h)
    return h


@pytest.fixture
def sample_recipes(store, household) -> list[Recipe]:
    """Small recipe library inserted into the store."""
    recipes = [
        Recipe(title="Mushroom Risotto", household_id=household.id,
               prep_time_min=15, cook_time_min=35, calories=520, protein_g=14),
        Recipe(title="Grilled Salmon", household_id=household.id,
               prep_time_min=10, cook_time_min=15, calories=430, protein_g=38),
        Recipe(title="Caesar Salad", household_id=household.id, calories=350, protein_g=20),
        Recipe(title="Garlic Bread", household_id=household.id, calories=200, protein_g=5),
        Recipe(title="Overnight Oats", household_id=household.id, calories=300, protein_g=12),
    ]
    for r in recipes:
        store.insert(r)
    return recipes


@pytest.fixture
def week_of_jan_20() -> date:
    return date(2025, 1, 20)  # a Monday
