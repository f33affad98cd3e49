"""Persistent store: insert, fetch-with-predicate, save and delete.

The managed cloud store used in production is an external collaborator. This
module defines the four verbs the scheduler relies on, an in-memory
implementation, and a JSON-file implementation that merges by record id and
writes atomically (last write wins per record).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from weekplan.models import (
    Household,
    Recipe,
    WeekPlan,
    household_from_dict,
    household_to_dict,
    plan_from_dict,
    plan_to_dict,
    recipe_from_dict,
    recipe_to_dict,
)

logger = logging.getLogger(__name__)

Record = Household | Recipe | WeekPlan

RECORD_KINDS: dict[type, str] = {
    Household: "households",
    Recipe: "recipes",
    WeekPlan: "week_plans",
}

_CODECS = {
    "households": (household_to_dict, household_from_dict),
    "recipes": (recipe_to_dict, recipe_from_dict),
    "week_plans": (plan_to_dict, plan_from_dict),
}


class StoreError(Exception):
    """Base class for store failures."""


class StoreUnavailableError(StoreError):
    """The backing store could not be reached or read."""


class SaveError(StoreError):
    """Pending changes could not be persisted."""


class ReadOnlyStoreError(StoreError):
    """A mutation was attempted on a store opened read-only."""


@dataclass
class FetchResult:
    """Outcome of a fetch: an empty result and a failed one are distinct."""
    items: list = field(default_factory=list)
    error: Exception | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def first(self):
        return self.items[0] if self.items else None


def _kind_of(record_or_type) -> str:
    cls = record_or_type if isinstance(record_or_type, type) else type(record_or_type)
    try:
        return RECORD_KINDS[cls]
    except KeyError:
        raise TypeError(f"Unsupported record type: {cls.__name__}")


class MemoryStore:
    """Working set of records keyed by kind and id."""

    def __init__(self, read_only: bool = False) -> None:
        self.read_only = read_only
        self._records: dict[str, dict[str, Record]] = {k: {} for k in _CODECS}

    def _check_writable(self, action: str) -> None:
        if self.read_only:
            raise ReadOnlyStoreError(f"Cannot {action}: store is read-only")

    def insert(self, record: Record) -> None:
        self._check_writable("insert")
        self._records[_kind_of(record)][record.id] = record

    def delete(self, record: Record) -> None:
        self._check_writable("delete")
        self._records[_kind_of(record)].pop(record.id, None)

    def fetch(self, kind: type, predicate: Callable[[Record], bool] | None = None) -> list:
        records = list(self._records[_kind_of(kind)].values())
        if predicate is None:
            return records
        return [r for r in records if predicate(r)]

    def get(self, kind: type, record_id: str):
        return self._records[_kind_of(kind)].get(record_id)

    def save(self) -> None:
        self._check_writable("save")

    def refresh(self) -> None:
        """Re-read shared state. Nothing to do for a purely in-memory store."""

    def snapshot(self) -> dict:
        return {
            kind: [_CODECS[kind][0](r) for r in records.values()]
            for kind, records in self._records.items()
        }

    def _load_snapshot(self, data: dict) -> None:
        records: dict[str, dict[str, Record]] = {k: {} for k in _CODECS}
        for kind, (_, decode) in _CODECS.items():
            for item in data.get(kind) or []:
                record = decode(item)
                records[kind][record.id] = record
        self._records = records


class JsonStore(MemoryStore):
    """Store backed by a single JSON file shared by several clients.

    Saving re-reads the file and merges by record id: records this client
    added or changed since it last loaded or saved are written, records it
    deleted are dropped, and everything else on disk is kept. Concurrent
    edits to the same record resolve last write wins.
    """

    def __init__(self, path: Path, read_only: bool = False) -> None:
        super().__init__(read_only=read_only)
        self.path = Path(path)
        self._baseline: dict[str, dict[str, dict]] = {}
        self.refresh()

    def _read_file(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                return json.load(f) or {}
        except (OSError, ValueError) as e:
            raise StoreUnavailableError(f"Could not read store {self.path}: {e}") from e

    def _encoded(self) -> dict[str, dict[str, dict]]:
        return {
            kind: {rid: _CODECS[kind][0](r) for rid, r in records.items()}
            for kind, records in self._records.items()
        }

    def refresh(self) -> None:
        """Discard the working set and reload it from disk."""
        if not self.path.exists():
            logger.debug("Store file %s does not exist yet; starting empty", self.path)
        try:
            self._load_snapshot(self._read_file())
        except (KeyError, TypeError, ValueError) as e:
            raise StoreUnavailableError(f"Could not read store {self.path}: {e}") from e
        self._baseline = self._encoded()
        logger.debug("Loaded store %s", self.path)

    def _merge_into(self, on_disk: dict) -> dict:
        current = self._encoded()
        merged = {}
        for kind, (_, decode) in _CODECS.items():
            base = self._baseline.get(kind, {})
            mine = current[kind]
            theirs = {item["id"]: item for item in on_disk.get(kind) or []}

            for rid in base.keys() - mine.keys():
                theirs.pop(rid, None)
            for rid, item in mine.items():
                if base.get(rid) != item:
                    theirs[rid] = item
            # Pick up records other clients added since we loaded
            for rid, item in theirs.items():
                if rid not in mine and rid not in base:
                    self._records[kind][rid] = decode(item)

            merged[kind] = list(theirs.values())
        return merged

    def save(self) -> None:
        self._check_writable("save")
        try:
            merged = self._merge_into(self._read_file())
        except (StoreUnavailableError, KeyError, TypeError, ValueError) as e:
            raise SaveError(f"Could not merge into store {self.path}: {e}") from e

        payload = json.dumps(merged, indent=2, ensure_ascii=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            raise SaveError(f"Could not write store {self.path}: {e}") from e
        self._baseline = self._encoded()


def save_with_logging(store: MemoryStore, context: str = "data") -> bool:
    """Save pending changes; log and report failure instead of raising."""
    try:
        store.save()
    except StoreError as e:
        logger.error("Save failed (%s): %s", context, e)
        return False
    logger.debug("Save succeeded: %s", context)
    return True


def fetch_with_logging(
    store: MemoryStore,
    kind: type,
    predicate: Callable[[Record], bool] | None = None,
    context: str = "data",
) -> FetchResult:
    try:
        items = store.fetch(kind, predicate)
    except StoreError as e:
        logger.error("Fetch failed (%s): %s", context, e)
        return FetchResult(error=e)
    logger.debug("Fetch succeeded: %s (%d items)", context, len(items))
    return FetchResult(items=items)


def delete_with_logging(store: MemoryStore, record: Record, context: str = "item") -> bool:
    try:
        store.delete(record)
    except StoreError as e:
        logger.error("Delete failed (%s): %s", context, e)
        return False
    return save_with_logging(store, context=f"delete {context}")
