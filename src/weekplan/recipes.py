"""Recipe library import: parse markdown notes with YAML frontmatter into recipes."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import frontmatter

from weekplan.models import Ingredient, Recipe, utcnow
from weekplan.shopping import is_known_unit, normalize_unit
from weekplan.store import MemoryStore, fetch_with_logging, save_with_logging

logger = logging.getLogger(__name__)

_RANGE = re.compile(r"(\d+)\s*(?:to|-)\s*(\d+)")
_NUMBER = re.compile(r"\d+")
_DURATION = re.compile(r"(\d+)\s*(hours?|hrs?|h|minutes?|mins?|m)?\b", re.IGNORECASE)
_QUANTITY = re.compile(r"^(?P<qty>\d+\s+\d+/\d+|\d+/\d+|\d+(?:\.\d+)?)\s*(?P<rest>.*)$")
_LIST_MARKER = re.compile(r"^(?:\d+[.)]|[-*+])(?:\s+|$)")


@dataclass
class ImportStats:
    total_files: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0


def normalize_servings(raw: str | int | float | None) -> int | None:
    """Servings from frontmatter: 4, "Serves 4", "4 servings", "4 to 6" (midpoint)."""
    if isinstance(raw, (int, float)):
        return int(raw) if raw > 0 else None
    text = str(raw or "")
    m = _RANGE.search(text)
    if m:
        return (int(m.group(1)) + int(m.group(2))) // 2
    m = _NUMBER.search(text)
    if m and int(m.group()) > 0:
        return int(m.group())
    return None


def normalize_time(raw: str | int | float | None) -> int | None:
    """Minutes from 15, "15 mins", "3 hours", "1 hour 30 minutes"."""
    if isinstance(raw, (int, float)):
        return int(raw) if raw > 0 else None
    total = 0
    for amount, unit in _DURATION.findall(str(raw or "")):
        total += int(amount) * 60 if unit.lower().startswith("h") else int(amount)
    return total or None


def _markdown_section(content: str, names: str) -> list[str]:
    """Non-blank lines under a ## or ### heading matching names, up to the next peer heading."""
    match = re.search(r"^(#{2,3})\s+(?:%s)\s*$" % names, content, re.MULTILINE | re.IGNORECASE)
    if not match:
        return []

    level = len(match.group(1))
    body = content[match.end():]
    next_heading = re.search(r"^#{1,%d}\s+" % level, body, re.MULTILINE)
    if next_heading:
        body = body[: next_heading.start()]
    return [line.strip() for line in body.splitlines() if line.strip()]


def extract_instructions(content: str) -> list[str]:
    """Pull list items out of a ## Directions / ## Instructions section."""
    return [
        _LIST_MARKER.sub("", line)
        for line in _markdown_section(content, "Directions|Instructions|Method")
    ]


def _parse_qty(raw: str) -> float:
    total = 0.0
    for part in raw.split():
        if "/" in part:
            num, den = part.split("/")
            total += int(num) / int(den)
        else:
            total += float(part)
    return total


def parse_ingredient_line(line: str) -> Ingredient | None:
    """Parse "2 cups flour, sifted" or "400g spaghetti (dried)" into an Ingredient.

    Lines without a leading quantity keep the whole text as the item.
    Notes come from a trailing parenthetical or text after the first comma.
    """
    text = _LIST_MARKER.sub("", line.strip()).strip()
    if not text:
        return None

    qty = None
    unit = None
    m = _QUANTITY.match(text)
    if m:
        qty = _parse_qty(m.group("qty"))
        text = m.group("rest")
        first, _, remainder = text.partition(" ")
        if first and is_known_unit(first):
            unit = normalize_unit(first)
            text = remainder
        if text.lower().startswith("of "):
            text = text[3:]

    notes = None
    paren = re.search(r"\s*\(([^)]*)\)\s*$", text)
    if paren:
        notes = paren.group(1).strip() or None
        text = text[: paren.start()]
    item, comma, after = text.partition(",")
    if comma and after.strip():
        notes = ", ".join(n for n in (after.strip(), notes) if n)

    item = item.strip()
    if not item:
        return None
    return Ingredient(item=item, qty=qty, unit=unit, notes=notes)


def extract_ingredients(content: str) -> list[Ingredient]:
    """Parse the ## Ingredients section, ignoring sub-headings within it."""
    ingredients = []
    for line in _markdown_section(content, "Ingredients"):
        if line.startswith("#"):
            continue
        ingredient = parse_ingredient_line(line)
        if ingredient is not None:
            ingredients.append(ingredient)
    return ingredients


def _ingredients_from_meta(raw: object) -> list[Ingredient]:
    """Frontmatter ingredients: a list of strings or of {item, qty, unit, notes} maps."""
    ingredients = []
    for entry in raw or []:
        if isinstance(entry, dict) and entry.get("item"):
            ingredients.append(Ingredient(
                item=str(entry["item"]).strip(),
                qty=_to_float(entry.get("qty")),
                unit=normalize_unit(entry.get("unit")) or None,
                notes=entry.get("notes"),
            ))
        elif isinstance(entry, str):
            ingredient = parse_ingredient_line(entry)
            if ingredient is not None:
                ingredients.append(ingredient)
    return ingredients


def _to_float(val: object) -> float | None:
    if val is None or val == "":
        return None
    try:
        return float(val)
    except (ValueError, TypeError):
        return None


def _to_list(val: object) -> list[str]:
    if not val:
        return []
    if isinstance(val, str):
        return [t.strip() for t in val.split(",") if t.strip()]
    return [str(t).strip() for t in val]


def parse_recipe_note(file_path: Path) -> Recipe | None:
    """Parse a single recipe note. Returns None for non-recipe or unreadable notes."""
    try:
        post = frontmatter.load(file_path)
    except Exception as e:
        logger.debug("Could not parse %s: %s", file_path, e)
        return None

    meta = post.metadata
    if meta.get("type") != "recipe":
        return None

    if isinstance(meta.get("ingredients"), list):
        ingredients = _ingredients_from_meta(meta["ingredients"])
    else:
        ingredients = extract_ingredients(post.content)

    return Recipe(
        title=str(meta.get("title") or file_path.stem).strip(),
        summary=meta.get("summary") or meta.get("description"),
        servings=normalize_servings(meta.get("servings")) or 4,
        prep_time_min=normalize_time(meta.get("prep_time")),
        cook_time_min=normalize_time(meta.get("cook_time")),
        tags=_to_list(meta.get("tags")),
        ingredients=ingredients,
        instructions=extract_instructions(post.content),
        is_favorite=bool(meta.get("favorite")),
        calories=_to_float(meta.get("calories")),
        protein_g=_to_float(meta.get("protein_g")),
        carbs_g=_to_float(meta.get("carbs_g")),
        fat_g=_to_float(meta.get("fat_g")),
        source_path=str(file_path),
    )



def discover_recipe_files(folder: Path, limit: int | None = None) -> list[Path]:
    files = sorted(folder.glob("*.md"))
    if limit:
        files = files[:limit]
    return files


def _update_recipe(existing: Recipe, parsed: Recipe) -> None:
    for attr in (
        "summary", "servings", "prep_time_min", "cook_time_min", "tags", "ingredients",
        "instructions", "is_favorite", "calories", "protein_g", "carbs_g",
        "fat_g", "source_path",
    ):
        setattr(existing, attr, getattr(parsed, attr))
    existing.modified_at = utcnow()


def import_recipes(
    store: MemoryStore,
    household_id: str,
    folder: Path,
    limit: int | None = None,
) -> ImportStats:
    """Import recipe notes into the household library, upserting by title."""
    files = discover_recipe_files(folder, limit=limit)
    stats = ImportStats(total_files=len(files))

    existing = fetch_with_logging(
        store, Recipe, lambda r: r.household_id == household_id, context="household recipes"
    )
    if existing.failed:
        raise existing.error
    by_title = {r.title.lower(): r for r in existing.items}

    for f in files:
        parsed = parse_recipe_note(f)
        if parsed is None:
            stats.skipped += 1
            logger.debug("SKIP (not a recipe or parse error): %s", f.name)
            continue

        current = by_title.get(parsed.title.lower())
        if current is not None:
            _update_recipe(current, parsed)
            stats.updated += 1
        else:
            parsed.household_id = household_id
            store.insert(parsed)
            by_title[parsed.title.lower()] = parsed
            stats.inserted += 1

    if stats.inserted or stats.updated:
        save_with_logging(store, context=f"import recipes from {folder}")
    logger.info(
        "Imported recipes: %d new, %d updated, %d skipped",
        stats.inserted, stats.updated, stats.skipped,
    )
    return stats
