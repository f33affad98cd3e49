"""CLI entry point for the week planner."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from datetime import date
from pathlib import Path

logger = logging.getLogger(__name__)

SCREENSHOT_TABS = ("today", "thisWeek", "recipes")
DEFAULT_TAB = "today"

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_LOAD_FAILED = 2


@dataclass
class AppContext:
    config: dict
    store: object
    scheduler: object
    household_name: str
    reference: date


def resolve_tab(name: str | None) -> str:
    """Map a --screenshot-tab value onto a view; unknown names fall back to today."""
    if name in SCREENSHOT_TABS:
        return name
    if name is not None:
        logger.warning("Unknown screenshot tab '%s'; showing %s", name, DEFAULT_TAB)
    return DEFAULT_TAB


def build_context(args: argparse.Namespace, read_only: bool) -> AppContext:
    from weekplan.config import apply_cli_overrides, apply_env_overrides, load_config
    from weekplan.models import WeekPlanStatus
    from weekplan.scheduler import WeekPlanScheduler
    from weekplan.store import JsonStore
    from weekplan.weeks import get_timezone, parse_date, today_in

    config = load_config(Path(args.config) if args.config else None)
    config = apply_env_overrides(config)
    config = apply_cli_overrides(
        config,
        store=args.store,
        timezone=args.timezone,
        household=args.household,
    )

    tz = get_timezone(config["calendar"]["timezone"])
    store_path = Path(config["store"]["path"]).expanduser()

    if args.screenshot_mode or config["demo"]["enabled"]:
        _seed_before_launch(config, store_path, tz, args)

    store = JsonStore(store_path, read_only=read_only)
    scheduler = WeekPlanScheduler(
        store,
        tz=tz,
        default_status=WeekPlanStatus(config["planning"]["default_status"]),
        default_servings=config["planning"]["default_servings"],
    )
    reference = parse_date(args.date) if args.date else today_in(tz)
    return AppContext(
        config=config,
        store=store,
        scheduler=scheduler,
        household_name=config["household"]["name"],
        reference=reference,
    )


def _seed_before_launch(config: dict, store_path: Path, tz, args: argparse.Namespace) -> None:
    from weekplan.models import WeekPlanStatus
    from weekplan.scheduler import WeekPlanScheduler
    from weekplan.seed import seed_demo_data
    from weekplan.store import JsonStore
    from weekplan.weeks import parse_date, today_in

    # Seeding writes even when the launching client is read-only.
    scheduler = WeekPlanScheduler(
        JsonStore(store_path),
        tz=tz,
        default_status=WeekPlanStatus(config["planning"]["default_status"]),
    )
    now = parse_date(args.date) if args.date else today_in(tz)
    household = seed_demo_data(scheduler, now)
    if household is not None and args.household is None:
        config["household"]["name"] = household.name


def find_household_id(ctx: AppContext, create: bool) -> str | None:
    from weekplan.models import Household
    from weekplan.seed import find_household
    from weekplan.store import save_with_logging

    household = find_household(ctx.scheduler, ctx.household_name)
    if household is None and create:
        household = Household(name=ctx.household_name)
        ctx.store.insert(household)
        save_with_logging(ctx.store, context=f"create household {household.name}")
        logger.info("Created household '%s'", household.name)
    return household.id if household else None


def _load_week(ctx: AppContext):
    from weekplan.scheduler import LoadState, WeekLoad

    household_id = find_household_id(ctx, create=False)
    if household_id is None:
        return WeekLoad(LoadState.EMPTY, ctx.scheduler.week_start(ctx.reference))
    return ctx.scheduler.load_week(household_id, ctx.reference)


def cmd_today(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.models import DayOfWeek
    from weekplan.render import format_day_markdown, format_week_json
    from weekplan.scheduler import LoadState

    load = _load_week(ctx)
    day = DayOfWeek.from_date(ctx.reference)
    if load.plan is not None:
        load.slots = ctx.scheduler.slots_for_day(load.plan, day)
    if getattr(args, "format", "markdown") == "json":
        print(format_week_json(ctx.scheduler, load))
    else:
        print(format_day_markdown(ctx.scheduler, load, day, today=ctx.reference))
    return EXIT_LOAD_FAILED if load.state == LoadState.FAILED else EXIT_OK


def cmd_week(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.render import format_week_json, format_week_markdown
    from weekplan.scheduler import LoadState

    load = _load_week(ctx)
    if getattr(args, "format", "markdown") == "json":
        print(format_week_json(ctx.scheduler, load))
    else:
        print(format_week_markdown(ctx.scheduler, load, today=ctx.reference))
    return EXIT_LOAD_FAILED if load.state == LoadState.FAILED else EXIT_OK


def cmd_recipes(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.models import Recipe
    from weekplan.render import format_recipe_table
    from weekplan.store import fetch_with_logging

    household_id = find_household_id(ctx, create=False)
    result = fetch_with_logging(
        ctx.store, Recipe, lambda r: r.household_id == household_id, context="recipe library"
    )
    if result.failed:
        logger.error("Unable to load recipes: %s", result.error)
        return EXIT_LOAD_FAILED
    if not result.items:
        logger.warning("No recipes yet. Import some with 'weekplan import-recipes'.")
        return EXIT_OK
    print(format_recipe_table(result.items))
    return EXIT_OK


def cmd_shopping_list(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.render import format_load_failure
    from weekplan.scheduler import LoadState
    from weekplan.shopping import format_shopping_json, format_shopping_markdown, generate_grocery_list

    load = _load_week(ctx)
    if load.state == LoadState.FAILED:
        print(format_load_failure(load.message))
        return EXIT_LOAD_FAILED
    if load.plan is None:
        logger.warning("No meals planned for the week of %s", load.week_start)
        return EXIT_OK

    pantry = list(ctx.config["shopping"]["pantry_staples"])
    if args.pantry:
        pantry += [p.strip() for p in args.pantry.split(",")]

    items = generate_grocery_list(ctx.scheduler, load.plan, pantry_staples=pantry)
    if not items:
        logger.warning("No ingredients to list")
        return EXIT_OK

    if args.format == "json":
        print(format_shopping_json(load.plan, items))
    else:
        print(format_shopping_markdown(load.plan, items))
    return EXIT_OK


def _household_recipes(ctx: AppContext, household_id: str) -> list:
    from weekplan.models import Recipe

    return ctx.store.fetch(Recipe, lambda r: r.household_id == household_id)


def _plan_and_slot(ctx: AppContext, spec, create_slot: bool):
    household_id = find_household_id(ctx, create=True)
    plan = ctx.scheduler.find_or_create_plan(household_id, ctx.reference)
    slot = ctx.scheduler.slot_for(plan, spec.day, spec.meal_type)
    if slot is None and create_slot:
        slot = ctx.scheduler.add_slot(plan, spec.day, spec.meal_type)
    if slot is None:
        raise LookupError(f"No {spec.meal_type.value} planned on {spec.day.display_name}")
    return household_id, plan, slot


def _report(ok: bool, message: str) -> int:
    if ok:
        logger.info(message)
        return EXIT_OK
    logger.error("%s, but saving failed; the change may be lost", message)
    return EXIT_USAGE


def cmd_assign(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.slots import find_recipe, parse_slot_spec

    spec = parse_slot_spec(args.slot)
    household_id = find_household_id(ctx, create=True)
    recipe = find_recipe(spec.recipe_query, _household_recipes(ctx, household_id))
    _, plan, slot = _plan_and_slot(ctx, spec, create_slot=True)
    ok = ctx.scheduler.assign_recipe(slot, recipe, plan=plan)
    if args.servings is not None:
        ok = ctx.scheduler.set_servings(slot, args.servings, plan=plan) and ok
    return _report(ok, f"Assigned {recipe.title} to {slot.description}")


def cmd_custom(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.slots import parse_slot_spec

    spec = parse_slot_spec(args.slot)
    _, plan, slot = _plan_and_slot(ctx, spec, create_slot=True)
    ok = ctx.scheduler.set_custom_name(slot, spec.recipe_query, plan=plan)
    return _report(ok, f"Set {slot.description} to '{spec.recipe_query}'")


def cmd_remove(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.slots import find_recipe, parse_slot_spec

    spec = parse_slot_spec(args.slot, require_recipe=False)
    household_id, plan, slot = _plan_and_slot(ctx, spec, create_slot=False)
    if spec.recipe_query is None:
        ok = ctx.scheduler.remove_slot(plan, slot)
        return _report(ok, f"Removed {slot.description}")
    recipe = find_recipe(spec.recipe_query, _household_recipes(ctx, household_id))
    ok = ctx.scheduler.remove_recipe(slot, recipe, plan=plan)
    return _report(ok, f"Removed {recipe.title} from {slot.description}")


def cmd_clear(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.slots import parse_slot_spec

    if args.slot is None:
        household_id = find_household_id(ctx, create=True)
        plan = ctx.scheduler.find_or_create_plan(household_id, ctx.reference)
        return _report(ctx.scheduler.clear_all(plan), f"Cleared week of {plan.week_start}")
    spec = parse_slot_spec(args.slot, require_recipe=False)
    _, plan, slot = _plan_and_slot(ctx, spec, create_slot=False)
    return _report(ctx.scheduler.clear_slot(slot, plan=plan), f"Cleared {slot.description}")


def cmd_skip(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.slots import parse_slot_spec

    spec = parse_slot_spec(args.slot, require_recipe=False)
    _, plan, slot = _plan_and_slot(ctx, spec, create_slot=True)
    return _report(ctx.scheduler.skip_slot(slot, plan=plan), f"Skipped {slot.description}")


def cmd_servings(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.slots import parse_slot_spec

    spec = parse_slot_spec(args.slot, require_recipe=False)
    _, plan, slot = _plan_and_slot(ctx, spec, create_slot=False)
    ok = ctx.scheduler.set_servings(slot, args.count, plan=plan)
    return _report(ok, f"{slot.description} now serves {args.count}")


def cmd_status(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.models import WeekPlanStatus

    household_id = find_household_id(ctx, create=True)
    plan = ctx.scheduler.find_or_create_plan(household_id, ctx.reference)
    status = WeekPlanStatus(args.status)
    return _report(ctx.scheduler.set_status(plan, status), f"Week of {plan.week_start} is now {status.value}")


def cmd_init_week(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.models import MealType

    household_id = find_household_id(ctx, create=True)
    plan = ctx.scheduler.find_or_create_plan(household_id, ctx.reference)
    if plan.slots:
        logger.info("Week of %s already has %d slot(s)", plan.week_start, len(plan.slots))
        return EXIT_OK
    meal_types = [MealType(m) for m in ctx.config["planning"]["default_meal_types"]]
    ok = ctx.scheduler.create_default_slots(plan, meal_types)
    return _report(ok, f"Created {len(plan.slots)} empty slots for week of {plan.week_start}")


def cmd_copy_week(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.weeks import parse_date

    household_id = find_household_id(ctx, create=True)
    source = ctx.scheduler.find_plan(household_id, parse_date(args.source))
    if source.failed:
        logger.error("Unable to load source week: %s", source.error)
        return EXIT_LOAD_FAILED
    if source.first is None:
        raise LookupError(f"No plan exists for the week of {args.source}")
    plan = ctx.scheduler.find_or_create_plan(household_id, ctx.reference)
    ok = ctx.scheduler.copy_from(plan, source.first)
    return _report(ok, f"Copied week of {source.first.week_start} into {plan.week_start}")


def cmd_seed(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.seed import seed_demo_data

    household = seed_demo_data(ctx.scheduler, ctx.reference)
    if household is not None:
        print(f"Demo household: {household.name}")
    return EXIT_OK


def cmd_import_recipes(ctx: AppContext, args: argparse.Namespace) -> int:
    from weekplan.recipes import import_recipes

    household_id = find_household_id(ctx, create=True)
    stats = import_recipes(ctx.store, household_id, Path(args.folder), limit=args.limit)
    print(
        f"{stats.total_files} files: {stats.inserted} new, "
        f"{stats.updated} updated, {stats.skipped} skipped"
    )
    return EXIT_OK


TAB_COMMANDS = {
    "today": cmd_today,
    "thisWeek": cmd_week,
    "recipes": cmd_recipes,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weekplan",
        description="Household weekly meal planning",
    )
    parser.add_argument("--store", type=str, default=None, help="Path to the JSON store file")
    parser.add_argument("--config", type=str, default=None, help="Path to config YAML")
    parser.add_argument("--household", type=str, default=None, help="Household name")
    parser.add_argument("--timezone", type=str, default=None, help="Reference timezone, e.g. Europe/London")
    parser.add_argument("--date", type=str, default=None, help="Reference date YYYY-MM-DD (default: today)")
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Display-only client: refuse every command that changes the plan",
    )
    parser.add_argument(
        "--screenshot-mode",
        action="store_true",
        help="Seed demo data and open the --screenshot-tab view",
    )
    parser.add_argument(
        "--screenshot-tab",
        type=str,
        default=None,
        help=f"Initial view in screenshot mode: {', '.join(SCREENSHOT_TABS)} (default: {DEFAULT_TAB})",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Logging verbosity (default: info)",
    )
    parser.add_argument("--log-file", type=str, default=None, help="Also write logs to this file")

    sub = parser.add_subparsers(dest="command")

    def read_cmd(name: str, func, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.set_defaults(func=func, mutates=False)
        return p

    def write_cmd(name: str, func, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.set_defaults(func=func, mutates=True)
        return p

    p_today = read_cmd("today", cmd_today, "Show today's meals")
    p_today.add_argument("--format", choices=["markdown", "json"], default="markdown")

    p_week = read_cmd("week", cmd_week, "Show the week containing --date")
    p_week.add_argument("--format", choices=["markdown", "json"], default="markdown")

    read_cmd("recipes", cmd_recipes, "List the household recipe library")

    p_shop = read_cmd("shopping-list", cmd_shopping_list, "Grocery list for the week containing --date")
    p_shop.add_argument("--format", choices=["markdown", "json"], default="markdown")
    p_shop.add_argument("--pantry", type=str, default=None, help="Extra comma-separated staples to leave off")

    p_assign = write_cmd("assign", cmd_assign, "Add a recipe to a meal slot")
    p_assign.add_argument("slot", help='"day:meal:Recipe Name", e.g. "wed:dinner:Risotto"')
    p_assign.add_argument("--servings", type=int, default=None)

    p_custom = write_cmd("custom", cmd_custom, "Set a free-text meal, e.g. 'Eating out'")
    p_custom.add_argument("slot", help='"day:meal:Meal name"')

    p_remove = write_cmd("remove", cmd_remove, "Remove a recipe from a slot, or the slot itself")
    p_remove.add_argument("slot", help='"day:meal:Recipe Name" or "day:meal"')

    p_clear = write_cmd("clear", cmd_clear, "Clear one slot, or the whole week without a slot")
    p_clear.add_argument("slot", nargs="?", default=None, help='"day:meal"')

    p_skip = write_cmd("skip", cmd_skip, "Mark a meal as skipped")
    p_skip.add_argument("slot", help='"day:meal"')

    p_servings = write_cmd("servings", cmd_servings, "Change planned servings for a slot")
    p_servings.add_argument("slot", help='"day:meal"')
    p_servings.add_argument("count", type=int)

    p_status = write_cmd("status", cmd_status, "Change the week plan status")
    p_status.add_argument("status", choices=["draft", "active", "completed", "archived"])

    write_cmd("init-week", cmd_init_week, "Create empty default slots for the week")

    p_copy = write_cmd("copy-week", cmd_copy_week, "Copy assignments from another week")
    p_copy.add_argument("source", help="Any date in the week to copy from (YYYY-MM-DD)")

    write_cmd("seed", cmd_seed, "Populate the store with demo data")

    p_import = write_cmd("import-recipes", cmd_import_recipes, "Import markdown recipe notes")
    p_import.add_argument("folder", type=str)
    p_import.add_argument("--limit", type=int, default=None, help="Import only N files")

    return parser


def run(argv: list[str] | None = None) -> int:
    return dispatch(build_parser().parse_args(argv))


def dispatch(args: argparse.Namespace) -> int:
    from weekplan.store import StoreError

    if args.command is None:
        if not args.screenshot_mode:
            build_parser().print_help()
            return EXIT_USAGE
        args.func = TAB_COMMANDS[resolve_tab(args.screenshot_tab)]
        args.mutates = False

    if args.mutates and args.read_only:
        logger.error("'%s' changes the plan and is not available on a read-only client", args.command)
        return EXIT_USAGE

    try:
        ctx = build_context(args, read_only=args.read_only)
        return args.func(ctx, args)
    except (ValueError, LookupError) as e:
        logger.error("%s", e)
        return EXIT_USAGE
    except StoreError as e:
        logger.error("Unable to load data: %s", e)
        if not args.mutates:
            from weekplan.render import format_load_failure

            print(format_load_failure(str(e)))
        return EXIT_LOAD_FAILED


def main() -> None:
    from weekplan.log import setup_logging

    parser = build_parser()
    args = parser.parse_args()

    log_file = Path(args.log_file) if args.log_file else None
    setup_logging(
        level=args.log_level,
        log_file=log_file,
        client="display" if args.read_only else "cli",
    )

    sys.exit(dispatch(args))


if __name__ == "__main__":
    main()
