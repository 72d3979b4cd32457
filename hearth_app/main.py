"""Application entry point for the Hearth focus timer (command-line edition)."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from collections import Counter
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from hearth_app.hearth import __version__, catalog  # noqa: E402
from hearth_app.hearth.controllers import CONFIG_DIR, AppController, ConfigManager  # noqa: E402
from hearth_app.hearth.errors import HearthError  # noqa: E402
from hearth_app.hearth.models import Period, TimerMode, TimerStatus  # noqa: E402
from hearth_app.hearth.schedule import format_duration, to_local  # noqa: E402
from hearth_app.hearth.scheduler import BlockingScheduler  # noqa: E402
from hearth_app.hearth.storage import Storage  # noqa: E402

LOGGER = logging.getLogger(__name__)


def configure_logging(log_dir: Path = CONFIG_DIR / "logs", verbose: bool = False) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_dir / "app.log", maxBytes=1024 * 1024, backupCount=3)
    stream = logging.StreamHandler()
    stream.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[handler, stream],
    )
    logging.info("Hearth v%s starting", __version__)


def load_exporter(export_path: str):
    """Import the pandas-backed exporter only when an export is requested."""
    from reports.excel_export import ExcelExporter

    return ExcelExporter(Path(export_path))


def build_controller(config_manager: ConfigManager, scheduler: Optional[BlockingScheduler] = None) -> AppController:
    storage = Storage(config_manager.database_path)
    return AppController(storage, scheduler or BlockingScheduler(), None, config_manager)


def _parse_time(value: str) -> time:
    try:
        hour, minute = (int(part) for part in value.split(":"))
        return time(hour, minute)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected HH:MM, got {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hearth", description="Focus timer with a session ledger")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output to the console")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="run a session in the foreground")
    run.add_argument("--activity", help="catalog activity id", default=None)
    run.add_argument("--mode", choices=[mode.value for mode in TimerMode], default=None)
    run.add_argument("--minutes", type=int, default=None, help="override the countdown length")
    run.add_argument("--category", default=None)

    sub.add_parser("activities", help="list catalog activities")

    report = sub.add_parser("report", help="show totals for a period")
    report.add_argument("--period", choices=[period.value for period in Period], default=None)
    report.add_argument("--category", default=None, help="drill down into one category")

    categories = sub.add_parser("categories", help="manage categories")
    cat_sub = categories.add_subparsers(dest="action", required=True)
    cat_sub.add_parser("list")
    add = cat_sub.add_parser("add")
    add.add_argument("name")
    delete = cat_sub.add_parser("delete")
    delete.add_argument("name")
    delete.add_argument("--merge-into", default=None)
    delete.add_argument("--purge", action="store_true", help="delete the category's records too")

    manual = sub.add_parser("add", help="add a record for today")
    manual.add_argument("--category", required=True)
    manual.add_argument("--start", type=_parse_time, required=True, help="HH:MM")
    manual.add_argument("--minutes", type=int, required=True)

    sub.add_parser("export", help="export the ledger to Excel")
    chart = sub.add_parser("chart", help="render the category chart to PNG")
    chart.add_argument("--output", default=None)
    sub.add_parser("backup", help="back up the database")
    return parser


def run_session(controller: AppController, args: argparse.Namespace) -> int:
    engine = controller.engine
    if args.mode:
        engine.set_mode(TimerMode(args.mode))
    if args.activity:
        controller.select_activity(args.activity)
    if args.category:
        controller.set_category(args.category)
    if args.minutes is not None and not engine.edit_duration(args.minutes):
        print(f"Ignoring invalid duration {args.minutes}", file=sys.stderr)

    engine.on_tick = lambda clock: print(f"\r{engine.status_text:<18} {clock.formatted}", end="", flush=True)
    engine.start()
    if engine.status is not TimerStatus.RUNNING:
        print("Nothing to run: the timer is at zero")
        return 1
    print(f"{engine.activity.name} [{engine.mode.value}] for {engine.category}")
    try:
        controller.scheduler.run_until()
    except KeyboardInterrupt:
        print()
        if engine.mode is TimerMode.COUNT_UP:
            record = engine.finish_now()
            print(f"Recorded {record.duration_minutes} min" if record else "Under a minute, not recorded")
        else:
            engine.reset()
            print("Session abandoned")
        return 0
    print(f"\n{engine.status_text}")
    return 0


def show_report(controller: AppController, args: argparse.Namespace) -> int:
    report = controller.report
    if args.period:
        report.set_period(Period(args.period))
    if args.category:
        report.select_category(args.category)
    print(f"{report.period.value}: {report.count} sessions, {format_duration(report.grand_total)}")
    for row in report.allocation:
        marker = "*" if report.is_highlighted(row.category) else " "
        print(f" {marker} {row.label}")
    for group in report.list_groups:
        print(f"\n{group.label} ({len(group.records)} records)")
        for record in group.records:
            started = to_local(record.timestamp_millis).strftime("%H:%M")
            print(f"   {started}  {record.category:<12} {record.duration_minutes:>4} min  {record.activity_name}")
    show_dishes(controller)
    return 0


def show_dishes(controller: AppController) -> None:
    dishes = catalog.completed_dishes(controller.ledger.records)
    if not dishes:
        return
    print(f"\nCompleted dishes ({len(dishes)})")
    counts = Counter((record.activity_name, icon_key) for record, icon_key in dishes)
    for (name, icon_key), count in counts.most_common():
        print(f"   {icon_key:<13} {name:<28} x{count}")


def manage_categories(controller: AppController, args: argparse.Namespace) -> int:
    if args.action == "list":
        for name in controller.list_categories():
            print(name)
        return 0
    if args.action == "add":
        added = controller.add_category(args.name)
        if added is None:
            print(f"Category name {args.name!r} is blank or already exists", file=sys.stderr)
            return 1
        print(f"Added {added}")
        return 0
    outcome = controller.delete_category(args.name, merge_target=args.merge_into, purge=args.purge)
    print(f"Deleted {outcome.category} (merged {outcome.merged}, removed {outcome.removed})")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)
    config_manager = ConfigManager()
    controller = build_controller(config_manager)
    try:
        if args.command == "run":
            return run_session(controller, args)
        if args.command == "activities":
            for item in catalog.FOCUS_ITEMS + catalog.BREAK_ITEMS:
                minutes = f"{item.nominal_duration_minutes} min" if item.nominal_duration_minutes else "count-up"
                print(f"{item.id:<12} {item.name:<28} {minutes}")
            return 0
        if args.command == "report":
            return show_report(controller, args)
        if args.command == "categories":
            return manage_categories(controller, args)
        if args.command == "add":
            record = controller.add_manual_record(args.category, args.minutes, args.start)
            print(f"Added {record.duration_minutes} min under {record.category}")
            return 0
        if args.command == "export":
            controller.exporter = load_exporter(config_manager.config.export_path)
            print(f"Exported to {controller.export_to_excel()}")
            return 0
        if args.command == "chart":
            print(f"Chart written to {controller.render_chart(args.output)}")
            return 0
        if args.command == "backup":
            print(f"Backup written to {controller.backup_database()}")
            return 0
    except (HearthError, KeyError, ValueError) as exc:
        LOGGER.info("Command %s refused: %s", args.command, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    finally:
        controller.save_config()
    return 1


if __name__ == "__main__":
    sys.exit(main())
