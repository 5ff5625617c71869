"""CLI entry point for Baby Log."""

import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError

from .analytics import Analytics
from .app_state import (
    SyncStatus,
    apply_snapshot,
    group_by_day,
    initial_state,
    logs_in_range,
    set_sync_status,
    toggle_category,
    visible_logs,
)
from .config import ConfigManager
from .data_import import LegacyImporter
from .data_store import DataStore
from .deduplication import remove_duplicate_logs
from .export import default_export_name, write_export
from .inventory_manager import InventoryItemNotFoundError, InventoryManager
from .log_manager import LogManager, LogValidationError
from .manual_entry import ManualBreastEntry
from .models import (
    BottleContents,
    CheckOutAction,
    DiaperStatus,
    LogRecord,
    LogType,
    Preferences,
    TimerSide,
)
from .output_formatter import OutputFormatter
from .sync_gateway import BackendType, GatewayError, LocalSyncGateway, SyncGateway, create_sync_gateway
from .timer import BreastfeedingTimer
from .units import VolumeUnit, round_half_up, to_ml

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="babylog",
    help="Track feedings, pumping, diapers and sleep",
    no_args_is_help=True,
)

# Global state (set by callback)
formatter: OutputFormatter = OutputFormatter()
config: ConfigManager | None = None
data_store: DataStore | None = None
gateway: SyncGateway | None = None
preferences: Preferences | None = None
user_id: str | None = None
sync_status: SyncStatus = SyncStatus.IDLE


def get_config() -> ConfigManager:
    """Get or create ConfigManager instance."""
    global config
    if config is None:
        config = ConfigManager()
    return config


def get_data_store() -> DataStore:
    """Get or create DataStore instance using config values."""
    global data_store
    if data_store is None:
        data_store = DataStore(data_dir=get_config().data.storage_dir)
    return data_store


def get_preferences() -> Preferences:
    """Get stored preferences, with config defaults for unset keys."""
    global preferences
    if preferences is None:
        preferences = _load_preferences(get_data_store(), get_config())
    return preferences


def get_gateway() -> SyncGateway:
    """Get or create the sync gateway for the configured backend."""
    global gateway
    if gateway is None:
        gateway = _connect(get_config(), get_data_store())
    return gateway


def get_log_manager() -> LogManager:
    """Create a LogManager for the active family and user."""
    return LogManager(
        get_gateway(), get_preferences().family_id, user_id or get_config().defaults.user_id
    )


def get_inventory_manager() -> InventoryManager:
    """Create an InventoryManager on the local data store."""
    return InventoryManager(get_data_store())


def _load_preferences(store: DataStore, cfg: ConfigManager) -> Preferences:
    defaults = cfg.defaults
    prefs = store.load_preferences()
    updates: dict[str, Any] = {}
    if store.get_preference("familyId") is None:
        updates["family_id"] = defaults.family_id
    if store.get_preference("babyName") is None:
        updates["baby_name"] = defaults.baby_name
    if store.get_preference("volumeUnit") is None:
        updates["volume_unit"] = VolumeUnit(defaults.volume_unit)
    return prefs.model_copy(update=updates)


def _connect(cfg: ConfigManager, store: DataStore) -> SyncGateway:
    """Open the configured sync backend, falling back to local-only on auth failure."""
    global sync_status
    backend = BackendType(cfg.data.backend)
    try:
        return create_sync_gateway(
            backend,
            data_store=store,
            app_id=cfg.sync.app_id,
            credentials_path=cfg.sync.credentials_path,
        )
    except GatewayError as e:
        sync_status = SyncStatus.DEGRADED
        logger.warning("Sync unavailable, working locally: %s", e)
        return LocalSyncGateway(data_store=store)


def _parse_when(value: str | None) -> datetime | None:
    """Parse a CLI date/time; naive values are local time."""
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Not a date/time: {value!r} (use YYYY-MM-DDTHH:MM)")
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed.astimezone(timezone.utc)


def _parse_day(value: str | None) -> date | None:
    """Parse a CLI calendar date."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Not a date: {value!r} (use YYYY-MM-DD)")


def _log_doc(record: LogRecord) -> dict[str, Any]:
    return record.model_dump(by_alias=True, exclude_none=True, mode="json")


def _saved(record: LogRecord, message: str) -> None:
    output_data = {"success": True, "message": message, "data": {"log": _log_doc(record)}}
    formatter.output(output_data, output_data["message"])


def _fail(e: Exception) -> None:
    if isinstance(e, LogValidationError):
        formatter.error(str(e), error_code="INVALID_LOG")
    elif isinstance(e, GatewayError):
        formatter.error(str(e), error_code="SYNC_FAILED")
    elif isinstance(e, InventoryItemNotFoundError):
        formatter.error(str(e), error_code="ITEM_NOT_FOUND")
    else:
        formatter.error(str(e))
    raise typer.Exit(code=1)


def _confirm(message: str, yes: bool) -> None:
    if not yes:
        typer.confirm(message, abort=True)


@app.callback()
def main(
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON for programmatic use")
    ] = False,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Data directory path")] = None,
    family: Annotated[
        str | None, typer.Option("--family", help="Family id to work with this run")
    ] = None,
    user: Annotated[str | None, typer.Option("--user", help="User id stamped on new logs")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show progress logs")] = False,
) -> None:
    """Baby Log CLI - feeding, pumping, diaper and sleep tracking."""
    global formatter, config, data_store, gateway, preferences, user_id, sync_status

    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sync_status = SyncStatus.IDLE

    formatter = OutputFormatter(json_mode=json_output)
    config = ConfigManager()

    # CLI --data-dir overrides config, which overrides default
    effective_data_dir = data_dir if data_dir else config.data.storage_dir
    data_store = DataStore(data_dir=effective_data_dir)
    try:
        preferences = _load_preferences(data_store, config)
    except (ValidationError, ValueError, OSError) as e:
        formatter.error(f"Could not read preferences: {e}", error_code="INVALID_PREFERENCES")
        raise typer.Exit(code=1)
    if family:
        preferences = preferences.model_copy(update={"family_id": family})
    user_id = user or config.defaults.user_id
    gateway = _connect(config, data_store)
    formatter = OutputFormatter(json_mode=json_output, volume_unit=preferences.volume_unit)


# --- Logging events ---

log_app = typer.Typer(help="Record feedings, pumping, diapers and sleep")
app.add_typer(log_app, name="log")


@log_app.command("bottle")
def log_bottle(
    amount: Annotated[float, typer.Argument(help="Amount, in your volume unit")],
    contents: Annotated[
        BottleContents, typer.Option("--contents", "-c", help="bm or formula")
    ] = BottleContents.BM,
    at: Annotated[str | None, typer.Option("--at", help="When (YYYY-MM-DDTHH:MM)")] = None,
    notes: Annotated[str | None, typer.Option("--notes", "-n", help="Notes")] = None,
) -> None:
    """Log a bottle feeding."""
    try:
        ml = to_ml(amount, get_preferences().volume_unit)
        record = get_log_manager().log_bottle(ml, contents, timestamp=_parse_when(at), notes=notes)
        _saved(record, f"Logged {amount:g} {get_preferences().volume_unit.value} bottle feed")
    except (typer.BadParameter, typer.Exit):
        raise
    except Exception as e:
        _fail(e)


@log_app.command("pump")
def log_pump(
    amount: Annotated[float, typer.Argument(help="Amount, in your volume unit")],
    side: Annotated[str | None, typer.Option("--side", "-s", help="left, right or both")] = None,
    at: Annotated[str | None, typer.Option("--at", help="When (YYYY-MM-DDTHH:MM)")] = None,
    notes: Annotated[str | None, typer.Option("--notes", "-n", help="Notes")] = None,
) -> None:
    """Log a pumping session."""
    try:
        ml = to_ml(amount, get_preferences().volume_unit)
        record = get_log_manager().log_pumping(ml, side=side, timestamp=_parse_when(at), notes=notes)
        _saved(record, f"Logged {amount:g} {get_preferences().volume_unit.value} pumping session")
    except (typer.BadParameter, typer.Exit):
        raise
    except Exception as e:
        _fail(e)


@log_app.command("diaper")
def log_diaper(
    status: Annotated[DiaperStatus, typer.Argument(help="wet, dirty or both")],
    at: Annotated[str | None, typer.Option("--at", help="When (YYYY-MM-DDTHH:MM)")] = None,
    notes: Annotated[str | None, typer.Option("--notes", "-n", help="Notes")] = None,
) -> None:
    """Log a diaper change."""
    try:
        record = get_log_manager().log_diaper(status, timestamp=_parse_when(at), notes=notes)
        _saved(record, f"Logged a {status.value} diaper")
    except (typer.BadParameter, typer.Exit):
        raise
    except Exception as e:
        _fail(e)


@log_app.command("sleep")
def log_sleep(
    minutes: Annotated[
        int | None, typer.Option("--minutes", "-m", help="Quick entry: minutes slept")
    ] = None,
    start: Annotated[str | None, typer.Option("--start", help="Fell asleep at")] = None,
    end: Annotated[str | None, typer.Option("--end", help="Woke up at")] = None,
    notes: Annotated[str | None, typer.Option("--notes", "-n", help="Notes")] = None,
) -> None:
    """Log a sleep, either by minutes or by start and end."""
    try:
        manager = get_log_manager()
        if minutes is not None:
            record = manager.log_sleep(minutes, notes=notes)
        else:
            start_at, end_at = _parse_when(start), _parse_when(end)
            if start_at is None or end_at is None:
                raise typer.BadParameter("Give --minutes, or both --start and --end")
            record = manager.log_sleep_range(start_at, end_at, notes=notes)
            if record is None:
                formatter.success("Nothing logged: the end is not after the start")
                return
        _saved(record, f"Logged {record.duration} min sleep")
    except (typer.BadParameter, typer.Exit):
        raise
    except Exception as e:
        _fail(e)


@log_app.command("breast")
def log_breast(
    side: Annotated[TimerSide, typer.Option("--side", "-s", help="left or right")] = TimerSide.LEFT,
    start: Annotated[str | None, typer.Option("--start", help="Started at")] = None,
    end: Annotated[str | None, typer.Option("--end", help="Finished at")] = None,
    minutes: Annotated[int | None, typer.Option("--minutes", "-m", help="Duration")] = None,
    notes: Annotated[str | None, typer.Option("--notes", "-n", help="Notes")] = None,
) -> None:
    """Log a breastfeeding after the fact (no timer)."""
    try:
        start_at = _parse_when(start) or datetime.now(timezone.utc)
        entry = ManualBreastEntry(start_at, side=side)
        if minutes is not None:
            entry.set_duration(minutes)
        end_at = _parse_when(end)
        if end_at is not None:
            entry.set_end(end_at)
        record = get_log_manager().log_manual_feeding(entry, notes=notes)
        _saved(record, f"Logged {entry.duration} min on the {side.value} side")
    except (typer.BadParameter, typer.Exit):
        raise
    except Exception as e:
        _fail(e)


# --- Breastfeeding timer ---

timer_app = typer.Typer(help="Two-sided breastfeeding timer")
app.add_typer(timer_app, name="timer")


def _load_timer() -> BreastfeedingTimer:
    return BreastfeedingTimer.restore(get_data_store().load_timer_state())


def _store_timer(timer: BreastfeedingTimer, message: str = "") -> None:
    get_data_store().save_timer_state(timer.snapshot())
    output_data = {
        "success": True,
        "message": message,
        "data": {"timer": {**timer.snapshot(), "state": timer.state.value}},
    }
    formatter.output(output_data, message)


@timer_app.command("toggle")
def timer_toggle(
    side: Annotated[TimerSide, typer.Argument(help="left or right")],
) -> None:
    """Start, switch or pause a side."""
    try:
        timer = _load_timer()
        state = timer.toggle(side)
        _store_timer(timer, f"Timer {state.value}")
    except Exception as e:
        _fail(e)


@timer_app.command("status")
def timer_status() -> None:
    """Show the running timer."""
    try:
        timer = _load_timer()
        _store_timer(timer)
    except Exception as e:
        _fail(e)


@timer_app.command("set-start")
def timer_set_start(
    when: Annotated[str, typer.Argument(help="New start time (YYYY-MM-DDTHH:MM)")],
) -> None:
    """Move the session's start time, crediting the difference to the longer side."""
    try:
        new_start = _parse_when(when)
        timer = _load_timer()
        timer.edit_start_time(new_start)  # type: ignore[arg-type]
        _store_timer(timer, "Start time updated")
    except (typer.BadParameter, typer.Exit):
        raise
    except Exception as e:
        _fail(e)


@timer_app.command("reset")
def timer_reset() -> None:
    """Clear both sides without saving."""
    try:
        timer = _load_timer()
        timer.reset()
        _store_timer(timer, "Timer reset")
    except Exception as e:
        _fail(e)


@timer_app.command("save")
def timer_save(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Save the timed feeding and reset the timer."""
    try:
        _confirm("Save this feeding?", yes)
        timer = _load_timer()
        record = get_log_manager().log_timer_feeding(timer)
        get_data_store().save_timer_state(timer.snapshot())
        _saved(record, f"Logged {round_half_up(record.total_duration / 60)} min breastfeeding")
    except (typer.Abort, typer.Exit):
        raise
    except Exception as e:
        _fail(e)


# --- History & management ---


@app.command()
def history(
    log_type: Annotated[
        LogType | None, typer.Option("--type", "-t", help="Only this kind of event")
    ] = None,
    limit: Annotated[int, typer.Option("--limit", "-l", help="Most recent N entries")] = 50,
    from_day: Annotated[
        str | None, typer.Option("--from", help="First day to include (YYYY-MM-DD)")
    ] = None,
    to_day: Annotated[
        str | None, typer.Option("--to", help="Last day to include (YYYY-MM-DD)")
    ] = None,
    oldest_first: Annotated[
        bool, typer.Option("--oldest-first", help="Sort oldest entries first")
    ] = False,
) -> None:
    """Show the activity log, grouped by day, newest first by default."""
    try:
        start, end = _parse_day(from_day), _parse_day(to_day)
        state = initial_state(get_preferences())
        snapshots: list[list[LogRecord]] = []
        unsubscribe = get_gateway().subscribe(state.family_id, snapshots.append)
        unsubscribe()
        # Remote listeners deliver on a background thread; read directly if none arrived yet
        if not snapshots:
            snapshots.append(get_gateway().query(state.family_id))
        state = apply_snapshot(state, snapshots[-1])
        if sync_status == SyncStatus.DEGRADED:
            state = set_sync_status(state, sync_status)

        logs = visible_logs(state)
        if log_type is not None:
            logs = [log for log in logs if log.type == log_type]
        logs = logs_in_range(logs, start, end, newest_first=not oldest_first)[:limit]

        output_data = {
            "success": True,
            "data": {
                "logs": [_log_doc(log) for log in logs],
                "count": len(logs),
                "days": [
                    {"date": day.isoformat(), "count": len(day_logs)}
                    for day, day_logs in group_by_day(logs)
                ],
                "sync_status": state.sync_status.value,
            },
        }
        formatter.output(output_data)
    except (typer.BadParameter, typer.Exit):
        raise
    except Exception as e:
        _fail(e)


@app.command()
def delete(
    log_id: Annotated[str, typer.Argument(help="Log ID to delete")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a log entry. This cannot be undone."""
    try:
        _confirm("Delete entry? This cannot be undone.", yes)
        get_log_manager().delete_log(log_id)
        formatter.success(f"Deleted {log_id}", {"id": log_id})
    except (typer.Abort, typer.Exit):
        raise
    except Exception as e:
        _fail(e)


@app.command()
def stats() -> None:
    """Statistics for today and all time."""
    try:
        analytics = Analytics(
            get_log_manager().get_logs(), get_inventory_manager().get_inventory()
        )
        last = analytics.last_events()
        output_data = {
            "success": True,
            "data": {
                "stats": {
                    "today": analytics.daily_stats().model_dump(),
                    "all_time": analytics.all_time_stats().model_dump(),
                    "last": {
                        "fed_at": last.fed_at,
                        "diaper_at": last.diaper_at,
                        "sleep_at": last.sleep_at,
                        "pumped_at": last.pumped_at,
                        "last_breast_side": last.last_breast_side,
                    },
                }
            },
        }
        formatter.output(output_data)
    except Exception as e:
        _fail(e)


@app.command()
def export(
    output: Annotated[Path | None, typer.Argument(help="CSV file to write")] = None,
) -> None:
    """Export all logs as CSV."""
    try:
        path = output or Path(default_export_name())
        count = write_export(path, get_log_manager().get_logs(), get_preferences().volume_unit)
        formatter.success(f"Exported {count} logs to {path}", {"path": str(path), "count": count})
    except Exception as e:
        _fail(e)


@app.command("import-legacy")
def import_legacy(
    csv_path: Annotated[Path, typer.Argument(help="Legacy CSV export")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Import logs from the legacy app's CSV export.

    Running it twice imports everything twice; use `dedupe` afterwards.
    """
    try:
        _confirm("Import legacy data? This may create duplicates if run multiple times.", yes)
        importer = LegacyImporter(get_gateway())
        result = importer.import_file(csv_path, get_preferences().family_id, user_id)
        if not result.success:
            formatter.error(result.error or "Import failed", error_code="IMPORT_FAILED")
            raise typer.Exit(code=1)
        output_data = {
            "success": True,
            "message": f"Successfully imported {result.count} logs!",
            "data": {"import": result.model_dump()},
        }
        formatter.output(output_data, output_data["message"])
    except (typer.Abort, typer.Exit):
        raise
    except Exception as e:
        _fail(e)


@app.command()
def dedupe(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Remove duplicate entries for the family."""
    try:
        _confirm("Remove duplicate logs? Entries with the same time, type and amounts are merged.", yes)
        result = remove_duplicate_logs(get_preferences().family_id, get_gateway())
        if not result.success:
            formatter.error(
                f"Deduplication failed after {result.deleted_count} deletions: {result.error}",
                error_code="DEDUP_FAILED",
            )
            raise typer.Exit(code=1)
        message = (
            f"Removed {result.deleted_count} duplicate entries."
            if result.deleted_count
            else "No duplicates found."
        )
        formatter.success(message, {"dedup": result.model_dump()})
    except (typer.Abort, typer.Exit):
        raise
    except Exception as e:
        _fail(e)


# --- Milk inventory ---

inv_app = typer.Typer(help="Frozen milk inventory")
app.add_typer(inv_app, name="inventory")


def _inventory_doc(item: Any, oldest: bool = False) -> dict[str, Any]:
    return {**item.model_dump(mode="json"), "oldest": oldest}


@inv_app.command("check-in")
def inv_check_in(
    volume: Annotated[float, typer.Argument(help="Volume, in your volume unit")],
    pumped: Annotated[str | None, typer.Option("--pumped", help="Pumped at")] = None,
    frozen: Annotated[
        str | None, typer.Option("--frozen", help="Freeze date (YYYY-MM-DD)")
    ] = None,
) -> None:
    """Put a bag of milk in the freezer."""
    try:
        pump_date = _parse_when(pumped) or datetime.now(timezone.utc)
        freeze_date = date.fromisoformat(frozen) if frozen else None
        item = get_inventory_manager().check_in(
            to_ml(volume, get_preferences().volume_unit), pump_date, freeze_date
        )
        output_data = {
            "success": True,
            "message": f"Stored {volume:g} {get_preferences().volume_unit.value}",
            "data": {"inventory_item": _inventory_doc(item)},
        }
        formatter.output(output_data, output_data["message"])
    except (typer.BadParameter, typer.Exit):
        raise
    except ValidationError as e:
        formatter.error(f"Invalid inventory item: {e.errors()[0]['msg']}", error_code="INVALID_ITEM")
        raise typer.Exit(code=1)
    except Exception as e:
        _fail(e)


@inv_app.command("check-out")
def inv_check_out(
    item_id: Annotated[str, typer.Argument(help="Inventory item ID")],
    action: Annotated[
        CheckOutAction, typer.Option("--action", "-a", help="thaw or delete")
    ] = CheckOutAction.THAW,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Take a bag out of the inventory."""
    try:
        _confirm(f"Are you sure you want to {action.value} this item?", yes)
        removed = get_inventory_manager().check_out(item_id, action)
        output_data = {
            "success": True,
            "message": f"{action.value.capitalize()}: {removed.volume:g} ml",
            "data": {"inventory_item": _inventory_doc(removed)},
        }
        formatter.output(output_data, output_data["message"])
    except (typer.Abort, typer.Exit):
        raise
    except Exception as e:
        _fail(e)


@inv_app.command("list")
def inv_list() -> None:
    """Stored milk, oldest first."""
    try:
        mgr = get_inventory_manager()
        items = mgr.list_for_consumption()
        output_data = {
            "success": True,
            "data": {
                "inventory": [_inventory_doc(item, oldest) for item, oldest in items],
                "count": len(items),
                "total_volume": mgr.total_volume(),
            },
        }
        formatter.output(output_data, f"{len(items)} bags in inventory")
    except Exception as e:
        _fail(e)


# --- Preferences ---

prefs_app = typer.Typer(help="Device preferences")
app.add_typer(prefs_app, name="prefs")


def _show_prefs(message: str = "") -> None:
    prefs = get_data_store().load_preferences()
    output_data = {
        "success": True,
        "message": message,
        "data": {"preferences": prefs.model_dump(by_alias=True, mode="json")},
    }
    formatter.output(output_data, message)


@prefs_app.command("show")
def prefs_show() -> None:
    """Show stored preferences."""
    try:
        _show_prefs()
    except Exception as e:
        _fail(e)


@prefs_app.command("family")
def prefs_family(
    family_id: Annotated[str, typer.Argument(help="Shared family key")],
) -> None:
    """Join a family: logs are shared with every device using this key."""
    try:
        get_data_store().set_preference("familyId", family_id)
        _show_prefs(f"Family set to {family_id}")
    except Exception as e:
        _fail(e)


@prefs_app.command("name")
def prefs_name(name: Annotated[str, typer.Argument(help="Baby's name")]) -> None:
    """Set the display name."""
    try:
        get_data_store().set_preference("babyName", name)
        _show_prefs(f"Name set to {name}")
    except Exception as e:
        _fail(e)


@prefs_app.command("unit")
def prefs_unit(unit: Annotated[VolumeUnit, typer.Argument(help="ml or oz")]) -> None:
    """Choose the volume unit for display and input."""
    try:
        get_data_store().set_preference("volumeUnit", unit.value)
        _show_prefs(f"Volume unit set to {unit.value}")
    except Exception as e:
        _fail(e)


@prefs_app.command("dark-mode")
def prefs_dark_mode(
    enabled: Annotated[bool, typer.Argument(help="true or false")],
) -> None:
    """Remember the theme choice."""
    try:
        get_data_store().set_preference("darkMode", enabled)
        _show_prefs(f"Dark mode {'on' if enabled else 'off'}")
    except Exception as e:
        _fail(e)


@prefs_app.command("toggle")
def prefs_toggle(
    category: Annotated[LogType, typer.Argument(help="Category to show or hide")],
) -> None:
    """Show or hide a category in the activity log."""
    try:
        state = toggle_category(initial_state(get_preferences()), category)
        get_data_store().set_preference("visibleCategories", state.visible_categories)
        shown = state.visible_categories[category.value]
        _show_prefs(f"{category.value.capitalize()} {'shown' if shown else 'hidden'}")
    except Exception as e:
        _fail(e)


if __name__ == "__main__":
    app()
