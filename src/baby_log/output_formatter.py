"""Output formatting for CLI and programmatic use."""

import json
from datetime import date, datetime
from typing import Any
from uuid import UUID

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import parse_instant
from .units import (
    VolumeUnit,
    display_volume,
    format_duration,
    format_time,
    round_half_up,
    unit_label,
)


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for output."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        return super().default(obj)


def describe_log(log: dict[str, Any], unit: VolumeUnit = VolumeUnit.ML) -> str:
    """One-line summary of a log document (camelCase keys)."""
    label = unit_label(unit)
    log_type = log.get("type")
    if log_type == "feeding":
        if log.get("subType") == "breast":
            side = f"({log['lastSide']}) " if log.get("lastSide") else ""
            return f"Breast {side}• {round_half_up((log.get('totalDuration') or 0) / 60)}m"
        contents = "BM" if log.get("contents") == "bm" else "Formula"
        return f"Bottle {contents} ({display_volume(log.get('amount') or 0, unit)}{label})"
    if log_type == "pumping":
        return f"Pumped ({display_volume(log.get('amount') or 0, unit)}{label})"
    if log_type == "diaper":
        return f"Diaper ({log.get('status') or log.get('subType')})"
    if log_type == "sleep":
        return f"Sleep ({log.get('duration')}m)"
    return str(log_type)


class OutputFormatter:
    """Formats output for both Rich terminal and JSON modes."""

    def __init__(self, json_mode: bool = False, volume_unit: VolumeUnit = VolumeUnit.ML):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
            volume_unit: Unit volumes are displayed in
        """
        self.json_mode = json_mode
        self.volume_unit = volume_unit
        self.console = Console()

    def output(self, data: dict[str, Any], message: str = "") -> None:
        """Output data in appropriate format.

        Args:
            data: Data to output
            message: Optional message for Rich mode
        """
        if self.json_mode:
            self._output_json(data)
        else:
            self._output_rich(data, message)

    def _output_json(self, data: dict[str, Any]) -> None:
        """Output as JSON to stdout."""
        print(json.dumps(data, cls=JSONEncoder, indent=2))

    def _output_rich(self, data: dict[str, Any], message: str) -> None:
        """Output with Rich formatting."""
        if message:
            self.console.print(f"[green]✓[/green] {message}")

        payload = data.get("data", {})
        if "logs" in payload:
            self._render_logs(data)
        elif "log" in payload:
            self._render_log(data)
        elif "timer" in payload:
            self._render_timer(data)
        elif "stats" in payload:
            self._render_stats(data)
        elif "inventory" in payload:
            self._render_inventory(data)
        elif "import" in payload:
            self._render_import(data)
        elif "preferences" in payload:
            self._render_preferences(data)

    def _volume(self, ml: float) -> str:
        return f"{display_volume(ml, self.volume_unit)} {unit_label(self.volume_unit)}"

    def _render_logs(self, data: dict) -> None:
        """Render the activity log."""
        logs = data["data"]["logs"]

        if not logs:
            self.console.print("[dim]No activity visible[/dim]")
            return

        table = Table(title="Activity Log", show_header=True, header_style="bold cyan")
        table.add_column("When", style="green")
        table.add_column("Type", style="yellow")
        table.add_column("Detail", style="cyan")
        table.add_column("Notes", style="dim")
        table.add_column("ID", style="dim")

        previous_day = None
        for log in logs:
            when = parse_instant(log["timestamp"]).astimezone()
            if previous_day is not None and when.date() != previous_day:
                table.add_section()
            previous_day = when.date()
            table.add_row(
                when.strftime("%a %b %d %H:%M"),
                log["type"],
                describe_log(log, self.volume_unit),
                log.get("notes") or "",
                log.get("id") or "-",
            )

        self.console.print(table)
        self.console.print(f"\nTotal entries: {len(logs)}")

    def _render_log(self, data: dict) -> None:
        """Render a single saved log."""
        log = data["data"]["log"]
        self.console.print(
            Panel(
                f"{describe_log(log, self.volume_unit)}\n[dim]{log.get('timestamp')}[/dim]",
                title=log.get("type", "").capitalize(),
                subtitle=log.get("id") or "",
            )
        )

    def _render_timer(self, data: dict) -> None:
        """Render the breastfeeding stopwatch."""
        timer = data["data"]["timer"]
        left = timer.get("leftTimer") or 0
        right = timer.get("rightTimer") or 0
        active = timer.get("activeTimer")

        def side(name: str, seconds: float) -> str:
            marker = "[bold orange1]●[/bold orange1] " if active == name else "  "
            return f"{marker}{name[0].upper()}  {format_time(seconds)}"

        body = "\n".join(
            [
                f"[bold]{format_time(left + right)}[/bold]  ({timer.get('state')})",
                f"Started: {timer.get('timerStartTime') or '-'}",
                side("left", left),
                side("right", right),
            ]
        )
        self.console.print(Panel(body, title="Breastfeeding Timer"))

    def _render_stats(self, data: dict) -> None:
        """Render today and all-time statistics."""
        stats = data["data"]["stats"]
        today = stats["today"]
        all_time = stats["all_time"]

        table = Table(title="Statistics", show_header=True, header_style="bold cyan")
        table.add_column("Metric", style="cyan")
        table.add_column("Today", justify="right")
        table.add_column("All Time", justify="right")

        table.add_row("Feedings", str(today["feedings"]), str(all_time["total_feedings"]))
        table.add_row(
            "Bottle volume",
            self._volume(today["bottle_volume"]),
            self._volume(all_time["total_bottle_volume"]),
        )
        table.add_row(
            "Pumped volume",
            self._volume(today["pumped_volume"]),
            self._volume(all_time["total_pumped_volume"]),
        )
        table.add_row(
            "Nursing time",
            format_duration(today["nursing_minutes"]),
            format_duration(all_time["total_nursing_minutes"]),
        )
        table.add_row("Diapers", str(today["diapers"]), str(all_time["total_diapers"]))
        table.add_row(
            "Sleep",
            format_duration(today["sleep_minutes"]),
            format_duration(all_time["total_sleep_minutes"]),
        )
        table.add_row(
            "Milk stash",
            "",
            f"{all_time['inventory_count']} bags, {self._volume(all_time['inventory_volume'])}",
        )
        self.console.print(table)

        last = stats.get("last")
        if last:
            self.console.print(f"Last breast side: [bold]{last['last_breast_side']}[/bold]")

    def _render_inventory(self, data: dict) -> None:
        """Render stored milk, oldest first."""
        items = data["data"]["inventory"]

        if not items:
            self.console.print("[dim]No milk in inventory.[/dim]")
            return

        table = Table(title="Stored Milk", show_header=True, header_style="bold cyan")
        table.add_column("Volume", justify="right", style="magenta")
        table.add_column("Pumped", style="green")
        table.add_column("Frozen", style="blue")
        table.add_column("ID", style="dim")
        table.add_column("")

        for item in items:
            table.add_row(
                self._volume(item["volume"]),
                str(item["pump_date"]),
                str(item["freeze_date"]),
                str(item["id"]),
                "[bold green]OLDEST[/bold green]" if item.get("oldest") else "",
            )

        self.console.print(table)
        self.console.print(f"\nTotal: {self._volume(data['data'].get('total_volume', 0))}")

    def _render_import(self, data: dict) -> None:
        """Render a batch import or dedup summary."""
        result = data["data"]["import"]
        self.console.print(
            f"Processed {result.get('total', 0)} rows: "
            f"{result.get('skipped', 0)} skipped, {result.get('failed', 0)} failed"
        )

    def _render_preferences(self, data: dict) -> None:
        """Render stored preferences."""
        prefs = data["data"]["preferences"]
        table = Table(title="Preferences", show_header=False)
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        for key, value in prefs.items():
            table.add_row(key, json.dumps(value) if isinstance(value, dict) else str(value))
        self.console.print(table)

    def error(self, message: str, error_code: str | None = None) -> None:
        """Output error message.

        Args:
            message: Error message
            error_code: Optional error code
        """
        if self.json_mode:
            output = {"success": False, "error": message}
            if error_code:
                output["error_code"] = error_code
            print(json.dumps(output))
        else:
            self.console.print(f"[red]✗ Error:[/red] {message}")

    def success(self, message: str, data: dict | None = None) -> None:
        """Output success message.

        Args:
            message: Success message
            data: Optional data to include
        """
        if self.json_mode:
            output: dict[str, Any] = {"success": True, "message": message}
            if data:
                output["data"] = data
            print(json.dumps(output, cls=JSONEncoder, indent=2))
        else:
            self.console.print(f"[green]✓[/green] {message}")
