"""Console runner: trigger a run and print the table, diagram and map layers."""

from __future__ import annotations

import argparse
import asyncio
from typing import Optional, Sequence

from rich import box
from rich.console import Group
from rich.table import Table
from rich.text import Text

from . import (
    TABLE_COLUMNS,
    Failed,
    MapLayers,
    Projection,
    Running,
    Schedule,
    Settings,
    Snapshot,
    TraceSession,
    console,
)


def build_table(title: str, rows: tuple[tuple[str, ...], ...]) -> Table:
    table = Table(title=title, box=box.SQUARE, expand=True)
    for name in TABLE_COLUMNS:
        justify = "left" if name in ("IP", "ASN", "City", "Country") else "right"
        table.add_column(name, justify=justify, no_wrap=name == "Hop")
    for row in rows:
        table.add_row(*row)
    return table


def build_diagram(views: Projection) -> Text:
    text = Text()
    for step in views.diagram:
        node = step.node
        text.append(f"({node.hop_index})", style="bold white on blue")
        text.append(" " + node.caption.replace("\n", " | "))
        if step.connector_to_next:
            text.append("  ──▶  ", style="grey50")
    return text


def build_map(layers: MapLayers) -> Optional[Table]:
    if layers.empty:
        return None
    table = Table(title="Map markers", box=box.SIMPLE)
    table.add_column("Hop", justify="right")
    table.add_column("Lat", justify="right")
    table.add_column("Lon", justify="right")
    table.add_column("Role")
    for marker in layers.markers:
        style = "bold yellow" if marker.is_endpoint else None
        table.add_row(
            str(marker.hop_index),
            f"{marker.lat:.4f}",
            f"{marker.lon:.4f}",
            marker.role,
            style=style,
        )
    if layers.path:
        table.caption = f"Path through {len(layers.path)} points"
    return table


def render(snapshot: Snapshot) -> Group:
    parts: list = []
    state = snapshot.state
    if isinstance(state, Running):
        parts.append(Text(f"Running traceroute to {state.target}…", style="yellow"))
    elif isinstance(state, Failed):
        parts.append(Text(f"Error: {state.message}", style="red"))

    result = snapshot.result
    if result is not None and snapshot.views is not None:
        header = f"Traceroute to {result.target}"
        if result.run_id:
            header += f"  Run ID: {result.run_id}"
        header += f"  Hop Count: {result.hop_count}"
        parts.append(build_table(header, snapshot.views.table))
        parts.append(build_diagram(snapshot.views))
        map_table = build_map(snapshot.views.map)
        if map_table is not None:
            parts.append(map_table)
    return Group(*parts)


async def run(target: str, schedule: str = Schedule.NONE.value, settings: Optional[Settings] = None) -> int:
    async with TraceSession(settings) as session:
        if schedule != Schedule.NONE.value:
            session.controller.subscribe(
                lambda _state: console.print(render(session.snapshot()))
            )
            session.target = target
            session.set_schedule(schedule)
            await session.run()
            console.print(f"[dim]{Schedule(schedule).label}, Ctrl+C to stop[/dim]")
            await asyncio.Event().wait()

        state = await session.run(target)
        console.print(render(session.snapshot()))
        return 1 if isinstance(state, Failed) else 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run a remote traceroute and show its path")
    parser.add_argument("target", nargs="?", help="target host or IP")
    parser.add_argument(
        "-s",
        "--schedule",
        default=Schedule.NONE.value,
        choices=[item.value for item in Schedule],
        help="re-run on this interval",
    )
    parser.add_argument("--endpoint", help="measurement service URL")
    parser.add_argument("--api-key", help="value for the x-api-key header")
    parser.add_argument("--tui", action="store_true", help="open the interactive UI")

    args = parser.parse_args(argv)

    settings = Settings.from_env()
    if args.endpoint:
        settings.endpoint = args.endpoint
    if args.api_key:
        settings.api_key = args.api_key

    if args.tui:
        from .tui import TracemapApp

        TracemapApp(settings=settings, target=args.target or "").run()
        return

    if not args.target or not args.target.strip():
        parser.error("Provide a target (e.g., 1.1.1.1) or --tui")

    try:
        code = asyncio.run(run(args.target, args.schedule, settings))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return
    raise SystemExit(code)
