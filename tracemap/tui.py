"""Interactive Textual UI for tracemap."""

from __future__ import annotations

from pathlib import Path
from typing import Awaitable, Optional

from rich.markup import escape
from textual import on, work
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Input,
    Label,
    Select,
    Static,
)

from ._config import Settings
from ._schedule import Schedule
from ._session import Snapshot, TraceSession
from ._state import Failed, Idle, Running, RunState, Succeeded
from ._views import TABLE_COLUMNS, MapLayers, Projection

MAP_COLUMNS = ("Hop", "Lat", "Lon", "Role", "Popup")


def _reset_table(table: DataTable, columns: tuple[str, ...]) -> None:
    """Clear table contents while ensuring columns remain present."""

    table.clear()
    if not getattr(table, "columns", None):
        table.add_columns(*columns)


def _diagram_markup(views: Projection) -> str:
    parts = []
    for step in views.diagram:
        node = step.node
        caption = escape(node.caption.replace("\n", " · "))
        parts.append(f"[b reverse] {node.hop_index} [/] {caption}")
        if step.connector_to_next:
            parts.append("  [dim]→[/dim]  ")
    return "".join(parts)


class TracerouteView(VerticalScroll):
    """Target form plus the three result views."""

    def __init__(self, *, target: str = "", **kwargs) -> None:
        super().__init__(**kwargs)
        self._initial_target = target

    def compose(self) -> ComposeResult:
        with Vertical(id="trace-form"):
            yield Label("Target IP or Hostname")
            yield Input(
                placeholder="e.g. 1.1.1.1",
                id="trace-target",
                value=self._initial_target,
            )
            with Horizontal(id="trace-options"):
                yield Select(
                    [(item.label, item.value) for item in Schedule],
                    value=Schedule.NONE.value,
                    allow_blank=False,
                    id="trace-schedule",
                )
                yield Button(
                    "Run Traceroute",
                    id="trace-run",
                    flat=True,
                    disabled=not self._initial_target.strip(),
                )
        yield Static("", id="trace-status")
        table = DataTable(id="trace-table")
        table.add_columns(*TABLE_COLUMNS)
        yield table
        yield Label("Hop Diagram", classes="section-title")
        yield Static("", id="trace-diagram")
        with Vertical(id="trace-map"):
            yield Label("Traceroute Map", classes="section-title")
            map_table = DataTable(id="trace-map-table")
            map_table.add_columns(*MAP_COLUMNS)
            yield map_table
            yield Static("", id="trace-map-path")

    def on_mount(self) -> None:
        self.query_one("#trace-map").display = False

    def show(self, snapshot: Snapshot) -> None:
        state = snapshot.state
        views = snapshot.views
        status = self.query_one("#trace-status", Static)
        run_button = self.query_one("#trace-run", Button)
        run_button.label = "Running…" if state.busy else "Run Traceroute"

        if isinstance(state, Idle):
            status.update("")
        elif isinstance(state, Running):
            status.update(f"Running traceroute to {state.target}…")
        elif isinstance(state, Failed):
            status.update(f"[red]Error: {state.message}[/red]")
        elif isinstance(state, Succeeded):
            line = f"Traceroute to {state.result.target}"
            if state.result.run_id:
                line += f" | Run ID: {state.result.run_id}"
            status.update(f"{line} | Hop Count: {state.result.hop_count}")

        table = self.query_one("#trace-table", DataTable)
        _reset_table(table, TABLE_COLUMNS)
        diagram = self.query_one("#trace-diagram", Static)
        if views is None:
            diagram.update("")
            self._show_map(MapLayers())
            return

        for row in views.table:
            table.add_row(*row)
        diagram.update(_diagram_markup(views))
        self._show_map(views.map)

    def _show_map(self, layers: MapLayers) -> None:
        panel = self.query_one("#trace-map")
        if layers.empty:
            # nothing geolocated: skip the map entirely
            panel.display = False
            return
        panel.display = True
        table = self.query_one("#trace-map-table", DataTable)
        _reset_table(table, MAP_COLUMNS)
        for marker in layers.markers:
            table.add_row(
                str(marker.hop_index),
                f"{marker.lat:.4f}",
                f"{marker.lon:.4f}",
                marker.role,
                marker.popup_text.replace("\n", " | "),
            )
        path = self.query_one("#trace-map-path", Static)
        if layers.path:
            points = " -> ".join(f"({lat:.2f}, {lon:.2f})" for lat, lon in layers.path)
            path.update(f"Path: {points}")
        else:
            path.update("")


class TracemapApp(App):
    """Main Textual application for the traceroute visualizer."""

    CSS_PATH = Path(__file__).with_name("style.tcss")
    TITLE = "Traceroute Visualizer"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "run", "Run"),
    ]

    def __init__(self, settings: Optional[Settings] = None, target: str = "") -> None:
        super().__init__()
        self._settings = settings
        self._initial_target = target
        self.session: Optional[TraceSession] = None

    def compose(self) -> ComposeResult:
        yield TracerouteView(target=self._initial_target, id="trace")
        yield Footer()

    def on_mount(self) -> None:
        self.session = TraceSession(self._settings)
        self.session.target = self._initial_target.strip()
        self.session.controller.subscribe(self._on_state)

    async def on_unmount(self) -> None:
        if self.session is not None:
            await self.session.aclose()
            self.session = None

    def _on_state(self, state: RunState) -> None:
        if self.session is None:
            return
        self.query_one(TracerouteView).show(self.session.snapshot())
        if isinstance(state, Failed):
            self.bell()

    @on(Input.Changed, "#trace-target")
    def target_changed(self, event: Input.Changed) -> None:
        target = event.value.strip()
        self.query_one("#trace-run", Button).disabled = not target
        if self.session is not None:
            self.session.target = target

    @on(Select.Changed, "#trace-schedule")
    def schedule_changed(self, event: Select.Changed) -> None:
        if self.session is None or event.value is Select.BLANK:
            return
        self.session.set_schedule(str(event.value))
        self.notify(Schedule(str(event.value)).label)

    @on(Button.Pressed, "#trace-run")
    @on(Input.Submitted, "#trace-target")
    def run_pressed(self) -> None:
        self.action_run()

    def action_run(self) -> None:
        if self.session is None or not self.session.target:
            return
        # state turns Running here; the worker only waits for the outcome
        self.await_run(self.session.run())

    @work(group="runs")
    async def await_run(self, pending: Awaitable[RunState]) -> None:
        # superseded runs finish in the background and are dropped by the controller
        await pending


def run(settings: Optional[Settings] = None, target: str = "") -> None:
    """Launch the tracemap Textual UI."""

    TracemapApp(settings=settings, target=target).run()


if __name__ == "__main__":
    run()
