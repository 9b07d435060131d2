"""Projections of a :class:`RunResult` for the table, diagram and map.

Every function here is pure: it reads the result and returns new tuples,
so calling it twice on the same result gives equal output and the three
views can never drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ._hops import HopRecord
from ._result import RunResult

PLACEHOLDER = "-"

TABLE_COLUMNS = (
    "Hop",
    "IP",
    "ASN",
    "Loss %",
    "Avg",
    "Best",
    "Worst",
    "City",
    "Country",
)

ROLE_ENTRY = "entry"
ROLE_EXIT = "exit"
ROLE_TRANSIT = "transit"


def _format_number(value: Optional[float]) -> str:
    if value is None:
        return PLACEHOLDER
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _format_loss(value: Optional[float]) -> str:
    if value is None:
        return PLACEHOLDER
    return f"{_format_number(value)}%"


def _text(value: Optional[str]) -> str:
    return value if value else PLACEHOLDER


def to_table_rows(result: RunResult) -> tuple[tuple[str, ...], ...]:
    """One row per hop, in hop order, matching ``TABLE_COLUMNS``."""
    return tuple(
        (
            str(hop.hop_index),
            _text(hop.ip),
            _text(hop.asn),
            _format_loss(hop.loss_percent),
            _format_number(hop.avg_ms),
            _format_number(hop.best_ms),
            _format_number(hop.worst_ms),
            _text(hop.city),
            _text(hop.country),
        )
        for hop in result.hops
    )


@dataclass(frozen=True)
class DiagramNode:
    hop_index: int
    address: Optional[str]
    location: str
    avg_ms: Optional[float]
    loss_percent: Optional[float]

    @property
    def caption(self) -> str:
        lines = [self.address or "*"]
        if self.location:
            lines.append(self.location)
        lines.append(f"{_format_number(self.avg_ms)}ms avg")
        lines.append(f"{_format_loss(self.loss_percent)} loss")
        return "\n".join(lines)


@dataclass(frozen=True)
class DiagramStep:
    node: DiagramNode
    connector_to_next: bool


def _location(hop: HopRecord) -> str:
    # the diagram only shows a place when both parts are known
    if hop.city and hop.country:
        return f"{hop.city}, {hop.country}"
    return ""


def to_diagram(result: RunResult) -> tuple[DiagramStep, ...]:
    last = len(result.hops) - 1
    return tuple(
        DiagramStep(
            node=DiagramNode(
                hop_index=hop.hop_index,
                address=hop.ip,
                location=_location(hop),
                avg_ms=hop.avg_ms,
                loss_percent=hop.loss_percent,
            ),
            connector_to_next=position < last,
        )
        for position, hop in enumerate(result.hops)
    )


@dataclass(frozen=True)
class MapMarker:
    hop_index: int
    lat: float
    lon: float
    popup_text: str
    role: str = ROLE_TRANSIT

    @property
    def is_endpoint(self) -> bool:
        return self.role != ROLE_TRANSIT


@dataclass(frozen=True)
class MapLayers:
    markers: tuple[MapMarker, ...] = ()
    path: tuple[tuple[float, float], ...] = ()

    @property
    def empty(self) -> bool:
        """True when the map should not be rendered at all."""
        return not self.markers


def popup_text(hop: HopRecord) -> str:
    return "\n".join(
        (
            f"Hop {hop.hop_index}",
            hop.ip or "Unknown IP",
            f"{hop.city or 'Unknown City'}, {hop.country or 'Unknown Country'}",
            f"Avg: {_format_number(hop.avg_ms)}ms",
            f"Loss: {_format_loss(hop.loss_percent)}",
            f"ASN: {hop.asn or 'Unknown'}",
        )
    )


def _role(position: int, count: int) -> str:
    if position == 0:
        return ROLE_ENTRY
    if position == count - 1:
        return ROLE_EXIT
    return ROLE_TRANSIT


def to_map_layers(result: RunResult) -> MapLayers:
    located = [hop for hop in result.hops if hop.has_geolocation]
    if not located:
        return MapLayers()

    markers = tuple(
        MapMarker(
            hop_index=hop.hop_index,
            lat=hop.lat,
            lon=hop.lon,
            popup_text=popup_text(hop),
            role=_role(position, len(located)),
        )
        for position, hop in enumerate(located)
    )
    # a line needs two points
    path = tuple((hop.lat, hop.lon) for hop in located) if len(located) > 1 else ()
    return MapLayers(markers=markers, path=path)


@dataclass(frozen=True)
class Projection:
    """All three views of one result, built together."""

    table: tuple[tuple[str, ...], ...]
    diagram: tuple[DiagramStep, ...]
    map: MapLayers


def project(result: RunResult) -> Projection:
    return Projection(
        table=to_table_rows(result),
        diagram=to_diagram(result),
        map=to_map_layers(result),
    )
