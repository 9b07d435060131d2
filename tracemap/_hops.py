"""Per-hop records and the normalizer for raw service hops."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any, Optional

from ._service import logger


@dataclass(frozen=True)
class HopRecord:
    hop_index: Optional[int]
    ip: Optional[str] = None
    asn: Optional[str] = None
    loss_percent: Optional[float] = None
    avg_ms: Optional[float] = None
    best_ms: Optional[float] = None
    worst_ms: Optional[float] = None
    city: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    @property
    def has_geolocation(self) -> bool:
        return self.lat is not None and self.lon is not None

    @property
    def responded(self) -> bool:
        return self.ip is not None

    @property
    def location_label(self) -> str:
        return ", ".join(part for part in (self.city, self.country) if part)


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _asn(value: Any) -> Optional[str]:
    # the service sends either "AS13335" or 13335
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value) if value >= 0 else None
    return _text(value)


def _number(
    value: Any,
    low: Optional[float] = None,
    high: Optional[float] = None,
) -> Optional[float]:
    # bool is an int subclass
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    if not math.isfinite(number):
        return None
    if low is not None and number < low:
        return None
    if high is not None and number > high:
        return None
    return number


def _index(value: Any) -> Optional[int]:
    number = _number(value, low=1)
    if number is None or not number.is_integer():
        return None
    return int(number)


def normalize(raw: Any) -> HopRecord:
    """Coerce one raw hop into a :class:`HopRecord`.

    Never raises. Any field that is missing, of the wrong type, not finite or
    out of range comes back as ``None``. Latitude and longitude are kept only
    when both are valid.
    """
    if not isinstance(raw, Mapping):
        return HopRecord(hop_index=None)

    lat = _number(raw.get("lat"), -90.0, 90.0)
    lon = _number(raw.get("lon"), -180.0, 180.0)
    if lat is None or lon is None:
        lat = lon = None

    return HopRecord(
        hop_index=_index(raw.get("hop")),
        ip=_text(raw.get("ip")),
        asn=_asn(raw.get("asn")),
        loss_percent=_number(raw.get("lossPercent"), 0.0, 100.0),
        avg_ms=_number(raw.get("avg"), 0.0),
        best_ms=_number(raw.get("best"), 0.0),
        worst_ms=_number(raw.get("worst"), 0.0),
        city=_text(raw.get("city")),
        country=_text(raw.get("country")),
        lat=lat,
        lon=lon,
    )


def _next_explicit(records: list[HopRecord], start: int, floor: int) -> Optional[int]:
    for record in records[start:]:
        if record.hop_index is not None and record.hop_index > floor:
            return record.hop_index
    return None


def normalize_hops(raw_hops: Any) -> tuple[HopRecord, ...]:
    """Normalize a raw hop list, keeping list order authoritative.

    A hop without a usable index takes the next index after the previous
    kept hop, but only when that index is still free below the next hop
    that carries its own index; otherwise it is dropped. A hop whose index
    does not increase is dropped. Anything that is not a list yields no hops.
    """
    if isinstance(raw_hops, (str, bytes)) or not isinstance(raw_hops, Sequence):
        if raw_hops is not None:
            logger.warning("Hop list is not a sequence (%s), using 0 hops", type(raw_hops).__name__)
        return ()

    records = [normalize(raw) for raw in raw_hops]
    hops: list[HopRecord] = []
    previous = 0
    for position, record in enumerate(records, start=1):
        index = record.hop_index
        if index is None:
            index = previous + 1
            upcoming = _next_explicit(records, position, previous)
            if upcoming is not None and index >= upcoming:
                logger.warning(
                    "Dropping hop at position %d: no index and none free before %d",
                    position,
                    upcoming,
                )
                continue
            logger.warning("Hop at position %d has no index, using %d", position, index)
            record = replace(record, hop_index=index)
        elif index <= previous:
            logger.warning(
                "Dropping hop at position %d: index %d does not follow %d",
                position,
                index,
                previous,
            )
            continue
        hops.append(record)
        previous = index
    return tuple(hops)
