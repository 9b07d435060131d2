"""Run result snapshot."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from ._hops import HopRecord, normalize_hops


def _fmt(value: Optional[float], suffix: str = "") -> str:
    if value is None:
        return "?"
    return f"{value:.2f}{suffix}"


@dataclass(frozen=True)
class RunResult:
    target: str
    run_id: Optional[str]
    hops: tuple[HopRecord, ...]
    hop_count: int = field(init=False)
    has_geolocation: bool = field(init=False)

    def __post_init__(self) -> None:
        if not self.target:
            raise ValueError("RunResult target must be non-empty")
        # accept any iterable but store a tuple
        object.__setattr__(self, "hops", tuple(self.hops))
        previous = 0
        for hop in self.hops:
            index = hop.hop_index
            if isinstance(index, bool) or not isinstance(index, int) or index <= previous:
                raise ValueError(
                    f"hop indices must be integers >= 1 in strictly increasing order, "
                    f"got {index!r} after {previous}"
                )
            previous = index
        object.__setattr__(self, "hop_count", len(self.hops))
        object.__setattr__(
            self, "has_geolocation", any(hop.has_geolocation for hop in self.hops)
        )

    @classmethod
    def from_payload(cls, target: str, payload: Any) -> "RunResult":
        """Build a result from a decoded success body."""
        if not isinstance(payload, Mapping):
            payload = {}
        reported = payload.get("target")
        if isinstance(reported, str) and reported.strip():
            target = reported.strip()
        run_id = payload.get("runId")
        if isinstance(run_id, bool) or not isinstance(run_id, (str, int)):
            run_id = None
        elif isinstance(run_id, int):
            run_id = str(run_id)
        return cls(
            target=target,
            run_id=run_id or None,
            hops=normalize_hops(payload.get("hops")),
        )

    def __str__(self) -> str:
        lines = [f"Traceroute to {self.target}"]
        if self.run_id:
            lines.append(f"Run ID: {self.run_id}")
        lines.append(f"Hop Count: {self.hop_count}")
        header = (
            f"{'Hop':<4}"
            f" {'Address':<20}"
            f" {'ASN':<10}"
            f" {'Loss%':>6}"
            f" {'Avg':>8}"
            f" {'Best':>8}"
            f" {'Worst':>8}"
            f"  {'Location'}"
        )
        lines.append(header)
        for hop in self.hops:
            loss = f"{hop.loss_percent:.1f}" if hop.loss_percent is not None else "?"
            lines.append(
                f"{hop.hop_index:<4}"
                f" {hop.ip or '?':<20}"
                f" {hop.asn or '?':<10}"
                f" {loss:>6}"
                f" {_fmt(hop.avg_ms):>8}"
                f" {_fmt(hop.best_ms):>8}"
                f" {_fmt(hop.worst_ms):>8}"
                f"  {hop.location_label}"
            )
        return "\n".join(lines) + "\n"

    def __rich__(self) -> str:  # pragma: no cover - rich display helper
        return self.__str__()
