"""Lifecycle states of a run controller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ._result import RunResult


@dataclass(frozen=True)
class Idle:
    busy = False


@dataclass(frozen=True)
class Running:
    target: str
    busy = True


@dataclass(frozen=True)
class Succeeded:
    result: RunResult
    busy = False


@dataclass(frozen=True)
class Failed:
    target: str
    message: str
    busy = False


RunState = Union[Idle, Running, Succeeded, Failed]
