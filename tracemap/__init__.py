from ._config import Settings
from ._controller import RunController
from ._exceptions import ServiceError, TracemapError, TransportFailure
from ._hops import HopRecord, normalize, normalize_hops
from ._result import RunResult
from ._schedule import Schedule, ScheduleConfig, ScheduleManager
from ._service import MeasurementService, console, logger
from ._session import Snapshot, TraceSession
from ._state import Failed, Idle, Running, RunState, Succeeded
from ._views import (
    PLACEHOLDER,
    TABLE_COLUMNS,
    DiagramNode,
    DiagramStep,
    MapLayers,
    MapMarker,
    Projection,
    project,
    to_diagram,
    to_map_layers,
    to_table_rows,
)

__all__ = [
    "Settings",
    "RunController",
    "ServiceError",
    "TracemapError",
    "TransportFailure",
    "HopRecord",
    "normalize",
    "normalize_hops",
    "RunResult",
    "Schedule",
    "ScheduleConfig",
    "ScheduleManager",
    "MeasurementService",
    "console",
    "logger",
    "Snapshot",
    "TraceSession",
    "Failed",
    "Idle",
    "Running",
    "RunState",
    "Succeeded",
    "PLACEHOLDER",
    "TABLE_COLUMNS",
    "DiagramNode",
    "DiagramStep",
    "MapLayers",
    "MapMarker",
    "Projection",
    "project",
    "to_diagram",
    "to_map_layers",
    "to_table_rows",
]
