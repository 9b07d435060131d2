"""
tracemap configuration

Defaults can be overridden by environment variables or by building a
:class:`Settings` instance directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_ENDPOINT = "https://netviz.dantecortijo.com/mtr"
DEFAULT_API_KEY = "testkey"
API_KEY_HEADER = "x-api-key"

# Logging
LOG_LEVEL = os.environ.get("TRACEMAP_LOG_LEVEL", "WARNING").upper()


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip() not in ("0", "false", "False", "no", "")


@dataclass
class Settings:
    endpoint: str = DEFAULT_ENDPOINT
    api_key: str = DEFAULT_API_KEY
    timeout: float = 120.0            # seconds; remote MTR runs are slow
    log_level: str = LOG_LEVEL

    # keep the last good result on screen when a later run fails
    keep_last_result: bool = True
    # the original client always sends schedule, even "none"
    send_schedule_none: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            endpoint=os.environ.get("TRACEMAP_ENDPOINT", DEFAULT_ENDPOINT),
            api_key=os.environ.get("TRACEMAP_API_KEY", DEFAULT_API_KEY),
            timeout=float(os.environ.get("TRACEMAP_TIMEOUT", "120")),
            log_level=LOG_LEVEL,
            keep_last_result=_env_flag("TRACEMAP_KEEP_LAST_RESULT", True),
        )
