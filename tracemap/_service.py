from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx
from rich.console import Console
from rich.logging import RichHandler

from ._config import API_KEY_HEADER, LOG_LEVEL, Settings
from ._exceptions import ServiceError, TransportFailure

SCHEDULE_NONE = "none"


# ------------- Logger configuravel
console = Console()
FORMAT = "%(message)s"
logging.basicConfig(
    level=LOG_LEVEL,
    format=FORMAT,
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            markup=True,
            show_time=False,
        )
    ],
)
logger = logging.getLogger("tracemap")


class MeasurementService:
    """Client for the remote traceroute/MTR endpoint."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or Settings()
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.timeout)
            self._owns_client = True
        return self._client

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            API_KEY_HEADER: self.settings.api_key,
        }

    def _body(self, target: str, schedule: str) -> dict[str, str]:
        body = {"ip": target}
        if schedule != SCHEDULE_NONE or self.settings.send_schedule_none:
            body["schedule"] = schedule
        return body

    async def measure(self, target: str, schedule: str = SCHEDULE_NONE) -> dict[str, Any]:
        """POST one measurement request and return the decoded body.

        Raises :class:`TransportFailure` when the endpoint cannot be reached
        and :class:`ServiceError` on a non-success status.
        """
        logger.info("Requesting run for %s (schedule=%s)", target, schedule)
        try:
            response = await self.client.post(
                self.settings.endpoint,
                headers=self._headers(),
                json=self._body(target, schedule),
            )
        except httpx.RequestError as exc:
            logger.error("Transport error for %s: %s", target, exc)
            raise TransportFailure() from exc

        if not response.is_success:
            message = _error_message(response)
            logger.error("Service returned %d for %s: %s", response.status_code, target, message)
            raise ServiceError(response.status_code, message)

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.error("Undecodable response body for %s", target)
            raise TransportFailure() from exc

        if not isinstance(data, dict):
            logger.warning("Response body for %s is not an object, treating as empty", target)
            return {}
        return data

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def __aenter__(self) -> "MeasurementService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, str) and error.strip():
            return error
    return None
