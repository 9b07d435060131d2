"""Errors raised while talking to the measurement service."""

from __future__ import annotations

from typing import Optional

GENERIC_SERVICE_ERROR = "Unknown error"
GENERIC_TRANSPORT_ERROR = "Could not connect to the backend."


class TracemapError(Exception):
    """Base class for failures that end a run attempt."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TransportFailure(TracemapError):
    """Raised when the service cannot be reached or answers with garbage."""

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or GENERIC_TRANSPORT_ERROR)


class ServiceError(TracemapError):
    """Raised when the service answers with a non-success status."""

    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        super().__init__(message or GENERIC_SERVICE_ERROR)
        self.status_code = status_code

    def __str__(self) -> str:
        return f"{self.message} (HTTP {self.status_code})"
