"""Custom exception hierarchy for alertsiren."""

from __future__ import annotations


class AlertSirenError(Exception):
    """Base exception for all alertsiren errors."""


class AlertConfigError(AlertSirenError):
    """Invalid or missing configuration (including the time zone)."""


class AlertStateError(AlertSirenError):
    """Persisted state file exists but cannot be read or parsed."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class AlertTransportError(AlertSirenError):
    """HTTP-level failure (network, non-200, invalid JSON, unexpected body)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)
