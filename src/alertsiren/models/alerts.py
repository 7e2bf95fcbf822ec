"""Alert API payload models and the per-poll observation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for alert API response models.

    * camelCase API keys (``lastUpdate``, ``activeAlerts``) map to
      snake_case fields via ``alias_generator=to_camel``.
    * Unknown keys are ignored so additions on the server side never
      break parsing.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


RawTimestamp = Annotated[str | None, BeforeValidator(_blank_to_none)]
"""Server timestamp string, with blank values normalised to ``None``."""


class Alert(ApiModel):
    """One active alert record.

    Parameters
    ----------
    type : str
        Alert type (e.g. ``"AIR"``, ``"FIRE"``).
    last_update : str or None
        Raw server timestamp string for this alert. Kept unparsed here;
        the reconciler parses it with its own fallback policy.
    """

    type: str
    last_update: RawTimestamp = None

    @field_validator("type")
    @classmethod
    def _normalize_type(cls, value: str) -> str:
        alert_type = value.strip()
        if not alert_type:
            raise ValueError("alert type must be non-empty")
        return alert_type


class Region(ApiModel):
    """One region record as returned by the alert API."""

    last_update: RawTimestamp = None
    active_alerts: list[Alert] = Field(default_factory=list)

    @field_validator("active_alerts", mode="before")
    @classmethod
    def _null_alerts(cls, value: Any) -> Any:
        return [] if value is None else value


class AlertObservation(BaseModel):
    """One poll's result: the ordered alert list plus the region timestamp."""

    model_config = ConfigDict(frozen=True)

    alerts: tuple[Alert, ...] = ()
    last_update: str | None = None

    @classmethod
    def from_regions(cls, regions: Sequence[Region]) -> AlertObservation:
        """Build an observation from the first region of an API response."""
        if not regions:
            return cls()
        region = regions[0]
        return cls(alerts=tuple(region.active_alerts), last_update=region.last_update)

    @property
    def has_alerts(self) -> bool:
        return bool(self.alerts)

    @property
    def alert_types(self) -> tuple[str, ...]:
        """Alert types in order of first appearance, without duplicates."""
        return tuple(dict.fromkeys(alert.type for alert in self.alerts))

    @property
    def relevant_timestamp(self) -> str | None:
        """First alert's own timestamp, or the region timestamp when empty."""
        if self.alerts:
            return self.alerts[0].last_update
        return self.last_update
