"""Transition events emitted by the reconciler and the repeat scheduler."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator


class TransitionKind(StrEnum):
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"
    REPEATED = "repeated"


class Transition(BaseModel):
    """A state transition that has been persisted and announced.

    ``cue`` is the audio path handed to the notifier, or ``None`` when no
    cue is configured for the transition. ``persisted`` records whether the
    save preceding the side effect succeeded.
    """

    model_config = ConfigDict(frozen=True)

    kind: TransitionKind
    alert_type: str
    at: datetime
    cue: str | None = None
    persisted: bool = True

    @field_validator("at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
