"""Timestamp handling and decision policy shared by the reconciler and scheduler.

Nothing here touches persistence or plays audio; these are the pure rules.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from alertsiren.models.alerts import AlertObservation

_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp.

    Requires a full date, a time with seconds and either ``Z`` or a
    ``+HH:MM`` offset. Naive values and the compact or minute-only forms
    that ``datetime.fromisoformat`` would also take are rejected. Fractions
    beyond microseconds are truncated. Returns ``None`` instead of raising.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else None
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    match = _RFC3339.match(text)
    if match is None:
        return None
    date, clock, fraction, offset = match.groups()
    normalized = f"{date}T{clock}"
    if fraction:
        normalized += "." + fraction[:6]
    normalized += "+00:00" if offset in ("Z", "z") else offset
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def format_timestamp(value: datetime) -> str:
    """Canonical persisted form: UTC, second precision kept as given, ``Z`` suffix."""
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def truncate_to_minute(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0)


def elapsed_minutes(now: datetime, since: datetime) -> int | None:
    """Whole minutes from *since* to *now*; ``None`` when *since* is in the future."""
    delta = now - since
    if delta < timedelta(0):
        return None
    return int(delta.total_seconds() // 60)


def is_repeat_due(elapsed: int, interval_min: int, *, at_activation: bool = False) -> bool:
    """Whether a repeat cue falls on this elapsed minute.

    Minute 0 trivially satisfies the modulo test; it only counts when
    ``at_activation`` is set, otherwise the first reminder comes one full
    interval after the alert started.
    """
    if interval_min <= 0 or elapsed < 0:
        return False
    if elapsed == 0:
        return at_activation
    return elapsed % interval_min == 0


class AlertTypePolicy:
    """Which alert types from an observation are tracked.

    An empty ``tracked_types`` tracks every type the API reports. A
    non-empty one restricts tracking to those types, e.g. ``("AIR",)`` to
    follow a single designated alert type.
    """

    def __init__(self, tracked_types: Iterable[str] = ()) -> None:
        self._tracked = frozenset(t.strip() for t in tracked_types if t.strip())

    @property
    def tracks_all(self) -> bool:
        return not self._tracked

    def accepts(self, alert_type: str) -> bool:
        return self.tracks_all or alert_type in self._tracked

    def select(self, observation: AlertObservation) -> tuple[str, ...]:
        return tuple(t for t in observation.alert_types if self.accepts(t))

    def relevant_timestamp(self, observation: AlertObservation) -> str | None:
        """Raw timestamp of the first tracked alert, else the region timestamp.

        Untracked alerts never supply the timestamp, so an ignored type
        cannot move ``last_update`` or the reminder schedule.
        """
        for alert in observation.alerts:
            if self.accepts(alert.type):
                return alert.last_update
        return observation.last_update
