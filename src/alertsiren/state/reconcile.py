"""Reconcile a fresh observation against the persisted alert state.

Each activation or deactivation is persisted *before* its cue plays. After a
crash between the save and the cue, a restart sees the alert as already
active and stays quiet: a missed cue is preferred over a repeated one.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, tzinfo
from typing import Protocol

from alertsiren.models.alerts import AlertObservation
from alertsiren.state.events import Transition, TransitionKind
from alertsiren.state.policy import AlertTypePolicy, parse_timestamp, utcnow
from alertsiren.state.store import PersistedState

_logger = logging.getLogger(__name__)

_LOCAL_FORMAT = "%Y-%m-%d %H:%M:%S"


class Notifier(Protocol):
    """Plays an audio cue. Fire-and-forget; the result is not consumed."""

    def play(self, path: str) -> None: ...


class StateSaver(Protocol):
    def save(self, state: PersistedState) -> bool: ...


@dataclasses.dataclass(frozen=True)
class AlertCues:
    """Audio cue lookup.

    Parameters
    ----------
    by_type : mapping of str to str
        Activation cue path per alert type. Types without an entry (or
        with an empty path) activate silently.
    cleared : str
        Cue played for every deactivation.
    """

    by_type: Mapping[str, str] = dataclasses.field(default_factory=dict)
    cleared: str = ""

    def activation(self, alert_type: str) -> str | None:
        return self.by_type.get(alert_type) or None

    def deactivation(self) -> str | None:
        return self.cleared or None


class Reconciler:
    """Turn one :class:`AlertObservation` into state transitions and cues."""

    def __init__(
        self,
        cues: AlertCues,
        store: StateSaver,
        notifier: Notifier,
        *,
        policy: AlertTypePolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
        time_zone: tzinfo = UTC,
    ) -> None:
        self._cues = cues
        self._store = store
        self._notifier = notifier
        self._policy = policy or AlertTypePolicy()
        self._clock = clock
        self._zone = time_zone

    def relevant_timestamp(self, observation: AlertObservation) -> datetime:
        """Parsed timestamp of the first tracked alert (or the region), or now."""
        raw = self._policy.relevant_timestamp(observation)
        parsed = parse_timestamp(raw)
        if parsed is None:
            now = self._clock()
            _logger.warning("Invalid alert timestamp %r, using current time %s", raw, now.isoformat())
            return now
        return parsed

    def reconcile(self, observation: AlertObservation, state: PersistedState) -> list[Transition]:
        """Apply *observation* to *state* in place and play the cues it implies.

        Returns the transitions in the order they fired.
        """
        current = self._policy.select(observation)
        stamp = self.relevant_timestamp(observation)
        local = stamp.astimezone(self._zone).strftime(_LOCAL_FORMAT)
        if current:
            _logger.debug("Alert active, started at %s", local)
        else:
            _logger.debug("Last alert ended at %s", local)

        if state.last_update != stamp:
            _logger.info("Updating last_update: %s -> %s", self._render(state.last_update), local)
            state.last_update = stamp
            self._store.save(state)

        transitions: list[Transition] = []

        for alert_type in current:
            if alert_type in state.active_alert_types:
                continue
            state.active_alert_types.add(alert_type)
            persisted = self._store.save(state)
            cue = self._cues.activation(alert_type)
            _logger.info("Alert activated: %s at %s", alert_type, local)
            self._play(cue)
            transitions.append(
                Transition(
                    kind=TransitionKind.ACTIVATED,
                    alert_type=alert_type,
                    at=stamp,
                    cue=cue,
                    persisted=persisted,
                )
            )

        current_set = set(current)
        for alert_type in sorted(state.active_alert_types - current_set):
            state.active_alert_types.discard(alert_type)
            state.last_played.pop(alert_type, None)
            persisted = self._store.save(state)
            cue = self._cues.deactivation()
            _logger.info("Alert cleared: %s at %s", alert_type, local)
            self._play(cue)
            transitions.append(
                Transition(
                    kind=TransitionKind.DEACTIVATED,
                    alert_type=alert_type,
                    at=stamp,
                    cue=cue,
                    persisted=persisted,
                )
            )

        return transitions

    def _play(self, cue: str | None) -> None:
        if cue is None:
            _logger.debug("No cue configured, skipping playback")
            return
        self._notifier.play(cue)

    def _render(self, value: datetime | None) -> str:
        if value is None:
            return "unknown"
        return value.astimezone(self._zone).strftime(_LOCAL_FORMAT)
