"""Periodic reminder cue while an alert stays active."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from datetime import UTC, datetime, tzinfo

from alertsiren.state.events import Transition, TransitionKind
from alertsiren.state.policy import elapsed_minutes, is_repeat_due, truncate_to_minute, utcnow
from alertsiren.state.reconcile import Notifier, StateSaver
from alertsiren.state.store import PersistedState

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class RepeatSettings:
    """Repeat cue configuration.

    Parameters
    ----------
    enabled : bool
        Master switch for repeat mode.
    cue : str
        Audio path of the reminder cue.
    interval_min : int
        Minutes between reminders; must be positive for repeats to run.
    at_activation : bool
        Also fire at elapsed minute 0, i.e. together with the activation
        cue. Off by default: the first reminder comes one full interval in.
    """

    enabled: bool = False
    cue: str = ""
    interval_min: int = 0
    at_activation: bool = False

    @property
    def active(self) -> bool:
        return self.enabled and bool(self.cue) and self.interval_min > 0


class RepeatScheduler:
    """Decide, per active alert type, whether a reminder is due on this poll.

    A reminder fires when the whole minutes elapsed since ``last_update`` is a
    multiple of the interval, at most once per minute boundary and type.
    Polls are typically more frequent than once a minute, so the
    minute-truncated time of the last reminder is kept in
    ``state.last_played`` to suppress duplicates.
    """

    def __init__(
        self,
        settings: RepeatSettings,
        store: StateSaver,
        notifier: Notifier,
        *,
        clock: Callable[[], datetime] = utcnow,
        time_zone: tzinfo = UTC,
    ) -> None:
        self._settings = settings
        self._store = store
        self._notifier = notifier
        self._clock = clock
        self._zone = time_zone

    def check(self, state: PersistedState) -> list[Transition]:
        if not self._settings.active:
            return []

        fired: list[Transition] = []
        for alert_type in sorted(state.active_alert_types):
            since = state.last_update
            if since is None:
                _logger.warning("last_update unknown, skipping repeat check for %s", alert_type)
                continue

            now = self._clock().astimezone(self._zone)
            elapsed = elapsed_minutes(now, since)
            if elapsed is None:
                _logger.debug("last_update %s is in the future, skipping %s", since.isoformat(), alert_type)
                continue

            if not is_repeat_due(elapsed, self._settings.interval_min, at_activation=self._settings.at_activation):
                continue

            boundary = truncate_to_minute(now)
            if state.last_played.get(alert_type) == boundary:
                continue

            state.last_played[alert_type] = boundary
            persisted = self._store.save(state)
            _logger.info(
                "Playing repeat cue for %s at %s (%d min since start)",
                alert_type,
                now.strftime("%Y-%m-%d %H:%M:%S"),
                elapsed,
            )
            self._notifier.play(self._settings.cue)
            fired.append(
                Transition(
                    kind=TransitionKind.REPEATED,
                    alert_type=alert_type,
                    at=boundary,
                    cue=self._settings.cue,
                    persisted=persisted,
                )
            )
        return fired
