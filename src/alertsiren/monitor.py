"""Polling loop: fetch, reconcile, check reminders, sleep."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import aiohttp

from alertsiren._transport import AlertFetcher, HttpAlertFetcher
from alertsiren.config import AlertConfig
from alertsiren.exceptions import AlertSirenError, AlertTransportError
from alertsiren.state.events import Transition
from alertsiren.state.policy import utcnow
from alertsiren.state.reconcile import Notifier, Reconciler
from alertsiren.state.repeat import RepeatScheduler
from alertsiren.state.store import PersistedState, StateStore

_logger = logging.getLogger(__name__)


class AlertMonitor:
    """Drives one poll cycle after another against a single persisted state.

    Usage::

        async with AlertMonitor(config, StateStore("state.json"), notifier=player) as monitor:
            await monitor.run_forever(stop_event)
    """

    def __init__(
        self,
        config: AlertConfig,
        state_store: StateStore,
        *,
        notifier: Notifier,
        fetcher: AlertFetcher | None = None,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._config = config
        self._store = state_store
        self._notifier = notifier
        self._fetcher = fetcher
        self._external_session = session is not None
        self._http_session = session
        self._clock = clock
        self._zone = config.zone()
        self._state: PersistedState | None = None
        self._reconciler = Reconciler(
            config.cues(),
            state_store,
            notifier,
            policy=config.alert_type_policy(),
            clock=clock,
            time_zone=self._zone,
        )
        self._repeater = RepeatScheduler(
            config.repeat_settings(),
            state_store,
            notifier,
            clock=clock,
            time_zone=self._zone,
        )

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> AlertMonitor:
        self._state = self._store.load()
        if self._fetcher is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._fetcher = HttpAlertFetcher(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> PersistedState:
        if self._state is None:
            raise AlertSirenError("Monitor not initialized. Use 'async with AlertMonitor(...) as monitor:'")
        return self._state

    def describe_state(self) -> str:
        state = self.state
        status = "on" if state.is_active else "off"
        if state.last_update is None:
            updated = "unknown"
        else:
            updated = state.last_update.astimezone(self._zone).strftime("%Y-%m-%d %H:%M:%S")
        types = ", ".join(sorted(state.active_alert_types)) or "none"
        return f"Current state: {status} (active: {types}), last update: {updated}"

    async def run_once(self) -> list[Transition]:
        """Run one fetch/reconcile/repeat cycle.

        A failed fetch skips reconciliation entirely; the next cycle retries.
        """
        state = self.state
        assert self._fetcher is not None  # noqa: S101
        try:
            observation = await self._fetcher.fetch()
        except AlertTransportError as exc:
            _logger.warning("Failed to fetch alerts: %s", exc)
            return []

        # Playback blocks until the cue ends; run it off the event loop.
        transitions = await asyncio.to_thread(self._reconciler.reconcile, observation, state)
        transitions.extend(await asyncio.to_thread(self._repeater.check, state))
        return transitions

    async def run_forever(self, stop: asyncio.Event) -> None:
        """Poll until *stop* is set; the sleep between cycles is interruptible."""
        _logger.info("%s", self.describe_state())
        interval = self._config.poll_interval
        while not stop.is_set():
            await self.run_once()
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop.wait(), timeout=interval)
        _logger.info("Monitor stopped")
