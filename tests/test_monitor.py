from __future__ import annotations

import asyncio
import threading
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from alertsiren.config import AlertConfig
from alertsiren.exceptions import AlertSirenError, AlertStateError, AlertTransportError
from alertsiren.models.alerts import Alert, AlertObservation
from alertsiren.monitor import AlertMonitor
from alertsiren.state.events import TransitionKind
from alertsiren.state.store import StateStore

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class _ScriptedFetcher:
    """Returns (or raises) the scripted items in order; repeats the last one."""

    def __init__(self, items: Sequence[AlertObservation | Exception], *, stop: asyncio.Event | None = None):
        self._items = list(items)
        self._stop = stop
        self.calls = 0

    async def fetch(self) -> AlertObservation:
        item = self._items[min(self.calls, len(self._items) - 1)]
        self.calls += 1
        if self._stop is not None:
            self._stop.set()
        if isinstance(item, Exception):
            raise item
        return item


def _config(**overrides: Any) -> AlertConfig:
    values: dict[str, Any] = {
        "api_url": "https://api.example.com/alerts",
        "audio_files": {"AIR": "air.mp3"},
        "alert_on_empty": "clear.mp3",
        "repeat_audio_file": "repeat.mp3",
        "repeat_interval_min": 10,
    }
    values.update(overrides)
    return AlertConfig(**values)


def _air(started: datetime) -> AlertObservation:
    return AlertObservation(alerts=(Alert(type="AIR", last_update=started.isoformat()),))


@pytest.mark.asyncio
async def test_run_once_activates_and_persists(tmp_path: Path, notifier: Any) -> None:
    store = StateStore(tmp_path / "state.json")
    fetcher = _ScriptedFetcher([_air(NOW - timedelta(minutes=3))])

    async with AlertMonitor(_config(), store, notifier=notifier, fetcher=fetcher, clock=lambda: NOW) as monitor:
        transitions = await monitor.run_once()

    assert [t.kind for t in transitions] == [TransitionKind.ACTIVATED]
    assert notifier.played == ["air.mp3"]
    assert store.load().active_alert_types == {"AIR"}


@pytest.mark.asyncio
async def test_activation_and_repeat_in_one_cycle(tmp_path: Path, notifier: Any) -> None:
    store = StateStore(tmp_path / "state.json")
    fetcher = _ScriptedFetcher([_air(NOW - timedelta(minutes=20))])

    async with AlertMonitor(_config(), store, notifier=notifier, fetcher=fetcher, clock=lambda: NOW) as monitor:
        transitions = await monitor.run_once()

    assert [t.kind for t in transitions] == [TransitionKind.ACTIVATED, TransitionKind.REPEATED]
    assert notifier.played == ["air.mp3", "repeat.mp3"]


@pytest.mark.asyncio
async def test_fetch_failure_skips_cycle(tmp_path: Path, notifier: Any) -> None:
    store = StateStore(tmp_path / "state.json")
    fetcher = _ScriptedFetcher([AlertTransportError("HTTP 502", status_code=502)])

    async with AlertMonitor(_config(), store, notifier=notifier, fetcher=fetcher, clock=lambda: NOW) as monitor:
        assert await monitor.run_once() == []
        assert monitor.state.last_update is None

    assert notifier.played == []
    assert not (tmp_path / "state.json").exists()



class _BlockingNotifier:
    """Blocks in ``play`` until the event loop releases it."""

    def __init__(self) -> None:
        self.release = threading.Event()
        self.released_in_time: list[bool] = []

    def play(self, path: str) -> None:
        self.released_in_time.append(self.release.wait(timeout=2))


@pytest.mark.asyncio
async def test_playback_does_not_block_event_loop(tmp_path: Path) -> None:
    notifier = _BlockingNotifier()
    fetcher = _ScriptedFetcher([_air(NOW - timedelta(minutes=3))])
    loop = asyncio.get_running_loop()

    async with AlertMonitor(
        _config(), StateStore(tmp_path / "state.json"), notifier=notifier, fetcher=fetcher, clock=lambda: NOW
    ) as monitor:
        loop.call_later(0.01, notifier.release.set)
        transitions = await monitor.run_once()

    assert [t.kind for t in transitions] == [TransitionKind.ACTIVATED]
    assert notifier.released_in_time == [True]

@pytest.mark.asyncio
async def test_restart_does_not_replay_activation(tmp_path: Path, notifier: Any) -> None:
    store = StateStore(tmp_path / "state.json")
    observation = _air(NOW - timedelta(minutes=3))

    async with AlertMonitor(
        _config(), store, notifier=notifier, fetcher=_ScriptedFetcher([observation]), clock=lambda: NOW
    ) as monitor:
        await monitor.run_once()

    async with AlertMonitor(
        _config(), store, notifier=notifier, fetcher=_ScriptedFetcher([observation]), clock=lambda: NOW
    ) as monitor:
        assert await monitor.run_once() == []
        assert "AIR" in monitor.describe_state()

    assert notifier.played == ["air.mp3"]


@pytest.mark.asyncio
async def test_run_forever_stops_between_cycles(tmp_path: Path, notifier: Any) -> None:
    stop = asyncio.Event()
    fetcher = _ScriptedFetcher([AlertObservation(last_update="2024-01-01T00:00:00Z")], stop=stop)
    store = StateStore(tmp_path / "state.json")

    async with AlertMonitor(
        _config(request_interval_sec=60), store, notifier=notifier, fetcher=fetcher, clock=lambda: NOW
    ) as monitor:
        await asyncio.wait_for(monitor.run_forever(stop), timeout=5)

    assert fetcher.calls == 1
    assert store.load().last_update == datetime(2024, 1, 1, tzinfo=UTC)


@pytest.mark.asyncio
async def test_corrupt_state_is_fatal_on_enter(tmp_path: Path, notifier: Any) -> None:
    path = tmp_path / "state.json"
    path.write_text("{broken", encoding="utf-8")

    with pytest.raises(AlertStateError):
        async with AlertMonitor(_config(), StateStore(path), notifier=notifier, fetcher=_ScriptedFetcher([])):
            pass


def test_state_requires_context_manager(tmp_path: Path, notifier: Any) -> None:
    monitor = AlertMonitor(_config(), StateStore(tmp_path / "state.json"), notifier=notifier)

    with pytest.raises(AlertSirenError):
        monitor.describe_state()
