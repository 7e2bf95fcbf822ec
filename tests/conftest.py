from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest

from alertsiren.state.store import PersistedState


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingStore:
    """Records every save into a shared event log; can be told to fail."""

    def __init__(self, log: list[tuple[str, Any]], *, fail: bool = False) -> None:
        self.log = log
        self.fail = fail
        self.saves: list[dict[str, Any]] = []

    def save(self, state: PersistedState) -> bool:
        snapshot = state.model_dump(mode="json")
        self.saves.append(snapshot)
        self.log.append(("save", snapshot))
        return not self.fail


class RecordingNotifier:
    def __init__(self, log: list[tuple[str, Any]]) -> None:
        self.log = log
        self.played: list[str] = []

    def play(self, path: str) -> None:
        self.played.append(path)
        self.log.append(("play", path))


@pytest.fixture
def event_log() -> list[tuple[str, Any]]:
    return []


@pytest.fixture
def store(event_log: list[tuple[str, Any]]) -> RecordingStore:
    return RecordingStore(event_log)


@pytest.fixture
def notifier(event_log: list[tuple[str, Any]]) -> RecordingNotifier:
    return RecordingNotifier(event_log)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def failing_store(event_log: list[tuple[str, Any]]) -> RecordingStore:
    return RecordingStore(event_log, fail=True)
