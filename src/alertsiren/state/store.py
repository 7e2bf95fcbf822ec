"""Durable alert state.

This is the only component that reads or writes the state file. Timestamps
are parsed once when the file is loaded and formatted once when it is
written; in memory they are always timezone-aware ``datetime`` values.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator

from alertsiren.exceptions import AlertStateError
from alertsiren.state.policy import format_timestamp, parse_timestamp

_logger = logging.getLogger(__name__)


class PersistedState(BaseModel):
    """Alert state that survives restarts.

    Parameters
    ----------
    active_alert_types : set of str
        Alert types currently considered on.
    last_update : datetime or None
        Timestamp of the most recently processed observation. ``None``
        means unknown (fresh install, or an unparsable stored value).
    last_played : dict of str to datetime
        Minute boundary at which the repeat cue last played, per type.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    active_alert_types: set[str] = Field(default_factory=set)
    last_update: datetime | None = None
    last_played: dict[str, datetime] = Field(default_factory=dict)

    @field_validator("active_alert_types", mode="before")
    @classmethod
    def _coerce_active_types(cls, value: Any) -> Any:
        if value is None:
            return set()
        # Legacy format stored the set as {"AIR": true}.
        if isinstance(value, Mapping):
            return {str(key) for key, on in value.items() if on}
        return value

    @field_validator("last_update", mode="before")
    @classmethod
    def _coerce_last_update(cls, value: Any) -> Any:
        if value is None or isinstance(value, datetime):
            return value
        parsed = parse_timestamp(value)
        if parsed is None:
            _logger.warning("Stored last_update %r is not an RFC 3339 timestamp; treating as unknown", value)
        return parsed

    @field_validator("last_played", mode="before")
    @classmethod
    def _coerce_last_played(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            return value
        played: dict[str, datetime] = {}
        for alert_type, stamp in value.items():
            parsed = parse_timestamp(stamp)
            if parsed is None:
                _logger.warning("Dropping unparsable last_played entry %s=%r", alert_type, stamp)
                continue
            played[str(alert_type)] = parsed
        return played

    @field_serializer("active_alert_types")
    def _serialize_active_types(self, value: set[str]) -> list[str]:
        return sorted(value)

    @field_serializer("last_update")
    def _serialize_last_update(self, value: datetime | None) -> str | None:
        return format_timestamp(value) if value is not None else None

    @field_serializer("last_played")
    def _serialize_last_played(self, value: dict[str, datetime]) -> dict[str, str]:
        return {alert_type: format_timestamp(stamp) for alert_type, stamp in sorted(value.items())}

    @property
    def is_active(self) -> bool:
        return bool(self.active_alert_types)


class StateStore:
    """Load and save :class:`PersistedState` as a JSON file.

    Saves are atomic: the full state goes to a temporary file in the same
    directory which then replaces the target, so a crash mid-write leaves
    either the old or the new file, never a truncated one.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    def load(self) -> PersistedState:
        """Read the stored state; a missing file yields an empty state."""
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            _logger.info("No state file at %s, starting with empty state", self._path)
            return PersistedState()
        except OSError as exc:
            raise AlertStateError(f"Cannot read state file {self._path}: {exc}", path=str(self._path)) from exc

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise AlertStateError(f"State file {self._path} is not valid JSON: {exc}", path=str(self._path)) from exc
        if not isinstance(data, dict):
            raise AlertStateError(f"State file {self._path} must hold a JSON object", path=str(self._path))

        try:
            state = PersistedState.model_validate(data)
        except ValidationError as exc:
            raise AlertStateError(f"State file {self._path} is malformed: {exc}", path=str(self._path)) from exc

        _logger.debug("Loaded state from %s: %s", self._path, state.model_dump(mode="json"))
        return state

    def save(self, state: PersistedState) -> bool:
        """Write *state* to disk. Returns ``False`` (and logs) on failure."""
        payload = json.dumps(state.model_dump(mode="json"), ensure_ascii=False, indent=2)
        directory = self._path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            _logger.error("Failed to save state to %s: %s", self._path, exc)
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            return False
        return True
