"""Monitor configuration for alertsiren."""

from __future__ import annotations

import dataclasses
import json
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import TypeAdapter, ValidationError

from alertsiren.exceptions import AlertConfigError
from alertsiren.state.policy import AlertTypePolicy
from alertsiren.state.reconcile import AlertCues
from alertsiren.state.repeat import RepeatSettings

#: Poll interval used when ``request_interval_sec`` is zero or negative.
DEFAULT_POLL_INTERVAL_SEC = 30

_COMMENT_LINE = re.compile(r"^\s*(//|#)")


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def strip_comment_lines(text: str) -> str:
    """Drop whole-line ``//`` and ``#`` comments so the rest parses as JSON."""
    return "\n".join(line for line in text.splitlines() if not _COMMENT_LINE.match(line))


@dataclasses.dataclass(frozen=True)
class AlertConfig:
    """Monitor configuration.

    Parameters
    ----------
    api_url : str
        Alert API endpoint returning a JSON list of regions.
    auth_header : str
        Value sent verbatim as the ``Authorization`` header.
    audio_files : mapping of str to str
        Activation cue path per alert type (e.g. ``{"AIR": "air.mp3"}``).
    alert_on_empty : str
        Cue played when an alert type clears.
    debug : bool
        Enable DEBUG logging.
    log_to_file : bool
        Duplicate log output into ``log_file_path``.
    log_file_path : str
        Log file used when ``log_to_file`` is set.
    time_zone : str
        IANA time zone for log rendering and elapsed-time math.
    repeat_enabled : bool
        Master switch for reminder cues.
    repeat_audio_file : str
        Reminder cue path; empty disables reminders.
    repeat_interval_min : int
        Minutes between reminders; must be positive to enable them.
    repeat_at_activation : bool
        Also play the reminder at minute 0 of an alert.
    request_interval_sec : int
        Seconds between polls. Zero or negative falls back to 30.
    request_timeout_sec : float
        Total timeout for one API request.
    tracked_alert_types : tuple of str
        Alert types to follow. Empty follows every type.
    """

    api_url: str
    auth_header: str = ""
    audio_files: Mapping[str, str] = dataclasses.field(default_factory=dict)
    alert_on_empty: str = ""
    debug: bool = False
    log_to_file: bool = False
    log_file_path: str = "alertsiren.log"
    time_zone: str = "UTC"
    repeat_enabled: bool = True
    repeat_audio_file: str = ""
    repeat_interval_min: int = 0
    repeat_at_activation: bool = False
    request_interval_sec: int = DEFAULT_POLL_INTERVAL_SEC
    request_timeout_sec: float = 10.0
    tracked_alert_types: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], **overrides: Any) -> AlertConfig:
        """Build a configuration from decoded JSON plus environment overrides.

        Reads ``ALERTSIREN_API_URL``, ``ALERTSIREN_AUTH_HEADER``,
        ``ALERTSIREN_TIME_ZONE`` and ``ALERTSIREN_DEBUG``. Explicit keyword
        arguments override both the file and the environment.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise AlertConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        env = os.environ
        values: dict[str, Any] = dict(data)

        _ENV_CONFIG_MAP = {
            "ALERTSIREN_API_URL": "api_url",
            "ALERTSIREN_AUTH_HEADER": "auth_header",
            "ALERTSIREN_TIME_ZONE": "time_zone",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                values[field_name] = val

        if "debug" not in overrides and "ALERTSIREN_DEBUG" in env:
            values["debug"] = _env_bool(env.get("ALERTSIREN_DEBUG"), bool(values.get("debug", False)))

        values.update(overrides)

        if not values.get("api_url"):
            raise AlertConfigError("api_url is required")

        try:
            return TypeAdapter(cls).validate_python(values)
        except ValidationError as exc:
            raise AlertConfigError(f"Invalid configuration: {exc}") from exc

    @classmethod
    def from_file(cls, path: str | os.PathLike[str], **overrides: Any) -> AlertConfig:
        """Load a JSON configuration file that may contain comment lines."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise AlertConfigError(f"Cannot read configuration file {path}: {exc}") from exc

        try:
            data = json.loads(strip_comment_lines(text))
        except json.JSONDecodeError as exc:
            raise AlertConfigError(f"Configuration file {path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise AlertConfigError(f"Configuration file {path} must hold a JSON object")

        return cls.from_mapping(data, **overrides)

    @property
    def poll_interval(self) -> float:
        """Seconds between polls."""
        if self.request_interval_sec <= 0:
            return float(DEFAULT_POLL_INTERVAL_SEC)
        return float(self.request_interval_sec)

    def zone(self) -> ZoneInfo:
        """Resolve ``time_zone``; an unknown identifier is a fatal config error."""
        try:
            return ZoneInfo(self.time_zone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise AlertConfigError(f"Unknown time zone {self.time_zone!r}") from exc

    def cues(self) -> AlertCues:
        return AlertCues(by_type=dict(self.audio_files), cleared=self.alert_on_empty)

    def repeat_settings(self) -> RepeatSettings:
        return RepeatSettings(
            enabled=self.repeat_enabled,
            cue=self.repeat_audio_file,
            interval_min=self.repeat_interval_min,
            at_activation=self.repeat_at_activation,
        )

    def alert_type_policy(self) -> AlertTypePolicy:
        return AlertTypePolicy(self.tracked_alert_types)


CONFIG_DESCRIPTION = """\
Configuration file (JSON; lines starting with // or # are ignored):

{
  "api_url": "Alert API endpoint URL",
  "auth_header": "Value of the Authorization header sent to the API",
  "audio_files": {
    "AIR": "Audio file played when an AIR alert starts",
    "FIRE": "Audio file played when a FIRE alert starts"
  },
  "alert_on_empty": "Audio file played when an alert clears",
  "debug": false,
  "log_to_file": false,
  "log_file_path": "Log file, used when log_to_file is true",
  "time_zone": "Local time zone, e.g. Europe/Kyiv",
  "repeat_enabled": true,
  "repeat_audio_file": "Audio file for the periodic reminder",
  "repeat_interval_min": 10,
  "repeat_at_activation": false,
  "request_interval_sec": 30,
  "request_timeout_sec": 10,
  "tracked_alert_types": []
}

repeat_interval_min must be positive and repeat_audio_file set for
reminders to play. request_interval_sec <= 0 falls back to 30 seconds.
An empty tracked_alert_types follows every alert type the API reports.
Environment overrides: ALERTSIREN_API_URL, ALERTSIREN_AUTH_HEADER,
ALERTSIREN_TIME_ZONE, ALERTSIREN_DEBUG.
"""
