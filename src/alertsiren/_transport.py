"""HTTP fetch of the current alert observation."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

import aiohttp
from pydantic import TypeAdapter, ValidationError

from alertsiren._redact import redact_for_log, redact_headers
from alertsiren.config import AlertConfig
from alertsiren.exceptions import AlertTransportError
from alertsiren.models.alerts import AlertObservation, Region

_logger = logging.getLogger(__name__)

_REGIONS = TypeAdapter(list[Region])


class AlertFetcher(Protocol):
    """Structural fetcher interface used by the monitor.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpAlertFetcher`) concrete.
    """

    async def fetch(self) -> AlertObservation: ...


def parse_regions(payload: Any, *, url: str = "") -> list[Region]:
    """Validate a decoded API body into regions."""
    try:
        return _REGIONS.validate_python(payload)
    except ValidationError as exc:
        raise AlertTransportError(f"Unexpected response body from {url}: {exc}", url=url) from exc


class HttpAlertFetcher:
    """GET the alert endpoint with a static ``Authorization`` header."""

    def __init__(self, config: AlertConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout_sec)

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if self._config.auth_header:
            headers["authorization"] = self._config.auth_header
        return headers

    async def fetch(self) -> AlertObservation:
        url = self._config.api_url
        headers = self._headers()
        _logger.debug("GET %s headers=%s", url, redact_headers(headers))

        try:
            async with self._http.get(url, headers=headers, timeout=self._timeout) as resp:
                raw = await resp.read()
                _logger.debug("Response status %d from %s", resp.status, url)
                if resp.status != 200:
                    raise AlertTransportError(
                        f"HTTP {resp.status} from {url}: {raw[:200].decode('utf-8', errors='replace')}",
                        status_code=resp.status,
                        url=url,
                    )
        except AlertTransportError:
            raise
        except asyncio.TimeoutError as exc:
            raise AlertTransportError(f"Request to {url} timed out", url=url) from exc
        except aiohttp.ClientError as exc:
            raise AlertTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        try:
            body = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            snippet = raw[:200].decode("utf-8", errors="replace")
            raise AlertTransportError(f"Invalid JSON from {url}: {snippet}", url=url) from exc

        _logger.debug("Response body: %s", redact_for_log(body))
        return AlertObservation.from_regions(parse_regions(body, url=url))
