"""HTTP transport for polling the tracking device."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from geoguard._constants import USER_AGENT
from geoguard.exceptions import SourceUnavailableError

_logger = logging.getLogger(__name__)


class DeviceTransport(Protocol):
    """Structural transport interface used by the live source.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpDeviceTransport`) concrete.
    """

    async def get_json(self, path: str) -> dict[str, Any]:
        ...


class HttpDeviceTransport:
    """Plain JSON-over-HTTP transport to the device.

    Timeouts are enforced by the caller, so the transport can be cancelled
    mid-request when a newer request supersedes it.
    """

    def __init__(self, base_url: str, http_session: aiohttp.ClientSession) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_session

    @property
    def base_url(self) -> str:
        return self._base_url

    async def get_json(self, path: str) -> dict[str, Any]:
        """GET *path* and return the decoded JSON object."""
        url = f"{self._base_url}{path}"
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }

        _logger.debug("GET %s", url)

        try:
            async with self._http.get(url, headers=headers) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise SourceUnavailableError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        url=url,
                        status_code=resp.status,
                    )
        except SourceUnavailableError:
            raise
        except aiohttp.ClientError as exc:
            raise SourceUnavailableError(f"Request to {url} failed: {exc}", url=url) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SourceUnavailableError(f"Invalid JSON from {url}: {text[:200]}", url=url) from exc

        if not isinstance(body, dict):
            raise SourceUnavailableError(f"Expected a JSON object from {url}", url=url)
        return body
