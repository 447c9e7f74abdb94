"""Live position source.

Wraps a :class:`~geoguard._transport.DeviceTransport` with the request
policy the engine needs: one request in flight at a time, a hard timeout,
and no automatic retry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from geoguard._constants import DEFAULT_SOURCE_TIMEOUT_MS, DEVICE_GPS_PATH
from geoguard._transport import DeviceTransport
from geoguard.exceptions import SourceUnavailableError
from geoguard.ingestion.device import parse_raw_sample
from geoguard.models.position import RawSample

_logger = logging.getLogger(__name__)


class LivePositionSource:
    """Polled device source with supersession cancellation.

    Issuing a new request cancels any request still in flight. The
    cancelled caller receives ``None``; supersession is not an error.
    """

    def __init__(
        self,
        transport: DeviceTransport,
        *,
        timeout_ms: int = DEFAULT_SOURCE_TIMEOUT_MS,
        path: str = DEVICE_GPS_PATH,
    ) -> None:
        self._transport = transport
        self._timeout_s = timeout_ms / 1000.0
        self._path = path
        self._inflight: asyncio.Task[dict[str, Any]] | None = None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def cancel(self) -> None:
        """Cancel the in-flight request, if any."""
        task = self._inflight
        self._inflight = None
        if task is not None and not task.done():
            _logger.debug("Cancelling in-flight device request")
            task.cancel()

    async def fetch(self) -> RawSample | None:
        """Request one reading from the device.

        Returns
        -------
        RawSample or None
            The parsed reading, or ``None`` when a newer request superseded
            this one.

        Raises
        ------
        SourceUnavailableError
            On network failure, HTTP error, invalid body or timeout.
        """
        self.cancel()
        task = asyncio.ensure_future(self._transport.get_json(self._path))
        self._inflight = task
        try:
            payload = await asyncio.wait_for(task, timeout=self._timeout_s)
        except TimeoutError as exc:
            raise SourceUnavailableError(
                f"No response from device within {self._timeout_s:g}s",
                url=self._path,
            ) from exc
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            _logger.debug("Device request superseded")
            return None
        finally:
            if self._inflight is task:
                self._inflight = None
        return parse_raw_sample(payload)

    async def probe(self) -> RawSample:
        """Check that the device answers with position data.

        Raises
        ------
        SourceUnavailableError
            If the device is unreachable or the body has no ``lat`` field.
        """
        raw = await self.fetch()
        if raw is None:
            raise SourceUnavailableError("Connection probe was superseded", url=self._path)
        if "lat" not in raw.raw and "latitude" not in raw.raw:
            raise SourceUnavailableError("Invalid data format: device reply has no latitude", url=self._path)
        return raw
