"""Outbound alert contract.

The engine hands raised alerts to an :class:`AlertNotifier`. Delivery
(email or otherwise) belongs to the notifier; the engine never retries.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from geoguard._constants import MAPS_LINK_TEMPLATE
from geoguard._redact import redact_for_log
from geoguard.state.events import AlertCondition, AlertRaised

_logger = logging.getLogger(__name__)

#: Dispatcher-facing alert type per condition. Stay-long has its own
#: template; the other conditions share the intrusion template.
ALERT_TYPES: dict[AlertCondition, str] = {
    AlertCondition.OUT_OF_ZONE: "OUT_OF_ZONE",
    AlertCondition.STAY_LONG_OUT_OF_ZONE: "STAY_LONG",
    AlertCondition.ROUTE_DEVIATION: "OUT_OF_ZONE",
    AlertCondition.HARDWARE_ALARM: "OUT_OF_ZONE",
}


class AlertNotifier(Protocol):
    async def notify(self, event: AlertRaised) -> None:
        ...


def maps_link(latitude: float, longitude: float) -> str:
    return MAPS_LINK_TEMPLATE.format(lat=latitude, lng=longitude)


def build_alert_payload(event: AlertRaised, recipient: str | None = None) -> dict[str, Any]:
    """Build the template parameters a notification dispatcher expects."""
    payload: dict[str, Any] = {
        "alert_type": ALERT_TYPES[event.condition],
        "condition": str(event.condition),
        "location_lat": f"{event.latitude:.6f}",
        "location_lng": f"{event.longitude:.6f}",
        "google_maps_link": maps_link(event.latitude, event.longitude),
        "additional_info": event.note,
        "raised_at_ms": event.raised_at_ms,
    }
    if recipient:
        payload["to_email"] = recipient
    return payload


class LoggingNotifier:
    """Notifier that only logs the payload it would have sent."""

    def __init__(self, recipient: str | None = None, *, logger: logging.Logger | None = None) -> None:
        self._recipient = recipient
        self._logger = logger or _logger
        self.sent: list[dict[str, Any]] = []

    async def notify(self, event: AlertRaised) -> None:
        payload = build_alert_payload(event, self._recipient)
        self.sent.append(payload)
        self._logger.warning("ALERT %s: %s", payload["alert_type"], redact_for_log(payload))
