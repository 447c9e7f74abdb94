"""Per-condition alert episodes.

This is the only component allowed to decide when an alert is raised or
cleared. Time is passed in explicitly, so given the same sequence of
samples, facts and timestamps the machine emits the same events.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass

from geoguard._constants import DEFAULT_ALERT_DELAY_MS
from geoguard.models.position import PositionSample
from geoguard.rules import RuleFacts
from geoguard.state.events import (
    DEBOUNCED_CONDITIONS,
    EPISODE_CONDITIONS,
    AlertCleared,
    AlertCondition,
    AlertEvent,
    AlertRaised,
)
from geoguard.state.policy import deadline_elapsed

_logger = logging.getLogger(__name__)

HARDWARE_ALARM_NOTE = "Physical alarm button was pressed on the device"


@dataclass(slots=True)
class Episode:
    """Lifecycle of one violation instance of a condition.

    ``armed`` is set while the condition is in its violating state,
    ``triggered`` once the alert for this episode has been raised and
    ``deadline_ms`` while a debounce timer is pending.
    """

    armed: bool = False
    triggered: bool = False
    deadline_ms: int | None = None

    def reset(self) -> None:
        self.armed = False
        self.triggered = False
        self.deadline_ms = None


class AlertStateMachine:
    """Debounce facts over time into edge-triggered alert events.

    Three conditions are tracked independently:

    * ``OUT_OF_ZONE`` raises immediately when the device leaves every
      active zone and clears when it comes back.
    * ``STAY_LONG_OUT_OF_ZONE`` raises once the device has stayed outside
      for ``alert_delay_ms``, while the stay-long rule applies.
    * ``ROUTE_DEVIATION`` raises once the device has been off every
      monitored route for ``alert_delay_ms``.

    The hardware alarm flag is latched separately by :meth:`observe_alarm`.
    """

    def __init__(self, *, alert_delay_ms: int = DEFAULT_ALERT_DELAY_MS) -> None:
        if alert_delay_ms <= 0:
            raise ValueError(f"alert_delay_ms must be positive, got {alert_delay_ms}")
        self._alert_delay_ms = alert_delay_ms
        self._episodes: dict[AlertCondition, Episode] = {condition: Episode() for condition in EPISODE_CONDITIONS}
        self._alarm_latched = False
        self._last_sample: PositionSample | None = None

    @property
    def alert_delay_ms(self) -> int:
        return self._alert_delay_ms

    @property
    def alarm_latched(self) -> bool:
        return self._alarm_latched

    def episode(self, condition: AlertCondition) -> Episode:
        """Return a copy of the episode for *condition*."""
        return dataclasses.replace(self._episodes[condition])

    def next_deadline_ms(self) -> int | None:
        """Earliest pending debounce deadline, if any."""
        deadlines = [
            self._episodes[c].deadline_ms for c in DEBOUNCED_CONDITIONS if self._episodes[c].deadline_ms is not None
        ]
        return min(deadlines) if deadlines else None

    def reset(self) -> None:
        """Cancel every pending deadline and forget all episodes.

        Called on every source switch so that no alert carries over a
        discontinuous jump in position.
        """
        for episode in self._episodes.values():
            episode.reset()
        self._alarm_latched = False
        self._last_sample = None
        _logger.debug("Alert episodes reset")

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def update(
        self,
        sample: PositionSample,
        facts: RuleFacts,
        *,
        stay_long_applies: bool,
        now_ms: int | None = None,
    ) -> list[AlertEvent]:
        """Apply one accepted sample and return the resulting events."""
        now = sample.timestamp_ms if now_ms is None else now_ms
        self._last_sample = sample

        events: list[AlertEvent] = []
        self._update_out_of_zone(sample, facts, now, events)
        self._update_debounced(
            AlertCondition.STAY_LONG_OUT_OF_ZONE,
            violating=facts.out_of_zone and stay_long_applies,
            safe=facts.inside_any_active_zone,
            now_ms=now,
        )
        self._update_debounced(
            AlertCondition.ROUTE_DEVIATION,
            violating=facts.off_route,
            safe=facts.near_any_active_route,
            now_ms=now,
        )
        events.extend(self.expire(now))
        return events

    def expire(self, now_ms: int) -> list[AlertEvent]:
        """Raise every debounced condition whose deadline has elapsed.

        Uses the position of the most recent sample; the condition is
        known to still hold because any sample that ended it would have
        cancelled the deadline.
        """
        events: list[AlertEvent] = []
        sample = self._last_sample
        for condition in DEBOUNCED_CONDITIONS:
            episode = self._episodes[condition]
            if not deadline_elapsed(now_ms, episode.deadline_ms):
                continue
            episode.deadline_ms = None
            if episode.triggered or sample is None:
                continue
            episode.triggered = True
            _logger.info("Alert raised: %s at %s", condition, sample)
            events.append(
                AlertRaised(
                    condition=condition,
                    latitude=sample.latitude,
                    longitude=sample.longitude,
                    note=self._note_for(condition),
                    raised_at_ms=now_ms,
                )
            )
        return events

    def observe_alarm(
        self,
        alarm: bool,
        *,
        latitude: float,
        longitude: float,
        now_ms: int,
    ) -> list[AlertEvent]:
        """Latch the device's hardware alarm flag.

        Raises once per continuous ``True`` reading and clears when the
        reading returns to ``False``. Independent of zones and routes.
        """
        if alarm and not self._alarm_latched:
            self._alarm_latched = True
            _logger.info("Hardware alarm raised at (%.6f, %.6f)", latitude, longitude)
            return [
                AlertRaised(
                    condition=AlertCondition.HARDWARE_ALARM,
                    latitude=latitude,
                    longitude=longitude,
                    note=HARDWARE_ALARM_NOTE,
                    raised_at_ms=now_ms,
                )
            ]
        if not alarm and self._alarm_latched:
            self._alarm_latched = False
            _logger.info("Hardware alarm cleared")
            return [AlertCleared(condition=AlertCondition.HARDWARE_ALARM, cleared_at_ms=now_ms)]
        return []

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _update_out_of_zone(
        self,
        sample: PositionSample,
        facts: RuleFacts,
        now_ms: int,
        events: list[AlertEvent],
    ) -> None:
        episode = self._episodes[AlertCondition.OUT_OF_ZONE]
        if facts.out_of_zone and not episode.armed:
            episode.armed = True
            episode.triggered = True
            _logger.info("Alert raised: %s at %s", AlertCondition.OUT_OF_ZONE, sample)
            events.append(
                AlertRaised(
                    condition=AlertCondition.OUT_OF_ZONE,
                    latitude=sample.latitude,
                    longitude=sample.longitude,
                    raised_at_ms=now_ms,
                )
            )
        elif facts.inside_any_active_zone and episode.armed:
            episode.armed = False
            episode.triggered = False
            _logger.info("Alert cleared: %s", AlertCondition.OUT_OF_ZONE)
            events.append(AlertCleared(condition=AlertCondition.OUT_OF_ZONE, cleared_at_ms=now_ms))

    def _update_debounced(
        self,
        condition: AlertCondition,
        *,
        violating: bool,
        safe: bool,
        now_ms: int,
    ) -> None:
        episode = self._episodes[condition]
        if violating:
            episode.armed = True
            if episode.deadline_ms is None and not episode.triggered:
                episode.deadline_ms = now_ms + self._alert_delay_ms
                _logger.debug("%s: deadline started, fires at %d", condition, episode.deadline_ms)
            return

        if episode.deadline_ms is not None:
            _logger.debug("%s: deadline cancelled", condition)
        episode.deadline_ms = None
        episode.armed = False
        # Re-arming only happens on an explicit return to the safe condition.
        if safe:
            episode.triggered = False

    def _note_for(self, condition: AlertCondition) -> str:
        seconds = self._alert_delay_ms / 1000.0
        if condition == AlertCondition.STAY_LONG_OUT_OF_ZONE:
            return f"Device stayed outside every safe zone for more than {seconds:g} s"
        if condition == AlertCondition.ROUTE_DEVIATION:
            return f"Device left the monitored route for more than {seconds:g} s"
        return ""
