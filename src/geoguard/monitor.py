"""High-level async monitoring engine."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
import time
from collections.abc import Callable, Iterable
from typing import Any

import aiohttp

from geoguard._constants import INITIAL_LATITUDE, INITIAL_LONGITUDE
from geoguard._transport import DeviceTransport, HttpDeviceTransport
from geoguard.config import MonitorConfig
from geoguard.exceptions import GeoguardError, InvalidSampleError, SourceUnavailableError
from geoguard.ingestion.device import to_position_sample
from geoguard.models.position import PositionSample, RawSample
from geoguard.models.simulation import SimulationKind, SimulationState
from geoguard.models.zones import Route, SafeZone
from geoguard.notify import AlertNotifier
from geoguard.rules import RuleFacts, evaluate
from geoguard.sources.live import LivePositionSource
from geoguard.sources.simulation import SimulationDriver
from geoguard.state.episodes import AlertStateMachine, Episode
from geoguard.state.events import AlertCondition, AlertEvent, AlertRaised, SourceKind
from geoguard.state.policy import stay_long_applies

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class GeofenceMonitor:
    """Track a device against safe zones and routes.

    Exactly one source supplies samples at a time: the polled live device
    or the simulation driver. Every switch between sources cancels pending
    requests and alert timers and resets all alert episodes.

    Usage::

        async with GeofenceMonitor(config, on_alert=print) as monitor:
            monitor.update_zones(zones)
            await monitor.start_simulation(SimulationKind.STATIC)
    """

    def __init__(
        self,
        config: MonitorConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: DeviceTransport | None = None,
        notifier: AlertNotifier | None = None,
        on_sample: Callable[[PositionSample], None] | None = None,
        on_alert: Callable[[AlertEvent], None] | None = None,
        on_source_change: Callable[[SourceKind], None] | None = None,
        clock: Callable[[], int] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._notifier = notifier
        self._on_sample = on_sample
        self._on_alert = on_alert
        self._on_source_change = on_source_change
        self._clock = clock or _now_ms

        self._live: LivePositionSource | None = None
        if transport is not None:
            self._live = LivePositionSource(transport, timeout_ms=config.source_timeout_ms)
        self._simulation = SimulationDriver(config, rng=rng, clock=self._clock)
        self._machine = AlertStateMachine(alert_delay_ms=config.alert_delay_ms)

        self._zones: tuple[SafeZone, ...] = ()
        self._routes: tuple[Route, ...] = ()
        self._source = SourceKind.NONE
        self._generation = 0
        self._position: PositionSample | None = None
        self._facts: RuleFacts | None = None
        self._last_accepted_ms: int | None = None

        self._poll_task: asyncio.Task[None] | None = None
        self._tick_task: asyncio.Task[None] | None = None
        self._deadline_handle: asyncio.TimerHandle | None = None
        self._notify_tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> GeofenceMonitor:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpDeviceTransport(self._config.base_url, self._http_session)
            self._live = LivePositionSource(self._transport, timeout_ms=self._config.source_timeout_ms)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop every source and release the HTTP session if we own it."""
        await self._drain(self._switch_source(SourceKind.NONE))
        for task in list(self._notify_tasks):
            task.cancel()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def config(self) -> MonitorConfig:
        return self._config

    @property
    def source(self) -> SourceKind:
        return self._source

    @property
    def connected(self) -> bool:
        return self._source == SourceKind.LIVE

    @property
    def simulation(self) -> SimulationState:
        return self._simulation.state

    @property
    def position(self) -> PositionSample | None:
        """Most recently accepted sample."""
        return self._position

    @property
    def facts(self) -> RuleFacts | None:
        """Facts computed for the most recently accepted sample."""
        return self._facts

    def episode(self, condition: AlertCondition) -> Episode:
        return self._machine.episode(condition)

    # ------------------------------------------------------------------
    # Zone / route snapshots
    # ------------------------------------------------------------------

    def update_zones(self, zones: Iterable[SafeZone]) -> None:
        """Replace the zone snapshot used by subsequent evaluations."""
        self._zones = tuple(zones)

    def update_routes(self, routes: Iterable[Route]) -> None:
        """Replace the route snapshot used by subsequent evaluations."""
        self._routes = tuple(routes)

    # ------------------------------------------------------------------
    # Live source
    # ------------------------------------------------------------------

    async def connect(self) -> bool:
        """Switch to the live device.

        Probes the device once, then polls it every
        ``config.poll_interval_ms``. A failure later on flips the monitor
        back to no source; nothing is retried automatically.

        Returns
        -------
        bool
            ``True`` once connected, ``False`` if another source switch
            superseded this attempt while the probe was in flight.

        Raises
        ------
        SourceUnavailableError
            If the device does not answer within the timeout.
        """
        live = self._require_live()
        await self._drain(self._switch_source(SourceKind.NONE))
        generation = self._generation

        _logger.info("Connecting to device at %s", self._config.base_url)
        try:
            raw = await live.probe()
        except SourceUnavailableError:
            if generation != self._generation:
                _logger.debug("Connection attempt superseded")
                return False
            _logger.warning("Cannot connect to device at %s", self._config.base_url, exc_info=True)
            raise
        if generation != self._generation:
            _logger.debug("Connection attempt superseded")
            return False

        self._set_source(SourceKind.LIVE)
        self._handle_raw(raw, generation)
        self._poll_task = asyncio.create_task(self._poll_loop(generation))
        return True

    async def disconnect(self) -> None:
        """Stop polling the live device."""
        if self._source == SourceKind.LIVE:
            _logger.info("Disconnecting from device")
        await self._drain(self._switch_source(SourceKind.NONE))

    async def poll_once(self) -> list[AlertEvent]:
        """Fetch and evaluate one live reading immediately.

        Cancels a request still in flight. Returns no events unless the
        live device is the active source.
        """
        live = self._require_live()
        if self._source != SourceKind.LIVE:
            _logger.debug("Not polling: active source is %s", self._source)
            return []
        generation = self._generation
        raw = await live.fetch()
        if raw is None or generation != self._generation:
            return []
        return self._handle_raw(raw, generation)

    async def _poll_loop(self, generation: int) -> None:
        live = self._require_live()
        interval = self._config.poll_interval_ms / 1000.0
        while True:
            await asyncio.sleep(interval)
            if generation != self._generation:
                return
            try:
                raw = await live.fetch()
            except SourceUnavailableError as exc:
                if generation == self._generation:
                    _logger.warning("Device unavailable, disconnecting: %s", exc)
                    # Detach first so the switch does not cancel the running task.
                    self._poll_task = None
                    self._switch_source(SourceKind.NONE)
                return
            except InvalidSampleError as exc:
                _logger.debug("Ignoring device reply: %s", exc)
                continue
            if raw is None or generation != self._generation:
                continue
            self._handle_raw(raw, generation)

    def _handle_raw(self, raw: RawSample, generation: int) -> list[AlertEvent]:
        now = self._clock()
        events: list[AlertEvent] = []

        if raw.alarm or self._machine.alarm_latched:
            latitude, longitude = self._alarm_position(raw)
            alarm_events = self._machine.observe_alarm(raw.alarm, latitude=latitude, longitude=longitude, now_ms=now)
            self._dispatch(alarm_events)
            events.extend(alarm_events)

        try:
            sample = to_position_sample(raw, now)
        except InvalidSampleError as exc:
            _logger.debug("%s", exc)
            return events

        if generation != self._generation:
            return events
        events.extend(self.process_sample(sample))
        return events

    def _alarm_position(self, raw: RawSample) -> tuple[float, float]:
        if raw.latitude is not None and raw.longitude is not None:
            return raw.latitude, raw.longitude
        if self._position is not None:
            return self._position.latitude, self._position.longitude
        return INITIAL_LATITUDE, INITIAL_LONGITUDE

    def _require_live(self) -> LivePositionSource:
        if self._live is None:
            raise GeoguardError("Monitor not initialized. Use 'async with GeofenceMonitor(...) as monitor:'")
        return self._live

    # ------------------------------------------------------------------
    # Simulation source
    # ------------------------------------------------------------------

    async def start_simulation(
        self,
        kind: SimulationKind | str,
        *,
        direction_deg: float | None = None,
        speed_kmh: float | None = None,
    ) -> SimulationState:
        """Switch to a simulated source starting at the current position.

        Raises
        ------
        SimulationError
            For an unknown kind or an out-of-range heading or speed.
        """
        anchor = self._anchor()
        old_tasks = self._switch_source(SourceKind.SIMULATION)
        try:
            state = self._simulation.start(kind, anchor=anchor, direction_deg=direction_deg, speed_kmh=speed_kmh)
        except GeoguardError:
            self._set_source(SourceKind.NONE)
            await self._drain(old_tasks)
            raise
        _logger.info("Simulation started: %s", state.kind)
        self._tick_task = asyncio.create_task(self._tick_loop(self._generation))
        await self._drain(old_tasks)
        return state

    async def stop_simulation(self) -> None:
        """Stop the running simulation and cancel alert timers."""
        if self._source == SourceKind.SIMULATION:
            _logger.info("Simulation stopped")
        await self._drain(self._switch_source(SourceKind.NONE))

    def step_simulation(self) -> PositionSample | None:
        """Run one simulation tick synchronously and evaluate its sample."""
        sample = self._simulation.step(self._routes)
        if sample is None:
            if not self._simulation.active and self._source == SourceKind.SIMULATION:
                _logger.info("Simulation completed")
                if self._tick_task is not None and self._tick_task is asyncio.current_task():
                    # Do not cancel the tick task from inside itself.
                    self._tick_task = None
                self._switch_source(SourceKind.NONE)
            return None
        self.process_sample(sample)
        return sample

    async def _tick_loop(self, generation: int) -> None:
        interval = self._config.tick_interval_ms / 1000.0
        while generation == self._generation:
            await asyncio.sleep(interval)
            if generation != self._generation:
                return
            self.step_simulation()

    def _anchor(self) -> tuple[float, float]:
        if self._position is not None:
            return (self._position.latitude, self._position.longitude)
        return (INITIAL_LATITUDE, INITIAL_LONGITUDE)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def process_sample(self, sample: PositionSample) -> list[AlertEvent]:
        """Evaluate one accepted sample exactly once.

        Samples older than the last accepted one are dropped as stale.
        """
        if self._last_accepted_ms is not None and sample.timestamp_ms < self._last_accepted_ms:
            _logger.debug("Dropping stale sample ts=%d < %d", sample.timestamp_ms, self._last_accepted_ms)
            return []
        self._last_accepted_ms = sample.timestamp_ms
        self._position = sample

        facts = evaluate(sample, self._zones, self._routes, self._config.buffer_radius_m)
        self._facts = facts
        applies = stay_long_applies(
            source=self._source,
            simulation_kind=self._simulation.state.kind,
            any_source=self._config.stay_long_any_source,
        )
        # Deadlines run on the monitor clock, the same one the timer uses.
        events = self._machine.update(sample, facts, stay_long_applies=applies, now_ms=self._clock())

        if self._on_sample is not None:
            try:
                self._on_sample(sample)
            except Exception:
                _logger.debug("on_sample callback failed", exc_info=True)

        self._dispatch(events)
        self._reschedule_deadline()
        return events

    def _dispatch(self, events: list[AlertEvent]) -> None:
        for event in events:
            if self._on_alert is not None:
                try:
                    self._on_alert(event)
                except Exception:
                    _logger.debug("on_alert callback failed", exc_info=True)
            if isinstance(event, AlertRaised) and self._notifier is not None:
                self._schedule_notify(event)

    def _schedule_notify(self, event: AlertRaised) -> None:
        notifier = self._notifier
        if notifier is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.debug("No running loop; alert %s not handed to notifier", event.condition)
            return

        async def _notify() -> None:
            try:
                await notifier.notify(event)
            except Exception:
                _logger.warning("Alert notification failed for %s", event.condition, exc_info=True)

        task = loop.create_task(_notify())
        self._notify_tasks.add(task)
        task.add_done_callback(self._notify_tasks.discard)

    # ------------------------------------------------------------------
    # Debounce timer
    # ------------------------------------------------------------------

    def _reschedule_deadline(self) -> None:
        self._cancel_deadline()
        deadline = self._machine.next_deadline_ms()
        if deadline is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: deadlines are still checked on the next sample.
            return
        delay = max(0.0, (deadline - self._clock()) / 1000.0)
        self._deadline_handle = loop.call_later(delay, self._on_deadline, self._generation)

    def _cancel_deadline(self) -> None:
        handle = self._deadline_handle
        self._deadline_handle = None
        if handle is not None:
            handle.cancel()

    def _on_deadline(self, generation: int) -> None:
        self._deadline_handle = None
        if generation != self._generation:
            return
        events = self._machine.expire(self._clock())
        self._dispatch(events)
        self._reschedule_deadline()

    # ------------------------------------------------------------------
    # Source switching
    # ------------------------------------------------------------------

    def _switch_source(self, source: SourceKind) -> list[asyncio.Task[None]]:
        """Atomically retire the current source and reset alert state.

        Returns the cancelled tasks so async callers can wait for them.
        """
        self._generation += 1
        cancelled: list[asyncio.Task[None]] = []
        for task in (self._poll_task, self._tick_task):
            if task is not None and not task.done():
                task.cancel()
                cancelled.append(task)
        self._poll_task = None
        self._tick_task = None
        if self._live is not None:
            self._live.cancel()
        self._cancel_deadline()
        self._machine.reset()
        self._facts = None
        self._last_accepted_ms = None
        self._simulation.stop()
        self._set_source(source)
        return cancelled

    def _set_source(self, source: SourceKind) -> None:
        if source == self._source:
            return
        _logger.debug("Source changed: %s -> %s", self._source, source)
        self._source = source
        if self._on_source_change is not None:
            try:
                self._on_source_change(source)
            except Exception:
                _logger.debug("on_source_change callback failed", exc_info=True)

    @staticmethod
    async def _drain(tasks: list[asyncio.Task[None]]) -> None:
        current = asyncio.current_task()
        for task in tasks:
            if task is current:
                continue
            with contextlib.suppress(asyncio.CancelledError):
                await task
