from __future__ import annotations

import asyncio
import math
from typing import Any

import pytest

from geoguard.config import MonitorConfig
from geoguard.exceptions import GeoguardError, SimulationError, SourceUnavailableError
from geoguard.models import PositionSample, Route, SafeZone, SimulationKind
from geoguard.monitor import GeofenceMonitor
from geoguard.notify import LoggingNotifier
from geoguard.state.events import AlertCleared, AlertCondition, AlertEvent, AlertRaised, SourceKind

_HOME = SafeZone(id="home", name="Home", latitude=10.9589, longitude=106.8554, radius_m=200)
# Far from the default simulation start, so every simulated sample is outside.
_ELSEWHERE = SafeZone(id="elsewhere", latitude=0.5, longitude=0.5, radius_m=10)
_M_PER_DEG = 6_371_000.0 * math.pi / 180.0


class _FakeTransport:
    def __init__(self, payload: dict[str, Any] | None = None) -> None:
        self.payload = payload if payload is not None else {"lat": 10.9589, "lng": 106.8554, "speed": 0}
        self.error: Exception | None = None
        self.calls = 0

    async def get_json(self, path: str) -> dict[str, Any]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return dict(self.payload)


class _Recorder:
    def __init__(self) -> None:
        self.events: list[AlertEvent] = []
        self.samples: list[PositionSample] = []
        self.sources: list[SourceKind] = []

    def raised(self, condition: AlertCondition) -> list[AlertEvent]:
        return [e for e in self.events if isinstance(e, AlertRaised) and e.condition == condition]


def _monitor(
    recorder: _Recorder,
    transport: _FakeTransport | None = None,
    **overrides: Any,
) -> GeofenceMonitor:
    config = MonitorConfig(**{"poll_interval_ms": 60_000, "tick_interval_ms": 60_000, **overrides})
    return GeofenceMonitor(
        config,
        transport=transport or _FakeTransport(),
        on_sample=recorder.samples.append,
        on_alert=recorder.events.append,
        on_source_change=recorder.sources.append,
    )


def test_out_of_zone_raised_for_point_500m_away() -> None:
    recorder = _Recorder()
    monitor = _monitor(recorder)
    monitor.update_zones([_HOME])

    sample = PositionSample(latitude=10.9589 + 500 / _M_PER_DEG, longitude=106.8554, timestamp_ms=1_000)
    events = monitor.process_sample(sample)

    assert len(events) == 1
    assert isinstance(events[0], AlertRaised)
    assert events[0].condition == AlertCondition.OUT_OF_ZONE
    assert (events[0].latitude, events[0].longitude) == (sample.latitude, sample.longitude)
    assert recorder.events == events
    assert recorder.samples == [sample]
    assert monitor.facts is not None and monitor.facts.out_of_zone


def test_stale_sample_is_dropped() -> None:
    recorder = _Recorder()
    monitor = _monitor(recorder)
    newer = PositionSample(latitude=1.0, longitude=1.0, timestamp_ms=2_000)
    older = PositionSample(latitude=2.0, longitude=2.0, timestamp_ms=1_000)

    monitor.process_sample(newer)
    assert monitor.process_sample(older) == []
    assert monitor.position == newer
    assert recorder.samples == [newer]


def test_zone_update_applies_to_next_sample() -> None:
    recorder = _Recorder()
    monitor = _monitor(recorder)
    sample = PositionSample(latitude=20.0, longitude=20.0, timestamp_ms=1)

    assert monitor.process_sample(sample) == []
    monitor.update_zones([_HOME])
    assert recorder.events == []

    events = monitor.process_sample(sample.model_copy(update={"timestamp_ms": 2}))
    assert [e.condition for e in events] == [AlertCondition.OUT_OF_ZONE]


def test_callback_errors_do_not_break_evaluation() -> None:
    def boom(_event: AlertEvent) -> None:
        raise RuntimeError("listener failed")

    monitor = GeofenceMonitor(MonitorConfig(), transport=_FakeTransport(), on_alert=boom)
    monitor.update_zones([_HOME])
    events = monitor.process_sample(PositionSample(latitude=20.0, longitude=20.0, timestamp_ms=1))
    assert len(events) == 1


@pytest.mark.asyncio
async def test_stay_long_fires_from_timer_during_static_simulation() -> None:
    recorder = _Recorder()
    async with _monitor(recorder, alert_delay_ms=100) as monitor:
        monitor.update_zones([_ELSEWHERE])
        await monitor.start_simulation(SimulationKind.STATIC)
        assert monitor.step_simulation() is not None
        assert len(recorder.raised(AlertCondition.OUT_OF_ZONE)) == 1

        await asyncio.sleep(0.4)

        raised = recorder.raised(AlertCondition.STAY_LONG_OUT_OF_ZONE)
        assert len(raised) == 1
        assert raised[0].note


@pytest.mark.asyncio
async def test_switching_source_cancels_pending_stay_long() -> None:
    recorder = _Recorder()
    async with _monitor(recorder, alert_delay_ms=100) as monitor:
        monitor.update_zones([_ELSEWHERE])
        await monitor.start_simulation(SimulationKind.STATIC)
        monitor.step_simulation()
        assert monitor.episode(AlertCondition.STAY_LONG_OUT_OF_ZONE).deadline_ms is not None

        await monitor.start_simulation(SimulationKind.INTRUSION)
        assert monitor.episode(AlertCondition.STAY_LONG_OUT_OF_ZONE).deadline_ms is None

        await asyncio.sleep(0.4)

        assert recorder.raised(AlertCondition.STAY_LONG_OUT_OF_ZONE) == []
        assert monitor.simulation.kind == SimulationKind.INTRUSION


@pytest.mark.asyncio
async def test_starting_simulation_cancels_live_stay_long_deadline() -> None:
    recorder = _Recorder()
    transport = _FakeTransport({"lat": 10.9589, "lng": 106.8554})
    async with _monitor(recorder, transport, alert_delay_ms=100, stay_long_any_source=True) as monitor:
        monitor.update_zones([_ELSEWHERE])
        await monitor.connect()
        assert monitor.episode(AlertCondition.STAY_LONG_OUT_OF_ZONE).deadline_ms is not None

        await monitor.start_simulation(SimulationKind.STATIC)
        await asyncio.sleep(0.4)

        assert recorder.raised(AlertCondition.STAY_LONG_OUT_OF_ZONE) == []
        assert monitor.source == SourceKind.SIMULATION


@pytest.mark.asyncio
async def test_stay_long_not_evaluated_for_other_simulations() -> None:
    recorder = _Recorder()
    async with _monitor(recorder, alert_delay_ms=50) as monitor:
        monitor.update_zones([_ELSEWHERE])
        await monitor.start_simulation(SimulationKind.INTRUSION)
        monitor.step_simulation()
        await asyncio.sleep(0.2)
        assert recorder.raised(AlertCondition.STAY_LONG_OUT_OF_ZONE) == []


@pytest.mark.asyncio
async def test_simulation_ticks_until_stopped() -> None:
    recorder = _Recorder()
    async with _monitor(recorder, tick_interval_ms=20) as monitor:
        state = await monitor.start_simulation(SimulationKind.INTRUSION, direction_deg=90, speed_kmh=60)
        assert state.active
        assert monitor.source == SourceKind.SIMULATION

        await asyncio.sleep(0.15)
        assert len(recorder.samples) >= 2
        assert recorder.samples[-1].longitude > recorder.samples[0].longitude

        await monitor.stop_simulation()
        count = len(recorder.samples)
        await asyncio.sleep(0.1)

        assert len(recorder.samples) == count
        assert monitor.source == SourceKind.NONE
        assert not monitor.simulation.active
    assert recorder.sources == [SourceKind.SIMULATION, SourceKind.NONE]


@pytest.mark.asyncio
async def test_invalid_simulation_request_leaves_no_source() -> None:
    recorder = _Recorder()
    async with _monitor(recorder) as monitor:
        with pytest.raises(SimulationError):
            await monitor.start_simulation(SimulationKind.INTRUSION, direction_deg=400)
        assert monitor.source == SourceKind.NONE


@pytest.mark.asyncio
async def test_connect_and_disconnect() -> None:
    recorder = _Recorder()
    transport = _FakeTransport({"lat": 10.96, "lng": 106.86, "speed": "14"})
    async with _monitor(recorder, transport) as monitor:
        assert await monitor.connect() is True
        assert monitor.connected
        assert monitor.position is not None
        assert (monitor.position.latitude, monitor.position.speed_kmh) == (10.96, 14)

        await monitor.disconnect()
        assert not monitor.connected
    assert recorder.sources == [SourceKind.LIVE, SourceKind.NONE]


@pytest.mark.asyncio
async def test_connect_failure_raises_and_stays_disconnected() -> None:
    recorder = _Recorder()
    transport = _FakeTransport()
    transport.error = SourceUnavailableError("connection refused")
    async with _monitor(recorder, transport) as monitor:
        with pytest.raises(SourceUnavailableError):
            await monitor.connect()
        assert monitor.source == SourceKind.NONE
    assert recorder.sources == []


@pytest.mark.asyncio
async def test_connect_stops_running_simulation() -> None:
    recorder = _Recorder()
    async with _monitor(recorder) as monitor:
        await monitor.start_simulation(SimulationKind.STATIC)
        await monitor.connect()
        assert monitor.source == SourceKind.LIVE
        assert not monitor.simulation.active


@pytest.mark.asyncio
async def test_poll_failure_disconnects_without_retry() -> None:
    recorder = _Recorder()
    transport = _FakeTransport()
    async with _monitor(recorder, transport, poll_interval_ms=20) as monitor:
        await monitor.connect()
        transport.error = SourceUnavailableError("HTTP 503", status_code=503)

        await asyncio.sleep(0.2)

        assert monitor.source == SourceKind.NONE
        calls = transport.calls
        await asyncio.sleep(0.1)
        assert transport.calls == calls
    assert recorder.sources == [SourceKind.LIVE, SourceKind.NONE]


@pytest.mark.asyncio
async def test_zero_sentinel_reading_is_ignored() -> None:
    recorder = _Recorder()
    async with _monitor(recorder, _FakeTransport({"lat": 0, "lng": 0})) as monitor:
        monitor.update_zones([_HOME])
        assert await monitor.connect() is True
        assert monitor.position is None
        assert recorder.events == []


@pytest.mark.asyncio
async def test_hardware_alarm_raised_once_and_cleared() -> None:
    recorder = _Recorder()
    transport = _FakeTransport({"lat": 10.9589, "lng": 106.8554, "alarm": False})
    async with _monitor(recorder, transport) as monitor:
        await monitor.connect()

        transport.payload["alarm"] = True
        await monitor.poll_once()
        await monitor.poll_once()
        assert len(recorder.raised(AlertCondition.HARDWARE_ALARM)) == 1

        transport.payload["alarm"] = False
        events = await monitor.poll_once()
        assert len(events) == 1
        assert isinstance(events[0], AlertCleared)
        assert events[0].condition == AlertCondition.HARDWARE_ALARM


@pytest.mark.asyncio
async def test_raised_alerts_reach_notifier() -> None:
    notifier = LoggingNotifier("parent@example.com")
    monitor = GeofenceMonitor(MonitorConfig(), transport=_FakeTransport(), notifier=notifier)
    async with monitor:
        monitor.update_zones([_HOME])
        monitor.process_sample(PositionSample(latitude=20.0, longitude=20.0, timestamp_ms=1))
        monitor.process_sample(PositionSample(latitude=10.9589, longitude=106.8554, timestamp_ms=2))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    assert len(notifier.sent) == 1
    assert notifier.sent[0]["alert_type"] == "OUT_OF_ZONE"


@pytest.mark.asyncio
async def test_connect_requires_context_manager_without_transport() -> None:
    monitor = GeofenceMonitor(MonitorConfig())
    with pytest.raises(GeoguardError):
        await monitor.connect()


@pytest.mark.asyncio
async def test_deadline_uses_monitor_time_not_sample_time() -> None:
    recorder = _Recorder()
    route = Route(id="r1", points=[(0.0, 0.0), (0.0, 1.0)], confirmed=True)
    async with _monitor(recorder, alert_delay_ms=200) as monitor:
        monitor.update_routes([route])
        # Timestamp far behind the monitor clock.
        monitor.process_sample(PositionSample(latitude=5.0, longitude=5.0, timestamp_ms=1_000))

        await asyncio.sleep(0.05)
        assert recorder.raised(AlertCondition.ROUTE_DEVIATION) == []

        await asyncio.sleep(0.4)
        assert len(recorder.raised(AlertCondition.ROUTE_DEVIATION)) == 1


@pytest.mark.asyncio
async def test_poll_once_ignored_while_simulation_is_active() -> None:
    recorder = _Recorder()
    transport = _FakeTransport()
    async with _monitor(recorder, transport) as monitor:
        await monitor.start_simulation(SimulationKind.STATIC)

        assert await monitor.poll_once() == []

        assert transport.calls == 0
        assert recorder.samples == []
        assert monitor.source == SourceKind.SIMULATION


@pytest.mark.asyncio
async def test_poll_once_ignored_without_active_source() -> None:
    recorder = _Recorder()
    transport = _FakeTransport()
    async with _monitor(recorder, transport) as monitor:
        assert await monitor.poll_once() == []
        assert transport.calls == 0
        assert monitor.position is None


@pytest.mark.asyncio
async def test_completed_simulation_returns_to_no_source(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("geoguard.sources.simulation.LOOPING_KINDS", frozenset())
    recorder = _Recorder()
    async with _monitor(recorder, sim_step=0.5) as monitor:
        await monitor.start_simulation(SimulationKind.STATIC)

        assert monitor.step_simulation() is not None
        assert monitor.step_simulation() is None

        assert monitor.source == SourceKind.NONE
        assert not monitor.simulation.active
    assert recorder.sources == [SourceKind.SIMULATION, SourceKind.NONE]
