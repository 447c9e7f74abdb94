#!/usr/bin/env python3
"""Run the monitor against a simulation or a live device and print events.

Usage
-----
::

    python scripts/simulate.py --kind intrusion --direction 90 --speed 60
    python scripts/simulate.py --kind static --seconds 12 --alert-delay 3000
    GEOGUARD_DEVICE_URL=192.168.4.1 python scripts/simulate.py --live

Options::

    --kind KIND          route | intrusion | static (default: intrusion)
    --live               Poll the device at GEOGUARD_DEVICE_URL instead
    --seconds N          How long to run (default: 10)
    --zone LAT,LNG,R     Safe zone (repeatable, default: one 200 m zone at the start)
    --route FILE         JSON file with a list of [lat, lng] pairs
    --json               Print events as JSON lines
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from geoguard import (  # noqa: E402
    AlertEvent,
    GeofenceMonitor,
    GeoguardError,
    LoggingNotifier,
    MonitorConfig,
    PositionSample,
    Route,
    SafeZone,
    SimulationKind,
    SourceKind,
)
from geoguard._constants import INITIAL_LATITUDE, INITIAL_LONGITUDE  # noqa: E402


def _parse_zone(text: str, index: int) -> SafeZone:
    try:
        lat, lng, radius = (float(part) for part in text.split(","))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"zone must be LAT,LNG,RADIUS, got {text!r}") from exc
    return SafeZone(id=f"zone-{index}", name=f"Zone {index}", latitude=lat, longitude=lng, radius_m=radius)


def _load_route(path: str) -> Route:
    points = json.loads(Path(path).read_text(encoding="utf-8"))
    return Route(id="route-1", name=Path(path).stem, points=points, confirmed=True)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Drive the geofence monitor and print alerts.")
    parser.add_argument("--kind", default="intrusion", choices=[k.value for k in SimulationKind])
    parser.add_argument("--live", action="store_true", help="Poll the live device instead of simulating")
    parser.add_argument("--seconds", type=float, default=10.0, help="How long to run")
    parser.add_argument("--direction", type=float, default=None, help="Intrusion heading in degrees")
    parser.add_argument("--speed", type=float, default=None, help="Intrusion speed in km/h")
    parser.add_argument("--zone", action="append", default=[], help="Safe zone as LAT,LNG,RADIUS")
    parser.add_argument("--route", help="JSON file with [lat, lng] pairs")
    parser.add_argument("--alert-delay", type=int, default=None, help="Debounce delay in ms")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Print events as JSON lines")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides = {}
    if args.alert_delay is not None:
        overrides["alert_delay_ms"] = args.alert_delay
    config = MonitorConfig.from_env(**overrides)

    zones = [_parse_zone(text, i) for i, text in enumerate(args.zone, start=1)]
    if not zones:
        zones = [SafeZone(id="home", name="Home", latitude=INITIAL_LATITUDE, longitude=INITIAL_LONGITUDE, radius_m=200)]
    routes = [_load_route(args.route)] if args.route else []

    def on_alert(event: AlertEvent) -> None:
        if args.json_mode:
            print(json.dumps({"type": type(event).__name__, **event.model_dump(mode="json")}))
        else:
            print(f"[{type(event).__name__}] {event.condition}: {event.model_dump(exclude={'condition'})}")

    def on_sample(sample: PositionSample) -> None:
        if not args.json_mode:
            print(f"  sample {sample} speed={sample.speed_kmh:g} km/h")

    def on_source_change(source: SourceKind) -> None:
        print(f"source -> {source}")

    async with GeofenceMonitor(
        config,
        notifier=LoggingNotifier(config.recipient),
        on_sample=on_sample,
        on_alert=on_alert,
        on_source_change=on_source_change,
    ) as monitor:
        monitor.update_zones(zones)
        monitor.update_routes(routes)
        try:
            if args.live:
                await monitor.connect()
            else:
                await monitor.start_simulation(args.kind, direction_deg=args.direction, speed_kmh=args.speed)
        except GeoguardError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            sys.exit(1)
        await asyncio.sleep(args.seconds)


if __name__ == "__main__":
    asyncio.run(main())
