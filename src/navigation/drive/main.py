# main.py
# Entry point — replays a stored route through NavigationEngine in simulation mode.
# In production, the GPS coordinator calls engine.update_position() on every fix instead.
#
# Usage:
#   python -m navigation.drive.main my-route-id --routes-dir data/routes
#   python -m navigation.drive.main path/to/route.json --step-m 5

import argparse
import json
import logging
import os
import sys
from typing import Iterator, List, Optional, Sequence

from .engine import NavigationEngine
from .geo_utils import haversine_distance
from .models import GPSPosition, LatLon, NavigationState, NavigationUpdate, Route, UpdateType
from .nav_config import NavConfig
from .nav_logger import NavLogger


def interpolate_track(points: Sequence[LatLon], step_m: float) -> Iterator[LatLon]:
    """
    Walk a polyline and yield a point every `step_m` metres, ending on the last point.

    Args:
        points: Ordered (lat, lon) points.
        step_m: Spacing between yielded points in metres.
    """
    if step_m <= 0:
        raise ValueError(f"step_m must be greater than 0, got {step_m}")
    if not points:
        return
    yield points[0]
    carry = 0.0
    for (lat1, lon1), (lat2, lon2) in zip(points[:-1], points[1:]):
        leg = haversine_distance(lat1, lon1, lat2, lon2)
        offset = step_m - carry
        while offset < leg:
            t = offset / leg
            yield lat1 + t * (lat2 - lat1), lon1 + t * (lon2 - lon1)
            offset += step_m
        carry = leg - (offset - step_m)
    yield points[-1]


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {value}")
    return number


def _load_route(engine: NavigationEngine, source: str) -> Optional[Route]:
    if source.endswith(".json") and os.path.exists(source):
        try:
            with open(source, "r", encoding="utf-8") as f:
                return Route.from_dict(json.load(f))
        except (OSError, KeyError, TypeError, ValueError) as e:
            print(f"[Main] Could not load route: {source}: {e}")
            return None

    result = engine.load_route(source)
    if not result.ok:
        print(f"[Main] Could not load route: {result.error.user_message}")
        return None
    return result.value


def _print_update(update: NavigationUpdate) -> None:
    if update.type == UpdateType.STATUS:
        return
    status = update.status
    turn = status.next_turn.instruction if status.next_turn else "-"
    print(
        f"  [{update.type.value}] {status.state.name} "
        f"next={turn!r} in {status.distance_to_next_turn:.0f} m, "
        f"{status.distance_remaining:.0f} m left, {status.progress}%"
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Replay a route through the navigation engine.")
    parser.add_argument("route", help="Route id in the store, or a route .json file")
    parser.add_argument("--routes-dir", default=NavConfig.routes_dir,
                        help="Route store directory (default: data/routes)")
    parser.add_argument("--log-dir", default=None,
                        help="Write a JSON-lines session log to this directory")
    parser.add_argument("--step-m", type=_positive_float, default=10.0,
                        help="Distance between simulated fixes in metres (default: 10)")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    # ------------------------------------------------------------------
    # Logging setup — configure once here, all modules inherit
    # ------------------------------------------------------------------
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = NavConfig(routes_dir=args.routes_dir, log_dir=args.log_dir or ".")
    engine = NavigationEngine(config)
    if not engine.initialize().ok:
        print("[Main] Could not initialize the route store.")
        return 1

    route = _load_route(engine, args.route)
    if route is None:
        return 1

    engine.on_navigation_update(_print_update)
    if args.log_dir:
        engine.on_navigation_update(NavLogger(config).log_update)

    engine.set_simulation_mode(True)
    result = engine.start_navigation(route)
    if not result.ok:
        print(f"[Main] Could not start navigation: {result.error.user_message}")
        return 1

    active = engine.get_active_route()
    track = active.geometry or [(w.latitude, w.longitude) for w in active.waypoints]

    print("\n--- Simulation Active ---")
    for lat, lon in interpolate_track(track, args.step_m):
        engine.update_position(GPSPosition(latitude=lat, longitude=lon))
        if engine.get_navigation_state() == NavigationState.ARRIVED:
            break

    print("\n--- Session complete ---")
    print(f"    Final state: {engine.get_navigation_state().name}")
    engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
