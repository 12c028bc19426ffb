# engine.py
# State machine that tracks a driver's position against an active route.
# Call start_navigation() once, then update_position() on every GPS fix.

import copy
import logging
import math
from dataclasses import dataclass
from itertools import count
from typing import Callable, Optional, Tuple, Union

from .errors import DriveError, Result, failure, success
from .geo_utils import haversine_distance, calculate_bearing, closest_point_on_segment
from .models import (
    DisplayMode,
    GPSPosition,
    NavigationState,
    NavigationStatus,
    NavigationUpdate,
    Route,
    UpdateType,
)
from .nav_config import NavConfig
from .observers import ObserverRegistry
from .route_store import RouteStore
from .waypoint_synthesizer import polyline_length, synthesize_waypoints

logger = logging.getLogger(__name__)


ACTIVE_STATES = frozenset({NavigationState.NAVIGATING, NavigationState.OFF_ROAD})
NAVIGATING_STATES = frozenset({
    NavigationState.NAVIGATING, NavigationState.OFF_ROAD, NavigationState.ARRIVED,
})


def _round_half_up(value: float) -> int:
    # round() is half-to-even; displayed figures round .5 up
    return int(math.floor(value + 0.5))


@dataclass
class _OffRoad:
    bearing: float                         # degrees towards the route
    distance: float                        # metres to the route


@dataclass
class _Session:
    """Everything that only exists while a route is active."""
    route: Route
    waypoint_index: int = 0
    distance_to_next_turn: float = 0.0
    distance_remaining: float = 0.0
    turn_announced: bool = False
    off_road: Optional[_OffRoad] = None    # set only in OFF_ROAD


class NavigationEngine:
    """
    Turn-by-turn navigation along a precomputed route.

    Usage:
        engine = NavigationEngine(config)
        engine.initialize()
        engine.on_navigation_update(handle_update)
        engine.start_navigation(route)

        # Inside GPS loop:
        engine.update_position(GPSPosition(lat, lon))

    The engine is single-threaded: callers serialize calls into it.
    Observers run synchronously inside the call that produced the event.

    Args:
        config: NavConfig instance; defaults to NavConfig().
        store:  RouteStore used when a route id is given; defaults to a
                file store under config.routes_dir.
    """

    def __init__(self, config: Optional[NavConfig] = None,
                 store: Optional[RouteStore] = None) -> None:
        self.config = config or NavConfig()
        self.store = store or RouteStore(self.config)

        self._initialized = False
        self._state = NavigationState.IDLE
        self._session: Optional[_Session] = None
        self._display_mode = DisplayMode.MAP_WITH_OVERLAY
        self._position: Optional[GPSPosition] = None
        self._simulation = False
        self._map_view_in_simulation = False
        self._update_count = 0

        handles = count(1)
        self._navigation_observers = ObserverRegistry("navigation", handles)
        self._display_observers = ObserverRegistry("display", handles)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def initialize(self) -> Result:
        """Prepare the route store. Calling it again is a no-op."""
        if self._initialized:
            return success()

        logger.info("Initializing navigation engine...")
        result = self.store.prepare()
        if not result.ok:
            return result
        self._initialized = True
        logger.info(f"Navigation engine initialized, routes dir: {self.store.routes_dir}")
        return success()

    def dispose(self) -> None:
        """Stop navigation and drop every observer."""
        logger.info("Disposing navigation engine...")
        self.stop_navigation()
        self._navigation_observers.clear()
        self._display_observers.clear()
        self._initialized = False

    def set_simulation_mode(self, enabled: bool) -> None:
        """Simulated positions follow the route exactly: skip off-road checks."""
        self._simulation = enabled
        logger.info(f"Simulation mode: {enabled}")

    def set_use_map_view_in_simulation(self, enabled: bool) -> None:
        """Allow the map view while simulating instead of forcing the turn screen."""
        self._map_view_in_simulation = enabled
        logger.info(f"Use map view in simulation: {enabled}")

    # ------------------------------------------------------------------
    # Route store pass-throughs
    # ------------------------------------------------------------------

    def save_route(self, route: Route) -> Result:
        if not self._initialized:
            return failure(DriveError.service_not_initialized())
        return self.store.save(route)

    def load_route(self, route_id: str) -> Result:
        if not self._initialized:
            return failure(DriveError.service_not_initialized())
        return self.store.load(route_id)

    def delete_route(self, route_id: str) -> Result:
        if not self._initialized:
            return failure(DriveError.service_not_initialized())
        return self.store.delete(route_id)

    def list_routes(self) -> Result:
        if not self._initialized:
            return failure(DriveError.service_not_initialized())
        return self.store.list()

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    def start_navigation(self, route: Union[Route, str]) -> Result:
        """
        Begin navigating a route.

        Args:
            route: A Route, or the id of a route in the store.

        Returns:
            Result; on failure the engine is left exactly as it was.
        """
        if not self._initialized:
            return failure(DriveError.service_not_initialized())

        if self._state in ACTIVE_STATES:
            return failure(DriveError.navigation_already_active())

        if isinstance(route, str):
            loaded = self.store.load(route)
            if not loaded.ok:
                return loaded
            route = loaded.value

        normalized = self._normalize_route(route)
        if not normalized.ok:
            logger.warning(f"Rejected route: {normalized.error}")
            return normalized
        active_route: Route = normalized.value

        logger.info(
            f"Starting navigation to: {active_route.destination} "
            f"({len(active_route.waypoints)} waypoints, {active_route.total_distance:.0f} m)"
        )
        self._session = _Session(
            route=active_route,
            distance_remaining=active_route.total_distance,
        )
        self._state = NavigationState.NAVIGATING
        self._display_mode = self._cruise_display_mode()
        self._update_count = 0

        if self._position is not None:
            self._check_off_road()

        self._notify_navigation(UpdateType.STATUS)
        self._notify_display()
        return success()

    def stop_navigation(self) -> Result:
        """End the session. Always succeeds, including when already idle."""
        if self._state == NavigationState.IDLE:
            return success()

        logger.info("Stopping navigation")
        self._session = None
        self._state = NavigationState.CANCELLED
        self._notify_navigation(UpdateType.STATUS)

        # CANCELLED is only ever seen by observers of the event above
        self._state = NavigationState.IDLE
        self._display_mode = DisplayMode.MAP_WITH_OVERLAY
        return success()

    # ------------------------------------------------------------------
    # GPS update — call this on every position fix
    # ------------------------------------------------------------------

    def update_position(self, position: GPSPosition) -> None:
        """
        Process a new position fix.

        Args:
            position: Current GPS or simulated position.
        """
        eps = self.config.no_fix_epsilon_deg
        if self._simulation and abs(position.latitude) < eps and abs(position.longitude) < eps:
            # A real receiver without a fix reports (0, 0); keep the simulated position
            logger.warning(
                f"Rejecting no-fix position during simulation: "
                f"{position.latitude}, {position.longitude}"
            )
            return

        self._position = position

        if self._session is None or self._state not in ACTIVE_STATES:
            return

        if self._check_off_road():
            self._notify_navigation(UpdateType.STATUS)
            return

        self._advance_waypoints()
        self._notify_navigation(UpdateType.STATUS)

    # ------------------------------------------------------------------
    # Read-only access
    # ------------------------------------------------------------------

    def get_navigation_status(self) -> NavigationStatus:
        status = NavigationStatus(state=self._state, display_mode=self._display_mode)
        session = self._session
        if session is None:
            return status

        waypoints = session.route.waypoints
        status.current_waypoint_index = session.waypoint_index
        status.distance_to_next_turn = session.distance_to_next_turn
        status.distance_remaining = session.distance_remaining
        status.time_remaining = self._time_remaining(session)
        status.progress = self._progress(session)
        status.route = session.route
        if session.waypoint_index < len(waypoints):
            status.next_turn = waypoints[session.waypoint_index]

        if self._state == NavigationState.OFF_ROAD and session.off_road is not None:
            status.bearing_to_route = session.off_road.bearing
            status.distance_to_route = session.off_road.distance
        return status

    def get_navigation_state(self) -> NavigationState:
        return self._state

    def get_active_route(self) -> Optional[Route]:
        return self._session.route if self._session else None

    def is_navigating(self) -> bool:
        # ARRIVED counts so the arrival screen stays up until stop_navigation()
        return self._state in NAVIGATING_STATES

    @property
    def current_position(self) -> Optional[GPSPosition]:
        return self._position

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on_navigation_update(self, callback: Callable[[NavigationUpdate], None]) -> int:
        """Register for every NavigationUpdate. Returns a handle for unsubscribe()."""
        return self._navigation_observers.subscribe(callback)

    def on_display_update(self, callback: Callable[[], None]) -> int:
        """Register for redraw notifications. Returns a handle for unsubscribe()."""
        return self._display_observers.subscribe(callback)

    def unsubscribe(self, handle: int) -> bool:
        return (
            self._navigation_observers.unsubscribe(handle)
            or self._display_observers.unsubscribe(handle)
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _normalize_route(self, route: Route) -> Result:
        """Private copy of the route with at least DEPART and ARRIVE waypoints."""
        route = copy.deepcopy(route)
        waypoints = route.waypoints or []
        if len(waypoints) >= 2:
            route.waypoints = list(waypoints)
            return success(route)

        geometry = route.geometry or []
        if len(geometry) < 2:
            return failure(DriveError.invalid_route(
                "Route must have at least 2 waypoints or a geometry of at least 2 points"
            ))

        logger.info(f"Route {route.id} has {len(waypoints)} waypoints, generating from geometry")
        route.waypoints = synthesize_waypoints(geometry, route.destination, self.config)
        route.total_distance = polyline_length(geometry)
        return success(route)

    def _cruise_display_mode(self) -> DisplayMode:
        if self._simulation and not self._map_view_in_simulation:
            return DisplayMode.TURN_SCREEN
        return DisplayMode.MAP_WITH_OVERLAY

    def _off_road_reference(self) -> Tuple[float, float]:
        """(distance_m, bearing) from the current position to the off-road reference."""
        pos = self._position
        route = self._session.route

        if self.config.off_road_reference == "route":
            points = route.geometry or [(w.latitude, w.longitude) for w in route.waypoints]
            here = (pos.latitude, pos.longitude)
            best: Optional[Tuple[float, float, float]] = None
            for start, end in zip(points[:-1], points[1:]):
                candidate = closest_point_on_segment(here, start, end)
                if best is None or candidate[2] < best[2]:
                    best = candidate
            if best is not None:
                lat, lon, distance = best
                return distance, calculate_bearing(pos.latitude, pos.longitude, lat, lon)

        start = route.start_point
        distance = haversine_distance(pos.latitude, pos.longitude, start.lat, start.lon)
        return distance, calculate_bearing(pos.latitude, pos.longitude, start.lat, start.lon)

    def _check_off_road(self) -> bool:
        """Update OFF_ROAD <-> NAVIGATING. Returns True while off-road."""
        session = self._session
        if session is None or self._position is None:
            return False

        if self._simulation:
            if self._state == NavigationState.OFF_ROAD:
                self._return_to_route()
            return False

        distance, bearing = self._off_road_reference()
        if distance > self.config.off_road_distance_m:
            session.off_road = _OffRoad(bearing=bearing, distance=distance)
            if self._state != NavigationState.OFF_ROAD:
                logger.info(f"User is off-road, {round(distance)} m from route")
                self._state = NavigationState.OFF_ROAD
                self._display_mode = DisplayMode.OFF_ROAD_ARROW
                self._notify_navigation(UpdateType.OFF_ROAD)
                self._notify_display()
            return True

        if self._state == NavigationState.OFF_ROAD:
            self._return_to_route()
        return False

    def _return_to_route(self) -> None:
        logger.info("User is back on route")
        self._session.off_road = None
        self._state = NavigationState.NAVIGATING
        self._notify_navigation(UpdateType.STATUS)

    def _advance_waypoints(self) -> None:
        """Consume reached waypoints, then refresh distances and display mode."""
        session = self._session
        pos = self._position
        waypoints = session.route.waypoints
        prev_index = session.waypoint_index
        prev_mode = self._display_mode

        # First fix away from the departure point: the driver has already left it
        if session.waypoint_index == 0 and len(waypoints) > 1:
            depart = waypoints[0]
            if haversine_distance(
                pos.latitude, pos.longitude, depart.latitude, depart.longitude,
            ) > self.config.waypoint_reached_distance_m:
                logger.info(f"Departed: {depart.instruction}")
                session.waypoint_index = 1

        # Bounded by the waypoint count even if every remaining point is in range
        for _ in range(len(waypoints)):
            index = session.waypoint_index
            if index >= len(waypoints):
                break
            waypoint = waypoints[index]
            distance = haversine_distance(
                pos.latitude, pos.longitude, waypoint.latitude, waypoint.longitude,
            )
            if distance > self.config.waypoint_reached_distance_m:
                break

            logger.info(f"Waypoint {index} reached: {waypoint.instruction}")
            self._notify_navigation(UpdateType.WAYPOINT_REACHED)
            session.waypoint_index += 1
            session.turn_announced = False

            if session.waypoint_index >= len(waypoints):
                logger.info(f"Destination reached: {session.route.destination}")
                session.distance_to_next_turn = 0.0
                session.distance_remaining = 0.0
                self._state = NavigationState.ARRIVED
                self._display_mode = DisplayMode.ARRIVED
                self._notify_navigation(UpdateType.ARRIVED)
                self._notify_display()
                return

        index = session.waypoint_index
        target = waypoints[index]
        session.distance_to_next_turn = haversine_distance(
            pos.latitude, pos.longitude, target.latitude, target.longitude,
        )
        session.distance_remaining = session.distance_to_next_turn + sum(
            w.distance for w in waypoints[index + 1:]
        )

        approaching = session.distance_to_next_turn <= self.config.turn_screen_distance_m
        self._display_mode = DisplayMode.TURN_SCREEN if approaching else self._cruise_display_mode()

        if approaching and not session.turn_announced:
            session.turn_announced = True
            logger.debug(f"Turn approaching, {round(session.distance_to_next_turn)} m to turn")
            self._notify_navigation(UpdateType.TURN_APPROACHING)
        elif not approaching:
            session.turn_announced = False

        if index != prev_index or self._display_mode != prev_mode:
            self._notify_display()

    def _time_remaining(self, session: _Session) -> int:
        if session.distance_remaining <= 0:
            return 0
        return _round_half_up(session.distance_remaining / self.config.average_speed_ms)

    def _progress(self, session: _Session) -> int:
        total = session.route.total_distance
        if total <= 0:
            return 0
        covered = total - session.distance_remaining
        return max(0, min(100, _round_half_up(covered / total * 100)))

    def _notify_navigation(self, update_type: UpdateType) -> None:
        self._update_count += 1
        update = NavigationUpdate(type=update_type, status=self.get_navigation_status())

        # Every Nth plain status update, and every lifecycle event
        if update_type != UpdateType.STATUS or self._update_count % self.config.status_log_interval == 0:
            status = update.status
            logger.info(
                f"Nav update #{self._update_count}: type={update_type.value}, "
                f"state={status.state.value}, waypoint={status.current_waypoint_index}, "
                f"dist={round(status.distance_to_next_turn)}m, "
                f"callbacks={len(self._navigation_observers)}"
            )
        self._navigation_observers.notify(update)

    def _notify_display(self) -> None:
        self._display_observers.notify()
