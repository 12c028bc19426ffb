# models.py
# Shared data structures and enums used across all modules.

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


LatLon = Tuple[float, float]


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coord:
    """Immutable geographic coordinate."""
    lat: float
    lon: float

    def to_dict(self) -> dict:
        return {"latitude": self.lat, "longitude": self.lon}

    @staticmethod
    def from_dict(d: dict) -> "Coord":
        return Coord(float(d["latitude"]), float(d["longitude"]))


@dataclass
class GPSPosition:
    """A parsed position fix pushed in by the GPS or simulation source."""
    latitude: float
    longitude: float
    altitude: Optional[float] = None
    speed: Optional[float] = None          # m/s
    bearing: Optional[float] = None        # degrees
    timestamp: datetime = field(default_factory=datetime.now)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ManeuverType(Enum):
    DEPART            = "depart"
    STRAIGHT          = "straight"
    SLIGHT_LEFT       = "slight_left"
    LEFT              = "left"
    SHARP_LEFT        = "sharp_left"
    SLIGHT_RIGHT      = "slight_right"
    RIGHT             = "right"
    SHARP_RIGHT       = "sharp_right"
    UTURN             = "uturn"
    ARRIVE            = "arrive"
    MERGE             = "merge"
    FORK_LEFT         = "fork_left"
    FORK_RIGHT        = "fork_right"
    RAMP_LEFT         = "ramp_left"
    RAMP_RIGHT        = "ramp_right"
    ROUNDABOUT        = "roundabout"
    ROUNDABOUT_EXIT_1 = "roundabout_exit_1"
    ROUNDABOUT_EXIT_2 = "roundabout_exit_2"
    ROUNDABOUT_EXIT_3 = "roundabout_exit_3"
    ROUNDABOUT_EXIT_4 = "roundabout_exit_4"
    ROUNDABOUT_EXIT_5 = "roundabout_exit_5"
    ROUNDABOUT_EXIT_6 = "roundabout_exit_6"
    ROUNDABOUT_EXIT_7 = "roundabout_exit_7"
    ROUNDABOUT_EXIT_8 = "roundabout_exit_8"


class NavigationState(Enum):
    IDLE       = "idle"
    NAVIGATING = "navigating"
    OFF_ROAD   = "off_road"
    ARRIVED    = "arrived"
    CANCELLED  = "cancelled"


class DisplayMode(Enum):
    TURN_SCREEN      = "turn_screen"         # full-screen arrow, close to a turn
    MAP_WITH_OVERLAY = "map_with_overlay"
    OFF_ROAD_ARROW   = "off_road_arrow"      # arrow back towards the route
    ARRIVED          = "arrived"


class UpdateType(Enum):
    STATUS           = "status"
    WAYPOINT_REACHED = "waypoint_reached"
    TURN_APPROACHING = "turn_approaching"
    OFF_ROAD         = "off_road"
    ARRIVED          = "arrived"


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Waypoint:
    """A point along a route at which a maneuver instruction applies."""
    latitude: float
    longitude: float
    instruction: str
    maneuver_type: ManeuverType
    distance: float                        # metres from the previous waypoint
    index: int
    street_name: Optional[str] = None
    bearing_after: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "instruction": self.instruction,
            "maneuver_type": self.maneuver_type.value,
            "distance": self.distance,
            "index": self.index,
            "street_name": self.street_name,
            "bearing_after": self.bearing_after,
        }

    @staticmethod
    def from_dict(d: dict) -> "Waypoint":
        return Waypoint(
            latitude=float(d["latitude"]),
            longitude=float(d["longitude"]),
            instruction=d["instruction"],
            maneuver_type=ManeuverType(d["maneuver_type"]),
            distance=float(d["distance"]),
            index=int(d["index"]),
            street_name=d.get("street_name"),
            bearing_after=d.get("bearing_after"),
        )


@dataclass
class Route:
    """A planned route: maneuver waypoints plus the full drawing geometry."""
    id: str
    destination: str
    start_point: Coord
    end_point: Coord
    waypoints: List[Waypoint] = field(default_factory=list)
    geometry: List[LatLon] = field(default_factory=list)
    total_distance: float = 0.0            # metres
    estimated_time: float = 0.0            # seconds
    created_at: datetime = field(default_factory=datetime.now)
    source_name: Optional[str] = None
    routing_profile: Optional[str] = None  # "car" | "bike" | "foot"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "destination": self.destination,
            "created_at": self.created_at.isoformat(),
            "start_point": self.start_point.to_dict(),
            "end_point": self.end_point.to_dict(),
            "waypoints": [w.to_dict() for w in self.waypoints],
            "geometry": [[lat, lon] for lat, lon in self.geometry],
            "total_distance": self.total_distance,
            "estimated_time": self.estimated_time,
            "source_name": self.source_name,
            "routing_profile": self.routing_profile,
        }

    @staticmethod
    def from_dict(d: dict) -> "Route":
        return Route(
            id=d["id"],
            destination=d["destination"],
            created_at=datetime.fromisoformat(d["created_at"]),
            start_point=Coord.from_dict(d["start_point"]),
            end_point=Coord.from_dict(d["end_point"]),
            waypoints=[Waypoint.from_dict(w) for w in d.get("waypoints") or []],
            geometry=[(float(p[0]), float(p[1])) for p in d.get("geometry") or []],
            total_distance=float(d.get("total_distance", 0.0)),
            estimated_time=float(d.get("estimated_time", 0.0)),
            source_name=d.get("source_name"),
            routing_profile=d.get("routing_profile"),
        )


@dataclass(frozen=True)
class RouteSummary:
    """Listing entry returned by RouteStore.list()."""
    id: str
    destination: str
    created_at: datetime


# ---------------------------------------------------------------------------
# Navigation status
# ---------------------------------------------------------------------------

@dataclass
class NavigationStatus:
    """Snapshot of the engine, rebuilt on every read."""
    state: NavigationState
    display_mode: DisplayMode
    current_waypoint_index: int = 0
    distance_to_next_turn: float = 0.0     # metres
    distance_remaining: float = 0.0        # metres
    time_remaining: int = 0                # seconds
    progress: int = 0                      # percent, 0-100
    route: Optional[Route] = None
    next_turn: Optional[Waypoint] = None
    bearing_to_route: Optional[float] = None   # OFF_ROAD only
    distance_to_route: Optional[float] = None  # OFF_ROAD only

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "display_mode": self.display_mode.value,
            "current_waypoint_index": self.current_waypoint_index,
            "distance_to_next_turn": self.distance_to_next_turn,
            "distance_remaining": self.distance_remaining,
            "time_remaining": self.time_remaining,
            "progress": self.progress,
            "route_id": self.route.id if self.route else None,
            "next_turn": self.next_turn.to_dict() if self.next_turn else None,
            "bearing_to_route": self.bearing_to_route,
            "distance_to_route": self.distance_to_route,
        }


@dataclass
class NavigationUpdate:
    """Event fanned out to navigation observers."""
    type: UpdateType
    status: NavigationStatus
    timestamp: datetime = field(default_factory=datetime.now)
