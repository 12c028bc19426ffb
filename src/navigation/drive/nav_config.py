# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

import os
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Threshold defaults (metres unless noted)
# ---------------------------------------------------------------------------

OFF_ROAD_DISTANCE: float = 500.0
WAYPOINT_REACHED_DISTANCE: float = 30.0
TURN_SCREEN_DISTANCE: float = 500.0

AVERAGE_SPEED_KMH: float = 50.0           # used for the ETA estimate

# A fix this close to (0, 0) is a GPS reporting "no fix"
NO_FIX_EPSILON_DEG: float = 0.001


# ---------------------------------------------------------------------------
# Waypoint synthesis defaults
# ---------------------------------------------------------------------------

SEGMENT_DISTANCE: float = 30.0            # look-behind / look-ahead along the path
SCAN_STEP: float = 10.0
TURN_THRESHOLD_DEG: float = 25.0
MIN_WAYPOINT_SPACING: float = 50.0

STRAIGHT_LIMIT_DEG: float = 20.0
SLIGHT_LIMIT_DEG: float = 50.0
NORMAL_LIMIT_DEG: float = 110.0


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class NavConfig:
    # Progress tracking
    off_road_distance_m: float = OFF_ROAD_DISTANCE
    waypoint_reached_distance_m: float = WAYPOINT_REACHED_DISTANCE
    turn_screen_distance_m: float = TURN_SCREEN_DISTANCE
    off_road_reference: str = "start"      # "start" | "route"
    average_speed_kmh: float = AVERAGE_SPEED_KMH
    no_fix_epsilon_deg: float = NO_FIX_EPSILON_DEG

    # Waypoint synthesis
    segment_distance_m: float = SEGMENT_DISTANCE
    scan_step_m: float = SCAN_STEP
    turn_threshold_deg: float = TURN_THRESHOLD_DEG
    min_waypoint_spacing_m: float = MIN_WAYPOINT_SPACING
    straight_limit_deg: float = STRAIGHT_LIMIT_DEG
    slight_limit_deg: float = SLIGHT_LIMIT_DEG
    normal_limit_deg: float = NORMAL_LIMIT_DEG

    # Logging
    status_log_interval: int = 10          # log every Nth plain status update
    log_dir: str = "."                     # directory for the session log
    session_filename: str = "nav_session.jsonl"

    # Storage
    routes_dir: str = os.path.join("data", "routes")

    def __post_init__(self) -> None:
        if self.off_road_reference not in ("start", "route"):
            raise ValueError(
                f"off_road_reference must be 'start' or 'route', got {self.off_road_reference!r}"
            )

    @property
    def average_speed_ms(self) -> float:
        return self.average_speed_kmh / 3.6

    @property
    def session_filepath(self) -> str:
        return os.path.join(self.log_dir, self.session_filename)

    def route_filepath(self, route_id: str) -> str:
        return os.path.join(self.routes_dir, f"{route_id}.json")
