# waypoint_synthesizer.py
# Turn detection on a bare polyline.
# Returns DEPART ... turns ... ARRIVE waypoints for routes that arrive without maneuvers.

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .geo_utils import haversine_distance, calculate_bearing, normalize_angle
from .models import LatLon, ManeuverType, Waypoint
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


INSTRUCTIONS = {
    ManeuverType.DEPART:       "Depart",
    ManeuverType.STRAIGHT:     "Continue straight",
    ManeuverType.SLIGHT_LEFT:  "Turn slightly left",
    ManeuverType.LEFT:         "Turn left",
    ManeuverType.SHARP_LEFT:   "Turn sharp left",
    ManeuverType.SLIGHT_RIGHT: "Turn slightly right",
    ManeuverType.RIGHT:        "Turn right",
    ManeuverType.SHARP_RIGHT:  "Turn sharp right",
    ManeuverType.UTURN:        "Make a U-turn",
    ManeuverType.ARRIVE:       "Arrive",
    ManeuverType.MERGE:        "Merge",
    ManeuverType.FORK_LEFT:    "Keep left at the fork",
    ManeuverType.FORK_RIGHT:   "Keep right at the fork",
    ManeuverType.RAMP_LEFT:    "Take the ramp on the left",
    ManeuverType.RAMP_RIGHT:   "Take the ramp on the right",
    ManeuverType.ROUNDABOUT:   "Enter the roundabout",
}
for _exit in range(1, 9):
    INSTRUCTIONS[ManeuverType(f"roundabout_exit_{_exit}")] = (
        f"At the roundabout, take exit {_exit}"
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _cumulative_distances(geometry: Sequence[LatLon]) -> np.ndarray:
    """Along-path distance in metres at every vertex, starting at 0."""
    legs = [
        haversine_distance(a[0], a[1], b[0], b[1])
        for a, b in zip(geometry[:-1], geometry[1:])
    ]
    return np.concatenate(([0.0], np.cumsum(legs)))


def _vertex_window(cumulative: np.ndarray, d: float, segment: float) -> Optional[Tuple[int, int, int]]:
    """
    Vertex indices (behind, current, ahead) around scan distance d.

    current is the first vertex at or beyond d, behind the last vertex at or
    before d - segment, ahead the first vertex at or beyond d + segment.
    behind and ahead are always a non-zero distance away from current, so
    duplicate points never produce a zero-length bearing.
    Returns None when the window runs off either end of the polyline.
    """
    last = len(cumulative) - 1
    current = int(np.searchsorted(cumulative, d, side="left"))
    if current > last:
        return None
    here = cumulative[current]

    behind = min(
        int(np.searchsorted(cumulative, d - segment, side="right")) - 1,
        int(np.searchsorted(cumulative, here, side="left")) - 1,
    )
    ahead = max(
        int(np.searchsorted(cumulative, d + segment, side="left")),
        int(np.searchsorted(cumulative, here, side="right")),
    )
    if behind < 0 or ahead > last:
        return None
    return behind, current, ahead


def classify_turn(angle: float, config: Optional[NavConfig] = None) -> ManeuverType:
    """
    Maneuver type for a signed turn angle.

    Args:
        angle:  Turn angle in degrees, positive = right.
        config: NavConfig with the classification limits.

    Returns:
        STRAIGHT, SLIGHT_*, LEFT/RIGHT or SHARP_*.
    """
    config = config or NavConfig()
    magnitude = abs(angle)
    if magnitude < config.straight_limit_deg:
        return ManeuverType.STRAIGHT

    right = angle > 0
    if magnitude < config.slight_limit_deg:
        return ManeuverType.SLIGHT_RIGHT if right else ManeuverType.SLIGHT_LEFT
    if magnitude < config.normal_limit_deg:
        return ManeuverType.RIGHT if right else ManeuverType.LEFT
    return ManeuverType.SHARP_RIGHT if right else ManeuverType.SHARP_LEFT


def instruction_for(maneuver: ManeuverType, destination: Optional[str] = None) -> str:
    if maneuver == ManeuverType.ARRIVE and destination:
        return f"Arrive at {destination}"
    return INSTRUCTIONS[maneuver]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def polyline_length(geometry: Sequence[LatLon]) -> float:
    """Total along-path length of a polyline in metres."""
    if len(geometry) < 2:
        return 0.0
    return float(_cumulative_distances(geometry)[-1])


def synthesize_waypoints(
    geometry: Sequence[LatLon],
    destination: Optional[str] = None,
    config: Optional[NavConfig] = None,
) -> List[Waypoint]:
    """
    Detect turns along a polyline and build maneuver waypoints.

    The path is scanned at fixed steps; at each step the bearing over the
    segment behind is compared with the bearing over the segment ahead.
    Consecutive qualifying steps describe one physical turn, which is
    emitted once at the step with the largest bearing change among those
    at least min_waypoint_spacing_m past the previous waypoint.

    Args:
        geometry:    Ordered (lat, lon) points, at least two.
        destination: Destination label for the ARRIVE instruction.
        config:      NavConfig instance.

    Returns:
        Waypoints starting with DEPART and ending with ARRIVE. The sum of
        their distances equals the polyline length.
    """
    config = config or NavConfig()
    if len(geometry) < 2:
        raise ValueError("geometry needs at least 2 points")

    cumulative = _cumulative_distances(geometry)
    total = float(cumulative[-1])
    segment = config.segment_distance_m

    first = geometry[0]
    waypoints: List[Waypoint] = [Waypoint(
        latitude=first[0],
        longitude=first[1],
        instruction=instruction_for(ManeuverType.DEPART),
        maneuver_type=ManeuverType.DEPART,
        distance=0.0,
        index=0,
    )]

    prev_distance = 0.0
    prev_vertex = 0
    # Candidates of the current run: (|angle|, d, angle, current, outgoing)
    run: List[Tuple[float, float, float, int, float]] = []

    def emit(candidates) -> None:
        nonlocal prev_distance, prev_vertex
        # Strongest step of the run that is far enough from the previous waypoint
        eligible = [
            c for c in candidates
            if c[1] - prev_distance >= config.min_waypoint_spacing_m and c[3] != prev_vertex
        ]
        if not eligible:
            return
        _, d, angle, current, outgoing = max(eligible, key=lambda c: c[0])
        maneuver = classify_turn(angle, config)
        lat, lon = geometry[current]
        waypoints.append(Waypoint(
            latitude=lat,
            longitude=lon,
            instruction=instruction_for(maneuver),
            maneuver_type=maneuver,
            distance=d - prev_distance,
            index=len(waypoints),
            bearing_after=outgoing,
        ))
        logger.debug(f"Turn at vertex {current}: {maneuver.value} ({angle:.1f}°) at {d:.0f} m")
        prev_distance = d
        prev_vertex = current

    for d in np.arange(2 * segment, total - segment + 1e-9, config.scan_step_m):
        d = float(d)
        window = _vertex_window(cumulative, d, segment)
        candidate = None
        if window:
            behind, current, ahead = window
            b_lat, b_lon = geometry[behind]
            c_lat, c_lon = geometry[current]
            a_lat, a_lon = geometry[ahead]
            incoming = calculate_bearing(b_lat, b_lon, c_lat, c_lon)
            outgoing = calculate_bearing(c_lat, c_lon, a_lat, a_lon)
            angle = normalize_angle(outgoing - incoming)
            if abs(angle) >= config.turn_threshold_deg:
                candidate = (abs(angle), d, angle, current, outgoing)

        if candidate:
            run.append(candidate)
        elif run:
            emit(run)
            run = []

    if run:
        emit(run)

    last = geometry[-1]
    waypoints.append(Waypoint(
        latitude=last[0],
        longitude=last[1],
        instruction=instruction_for(ManeuverType.ARRIVE, destination),
        maneuver_type=ManeuverType.ARRIVE,
        distance=total - prev_distance,
        index=len(waypoints),
    ))

    logger.info(
        f"Synthesized {len(waypoints)} waypoints from {len(geometry)} points ({total:.0f} m)"
    )
    return waypoints
