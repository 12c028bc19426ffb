# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects, no imports from other project modules.

import math
from typing import Tuple


EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE = 111_320.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Forward azimuth (bearing) from point 1 to point 2 in degrees [0, 360).

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Bearing in degrees, 0 = north, clockwise.
    """
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    d_lon = rlon2 - rlon1
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def normalize_angle(angle: float) -> float:
    """Fold an angle difference into (-180, 180]."""
    angle = math.fmod(angle, 360.0)
    if angle <= -180.0:
        angle += 360.0
    elif angle > 180.0:
        angle -= 360.0
    return angle


def closest_point_on_segment(
    point: Tuple[float, float],
    segment_start: Tuple[float, float],
    segment_end: Tuple[float, float],
) -> Tuple[float, float, float]:
    """
    Closest point of a segment to `point`, using a flat-Earth projection
    centred on `point`. Good for segments up to a few kilometres.

    Args:
        point, segment_start, segment_end: (lat, lon) in decimal degrees.

    Returns:
        (lat, lon, distance_m) of the closest point on the segment.
    """
    lat0, lon0 = point
    lat_scale = METERS_PER_DEGREE
    lon_scale = METERS_PER_DEGREE * math.cos(math.radians(lat0))

    # Segment in local metres, point at the origin
    ax = (segment_start[1] - lon0) * lon_scale
    ay = (segment_start[0] - lat0) * lat_scale
    bx = (segment_end[1] - lon0) * lon_scale
    by = (segment_end[0] - lat0) * lat_scale

    abx, aby = bx - ax, by - ay
    ab_squared = abx * abx + aby * aby
    if ab_squared == 0:
        # Segment is a single point
        d = haversine_distance(lat0, lon0, segment_start[0], segment_start[1])
        return segment_start[0], segment_start[1], d

    t = ((-ax) * abx + (-ay) * aby) / ab_squared
    t = max(0.0, min(1.0, t))
    cx = ax + t * abx
    cy = ay + t * aby

    closest_lat = segment_start[0] + t * (segment_end[0] - segment_start[0])
    closest_lon = segment_start[1] + t * (segment_end[1] - segment_start[1])
    return closest_lat, closest_lon, math.hypot(cx, cy)


def distance_to_segment(
    point: Tuple[float, float],
    segment_start: Tuple[float, float],
    segment_end: Tuple[float, float],
) -> float:
    """Shortest distance in metres from `point` to the segment (not the infinite line)."""
    return closest_point_on_segment(point, segment_start, segment_end)[2]
