from datetime import datetime

import pytest

from navigation.drive.engine import NavigationEngine
from navigation.drive.models import Coord, GPSPosition, ManeuverType, Route, Waypoint
from navigation.drive.nav_config import NavConfig


# San Francisco test route: 111 m north, then 176 m west
START = (37.7749, -122.4194)
TURN = (37.7759, -122.4194)
END = (37.7759, -122.4214)


def gps(lat: float, lon: float) -> GPSPosition:
    return GPSPosition(latitude=lat, longitude=lon, altitude=0.0, speed=10.0, bearing=0.0)


def build_route(**overrides) -> Route:
    waypoints = [
        Waypoint(START[0], START[1], "Head north on Main St", ManeuverType.DEPART, 0.0, 0,
                 street_name="Main St", bearing_after=0.0),
        Waypoint(TURN[0], TURN[1], "Turn left onto Oak St", ManeuverType.LEFT, 111.0, 1,
                 street_name="Oak St", bearing_after=270.0),
        Waypoint(END[0], END[1], "Arrive at destination", ManeuverType.ARRIVE, 176.0, 2),
    ]
    fields = dict(
        id="test-route-1",
        destination="Test Destination",
        created_at=datetime(2024, 1, 1, 12, 0, 0),
        start_point=Coord(*START),
        end_point=Coord(*END),
        waypoints=waypoints,
        geometry=[START, TURN, END],
        total_distance=287.0,
        estimated_time=60.0,
    )
    fields.update(overrides)
    return Route(**fields)


@pytest.fixture
def config(tmp_path) -> NavConfig:
    return NavConfig(
        routes_dir=str(tmp_path / "routes"),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def engine(config) -> NavigationEngine:
    engine = NavigationEngine(config)
    assert engine.initialize().ok
    yield engine
    engine.dispose()


@pytest.fixture
def route() -> Route:
    return build_route()


@pytest.fixture
def updates(engine):
    """Every NavigationUpdate the engine emits, in order."""
    received = []
    engine.on_navigation_update(received.append)
    return received
