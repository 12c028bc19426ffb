import os
from datetime import datetime

import pytest

from navigation.drive.errors import DriveErrorCode
from navigation.drive.models import ManeuverType, Route
from navigation.drive.route_store import RouteStore

from conftest import build_route


@pytest.fixture
def store(config) -> RouteStore:
    store = RouteStore(config)
    assert store.prepare().ok
    return store


def test_prepare_creates_directory_and_is_idempotent(config):
    store = RouteStore(config)
    assert store.prepare().ok
    assert store.prepare().ok
    assert os.path.isdir(config.routes_dir)


def test_save_and_load_round_trip(store):
    route = build_route()
    saved = store.save(route)
    assert saved.ok
    assert saved.value == route.id

    loaded = store.load(route.id)
    assert loaded.ok
    restored: Route = loaded.value

    assert isinstance(restored.created_at, datetime)
    assert restored == route
    assert restored.waypoints[1].maneuver_type == ManeuverType.LEFT
    assert restored.waypoints[1].street_name == "Oak St"
    assert restored.geometry[0] == (37.7749, -122.4194)


def test_save_rejects_route_without_waypoints(store):
    result = store.save(build_route(waypoints=[]))
    assert not result.ok
    assert result.error.code == DriveErrorCode.ROUTE_INVALID


def test_load_missing_route(store):
    result = store.load("does-not-exist")
    assert not result.ok
    assert result.error.code == DriveErrorCode.ROUTE_NOT_FOUND
    assert result.error.context["route_id"] == "does-not-exist"


def test_load_corrupt_route(store, config):
    with open(config.route_filepath("broken"), "w", encoding="utf-8") as f:
        f.write("{not json")

    result = store.load("broken")
    assert not result.ok
    assert result.error.code == DriveErrorCode.ROUTE_LOAD_FAILED
    assert result.error.context["operation"] == "load"
    assert result.error.recoverable


def test_delete(store):
    store.save(build_route())
    assert store.delete("test-route-1").ok
    assert store.load("test-route-1").error.code == DriveErrorCode.ROUTE_NOT_FOUND


def test_delete_missing_route(store):
    result = store.delete("nope")
    assert result.error.code == DriveErrorCode.ROUTE_NOT_FOUND


def test_list_newest_first_and_skips_bad_files(store, config):
    store.save(build_route(id="old", destination="Old", created_at=datetime(2023, 5, 1)))
    store.save(build_route(id="new", destination="New", created_at=datetime(2024, 6, 1)))
    store.save(build_route(id="mid", destination="Mid", created_at=datetime(2024, 1, 1)))
    with open(os.path.join(config.routes_dir, "garbage.json"), "w", encoding="utf-8") as f:
        f.write("[]")
    with open(os.path.join(config.routes_dir, "notes.txt"), "w", encoding="utf-8") as f:
        f.write("ignored")

    result = store.list()

    assert result.ok
    assert [r.id for r in result.value] == ["new", "mid", "old"]
    assert result.value[0].destination == "New"
    assert isinstance(result.value[0].created_at, datetime)


def test_list_empty(store):
    assert store.list().value == []
