import json
import os

import pytest

from navigation.drive.geo_utils import haversine_distance
from navigation.drive.main import interpolate_track, main

from conftest import START, TURN, END, build_route


def test_interpolate_track_spacing():
    points = list(interpolate_track([START, TURN, END], 10.0))

    assert points[0] == START
    assert points[-1] == END
    gaps = [
        haversine_distance(a[0], a[1], b[0], b[1])
        for a, b in zip(points[:-2], points[1:-1])
    ]
    # Steps stay 10 m apart, also across the corner (measured as a chord)
    assert all(g <= 10.0 + 1e-6 for g in gaps)
    assert min(gaps[:5]) == pytest.approx(10.0, rel=1e-3)


def test_interpolate_track_short_input():
    assert list(interpolate_track([], 10.0)) == []
    assert list(interpolate_track([START], 10.0)) == [START, START]


def test_main_replays_route_file(tmp_path, capsys):
    path = tmp_path / "route.json"
    path.write_text(json.dumps(build_route().to_dict()), encoding="utf-8")
    log_dir = tmp_path / "logs"

    code = main([str(path), "--routes-dir", str(tmp_path / "routes"),
                 "--log-dir", str(log_dir)])

    out = capsys.readouterr().out
    assert code == 0
    assert "[waypoint_reached]" in out
    assert "[arrived] ARRIVED" in out
    assert "Final state: ARRIVED" in out
    assert os.path.getsize(log_dir / "nav_session.jsonl") > 0


def test_main_replays_stored_route(tmp_path, capsys):
    routes_dir = tmp_path / "routes"
    os.makedirs(routes_dir)
    route = build_route(id="stored")
    (routes_dir / "stored.json").write_text(json.dumps(route.to_dict()), encoding="utf-8")

    assert main(["stored", "--routes-dir", str(routes_dir)]) == 0
    assert "Final state: ARRIVED" in capsys.readouterr().out


def test_main_unknown_route(tmp_path, capsys):
    code = main(["missing", "--routes-dir", str(tmp_path / "routes")])
    assert code == 1
    assert "Could not load route" in capsys.readouterr().out


def test_interpolate_track_rejects_non_positive_step():
    with pytest.raises(ValueError):
        list(interpolate_track([START, END], 0.0))


@pytest.mark.parametrize("step", ["0", "-5"])
def test_main_rejects_non_positive_step(tmp_path, step):
    path = tmp_path / "route.json"
    path.write_text(json.dumps(build_route().to_dict()), encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        main([str(path), "--routes-dir", str(tmp_path / "routes"), "--step-m", step])
    assert exc.value.code == 2


@pytest.mark.parametrize("content", ["{not json", "{}", "[1, 2]"])
def test_main_malformed_route_file(tmp_path, capsys, content):
    path = tmp_path / "broken.json"
    path.write_text(content, encoding="utf-8")

    code = main([str(path), "--routes-dir", str(tmp_path / "routes")])

    assert code == 1
    assert "Could not load route" in capsys.readouterr().out
