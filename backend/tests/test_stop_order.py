"""
Local visit ordering: greedy nearest neighbour over Haversine estimates or
a provider distance matrix.
"""

import json

import pytest

import main
from errors import PlanCancelled, ValidationError
from modules.observability.logger import StructuredLogger
from modules.planning.stop_order_optimizer import (
    SHORTEST_DISTANCE,
    SHORTEST_TIME,
    StopOrderOptimizer,
    hop_speed_kmh,
    trip_speed_kmh,
)
from modules.tool_usage.directions_client import parse_distance_matrix
from modules.tool_usage.request_context import RequestContext
from schemas.route import GeoPoint, PointOfInterest
from fakes import CATALOGUE


def _poi(pid, lat, lng=88.36):
    return PointOfInterest(id=pid, name=pid.upper(), location=GeoPoint(lat, lng))


# Same longitude: every hop is R x Δlat.  A is 4.89 km north, B 5.50 km south.
START = _poi("s", 22.50)
NEAR_SLOW = _poi("a", 22.544)
FAR_FAST = _poi("b", 22.4505)


def _cell(meters, seconds, traffic=None):
    cell = {"status": "OK", "distance": {"value": meters}, "duration": {"value": seconds}}
    if traffic is not None:
        cell["duration_in_traffic"] = {"value": traffic}
    return cell


def _matrix(rows):
    return {"status": "OK", "rows": [{"elements": row} for row in rows]}


# p1, p2, p4: by road p2 is nearer to p1, but slower in traffic than p4
ROAD_MATRIX = _matrix([
    [_cell(0, 0), _cell(2000, 600, traffic=1800), _cell(5000, 1200)],
    [_cell(2000, 600), _cell(0, 0), _cell(3000, 900)],
    [_cell(5000, 1200), _cell(3000, 900), _cell(0, 0)],
])


# ── Speed tables ──────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "hour, km, speed",
    [(9, 1.0, 12.0), (10, 1.0, 12.0), (11, 1.0, 18.0), (19, 1.0, 10.0),
     (19, 6.0, 15.0), (22, 1.0, 25.0), (3, 1.0, 30.0), (3, 5.0, 30.0)],
)
def test_hop_speed(hour, km, speed):
    assert hop_speed_kmh(hour, km) == speed


@pytest.mark.parametrize("hour, speed", [(9, 15.0), (18, 12.0), (23, 35.0), (6, 35.0), (7, 22.0), (15, 22.0)])
def test_trip_speed(hour, speed):
    assert trip_speed_kmh(hour) == speed


# ── Haversine ordering ────────────────────────────────────────────────────────

def test_distance_priority_takes_nearest_hop_first():
    order = StopOrderOptimizer().order([START, FAR_FAST, NEAR_SLOW], SHORTEST_DISTANCE, departure_hour=19)

    assert order.stop_ids == ["s", "a", "b"]
    assert order.used_matrix is False
    assert [s.step for s in order.stops] == [1, 2, 3]
    assert [s.distance_to_next_km for s in order.stops] == [4.9, 10.4, None]
    assert order.total_distance_km == 15.3
    assert order.estimated_time_minutes == 151       # 15.29 km at 12 km/h + 3 x 25


def test_time_priority_prefers_the_faster_long_hop_in_evening_traffic():
    # 4.89 km at 10 km/h is slower than 5.50 km at 10 + 5 km/h
    order = StopOrderOptimizer().order([START, FAR_FAST, NEAR_SLOW], SHORTEST_TIME, departure_hour=19)

    assert order.stop_ids == ["s", "b", "a"]
    assert [s.distance_to_next_km for s in order.stops] == [5.5, 10.4, None]
    assert order.total_distance_km == 15.9
    assert order.estimated_time_minutes == 155


def test_ordering_is_repeatable(catalogue):
    pandals = catalogue.get_pandals(["p4", "p1", "p5", "p3"])
    optimizer = StopOrderOptimizer()
    first = optimizer.order(pandals, SHORTEST_TIME, departure_hour=20)
    second = optimizer.order(pandals, SHORTEST_TIME, departure_hour=20)
    assert first == second
    assert first.stop_ids == ["p4", "p5", "p1", "p3"]


def test_two_or_fewer_stops_keep_their_order(make_client, catalogue):
    client = make_client({"distancematrix/json": ROAD_MATRIX})
    order = StopOrderOptimizer(client).order(catalogue.get_pandals(["p4", "p1"]), departure_hour=12)
    assert order.stop_ids == ["p4", "p1"]
    assert order.stops[-1].distance_to_next_km is None
    assert client._session.calls == []


def test_departure_hour_defaults_to_now():
    order = StopOrderOptimizer().order([START, NEAR_SLOW])
    assert 0 <= order.departure_hour <= 23


@pytest.mark.parametrize(
    "priority, hour, fields",
    [
        ("fastest", 10, ["priority"]),
        (SHORTEST_TIME, 24, ["departure_hour"]),
        ("fastest", -1, ["priority", "departure_hour"]),
    ],
)
def test_bad_priority_or_hour_rejected(priority, hour, fields):
    with pytest.raises(ValidationError) as exc:
        StopOrderOptimizer().order([START, NEAR_SLOW], priority, departure_hour=hour)
    assert exc.value.fields == fields


# ── Distance matrix ───────────────────────────────────────────────────────────

def test_matrix_distance_and_time_give_different_orders(make_client, catalogue):
    client = make_client({"distancematrix/json": ROAD_MATRIX})
    optimizer = StopOrderOptimizer(client)
    pandals = catalogue.get_pandals(["p1", "p2", "p4"])

    by_distance = optimizer.order(pandals, SHORTEST_DISTANCE, departure_hour=10)
    by_time = optimizer.order(pandals, SHORTEST_TIME, departure_hour=10)

    assert by_distance.stop_ids == ["p1", "p2", "p4"]
    assert by_time.stop_ids == ["p1", "p4", "p2"]      # 30 + 25 min vs 20 + 25 min
    assert by_distance.used_matrix and by_time.used_matrix

    params = client._session.calls[0].params
    assert params["origins"] == "22.604,88.362|22.596,88.37|22.518,88.353"
    assert params["destinations"] == params["origins"]
    assert params["mode"] == "driving"
    assert params["departure_time"] == "now"


def test_walking_matrix_omits_traffic(make_client, catalogue):
    client = make_client({"distancematrix/json": ROAD_MATRIX})
    StopOrderOptimizer(client).order(
        catalogue.get_pandals(["p1", "p2", "p4"]), transport_mode="walking", departure_hour=10
    )
    params = client._session.calls[0].params
    assert params["mode"] == "walking"
    assert "departure_time" not in params


def test_unroutable_cell_uses_haversine_for_that_hop(make_client, catalogue):
    # p1→p2 has no road answer; its 1.24 km estimate still beats p4's 1.5 km
    rows = [
        [_cell(0, 0), {"status": "ZERO_RESULTS"}, _cell(1500, 300)],
        [_cell(0, 0), _cell(0, 0), _cell(3000, 900)],
        [_cell(0, 0), _cell(3000, 900), _cell(0, 0)],
    ]
    client = make_client({"distancematrix/json": _matrix(rows)})
    order = StopOrderOptimizer(client).order(catalogue.get_pandals(["p1", "p2", "p4"]), departure_hour=10)
    assert order.stop_ids == ["p1", "p2", "p4"]
    assert order.used_matrix


@pytest.mark.parametrize(
    "payload",
    [
        {"status": "REQUEST_DENIED"},
        {"status": "OK", "rows": [{"elements": [_cell(0, 0)] * 3}]},
        {"status": "OK"},
    ],
)
def test_matrix_failure_falls_back_to_haversine(make_client, catalogue, payload):
    client = make_client({"distancematrix/json": payload})
    order = StopOrderOptimizer(client).order(catalogue.get_pandals(["p1", "p4", "p2"]), departure_hour=10)
    assert order.stop_ids == ["p1", "p2", "p4"]
    assert order.used_matrix is False


def test_matrix_skipped_above_point_limit(make_client, catalogue):
    client = make_client({"distancematrix/json": ROAD_MATRIX})
    order = StopOrderOptimizer(client, matrix_max_points=2).order(
        catalogue.get_pandals(["p1", "p4", "p2"]), departure_hour=10
    )
    assert order.stop_ids == ["p1", "p2", "p4"]
    assert client._session.calls == []


def test_matrix_cancellation_propagates(make_client, catalogue):
    ctx = RequestContext()
    ctx.cancel()
    client = make_client({"distancematrix/json": ROAD_MATRIX})
    with pytest.raises(PlanCancelled):
        StopOrderOptimizer(client).order(catalogue.get_pandals(["p1", "p2", "p4"]), departure_hour=10, ctx=ctx)


def test_parse_distance_matrix_prefers_traffic_duration():
    matrix = parse_distance_matrix(ROAD_MATRIX, 3)
    assert matrix.element(0, 1).duration_seconds == 1800
    assert matrix.element(1, 2).distance_meters == 3000
    bad = parse_distance_matrix(_matrix([[{"status": "NOT_FOUND"}]]), 1)
    assert bad.element(0, 0).ok is False
    with pytest.raises(ValueError):
        parse_distance_matrix(ROAD_MATRIX, 2)


# ── Through the planner and the CLI ───────────────────────────────────────────

def test_planner_order_stops_resolves_and_logs(make_planner, tmp_path):
    events = StructuredLogger(logs_dir=tmp_path)
    planner = make_planner(api_key="", event_log=events)

    order = planner.order_stops(
        ["p4", "p1", "p6", "p5", "p3", "p4"], departure_hour=20, request_id="order-1"
    )

    assert order.stop_ids == ["p4", "p5", "p1", "p3"]
    assert events.open_requests == []
    record = json.loads((tmp_path / "order-1.jsonl").read_text(encoding="utf-8"))
    assert record["event_type"] == "stops_ordered"
    assert record["payload"] == {
        "ids": ["p4", "p5", "p1", "p3"], "priority": SHORTEST_DISTANCE, "used_matrix": False,
    }


@pytest.fixture
def catalogue_file(tmp_path):
    path = tmp_path / "catalogue.json"
    path.write_text(json.dumps(CATALOGUE), encoding="utf-8")
    return path


def test_cli_order(catalogue_file, capsys, monkeypatch):
    monkeypatch.setattr("config.GOOGLE_MAPS_API_KEY", "")
    code = main.main([
        "order", "--pandals", "p4", "p1", "p5", "--priority", "shortest-time",
        "--hour", "3", "--catalogue", str(catalogue_file),
    ])
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert [s["id"] for s in out["stops"]] == ["p4", "p5", "p1"]
    assert out["departure_hour"] == 3
    assert out["used_matrix"] is False


def test_cli_order_rejects_bad_hour(catalogue_file, capsys, monkeypatch):
    monkeypatch.setattr("config.GOOGLE_MAPS_API_KEY", "")
    code = main.main(["order", "--pandals", "p1", "p2", "--hour", "30", "--catalogue", str(catalogue_file)])
    assert code == 2
    assert "departure_hour" in capsys.readouterr().err
