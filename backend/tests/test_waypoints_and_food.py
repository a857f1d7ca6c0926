import threading
import time
from unittest import mock

import pytest

from errors import NotFoundError, PlanCancelled
from modules.planning.food_stop_selector import (
    ROUTE_SAMPLE_TIMING,
    FoodStopSelector,
    compatible_price_ranges,
    sample_points,
)
from modules.planning.waypoint_optimizer import WaypointOptimizer
from modules.tool_usage.request_context import RequestContext
from schemas.route import GeoPoint, RoadmapStep

START = GeoPoint(22.5726, 88.3639)
END = GeoPoint(22.5448, 88.3426)


# ── WaypointOptimizer ─────────────────────────────────────────────────────────

def test_optimizer_sums_legs_and_rounds_minutes_up(make_client, directions_payload, catalogue):
    client = make_client({"directions/json": directions_payload(4, meters=1500, seconds=610)})
    pandals = catalogue.get_pandals(["p1", "p2", "p3"])

    result = WaypointOptimizer(client).optimize(START, END, pandals, "car")

    assert result.distance_meters == 6000
    assert result.total_distance_km == 6.0
    assert result.estimated_time_minutes == 41        # ceil(2440 / 60)
    assert result.leg_count == 4
    assert len(result.roadmap) == 8
    assert result.used_fallback is False
    sent = client._session.calls[0].params["waypoints"]
    assert sent == "optimize:true|22.604,88.362|22.596,88.37|22.6042,88.3622"


def test_optimizer_requires_pandals(make_client):
    client = make_client()
    with pytest.raises(NotFoundError):
        WaypointOptimizer(client).optimize(START, END, [], "walking")
    assert client._session.calls == []


def test_optimizer_passes_fallback_through(make_client, catalogue):
    client = make_client(api_key="")
    result = WaypointOptimizer(client).optimize(START, END, catalogue.get_pandals(["p1", "p2"]), "walking")
    assert result.used_fallback
    assert result.leg_count == 1
    assert len(result.roadmap) == 1
    assert result.estimated_time_minutes == 45
    assert result.total_distance_km == pytest.approx(3.787, abs=0.01)


# ── Per-stop strategy ─────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "budget, expected",
    [
        ("low", ["f1", "f4"]),
        ("medium", ["f2", "f4"]),
        ("high", ["f3", "f4"]),
        ("caviar", ["f2", "f4"]),
    ],
)
def test_per_stop_best_rated_within_budget(catalogue, budget, expected):
    selector = FoodStopSelector(food_store=catalogue)
    pandals = catalogue.get_pandals(["p1", "p2", "p3"])
    stops = selector.select(pandals, [], budget)
    # p1 and p3 share the same best place; it appears once, in pandal order
    assert [s.id for s in stops] == expected
    assert all(s.source == "catalogue" for s in stops)


def test_per_stop_skips_pandals_without_affordable_food(catalogue):
    selector = FoodStopSelector(food_store=catalogue)
    stops = selector.select(catalogue.get_pandals(["p4", "p5"]), [], "low")
    assert stops == []
    stops = selector.select(catalogue.get_pandals(["p4", "p5"]), [], "medium")
    assert [s.id for s in stops] == ["f5"]


class SlowFoodStore:
    """Wraps a catalogue; each lookup sleeps for its centre's delay and records when it finished."""

    def __init__(self, inner, delays):
        self.inner = inner
        self.delays = delays
        self.finished = []
        self._lock = threading.Lock()

    def food_places_near(self, center, radius_km):
        time.sleep(self.delays[center])
        with self._lock:
            self.finished.append(center)
        return self.inner.food_places_near(center, radius_km)


def test_per_stop_merge_is_input_ordered_regardless_of_completion(catalogue):
    p2, p1, p4 = catalogue.get_pandals(["p2", "p1", "p4"])
    store = SlowFoodStore(catalogue, {p2.location: 0.15, p1.location: 0.10, p4.location: 0.05})
    selector = FoodStopSelector(food_store=store, max_workers=3)

    stops = selector.select([p2, p1, p4], [], "medium")

    # lookups finish last-submitted first, the merge still follows pandal order
    assert store.finished == [p4.location, p1.location, p2.location]
    assert [s.id for s in stops] == ["f4", "f2", "f5"]


def test_per_stop_honours_cancellation(catalogue):
    ctx = RequestContext()
    ctx.cancel()
    selector = FoodStopSelector(food_store=catalogue)
    with pytest.raises(PlanCancelled):
        selector.select(catalogue.get_pandals(["p1"]), [], "low", ctx=ctx)


def test_store_errors_propagate(catalogue):
    broken = mock.Mock()
    broken.food_places_near.side_effect = ConnectionError("db down")
    selector = FoodStopSelector(food_store=broken)
    with pytest.raises(ConnectionError):
        selector.select(catalogue.get_pandals(["p1"]), [], "low")


def test_compatible_price_ranges():
    assert compatible_price_ranges("low") == ("low",)
    assert compatible_price_ranges("Medium") == ("low", "moderate")
    assert compatible_price_ranges("high") == ("low", "moderate", "expensive")
    assert compatible_price_ranges(None) == ("low", "moderate")


# ── Along-route strategy ──────────────────────────────────────────────────────

def _steps(n):
    return [
        RoadmapStep(instruction=f"step {i}", distance_meters=100, time_minutes=1, end_location=GeoPoint(22.0 + i, 88.0))
        for i in range(n)
    ]


def test_sample_points_are_evenly_spaced():
    steps = _steps(8)
    assert sample_points(steps, 3) == [GeoPoint(23.0, 88.0), GeoPoint(25.0, 88.0), GeoPoint(27.0, 88.0)]


def test_sample_points_short_roadmaps():
    assert sample_points(_steps(0), 3) == []
    assert sample_points(_steps(1), 3) == []
    assert sample_points(_steps(3), 3) == [GeoPoint(22.0, 88.0), GeoPoint(23.0, 88.0)]
    assert sample_points(_steps(8), 0) == []


def _places(params):
    lat = params["location"].split(",")[0]
    results = [
        {"place_id": f"{lat}-{i}", "name": f"Stall {i}", "rating": 4.0,
         "geometry": {"location": {"lat": float(lat), "lng": 88.0}}}
        for i in range(5)
    ]
    results.append({"place_id": "shared", "name": "Chain", "geometry": {"location": {"lat": 1, "lng": 2}}})
    return {"status": "OK", "results": [results[-1]] + results[:-1]}


def test_along_route_keeps_three_per_sample_and_dedupes(make_client):
    client = make_client({"place/nearbysearch/json": _places})
    selector = FoodStopSelector(directions=client)

    stops = selector.select([], _steps(8), "low", cuisine=["Bengali"])

    assert [s.id for s in stops] == [
        "shared", "23.0-0", "23.0-1",
        "25.0-0", "25.0-1",
        "27.0-0", "27.0-1",
    ]
    assert all(s.source == "places" and s.timing == ROUTE_SAMPLE_TIMING for s in stops)
    params = client._session.calls[0].params
    assert params["keyword"] == "Bengali restaurant food"
    assert params["radius"] == 500


def test_along_route_survives_provider_failure(make_client):
    client = make_client({"place/nearbysearch/json": {"status": "OVER_QUERY_LIMIT"}})
    selector = FoodStopSelector(directions=client)
    assert selector.select([], _steps(8), "low") == []


def test_no_strategy_configured_yields_nothing(catalogue):
    assert FoodStopSelector().select(catalogue.get_pandals(["p1"]), _steps(8), "low") == []
