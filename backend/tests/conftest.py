"""
Shared fixtures: a fake HTTP session for DirectionsClient, canned provider
payloads and a small Kolkata catalogue.  No test touches the network.
"""

from __future__ import annotations

import copy

import pytest

from db.memory_store import InMemoryCatalogue
from modules.planning.route_planner import RoutePlanner
from modules.tool_usage.directions_client import DirectionsClient
from fakes import CATALOGUE, END, START, FakeSession


# ── Provider payloads ─────────────────────────────────────────────────────────

def _step(i: int, meters: int, seconds: int) -> dict:
    return {
        "html_instructions": f"Head <b>north</b> on <div>Road {i}</div> &amp; continue",
        "distance": {"value": meters},
        "duration": {"value": seconds},
        "end_location": {"lat": 22.60 - i * 0.001, "lng": 88.36 + i * 0.001},
    }


def build_directions(n_legs: int, meters: int = 1500, seconds: int = 610, steps_per_leg: int = 2) -> dict:
    """OK Directions payload; every leg has the same distance and duration."""
    legs = []
    for leg_no in range(n_legs):
        per_step_m, per_step_s = meters // steps_per_leg, seconds // steps_per_leg
        steps = [
            _step(leg_no * steps_per_leg + s, per_step_m, per_step_s)
            for s in range(steps_per_leg)
        ]
        legs.append({
            "distance": {"value": meters},
            "duration": {"value": seconds},
            "steps": steps,
        })
    return {
        "status": "OK",
        "routes": [{"legs": legs, "waypoint_order": list(range(max(0, n_legs - 1)))[::-1]}],
    }


@pytest.fixture
def directions_payload():
    return build_directions


@pytest.fixture
def make_client():
    def _make(routes=None, api_key: str = "test-key") -> DirectionsClient:
        return DirectionsClient(
            api_key=api_key,
            base_url="https://maps.test/api",
            timeout_s=5.0,
            session=FakeSession(routes),
        )
    return _make


# ── Catalogue ─────────────────────────────────────────────────────────────────

@pytest.fixture
def catalogue() -> InMemoryCatalogue:
    return InMemoryCatalogue.from_dict(copy.deepcopy(CATALOGUE))


@pytest.fixture
def route_request():
    def _make(ids=("p1", "p2", "p3"), mode="car", **overrides) -> dict:
        payload = {
            "startPoint": dict(START),
            "endPoint": dict(END),
            "selectedPandalIds": list(ids),
            "transportMode": mode,
            "preferences": {"budget": "low", "cuisine": ["Bengali"]},
            "includeFoodStops": True,
        }
        payload.update(overrides)
        return payload
    return _make


@pytest.fixture
def make_planner(make_client, catalogue):
    def _make(routes=None, api_key: str = "test-key", curated_food: bool = True, event_log=None) -> RoutePlanner:
        return RoutePlanner.from_config(
            pandal_store=catalogue,
            directions=make_client(routes, api_key=api_key),
            curated_food=curated_food,
            event_log=event_log,
        )
    return _make
