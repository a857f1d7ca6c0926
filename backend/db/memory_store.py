"""
db/memory_store.py
-------------------
In-memory catalogue implementing both PandalStore and RouteStore.

Catalogue JSON shape:

    {
      "pandals":     [{"id": "p1", "name": "...", "location": {"latitude": .., "longitude": ..},
                       "rating": 4.5, "is_active": true}, ...],
      "food_places": [{"id": "f1", "name": "...", "location": {...},
                       "rating": 4.2, "price_range": "low"}, ...],
      "routes":      [{"id": "r1", "start_point": {...}, "end_point": {...},
                       "transport_mode": "car", "pandals_covered": ["p1", "p2"]}, ...]
    }
"""

from __future__ import annotations

import copy
import json
import threading
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from db.stores import food_place_from_row, pandal_from_row, route_from_row
from errors import NotFoundError
from modules.tool_usage.distance_tool import bounding_box, distance_km, in_box
from schemas.route import FoodPlace, GeoPoint, OptimizedRoute, PointOfInterest


class InMemoryCatalogue:
    def __init__(
        self,
        pandals: Iterable[PointOfInterest] = (),
        food_places: Iterable[FoodPlace] = (),
        routes: Iterable[OptimizedRoute] = (),
    ) -> None:
        self._pandals = {p.id: p for p in pandals}
        self._food_places = list(food_places)
        self._routes = {r.id: r for r in routes}
        self._lock = threading.Lock()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InMemoryCatalogue":
        return cls(
            pandals=[pandal_from_row(r) for r in data.get("pandals", [])],
            food_places=[food_place_from_row(r) for r in data.get("food_places", [])],
            routes=[route_from_row(r) for r in data.get("routes", [])],
        )

    @classmethod
    def from_json(cls, path: str | Path) -> "InMemoryCatalogue":
        with open(path, encoding="utf-8") as fh:
            return cls.from_dict(json.load(fh))

    # ── PandalStore ───────────────────────────────────────────────────────────

    def get_pandals(self, ids: Sequence[str]) -> list[PointOfInterest]:
        found = (self._pandals.get(i) for i in ids)
        return [p for p in found if p is not None and p.is_active]

    def food_places_near(self, center: GeoPoint, radius_km: float) -> list[FoodPlace]:
        box = bounding_box(center, radius_km)
        return [
            f for f in self._food_places
            if f.is_active
            and in_box(f.location, box)
            and distance_km(center, f.location) <= radius_km
        ]

    # ── RouteStore ────────────────────────────────────────────────────────────

    def get_route(self, route_id: str) -> Optional[OptimizedRoute]:
        with self._lock:
            route = self._routes.get(route_id)
            return copy.deepcopy(route) if route is not None else None

    def save_route_metrics(self, route: OptimizedRoute) -> None:
        with self._lock:
            stored = self._routes.get(route.id)
            if stored is None:
                raise NotFoundError(f"Route {route.id!r} not found")
            stored.total_distance_km = route.total_distance_km
            stored.estimated_time_minutes = route.estimated_time_minutes
            stored.roadmap = list(route.roadmap)
            stored.optimization_score = route.optimization_score
            stored.used_fallback = route.used_fallback
            stored.provider_error = route.provider_error
