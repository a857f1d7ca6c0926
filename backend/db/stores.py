"""
db/stores.py
-------------
Collaborator interfaces the engine consumes, plus the row → record mappers
shared by every implementation.

  PandalStore — active pandals by id; curated food places near a point
  RouteStore  — load a saved itinerary; write back re-optimized metrics

Implementations:
  db.memory_store.InMemoryCatalogue    (JSON catalogue; CLI and tests)
  db.postgres_store.PostgresCatalogue  (psycopg2 pool)
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from schemas.route import (
    FoodPlace,
    GeoPoint,
    OptimizedRoute,
    PointOfInterest,
    RoadmapStep,
)


class PandalStore(Protocol):
    def get_pandals(self, ids: Sequence[str]) -> list[PointOfInterest]:
        """Active pandals among *ids*; order is not guaranteed."""
        ...

    def food_places_near(self, center: GeoPoint, radius_km: float) -> list[FoodPlace]:
        """Active food places whose great-circle distance from *center* is at most *radius_km*."""
        ...


class RouteStore(Protocol):
    def get_route(self, route_id: str) -> Optional[OptimizedRoute]:
        ...

    def save_route_metrics(self, route: OptimizedRoute) -> None:
        """
        Persist distance, time, roadmap, score and fallback diagnostics.

        Raises NotFoundError when the route no longer exists.
        """
        ...


# ── Row mappers ────────────────────────────────────────────────────────────────

def _point(row: dict[str, Any], lat_key: str = "latitude", lon_key: str = "longitude") -> GeoPoint:
    loc = row.get("location")
    if isinstance(loc, dict):
        return GeoPoint(latitude=loc.get(lat_key), longitude=loc.get(lon_key))
    return GeoPoint(latitude=row.get(lat_key), longitude=row.get(lon_key))


def pandal_from_row(row: dict[str, Any]) -> PointOfInterest:
    """Accepts nested ``{"location": {...}}`` or flat latitude/longitude columns."""
    return PointOfInterest(
        id=str(row["id"]),
        name=row.get("name", ""),
        location=_point(row),
        rating=float(row.get("rating") or 0.0),
        crowd_level=row.get("crowd_level") or "medium",
        opening_time=row.get("opening_time") or "",
        closing_time=row.get("closing_time") or "",
        is_active=bool(row.get("is_active", True)),
    )


def food_place_from_row(row: dict[str, Any]) -> FoodPlace:
    return FoodPlace(
        id=str(row["id"]),
        name=row.get("name", ""),
        location=_point(row),
        rating=float(row.get("rating") or 0.0),
        price_range=(row.get("price_range") or "low").lower(),
        is_active=bool(row.get("is_active", True)),
    )


def step_from_row(row: dict[str, Any]) -> RoadmapStep:
    return RoadmapStep(
        instruction=row.get("instruction", ""),
        distance_meters=int(row.get("distance_meters", 0)),
        time_minutes=int(row.get("time_minutes", 0)),
        end_location=_point(row["end_location"]) if "end_location" in row else GeoPoint(0.0, 0.0),
    )


def route_from_row(row: dict[str, Any]) -> OptimizedRoute:
    """Saved itinerary; only the fields re-optimize needs must be present."""
    return OptimizedRoute(
        id=str(row["id"]),
        start_point=_point(row["start_point"]),
        end_point=_point(row["end_point"]),
        transport_mode=row.get("transport_mode", "walking"),
        pandals_covered=[str(i) for i in row.get("pandals_covered", [])],
        roadmap=[step_from_row(s) for s in row.get("roadmap", [])],
        total_distance_km=float(row.get("total_distance_km", 0.0)),
        estimated_time_minutes=int(row.get("estimated_time_minutes", 0)),
        optimization_score=int(row.get("optimization_score", 0)),
    )
