"""
db/postgres_store.py
---------------------
PandalStore + RouteStore backed by PostgreSQL.

Every method borrows one pooled connection for its own short transaction;
lookups run read-only.
Database errors (psycopg2.Error and friends) propagate unchanged.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Callable, ContextManager, Optional, Sequence

from db.connection import get_conn
from db.repositories import pandal_repo, route_repo
from db.stores import food_place_from_row, pandal_from_row, route_from_row
from errors import NotFoundError
from modules.tool_usage.distance_tool import bounding_box, distance_km
from schemas.route import FoodPlace, GeoPoint, OptimizedRoute, PointOfInterest


class PostgresCatalogue:
    def __init__(self, conn_factory: Callable[..., ContextManager] = get_conn) -> None:
        self._conn = conn_factory

    def get_pandals(self, ids: Sequence[str]) -> list[PointOfInterest]:
        with self._conn(readonly=True) as conn:
            rows = pandal_repo.get_active_pandals_by_ids(conn, ids)
        return [pandal_from_row(r) for r in rows]

    def food_places_near(self, center: GeoPoint, radius_km: float) -> list[FoodPlace]:
        """Box query in SQL, then the exact great-circle radius."""
        with self._conn(readonly=True) as conn:
            rows = pandal_repo.get_food_places_in_box(conn, *bounding_box(center, radius_km))
        places = [food_place_from_row(r) for r in rows]
        return [f for f in places if distance_km(center, f.location) <= radius_km]

    def get_route(self, route_id: str) -> Optional[OptimizedRoute]:
        with self._conn(readonly=True) as conn:
            row = route_repo.get_route(conn, route_id)
        if row is None:
            return None
        return route_from_row({
            "id":              row["id"],
            "start_point":     {"latitude": row["start_lat"], "longitude": row["start_lng"]},
            "end_point":       {"latitude": row["end_lat"], "longitude": row["end_lng"]},
            "transport_mode":  row["transport_mode"],
            "pandals_covered": row.get("pandal_ids") or [],
            "roadmap":         row.get("roadmap") or [],
            "total_distance_km":      row.get("total_distance_km") or 0.0,
            "estimated_time_minutes": row.get("estimated_time_minutes") or 0,
            "optimization_score":     row.get("optimization_score") or 0,
        })

    def save_route_metrics(self, route: OptimizedRoute) -> None:
        metrics = {
            "total_distance_km":      route.total_distance_km,
            "estimated_time_minutes": route.estimated_time_minutes,
            "optimization_score":     route.optimization_score,
            "roadmap":                [asdict(s) for s in route.roadmap],
            "used_fallback":          route.used_fallback,
            "provider_error":         route.provider_error,
        }
        with self._conn() as conn:
            updated = route_repo.update_route_optimization(conn, route.id, metrics)
        if not updated:
            raise NotFoundError(f"Route {route.id!r} not found")
