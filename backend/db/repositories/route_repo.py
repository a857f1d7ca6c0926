"""
db/repositories/route_repo.py
-------------------------------
Read / update queries for the `routes` table (saved itineraries).

Expected columns:
  routes (id, start_lat, start_lng, end_lat, end_lng, transport_mode,
          pandal_ids text[], total_distance_km, estimated_time_minutes,
          optimization_score, roadmap jsonb, used_fallback, provider_error,
          updated_at)

All functions accept a psycopg2 connection from db.connection.get_conn(),
whose cursors return dict rows.  The caller owns the transaction.
"""

from __future__ import annotations

from typing import Any

from psycopg2.extras import Json


def get_route(conn, route_id: str) -> dict | None:
    """Return a saved route row, or None."""
    sql = """
        SELECT id::text, start_lat, start_lng, end_lat, end_lng, transport_mode,
               pandal_ids, total_distance_km, estimated_time_minutes,
               optimization_score, roadmap
        FROM routes
        WHERE id::text = %s
    """
    with conn.cursor() as cur:
        cur.execute(sql, (route_id,))
        row = cur.fetchone()
        return dict(row) if row is not None else None


def update_route_optimization(conn, route_id: str, metrics: dict[str, Any]) -> int:
    """
    Overwrite the provider-derived columns of one route.

    metrics keys: total_distance_km, estimated_time_minutes,
    optimization_score, roadmap (list of dicts), used_fallback, provider_error.
    Returns the number of updated rows (0 if the id vanished).
    """
    params = {**metrics, "roadmap": Json(metrics.get("roadmap", [])), "route_id": route_id}
    sql = """
        UPDATE routes SET
            total_distance_km      = %(total_distance_km)s,
            estimated_time_minutes = %(estimated_time_minutes)s,
            optimization_score     = %(optimization_score)s,
            roadmap                = %(roadmap)s,
            used_fallback          = %(used_fallback)s,
            provider_error         = %(provider_error)s,
            updated_at             = NOW()
        WHERE id::text = %(route_id)s
    """
    with conn.cursor() as cur:
        cur.execute(sql, params)
        return cur.rowcount
