"""
db/repositories/pandal_repo.py
--------------------------------
Read queries for the `pandals` and `food_places` tables.

Expected columns:
  pandals     (id, name, latitude, longitude, rating, crowd_level,
               opening_time, closing_time, is_active)
  food_places (id, name, latitude, longitude, rating, price_range, is_active)

All functions accept a psycopg2 connection from db.connection.get_conn(),
whose cursors return dict rows.  The caller owns the transaction.
"""

from __future__ import annotations

from typing import Sequence


def get_active_pandals_by_ids(conn, ids: Sequence[str]) -> list[dict]:
    """Active pandal rows whose id is in *ids* (database order)."""
    if not ids:
        return []
    sql = """
        SELECT id::text, name, latitude, longitude, rating, crowd_level,
               opening_time, closing_time, is_active
        FROM pandals
        WHERE id::text = ANY(%s) AND is_active
    """
    with conn.cursor() as cur:
        cur.execute(sql, (list(ids),))
        return [dict(r) for r in cur.fetchall()]


def get_food_places_in_box(
    conn,
    min_lat: float,
    max_lat: float,
    min_lon: float,
    max_lon: float,
) -> list[dict]:
    """Active food places inside a lat/lon bounding box (callers trim to the radius)."""
    sql = """
        SELECT id::text, name, latitude, longitude, rating, price_range, is_active
        FROM food_places
        WHERE is_active
          AND latitude  BETWEEN %s AND %s
          AND longitude BETWEEN %s AND %s
        ORDER BY id
    """
    with conn.cursor() as cur:
        cur.execute(sql, (min_lat, max_lat, min_lon, max_lon))
        return [dict(r) for r in cur.fetchall()]
