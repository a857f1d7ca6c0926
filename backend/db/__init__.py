"""
db/
----
Storage collaborators for the route planning engine.

The engine only sees the PandalStore / RouteStore protocols (db.stores).

  PostgreSQL (psycopg2) — pandals, food_places, routes tables
    db.postgres_store.PostgresCatalogue  over  db.connection.get_conn()

  JSON catalogue — same interfaces, held in memory
    db.memory_store.InMemoryCatalogue

Public exports (import from here for convenience):
    from db import InMemoryCatalogue, PandalStore, RouteStore
    from db.postgres_store import PostgresCatalogue
"""

from db.memory_store import InMemoryCatalogue
from db.stores import PandalStore, RouteStore

__all__ = ["InMemoryCatalogue", "PandalStore", "RouteStore"]
