"""
db/connection.py
-----------------
Pooled PostgreSQL access for the pandal catalogue and saved routes.

Usage:
    from db.connection import get_conn

    with get_conn(readonly=True) as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT id, name FROM pandals")
            rows = cur.fetchall()          # list of dicts (RealDictCursor)

Connections come from one process-wide psycopg2 ThreadedConnectionPool,
created on first use.  Every connection:
  - returns rows as dicts (column name → value)
  - carries a server-side statement_timeout (POSTGRES_STATEMENT_TIMEOUT_MS)

get_conn() commits on clean exit, rolls back and re-raises on error, and
always hands the connection back.  Database errors are not wrapped.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

import psycopg2
import psycopg2.extras
import psycopg2.pool

import config

_pool: psycopg2.pool.ThreadedConnectionPool | None = None
_pool_lock = threading.Lock()


def _build_pool() -> psycopg2.pool.ThreadedConnectionPool:
    return psycopg2.pool.ThreadedConnectionPool(
        minconn=config.POSTGRES_MIN_CONN,
        maxconn=config.POSTGRES_MAX_CONN,
        host=config.POSTGRES_HOST,
        port=config.POSTGRES_PORT,
        dbname=config.POSTGRES_DB,
        user=config.POSTGRES_USER,
        password=config.POSTGRES_PASSWORD,
        cursor_factory=psycopg2.extras.RealDictCursor,
        options=f"-c statement_timeout={config.POSTGRES_STATEMENT_TIMEOUT_MS}",
    )


def get_pool() -> psycopg2.pool.ThreadedConnectionPool:
    global _pool
    with _pool_lock:
        if _pool is None or _pool.closed:
            _pool = _build_pool()
        return _pool


@contextmanager
def get_conn(readonly: bool = False) -> Iterator[psycopg2.extensions.connection]:
    """Borrow a pooled connection for one transaction."""
    pool = get_pool()
    conn = pool.getconn()
    try:
        conn.set_session(readonly=readonly)
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.putconn(conn)


def close_pool() -> None:
    """Close every pooled connection (process shutdown)."""
    global _pool
    with _pool_lock:
        if _pool is not None and not _pool.closed:
            _pool.closeall()
        _pool = None
