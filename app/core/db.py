# app/core/db.py
"""
PostgreSQL connection pool.

The pool is created on first use so importing repositories never opens a
connection. Handlers run in FastAPI's threadpool, hence the threaded pool.
"""
from __future__ import annotations
import threading
from contextlib import contextmanager
from typing import Iterator, Optional
from psycopg2.extensions import connection
from psycopg2.pool import ThreadedConnectionPool
from .config import settings

_pool: Optional[ThreadedConnectionPool] = None
_pool_lock = threading.Lock()


def _get_pool() -> ThreadedConnectionPool:
    global _pool
    if _pool is None:
        with _pool_lock:
            if _pool is None:
                _pool = ThreadedConnectionPool(
                    settings.PG_POOL_MIN, settings.PG_POOL_MAX,
                    host=settings.PG_HOST,
                    port=settings.PG_PORT,
                    dbname=settings.PG_DB,
                    user=settings.PG_USER,
                    password=settings.PG_PASSWORD,
                    sslmode=settings.PG_SSLMODE,
                    options=f"-c search_path={settings.PG_SCHEMA}",
                )
    return _pool


@contextmanager
def get_conn() -> Iterator[connection]:
    """
    Borrow a connection for one unit of work.

    Everything executed inside the block commits together or rolls back together.
    """
    pool = _get_pool()
    conn = pool.getconn()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.putconn(conn)


def close_pool() -> None:
    global _pool
    with _pool_lock:
        if _pool is not None:
            _pool.closeall()
            _pool = None
