"""SQLAlchemy engine construction and request-scoped engine access.

The service targets PostgreSQL in production and supports SQLite for local
runs and tests. No declarative models are defined here; this module only
manages the connection pool. The engine is built once by the process
entrypoint (or a test) and handed to `create_app`, which stores it on
`app.state`; nothing in this package keeps it in a module global.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request
from sqlalchemy import create_engine, event, text as sql_text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from checklist_service.config import DatabaseConfig

logger = logging.getLogger(__name__)


def normalize_dsn(dsn: str) -> str:
    """Translate libpq-style `postgres://` DSNs into SQLAlchemy URLs."""
    if dsn.startswith("postgres://"):
        return "postgresql+psycopg2://" + dsn[len("postgres://"):]
    if dsn.startswith("postgresql://"):
        return "postgresql+psycopg2://" + dsn[len("postgresql://"):]
    return dsn


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(config: DatabaseConfig, *, checkout_timeout_seconds: Optional[float] = None) -> Engine:
    """Build the pooled Engine described by `config`.

    PostgreSQL and file-backed SQLite get a bounded QueuePool: `pool.size`
    idle connections, `pool.size + pool.max_overflow` open at most, recycled
    after `pool.recycle_seconds`, and callers beyond the bound wait up to
    `pool.timeout_seconds` for a connection. `checkout_timeout_seconds`
    lowers that wait so a write cannot queue past its own deadline. For
    SQLite in-memory URLs a StaticPool keeps one connection alive so the
    schema survives.
    """
    url = make_url(normalize_dsn(config.dsn))
    pool_timeout = config.pool.timeout_seconds
    if checkout_timeout_seconds is not None:
        pool_timeout = min(pool_timeout, checkout_timeout_seconds)
    pool_kwargs = {
        "pool_size": config.pool.size,
        "max_overflow": config.pool.max_overflow,
        "pool_recycle": config.pool.recycle_seconds,
        "pool_timeout": pool_timeout,
    }
    kwargs: dict = {"pool_pre_ping": True}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            kwargs.update(pool_kwargs)
    else:
        kwargs.update(pool_kwargs)
        kwargs["connect_args"] = {"connect_timeout": max(1, int(config.connect_timeout_seconds))}
    engine = create_engine(url, **kwargs)
    if url.get_backend_name() == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    logger.info("db_engine_created backend=%s pool_timeout=%s", url.get_backend_name(), pool_timeout)
    return engine


def ping_database(engine: Engine) -> None:
    """Run `SELECT 1`; any driver error propagates to the caller."""
    with engine.connect() as conn:
        conn.execute(sql_text("SELECT 1")).scalar()


def get_engine(request: Request) -> Engine:
    """FastAPI dependency returning the Engine attached to the running app."""
    return request.app.state.engine
