"""Idempotent schema bootstrap.

Runs the dialect's DDL file from `checklist_service/db/schema/` once at
process start. Every statement is `CREATE ... IF NOT EXISTS`, so running it
against an already prepared database is a no-op. This is not a migrations
tool: there is no journal and no versioning.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent / "schema"


class SchemaBootstrapError(RuntimeError):
    """Raised when the schema cannot be created; fatal at startup."""


def schema_file_for(dialect_name: str) -> Path:
    name = (dialect_name or "").lower()
    if "sqlite" in name:
        return SCHEMA_DIR / "sqlite.sql"
    return SCHEMA_DIR / "postgresql.sql"


def _iter_statements(sql: str) -> Iterable[str]:
    """Split a DDL script on ';', dropping `--` comment lines and empty segments.

    pysqlite refuses multiple statements per execute(), so every dialect gets
    the same one-statement-at-a-time treatment.
    """
    for segment in sql.split(";"):
        lines = [ln for ln in segment.splitlines() if not ln.strip().startswith("--")]
        stmt = "\n".join(lines).strip()
        if stmt:
            yield stmt


def _exec_script(conn: Connection, sql: str) -> int:
    count = 0
    for stmt in _iter_statements(sql):
        conn.exec_driver_sql(stmt)
        count += 1
    return count


def ensure_schema(engine: Engine) -> None:
    """Create the checklists/answers tables and the answers index if missing."""
    path = schema_file_for(engine.dialect.name)
    try:
        sql = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SchemaBootstrapError(f"schema file unreadable: {path}") from exc

    try:
        with engine.begin() as conn:
            applied = _exec_script(conn, sql)
    except Exception as exc:
        logger.error("schema_bootstrap_failed file=%s", path.name, exc_info=True)
        raise SchemaBootstrapError("failed to prepare schema") from exc
    logger.info("schema_bootstrap_ok file=%s statements=%s", path.name, applied)


__all__ = ["SchemaBootstrapError", "ensure_schema", "schema_file_for"]
