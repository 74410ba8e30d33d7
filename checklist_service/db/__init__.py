"""Database bootstrap utilities for the checklist service.

Convenience imports for engine construction, the request-scoped engine
dependency and the idempotent schema bootstrap. The DB layer does not leak
ORM models into route handlers.
"""

from checklist_service.db.base import create_db_engine, get_engine, ping_database
from checklist_service.db.bootstrap import SchemaBootstrapError, ensure_schema

__all__ = [
    "create_db_engine",
    "get_engine",
    "ping_database",
    "ensure_schema",
    "SchemaBootstrapError",
]
