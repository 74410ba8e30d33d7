from __future__ import annotations

"""Functional test bootstrap for the checklist service.

Each test gets its own file-backed SQLite database under pytest's tmp_path,
so row counts never leak between tests. The app is built through
`create_app` with the engine injected, and entering the TestClient context
runs the startup schema bootstrap exactly as a real server start would.
"""

import typing as t

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.engine import Engine

from checklist_service.config import AppConfig, ChecklistConfig, DatabaseConfig
from checklist_service.db.base import create_db_engine
from checklist_service.main import create_app


@pytest.fixture()
def app_config(tmp_path) -> AppConfig:
    db_file = tmp_path / "checklists.db"
    return AppConfig(
        database=DatabaseConfig(dsn=f"sqlite:///{db_file}"),
        checklist=ChecklistConfig(),
    )


@pytest.fixture()
def engine(app_config: AppConfig) -> t.Iterator[Engine]:
    eng = create_db_engine(
        app_config.database, checkout_timeout_seconds=app_config.checklist.write_timeout_seconds
    )
    yield eng
    eng.dispose()


@pytest.fixture()
def client(app_config: AppConfig, engine: Engine) -> t.Iterator[TestClient]:
    app = create_app(app_config, engine)
    with TestClient(app) as c:
        yield c


def fetch_checklists(engine: Engine) -> list[dict]:
    with engine.connect() as conn:
        rows = conn.execute(
            text("SELECT id, child_name, date_of_check, specialist, created_at FROM checklists ORDER BY id")
        ).mappings().all()
    return [dict(r) for r in rows]


def fetch_answers(engine: Engine, checklist_id: int | None = None) -> list[dict]:
    sql = "SELECT id, checklist_id, key_name, label, value, comment FROM answers"
    params: dict = {}
    if checklist_id is not None:
        sql += " WHERE checklist_id = :cid"
        params["cid"] = checklist_id
    with engine.connect() as conn:
        rows = conn.execute(text(sql + " ORDER BY id"), params).mappings().all()
    return [dict(r) for r in rows]


@pytest.fixture()
def rows(engine: Engine):
    """Accessor pair for asserting on persisted rows."""

    class _Rows:
        def checklists(self) -> list[dict]:
            return fetch_checklists(engine)

        def answers(self, checklist_id: int | None = None) -> list[dict]:
            return fetch_answers(engine, checklist_id)

    return _Rows()
