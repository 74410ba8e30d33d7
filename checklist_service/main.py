from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from checklist_service.config import AppConfig, load_config
from checklist_service.db.base import create_db_engine, ping_database
from checklist_service.db.bootstrap import ensure_schema
from checklist_service.http.errors import (
    handle_http_exception,
    handle_persistence_error,
    handle_request_validation_error,
    handle_submission_rejected,
    handle_unexpected_error,
)
from checklist_service.http.request_log import RequestLogMiddleware
from checklist_service.logging_setup import configure_logging
from checklist_service.logic.repository_checklists import ChecklistWriter, PersistenceError
from checklist_service.logic.validation import SubmissionRejected
from checklist_service.routes import api_router

logger = logging.getLogger(__name__)


def _health_check(engine: Engine) -> Callable[[], dict]:
    def check() -> dict:
        try:
            ping_database(engine)
            return {"status": "ok", "db": True}
        except SQLAlchemyError:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False}

    return check


def create_app(
    config: Optional[AppConfig] = None,
    engine: Optional[Engine] = None,
    *,
    bootstrap_schema: bool = True,
) -> FastAPI:
    """Build the FastAPI application.

    `config` defaults to `load_config()`. `engine` defaults to a pooled Engine
    built from `config.database`; an engine passed in stays owned by the
    caller and is not disposed on shutdown. With `bootstrap_schema` the
    tables are created (idempotently) at startup, and a failure there aborts
    startup so the app never serves without its schema.
    """
    configure_logging()
    config = config or load_config()
    owns_engine = engine is None
    engine = engine or create_db_engine(
        config.database, checkout_timeout_seconds=config.checklist.write_timeout_seconds
    )

    app = FastAPI(title="Checklist Intake Service")
    app.state.config = config
    app.state.engine = engine
    app.state.checklist_config = config.checklist
    app.state.checklist_writer = ChecklistWriter(
        engine, timeout_seconds=config.checklist.write_timeout_seconds
    )

    app.add_exception_handler(SubmissionRejected, handle_submission_rejected)
    app.add_exception_handler(PersistenceError, handle_persistence_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestLogMiddleware)

    @app.on_event("startup")
    def _bootstrap_schema() -> None:
        if not bootstrap_schema:
            logger.info("schema bootstrap disabled; assuming tables exist")
            return
        # SchemaBootstrapError propagates and stops the server from starting
        ensure_schema(engine)

    @app.on_event("shutdown")
    def _dispose_engine() -> None:
        if owns_engine:
            engine.dispose()
            logger.info("db_engine_disposed")

    app.include_router(api_router, prefix="/api")

    health_check = _health_check(engine)

    @app.get("/health")
    def health() -> dict:
        return health_check()

    # Mounted last so API routes and /health take precedence
    static_dir = config.server.static_dir
    if static_dir:
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        logger.info("serving static files from %s", static_dir)

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
