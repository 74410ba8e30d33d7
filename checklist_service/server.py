"""Process entrypoint: `python -m checklist_service`.

Startup order: configuration, pooled engine, connectivity check bounded by
the configured connect timeout, schema bootstrap, then uvicorn. A failure in
any step before serving exits the process with status 1. SIGINT/SIGTERM are
handled by uvicorn, which stops accepting connections and gives in-flight
requests `server.shutdown_grace_seconds` to finish.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from checklist_service.config import AppConfig, load_config
from checklist_service.db.base import create_db_engine, ping_database
from checklist_service.db.bootstrap import SchemaBootstrapError, ensure_schema
from checklist_service.logging_setup import UVICORN_LOG_CONFIG, configure_logging
from checklist_service.main import create_app

logger = logging.getLogger(__name__)


def prepare(config: AppConfig) -> Engine:
    """Build the engine, verify the store and bootstrap the schema.

    Returns the ready Engine; raises on any failure.
    """
    engine = create_db_engine(
        config.database, checkout_timeout_seconds=config.checklist.write_timeout_seconds
    )
    try:
        ping_database(engine)
        ensure_schema(engine)
    except Exception:
        engine.dispose()
        raise
    return engine


def main() -> int:
    configure_logging()
    try:
        config = load_config()
    except PydanticValidationError:
        logger.critical("configuration invalid; refusing to start")
        return 1

    try:
        engine = prepare(config)
    except SQLAlchemyError:
        logger.critical("failed to connect to db", exc_info=True)
        return 1
    except SchemaBootstrapError:
        logger.critical("failed to prepare schema", exc_info=True)
        return 1

    # Schema is already in place; the app does not repeat the bootstrap
    app = create_app(config, engine, bootstrap_schema=False)
    logger.info("server listening on %s:%s", config.server.host, config.server.port)
    try:
        uvicorn.run(
            app,
            host=config.server.host,
            port=config.server.port,
            log_config=UVICORN_LOG_CONFIG,
            timeout_graceful_shutdown=config.server.shutdown_grace_seconds,
        )
    finally:
        engine.dispose()
        logger.info("server stopped")
    return 0


if __name__ == "__main__":  # pragma: no cover - manual entrypoint
    sys.exit(main())
