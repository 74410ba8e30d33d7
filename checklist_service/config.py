"""Configuration loading for the checklist service.

Rules:
- Primary source: environment variables.
- Overrides below that: one-line text files under `config/`, then
  `service_config.json` at the working directory root.
- Validation: Pydantic models enforce required fields and value constraints.
  A missing database DSN is a validation error, which the process entrypoint
  treats as fatal.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_SERVICE_CONFIG = Path("service_config.json")
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    return value


class PoolConfig(BaseModel):
    # pool_size connections are kept idle; pool_size + max_overflow may be open
    size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=20, ge=0)
    recycle_seconds: int = Field(default=1800, gt=0)
    timeout_seconds: float = Field(default=30.0, gt=0)


class DatabaseConfig(BaseModel):
    dsn: str
    connect_timeout_seconds: float = Field(default=5.0, gt=0)
    pool: PoolConfig = Field(default_factory=PoolConfig)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string (set PG_DSN)")
        return v.strip()


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=8081, gt=0, lt=65536)
    # uvicorn takes whole seconds for the graceful shutdown window
    shutdown_grace_seconds: int = Field(default=10, ge=1)
    static_dir: Optional[str] = None


class ChecklistConfig(BaseModel):
    write_timeout_seconds: float = Field(default=8.0, gt=0)
    default_timezone: str = "UTC"
    allowed_values: list[str] = Field(default_factory=list)

    @field_validator("default_timezone")
    @classmethod
    def timezone_must_resolve(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"checklist.default_timezone is not a known zone: {v}") from e
        return v

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.default_timezone)


class AppConfig(BaseModel):
    database: DatabaseConfig
    server: ServerConfig = Field(default_factory=ServerConfig)
    checklist: ChecklistConfig = Field(default_factory=ChecklistConfig)


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def _split_list(text: Optional[str]) -> list[str]:
    if not text:
        return []
    return [item.strip() for item in str(text).split(",") if item.strip()]


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) service_config.json at the working directory root
    4) Defaults declared on the models
    """

    base = _read_json_file(ROOT_SERVICE_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        if isinstance(cur, list):
            return ",".join(str(item) for item in cur)
        return str(cur) if cur is not None else default

    def _pick(env_key: str, file_key: str, json_key: str, default: Optional[str] = None) -> Optional[str]:
        return _env(env_key) or _read_config_file(file_key) or _base(json_key, default)

    # Database; no default DSN so a missing one fails validation
    dsn = _env("PG_DSN") or _env("DATABASE_URL") or _read_config_file("database.dsn") or _base("database.dsn", "")
    pool_size = _pick("DB_POOL_SIZE", "database.pool.size", "database.pool.size", "5")
    max_overflow = _pick("DB_MAX_OVERFLOW", "database.pool.max_overflow", "database.pool.max_overflow", "20")
    recycle = _pick("DB_POOL_RECYCLE_SECONDS", "database.pool.recycle_seconds", "database.pool.recycle_seconds", "1800")
    pool_timeout = _pick("DB_POOL_TIMEOUT_SECONDS", "database.pool.timeout_seconds", "database.pool.timeout_seconds", "30")
    connect_timeout = _pick(
        "DB_CONNECT_TIMEOUT_SECONDS", "database.connect_timeout_seconds", "database.connect_timeout_seconds", "5"
    )

    # Server
    host = _pick("HOST", "server.host", "server.host", "0.0.0.0")
    port = _pick("PORT", "server.port", "server.port", "8081")
    grace = _pick("SHUTDOWN_GRACE_SECONDS", "server.shutdown_grace_seconds", "server.shutdown_grace_seconds", "10")
    static_dir = _pick("STATIC_DIR", "server.static_dir", "server.static_dir")

    # Checklist write path
    write_timeout = _pick(
        "WRITE_TIMEOUT_SECONDS", "checklist.write_timeout_seconds", "checklist.write_timeout_seconds", "8"
    )
    default_tz = _pick(
        "CHECKLIST_DEFAULT_TIMEZONE", "checklist.default_timezone", "checklist.default_timezone", "UTC"
    )
    allowed_values = _pick("CHECKLIST_ALLOWED_VALUES", "checklist.allowed_values", "checklist.allowed_values")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(
                dsn=dsn or "",
                connect_timeout_seconds=connect_timeout,
                pool=PoolConfig(
                    size=pool_size,
                    max_overflow=max_overflow,
                    recycle_seconds=recycle,
                    timeout_seconds=pool_timeout,
                ),
            ),
            server=ServerConfig(
                host=host,
                port=port,
                shutdown_grace_seconds=grace,
                static_dir=static_dir or None,
            ),
            checklist=ChecklistConfig(
                write_timeout_seconds=write_timeout,
                default_timezone=str(default_tz).strip(),
                allowed_values=_split_list(allowed_values),
            ),
        )
        return cfg
    except PydanticValidationError as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "PoolConfig",
    "ServerConfig",
    "ChecklistConfig",
    "load_config",
]
