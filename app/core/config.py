"""Environment-driven settings, read once at import.

  APP_ENV               dev | test | prod (default dev)
  LOG_LEVEL             debug | info | warning | error (default info)
  LOG_JSON              emit JSON log lines (default false)
  PORT                  HTTP port (default 8000)
  DATABASE_URL          postgresql+asyncpg://...; unset = in-memory store
  REDIS_URL             redis://...; unset = in-memory task queue
  CERTIFICATE_DIR       where rendered PDFs are written
  CERTIFICATE_BASE_URL  public URL prefix of that directory
  ORGANIZATION_NAME     issuer printed on certificates
  APP_BASE_URL          frontend origin, used in verification QR codes
  JWT_PUBLIC_KEY        identity provider's PEM key; unset = ephemeral dev key
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_APP_ENVS = ("dev", "test", "prod")
_LOG_LEVELS = ("debug", "info", "warning", "error")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getoptional(name: str) -> str | None:
    return _getenv(name, "") or None


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    certificate_dir: str
    certificate_base_url: str
    organization_name: str
    app_base_url: str
    jwt_public_key: str | None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env = _getenv("APP_ENV", "dev").lower()
    if app_env not in _APP_ENVS:
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env!r})")

    log_level = _getenv("LOG_LEVEL", "info").lower()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"LOG_LEVEL must be debug|info|warning|error (got {log_level!r})")

    port_raw = _getenv("PORT", "8000")
    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env,
        log_level=log_level,
        log_json=_getbool("LOG_JSON", False),
        port=port,
        database_url=_getoptional("DATABASE_URL"),
        redis_url=_getoptional("REDIS_URL"),
        certificate_dir=_getenv("CERTIFICATE_DIR", "./var/certificates"),
        certificate_base_url=_getenv("CERTIFICATE_BASE_URL", "/uploads/certificates").rstrip("/"),
        organization_name=_getenv("ORGANIZATION_NAME", "Course Platform"),
        app_base_url=_getenv("APP_BASE_URL", "http://localhost:3000").rstrip("/"),
        jwt_public_key=_getoptional("JWT_PUBLIC_KEY"),
    )


SETTINGS = load_settings()
