"""Workspace service settings (Pydantic v2 + pydantic-settings)."""

from __future__ import annotations

import json
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any
from urllib.parse import quote, urlparse

from pydantic import Field, SecretStr, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# ---- Defaults ---------------------------------------------------------------

DEFAULT_SQLITE_PATH = Path("./data") / "db" / "workspaces.sqlite"
DEFAULT_CORS_ORIGINS: list[str] = []

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

SERVICE_NAME = "workspace-service"

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


# ---- Helpers ----------------------------------------------------------------

def _parse_duration(value: Any, *, field_name: str) -> timedelta:
    """Accept seconds (int/float/str) or '60s'/'5m'/'1h'/'14d'."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            raise ValueError(f"{field_name} must not be blank")
        try:
            seconds = float(s)
        except ValueError:
            unit = s[-1].lower()
            num = s[:-1].strip()
            if unit not in _UNIT_SECONDS or not num:
                raise ValueError(
                    f"{field_name} must be secs or 'Xs','Xm','Xh','Xd'"
                ) from None
            try:
                seconds = float(num) * _UNIT_SECONDS[unit]
            except ValueError as exc:
                raise ValueError(
                    f"{field_name} must be secs or 'Xs','Xm','Xh','Xd'"
                ) from exc
    else:
        raise TypeError(f"{field_name} must be number, duration string, or timedelta")
    if seconds <= 0:
        raise ValueError(f"{field_name} must be > 0 seconds")
    return timedelta(seconds=seconds)


def _list_from_env(value: Any, *, default: list[str]) -> list[str]:
    """JSON array or comma string; strip empties; dedupe preserving order."""
    if value in (None, "", []):
        items = list(default)
    elif isinstance(value, str):
        s = value.strip()
        if s.startswith("["):
            try:
                parsed = json.loads(s)
            except json.JSONDecodeError as exc:
                raise ValueError("Expected a JSON array") from exc
            if not isinstance(parsed, list):
                raise ValueError("Expected a JSON array")
            items = [str(x).strip() for x in parsed if str(x).strip()]
        else:
            items = [seg.strip() for seg in s.split(",") if seg.strip()]
    elif isinstance(value, (list, tuple, set)):
        items = [str(x).strip() for x in value if str(x).strip()]
    else:
        raise TypeError("Expected string or list")

    seen, out = set(), []
    for x in items:
        if x not in seen:
            seen.add(x)
            out.append(x)
    return out


def _http_url(value: Any, *, env_name: str) -> str:
    s = str(value).strip()
    p = urlparse(s)
    if p.scheme not in {"http", "https"} or not p.netloc:
        raise ValueError(f"{env_name} must be an http(s) URL")
    return s.rstrip("/")


# ---- Settings ---------------------------------------------------------------

class Settings(BaseSettings):
    """FastAPI settings loaded from WORKSPACE_* environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WORKSPACE_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    # Core
    app_name: str = "Workspace Service"
    app_version: str = "1.0.0"
    api_docs_enabled: bool = False
    docs_url: str = "/docs"
    redoc_url: str = "/redoc"
    openapi_url: str = "/openapi.json"
    debug: bool = False
    logging_level: str = "INFO"

    # Server
    server_host: str = "0.0.0.0"
    server_port: int = Field(3000, ge=1, le=65535)
    server_cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS)
    )

    # Database
    database_url: str | None = None
    database_echo: bool = False
    database_pool_size: int = Field(5, ge=1)
    database_max_overflow: int = Field(10, ge=0)
    database_pool_timeout: int = Field(30, gt=0)

    # Cache
    redis_connection_string: SecretStr | None = None
    redis_host: str = "localhost"
    redis_port: int = Field(6379, ge=1, le=65535)
    redis_password: SecretStr | None = None
    redis_db: int = Field(0, ge=0)
    workspace_cache_ttl: timedelta = Field(default=timedelta(hours=1))
    subscription_cache_ttl: timedelta = Field(default=timedelta(minutes=5))
    profile_cache_ttl: timedelta = Field(default=timedelta(minutes=5))

    # Upstream services
    auth_service_url: str = "http://localhost:5000"
    subscription_service_url: str = "http://localhost:5001"
    role_service_url: str = "http://localhost:5002"
    user_profile_service_url: str = "http://localhost:5003"
    internal_api_key: SecretStr | None = None
    upstream_timeout: timedelta = Field(default=timedelta(seconds=5))

    # Events
    event_topic: str = "workspace-events"
    event_source: str = SERVICE_NAME

    # ---- Validators ----

    @field_validator("logging_level", mode="before")
    @classmethod
    def _v_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v).strip()).upper()
        return s or "INFO"

    @field_validator("server_cors_origins", mode="before")
    @classmethod
    def _v_cors(cls, v: Any) -> list[str]:
        return _list_from_env(v, default=DEFAULT_CORS_ORIGINS)

    @field_validator(
        "auth_service_url",
        "subscription_service_url",
        "role_service_url",
        "user_profile_service_url",
        mode="before",
    )
    @classmethod
    def _v_service_url(cls, v: Any, info: ValidationInfo) -> str:
        return _http_url(v, env_name=f"WORKSPACE_{info.field_name.upper()}")

    @field_validator(
        "workspace_cache_ttl",
        "subscription_cache_ttl",
        "profile_cache_ttl",
        "upstream_timeout",
        mode="before",
    )
    @classmethod
    def _v_durations(cls, v: Any, info: ValidationInfo) -> timedelta:
        return _parse_duration(v, field_name=info.field_name)

    @field_validator("event_topic", "event_source", mode="before")
    @classmethod
    def _v_non_blank(cls, v: Any, info: ValidationInfo) -> str:
        s = str(v or "").strip()
        if not s:
            raise ValueError(f"WORKSPACE_{info.field_name.upper()} must not be blank")
        return s

    @model_validator(mode="after")
    def _finalize(self) -> Settings:
        if not self.database_url:
            sqlite = DEFAULT_SQLITE_PATH.expanduser().resolve()
            self.database_url = f"sqlite+aiosqlite:///{sqlite.as_posix()}"
        return self

    # ---- Convenience ----

    @property
    def redis_url(self) -> str:
        """Connection string when configured, else built from host/port/password."""

        if self.redis_connection_string is not None:
            raw = self.redis_connection_string.get_secret_value().strip()
            if raw:
                return raw
        auth = ""
        if self.redis_password is not None and self.redis_password.get_secret_value():
            auth = f":{quote(self.redis_password.get_secret_value(), safe='')}@"
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def internal_api_key_value(self) -> str | None:
        if self.internal_api_key is None:
            return None
        return self.internal_api_key.get_secret_value() or None


@lru_cache(maxsize=1)
def _build_settings() -> Settings:
    return Settings()


def get_settings() -> Settings:
    return _build_settings()


def reload_settings() -> Settings:
    _build_settings.cache_clear()
    return _build_settings()


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "SERVICE_NAME",
    "Settings",
    "get_settings",
    "reload_settings",
]
