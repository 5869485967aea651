"""Programmatic Alembic runner.

The migration scripts ship inside the package, so no ``alembic.ini`` is
needed; the config is assembled from :class:`Settings`.
"""

from __future__ import annotations

from importlib import resources

from alembic import command
from alembic.config import Config
from sqlalchemy.engine import make_url

from workspace_service.settings import Settings, get_settings

from .database import DatabaseConfig, _ensure_sqlite_parent_dir, build_sync_url

__all__ = ["alembic_config", "run_migrations"]


def alembic_config(settings: Settings | None = None) -> Config:
    resolved = settings or get_settings()
    url = build_sync_url(DatabaseConfig.from_settings(resolved))

    cfg = Config()
    cfg.set_main_option(
        "script_location", str(resources.files("workspace_service") / "migrations")
    )
    # ``%`` is interpolation syntax for configparser.
    cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    cfg.attributes["configure_logger"] = False
    return cfg


def run_migrations(settings: Settings | None = None, *, revision: str = "head") -> None:
    cfg = alembic_config(settings)
    url = make_url(cfg.get_main_option("sqlalchemy.url") or "")
    if url.get_backend_name() == "sqlite":
        _ensure_sqlite_parent_dir(url)
    command.upgrade(cfg, revision)
