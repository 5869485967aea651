"""workspace-service: CLI for running the API and applying migrations."""

from __future__ import annotations

import typer
import uvicorn

from workspace_service.db.migrations import run_migrations
from workspace_service.settings import get_settings

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="Workspace service CLI (start, migrate).",
)


@app.callback()
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command(name="start", help="Start the API server (requires migrations to be applied).")
def start(
    host: str | None = typer.Option(None, "--host", help="Bind address."),
    port: int | None = typer.Option(None, "--port", help="Bind port."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
) -> None:
    settings = get_settings()
    host = host or settings.server_host
    port = port or settings.server_port
    typer.echo(f"API server: http://{host}:{port}")
    uvicorn.run(
        "workspace_service.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.logging_level.lower(),
    )


@app.command(name="migrate", help="Apply Alembic migrations (upgrade head).")
def migrate(
    revision: str = typer.Argument("head", help="Alembic revision to upgrade to."),
) -> None:
    run_migrations(revision=revision)
    typer.echo(f"Database migrated to {revision}.")


if __name__ == "__main__":
    app()
