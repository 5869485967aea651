from __future__ import annotations

from types import SimpleNamespace

from typer.testing import CliRunner

from workspace_service import cli

runner = CliRunner()


def test_no_command_prints_help() -> None:
    result = runner.invoke(cli.app, [])

    assert result.exit_code == 0
    assert "start" in result.output
    assert "migrate" in result.output


def test_migrate_defaults_to_head(monkeypatch):
    captured: dict[str, object] = {}

    def _fake_run_migrations(*, revision: str) -> None:
        captured["revision"] = revision

    monkeypatch.setattr(cli, "run_migrations", _fake_run_migrations)

    result = runner.invoke(cli.app, ["migrate"])

    assert result.exit_code == 0, result.output
    assert captured == {"revision": "head"}
    assert "Database migrated to head." in result.output


def test_start_uses_settings_defaults(monkeypatch):
    captured: dict[str, object] = {}
    settings = SimpleNamespace(server_host="0.0.0.0", server_port=8080, logging_level="INFO")

    def _fake_run(target: str, **kwargs: object) -> None:
        captured["target"] = target
        captured.update(kwargs)

    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(cli.uvicorn, "run", _fake_run)

    result = runner.invoke(cli.app, ["start", "--port", "9000"])

    assert result.exit_code == 0, result.output
    assert captured == {
        "target": "workspace_service.main:app",
        "host": "0.0.0.0",
        "port": 9000,
        "reload": False,
        "log_level": "info",
    }
