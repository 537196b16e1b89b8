from __future__ import annotations

import sys

import supaguard.backup as backup_cli


def run_cli(monkeypatch, dashboard, *argv: str) -> int:
    monkeypatch.setattr(backup_cli, "Dashboard", lambda settings: dashboard)
    monkeypatch.setattr(sys, "argv", ["supaguard-backup", *argv])
    monkeypatch.delenv("SUPAGUARD_TOKEN", raising=False)
    return backup_cli.main()


def test_writes_dump_and_manifest(monkeypatch, dashboard, tmp_path, capsys):
    target = tmp_path / "alpha.sql"

    code = run_cli(
        monkeypatch, dashboard, "--project", "ref-alpha", "--token", "sbp_cli", "--output", str(target)
    )

    assert code == 0
    assert target.read_text(encoding="utf-8").count('INSERT INTO public."users"') == 2
    out = capsys.readouterr().out
    assert f"Backup written to {target}" in out
    assert "users: exported 2 rows" in out
    assert "Reading data: users..." in out
    assert not dashboard.settings.state_file.exists()


def test_requires_token(monkeypatch, dashboard, capsys):
    assert run_cli(monkeypatch, dashboard, "--project", "ref-alpha") == 2
    assert "No access token" in capsys.readouterr().out


def test_unknown_project(monkeypatch, dashboard, capsys):
    code = run_cli(monkeypatch, dashboard, "--project", "ref-missing", "--token", "sbp_cli")

    assert code == 1
    assert "ref-missing" in capsys.readouterr().out
