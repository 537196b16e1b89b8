from __future__ import annotations

import json
from pathlib import Path

from supaguard.client import API_BASE_URL
from supaguard.config import Credentials, CredentialStore, Settings


def test_credential_store_round_trip(tmp_path):
    store = CredentialStore(tmp_path / "nested" / "session.json")

    assert store.load() is None
    store.save(Credentials("sbp_abc", "https://proxy.example/?url="))

    assert store.load() == Credentials("sbp_abc", "https://proxy.example/?url=")
    assert (store.path.stat().st_mode & 0o777) == 0o600

    store.clear()
    assert store.load() is None
    store.clear()


def test_credential_store_ignores_bad_files(tmp_path):
    path = tmp_path / "session.json"
    store = CredentialStore(path)

    path.write_text("{not json", encoding="utf-8")
    assert store.load() is None

    path.write_text(json.dumps({"sb_proxy": "x"}), encoding="utf-8")
    assert store.load() is None

    path.write_text(json.dumps({"sb_token": "sbp_1"}), encoding="utf-8")
    assert store.load() == Credentials("sbp_1", "")


def test_settings_defaults(monkeypatch):
    for name in (
        "SUPAGUARD_API_BASE",
        "SUPAGUARD_PROXY",
        "SUPAGUARD_TIMEOUT",
        "SUPAGUARD_ROW_LIMIT",
        "SUPAGUARD_STATE_FILE",
        "SUPAGUARD_READ_ONLY",
        "SUPAGUARD_LOG_SQL",
        "GEMINI_API_KEY",
        "API_KEY",
        "SUPAGUARD_INSIGHT_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.api_base_url == API_BASE_URL
    assert settings.default_proxy == ""
    assert settings.timeout == 60.0
    assert settings.row_limit == 5000
    assert settings.state_file == Path.home() / ".supaguard" / "session.json"
    assert settings.read_only is False
    assert settings.log_sql_text is True
    assert settings.gemini_api_key is None


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("SUPAGUARD_API_BASE", "http://localhost:9000/v1")
    monkeypatch.setenv("SUPAGUARD_PROXY", "https://proxy.example/?url=")
    monkeypatch.setenv("SUPAGUARD_TIMEOUT", "0")
    monkeypatch.setenv("SUPAGUARD_ROW_LIMIT", "100")
    monkeypatch.setenv("SUPAGUARD_STATE_FILE", str(tmp_path / "s.json"))
    monkeypatch.setenv("SUPAGUARD_READ_ONLY", "yes")
    monkeypatch.setenv("SUPAGUARD_LOG_SQL", "off")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", "gem-key")

    settings = Settings.from_env()

    assert settings.api_base_url == "http://localhost:9000/v1"
    assert settings.default_proxy == "https://proxy.example/?url="
    assert settings.timeout is None
    assert settings.row_limit == 100
    assert settings.state_file == tmp_path / "s.json"
    assert settings.read_only is True
    assert settings.log_sql_text is False
    assert settings.gemini_api_key == "gem-key"
