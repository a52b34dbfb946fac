from __future__ import annotations

import pytest
from pydantic import ValidationError

from tuneefy.config import load_settings

ENV_VARS = (
    "TUNEEFY_CONFIG",
    "TUNEEFY_DB_PATH",
    "TUNEEFY_INTENTS_SECRET",
    "TUNEEFY_INTENT_LIFETIME",
    "TUNEEFY_STATS_LIMIT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


def test_load_settings_from_yaml(settings_path):
    s = load_settings(str(settings_path))
    assert s.app.database_path.endswith("tuneefy.db")
    assert s.app.query_timeout == 10
    assert s.app.intents.secret == "test-intents-secret"
    assert s.app.intents.lifetime == 3600
    assert s.app.website.stats_limit == 5


def test_env_overrides(settings_path, monkeypatch):
    monkeypatch.setenv("TUNEEFY_DB_PATH", "/tmp/other.db")
    monkeypatch.setenv("TUNEEFY_INTENTS_SECRET", "from-env")
    monkeypatch.setenv("TUNEEFY_INTENT_LIFETIME", "60")
    monkeypatch.setenv("TUNEEFY_STATS_LIMIT", "3")

    s = load_settings(str(settings_path))
    assert s.app.database_path == "/tmp/other.db"
    assert s.app.intents.secret == "from-env"
    assert s.app.intents.lifetime == 60
    assert s.app.website.stats_limit == 3


def test_config_env_var_points_at_file(settings_path, monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TUNEEFY_CONFIG", str(settings_path))
    assert load_settings().app.website.stats_limit == 5


def test_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    s = load_settings()
    assert s.app.database_path == "data/tuneefy.db"
    assert s.app.intents.secret is None
    assert s.app.intents.lifetime == 3600
    assert s.app.website.stats_limit == 10


def test_partial_yaml_keeps_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("app:\n  intents:\n    secret: abc\n", encoding="utf-8")
    s = load_settings(str(path))
    assert s.app.intents.secret == "abc"
    assert s.app.intents.lifetime == 3600
    assert s.app.website.stats_limit == 10


def test_non_positive_lifetime_is_rejected(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text("app:\n  intents:\n    lifetime: 0\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_settings(str(path))

    monkeypatch.setenv("TUNEEFY_INTENT_LIFETIME", "-5")
    with pytest.raises(ValidationError):
        load_settings(str(tmp_path / "missing.yaml"))


def test_non_positive_stats_limit_is_rejected(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text("app:\n  website:\n    stats_limit: -1\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_settings(str(path))

    monkeypatch.setenv("TUNEEFY_STATS_LIMIT", "0")
    with pytest.raises(ValidationError):
        load_settings(str(tmp_path / "missing.yaml"))
