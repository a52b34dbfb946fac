from __future__ import annotations

from pathlib import Path

import pytest

from tuneefy.clients import ClientRegistry
from tuneefy.config import Settings, load_settings
from tuneefy.db import init_db, run_migrations
from tuneefy.entities import Album, Track
from tuneefy.stats import StatsAggregator
from tuneefy.store import RecordStore

TEST_SECRET = "test-intents-secret"


@pytest.fixture()
def settings_path(tmp_path: Path) -> Path:
    """Write an isolated settings.yaml pointing at a temp DB."""

    settings_path = tmp_path / "settings.yaml"
    db_path = tmp_path / "tuneefy.db"
    settings_yaml = f"""
app:
  database_path: "{db_path}"
  query_timeout: 10
  intents:
    secret: "{TEST_SECRET}"
    lifetime: 3600
  website:
    stats_limit: 5
"""
    settings_path.write_text(settings_yaml.strip(), encoding="utf-8")
    return settings_path


@pytest.fixture()
def settings(settings_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    for var in ("TUNEEFY_DB_PATH", "TUNEEFY_INTENTS_SECRET", "TUNEEFY_INTENT_LIFETIME", "TUNEEFY_STATS_LIMIT"):
        monkeypatch.delenv(var, raising=False)
    return load_settings(str(settings_path))


@pytest.fixture()
def initialized_db(settings: Settings) -> str:
    """Database path after init + migrations."""

    db_path = settings.app.database_path
    init_db(db_path)
    run_migrations(db_path)
    return db_path


@pytest.fixture()
def store(settings: Settings, initialized_db: str) -> RecordStore:
    return RecordStore.from_settings(settings)


@pytest.fixture()
def aggregator(settings: Settings, initialized_db: str) -> StatsAggregator:
    return StatsAggregator.from_settings(settings)


@pytest.fixture()
def registry(settings: Settings, initialized_db: str) -> ClientRegistry:
    return ClientRegistry.from_settings(settings)


@pytest.fixture()
def track() -> Track:
    return Track(
        title="Song A",
        artist="Artist X",
        album=Album(title="Record One", artist="Artist X", picture="https://img.example/1.jpg"),
        links=("https://open.spotify.com/track/abc", "https://deezer.com/track/123"),
    )


@pytest.fixture()
def album() -> Album:
    return Album(title="Record  Two ", artist="Artist Y", links=("https://deezer.com/album/9",))
