from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .logger import get_logger

log = get_logger(__name__)


class DatabaseConfig(BaseModel):
    """Connection parameters for the relational backend."""
    url: str = "sqlite:///data/tuneefy.db"
    query_timeout: float = 30.0

    @property
    def is_postgres(self) -> bool:
        return self.url.startswith("postgresql://") or self.url.startswith("postgres://")

    @property
    def is_sqlite(self) -> bool:
        return not self.is_postgres


class IntentsConfig(BaseModel):
    secret: Optional[str] = None
    lifetime: int = Field(default=3600, gt=0)  # seconds


class WebsiteConfig(BaseModel):
    stats_limit: int = Field(default=10, gt=0)


class AppConfig(BaseModel):
    database_path: str = "data/tuneefy.db"
    query_timeout: float = 30.0
    intents: IntentsConfig = IntentsConfig()
    website: WebsiteConfig = WebsiteConfig()


class Settings(BaseModel):
    app: AppConfig = AppConfig()


def _find_settings_path(explicit: Optional[str]) -> Optional[Path]:
    candidates = []
    if explicit:
        candidates.append(Path(explicit))
    env = os.getenv("TUNEEFY_CONFIG")
    if env:
        candidates.append(Path(env))
    candidates.extend([
        Path("settings.yaml"),
        Path("settings.yml"),
        Path("config/settings.yaml"),
    ])
    for p in candidates:
        if p and p.exists() and p.is_file():
            return p
    return None


def _apply_env_overrides(s: Settings) -> Settings:
    if db_path := os.getenv("TUNEEFY_DB_PATH"):
        s.app.database_path = db_path
    if secret := os.getenv("TUNEEFY_INTENTS_SECRET"):
        s.app.intents.secret = secret
    if lifetime := os.getenv("TUNEEFY_INTENT_LIFETIME"):
        s.app.intents = IntentsConfig(secret=s.app.intents.secret, lifetime=int(lifetime))
    if stats_limit := os.getenv("TUNEEFY_STATS_LIMIT"):
        s.app.website = WebsiteConfig(stats_limit=int(stats_limit))
    return s


def load_settings(path: Optional[str] = None) -> Settings:
    p = _find_settings_path(path)
    if not p:
        log.warning("No settings file found; using defaults")
        return _apply_env_overrides(Settings())

    with open(p, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    try:
        s = Settings(**raw)
    except ValidationError as e:
        log.error("Settings validation failed: %s", e)
        raise
    return _apply_env_overrides(s)
