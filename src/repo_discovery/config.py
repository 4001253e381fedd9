"""Configuration management."""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class ApiConfig:
    """Remote endpoints."""
    base_url: str = "https://repomance.com/api/"
    github_api_url: str = "https://api.github.com"
    timeout: float = 30.0


@dataclass
class CacheConfig:
    """Batch cache settings."""
    curated_key: str = "curated_batch"
    trending_key: str = "trending_batch"
    curated_ttl_hours: float = 24.0
    trending_ttl_hours: float = 1.0
    curated_batch_size: int = 10
    trending_batch_size: int = 30


@dataclass
class QuotaConfig:
    """Daily batch generation quota."""
    daily_batch_limit: int = 10


@dataclass
class TrendingConfig:
    """Trending feed settings."""
    # "backend" serves canonical ids already, "github" needs per-item lookups
    source: str = "backend"
    max_concurrent_lookups: int = 8


@dataclass
class PathsConfig:
    """Path settings."""
    state_dir: Path = Path(".repo_discovery")

    @property
    def cache_dir(self) -> Path:
        return self.state_dir / "cache"

    @property
    def token_file(self) -> Path:
        return self.state_dir / "token.yaml"


@dataclass
class Settings:
    """Application settings."""

    # Credentials and identity (from environment only)
    api_key: Optional[str] = None
    github_token: Optional[str] = None
    username: Optional[str] = None
    user_id: Optional[int] = None

    # Config sections
    api: ApiConfig = field(default_factory=ApiConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    quota: QuotaConfig = field(default_factory=QuotaConfig)
    trending: TrendingConfig = field(default_factory=TrendingConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)

    @property
    def curated_ttl(self) -> timedelta:
        return timedelta(hours=self.cache.curated_ttl_hours)

    @property
    def trending_ttl(self) -> timedelta:
        return timedelta(hours=self.cache.trending_ttl_hours)

    @property
    def daily_batch_limit(self) -> int:
        return self.quota.daily_batch_limit


def load_config(config_path: Path = Path("config.yaml")) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name, "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        print(f"⚠️  Warning: {name} is not a number, ignoring")
        return None


def get_settings(config_path: Path = Path("config.yaml")) -> Settings:
    """Get application settings from YAML config and environment."""
    config = load_config(config_path)

    settings = Settings(
        api_key=os.getenv("REPOMANCE_API_KEY") or None,
        github_token=os.getenv("GITHUB_TOKEN") or None,
        username=os.getenv("REPOMANCE_USERNAME") or None,
        user_id=_env_int("REPOMANCE_USER_ID"),
    )

    if "api" in config:
        for key, value in config["api"].items():
            setattr(settings.api, key, value)

    if "cache" in config:
        for key, value in config["cache"].items():
            setattr(settings.cache, key, value)

    if "quota" in config:
        for key, value in config["quota"].items():
            setattr(settings.quota, key, value)

    if "trending" in config:
        for key, value in config["trending"].items():
            setattr(settings.trending, key, value)

    if "paths" in config:
        for key, value in config["paths"].items():
            setattr(settings.paths, key, Path(value))

    return settings
