# src/fairmeet/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/fairmeet/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `GOOGLE_MAPS_API_KEY`, `FAIRMEET_PROVIDER`)
- an external YAML file via `FAIRMEET_CONFIG_PATH`

Design rule:
- Tuning knobs (weights, radii, timeouts, quota) live in YAML, not hard-coded in business logic.
"""

from __future__ import annotations

import os
from datetime import datetime
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal
from fairmeet.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field, model_validator


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `fairmeet.config`."""
    text = resources.files("fairmeet.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "FairMeet"
    timezone: str = "UTC"
    http_timeout_seconds: float = 10
    log_level: str = "INFO"


class QuotaSettings(BaseModel):
    daily_limit: int = Field(100, ge=0)
    expires_at: datetime | None = None
    path: str = ".cache/fairmeet/quota.json"


class CacheSettings(BaseModel):
    enabled: bool = True
    max_entries: int = Field(256, ge=1)
    ttl_seconds: int | None = Field(default=None, ge=1)


class SearchSettings(BaseModel):
    radius_m: int = Field(4000, ge=100, le=50_000)
    venue_timeout_seconds: float = Field(5.0, gt=0)
    estimate_timeout_seconds: float = Field(5.0, gt=0)
    engine_timeout_seconds: float = Field(15.0, gt=0)
    max_results: int = Field(10, ge=1, le=50)
    max_concurrency: int = Field(16, ge=1)


class ScoringSettings(BaseModel):
    weights: dict[Literal["max_commute", "dispersion"], float] = Field(
        default_factory=lambda: {"max_commute": 0.7, "dispersion": 0.3}
    )
    time_unit_seconds: float = Field(60.0, gt=0)

    @model_validator(mode="after")
    def _validate_weights(self) -> "ScoringSettings":
        for key in ("max_commute", "dispersion"):
            if key not in self.weights:
                raise ValueError(f"scoring.weights.{key} is required")
            if self.weights[key] < 0:
                raise ValueError(f"scoring.weights.{key} must be >= 0")
        return self


class GoogleProviderSettings(BaseModel):
    places_url: str = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
    distance_matrix_url: str = "https://maps.googleapis.com/maps/api/distancematrix/json"
    travel_mode: Literal["driving", "walking", "bicycling", "transit"] = "driving"
    max_venues: int = Field(20, ge=1, le=60)
    api_key: str | None = None


class ProvidersSettings(BaseModel):
    mode: Literal["simulated", "google"] = "simulated"
    google: GoogleProviderSettings = Field(default_factory=GoogleProviderSettings)


class SimulationSettings(BaseModel):
    average_speed_kmh: float = Field(25.0, gt=0)
    noise_min: float = Field(0.85, gt=0)
    noise_max: float = Field(1.35, gt=0)
    min_venues: int = Field(5, ge=1)
    max_venues: int = Field(8, ge=1)
    scatter_ratio: float = Field(0.35, ge=0, le=1)
    latency_seconds: float = Field(0.0, ge=0)
    seed: int | None = None

    @model_validator(mode="after")
    def _validate_ranges(self) -> "SimulationSettings":
        if self.noise_max < self.noise_min:
            raise ValueError("simulation.noise_max must be >= simulation.noise_min")
        if self.max_venues < self.min_venues:
            raise ValueError("simulation.max_venues must be >= simulation.min_venues")
        return self


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    quota: QuotaSettings = Field(default_factory=QuotaSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    providers: ProvidersSettings = Field(default_factory=ProvidersSettings)
    simulation: SimulationSettings = Field(default_factory=SimulationSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)
    log_level = os.getenv("FAIRMEET_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    quota_path = os.getenv("FAIRMEET_QUOTA_PATH")
    if quota_path:
        data.setdefault("quota", {})["path"] = quota_path

    provider = os.getenv("FAIRMEET_PROVIDER")
    if provider:
        data.setdefault("providers", {})["mode"] = provider.strip().lower()

    api_key = os.getenv("GOOGLE_MAPS_API_KEY")
    if api_key:
        data.setdefault("providers", {}).setdefault("google", {})["api_key"] = api_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("FAIRMEET_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
