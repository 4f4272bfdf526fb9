"""Validated views over the sections of ``config/settings.toml``."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_USER_AGENT = "peru-map/0.1 (+https://www.openstreetmap.org/copyright)"


class AppSettings(BaseModel):
    """File locations used by the CLI."""

    points_path: Path = Path("data/points.json")
    metrics_dir: Path = Path("data/metrics")


class GeocoderSettings(BaseModel):
    """Parameters for the remote Nominatim lookup."""

    base_url: str = "https://nominatim.openstreetmap.org/search"
    country_codes: str = Field(default="pe", pattern=r"^[a-z]{2}(,[a-z]{2})*$")
    limit: int = Field(default=8, gt=0, le=50)
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    timeout_seconds: float = Field(default=10.0, gt=0)
    accept_language: Optional[str] = None

    @field_validator("base_url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as exc:
            raise ValueError(f"base_url is not a valid URL: {exc}") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError("base_url must be an absolute http(s) URL")
        return value

    @field_validator("country_codes", mode="before")
    @classmethod
    def _lowercase_codes(cls, value: str) -> str:
        return str(value).strip().lower()


class SearchSettings(BaseModel):
    """Debounce and validation policy for the search box."""

    debounce_ms: int = Field(default=350, ge=0)
    min_query_length: int = Field(default=3, ge=1)


class NavigationSettings(BaseModel):
    """How a selected result moves the map view."""

    fit_padding_px: int = Field(default=40, ge=0)
    fit_max_zoom: float = Field(default=18, ge=0)
    fit_duration_ms: int = Field(default=500, ge=0)
    recenter_zoom: float = Field(default=17, ge=0)
    recenter_duration_ms: int = Field(default=400, ge=0)


class MapSettings(BaseModel):
    """Initial view of the map surface."""

    center_lon: float = Field(default=-75.015152, ge=-180, le=180)
    center_lat: float = Field(default=-9.189967, ge=-90, le=90)
    zoom: float = Field(default=5, ge=0)
    width_px: int = Field(default=1024, gt=0)
    height_px: int = Field(default=768, gt=0)
    hit_tolerance_px: float = Field(default=7, ge=0)
    popup_offset_y: int = -10


class Settings(BaseModel):
    """All sections bundled together."""

    app: AppSettings = AppSettings()
    geocoder: GeocoderSettings = GeocoderSettings()
    search: SearchSettings = SearchSettings()
    navigation: NavigationSettings = NavigationSettings()
    map: MapSettings = MapSettings()


def build_settings(raw: Dict[str, object]) -> Settings:
    """Validate the raw TOML mapping, applying environment overrides."""
    sections: Dict[str, object] = {}
    for name in Settings.model_fields:
        payload = dict(raw.get(name, {}) or {})
        if name == "geocoder" and os.getenv("PERU_MAP_USER_AGENT"):
            payload["user_agent"] = os.environ["PERU_MAP_USER_AGENT"]
        sections[name] = payload
    try:
        return Settings(**sections)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings: {exc}") from exc
