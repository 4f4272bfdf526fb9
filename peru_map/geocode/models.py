"""Models for geocoder matches and the parsing of raw Nominatim payloads."""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence

import structlog
from pydantic import BaseModel, ConfigDict

from peru_map.geocode.errors import MalformedResultItem
from peru_map.observability.metrics import MetricsRegistry

LOGGER = structlog.get_logger(__name__)


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


class BoundingBox(BaseModel):
    """Geographic box in the order Nominatim reports it."""

    model_config = ConfigDict(frozen=True)

    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["BoundingBox"]:
        """Build a box from ``[latMin, latMax, lonMin, lonMax]`` or return None."""
        if not isinstance(payload, (list, tuple)) or len(payload) != 4:
            return None
        values = [_to_float(value) for value in payload]
        if any(value is None for value in values):
            return None
        lat_min, lat_max, lon_min, lon_max = values
        return cls(lat_min=lat_min, lat_max=lat_max, lon_min=lon_min, lon_max=lon_max)

    def as_lon_lat_extent(self) -> tuple[float, float, float, float]:
        return (self.lon_min, self.lat_min, self.lon_max, self.lat_max)


class ResultItem(BaseModel):
    """One match returned by the geocoder."""

    model_config = ConfigDict(frozen=True)

    display_name: Optional[str] = None
    lat: float
    lon: float
    bounding_box: Optional[BoundingBox] = None
    address: Dict[str, str] = {}

    @classmethod
    def from_payload(cls, payload: Any) -> "ResultItem":
        if not isinstance(payload, dict):
            raise MalformedResultItem(f"Expected an object, got {type(payload).__name__}")
        lat = _to_float(payload.get("lat"))
        lon = _to_float(payload.get("lon"))
        if lat is None or lon is None:
            raise MalformedResultItem(
                f"Missing coordinates: lat={payload.get('lat')!r} lon={payload.get('lon')!r}"
            )
        display_name = payload.get("display_name")
        address = payload.get("address")
        return cls(
            display_name=str(display_name) if display_name else None,
            lat=lat,
            lon=lon,
            bounding_box=BoundingBox.from_payload(payload.get("boundingbox")),
            address={str(k): str(v) for k, v in address.items()} if isinstance(address, dict) else {},
        )

    @property
    def label(self) -> str:
        """Text shown in the result list."""
        return self.display_name or f"{self.lat}, {self.lon}"


def parse_results(payload: Sequence[Any], metrics: Optional[MetricsRegistry] = None) -> List[ResultItem]:
    """Convert a decoded response body into result items, skipping malformed entries."""
    items: List[ResultItem] = []
    for raw in payload:
        try:
            items.append(ResultItem.from_payload(raw))
        except MalformedResultItem as exc:
            if metrics is not None:
                metrics.incr("malformed_items")
            LOGGER.debug("geocoder_item_skipped", reason=str(exc))
    return items
