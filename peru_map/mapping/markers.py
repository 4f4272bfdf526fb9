"""Loading point markers from a GeoJSON feature collection."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import jsonschema
import orjson
import structlog

from peru_map.mapping.projection import WEB_MERCATOR, Coordinate, from_lon_lat
from peru_map.observability.metrics import MetricsRegistry

LOGGER = structlog.get_logger(__name__)

DEFAULT_SCHEMA_PATH = Path("config/schemas/point_feature.schema.json")


@dataclass(slots=True)
class MarkerFeature:
    """A point marker with its projected coordinate and property bag."""

    lon: float
    lat: float
    coordinate: Coordinate
    properties: Dict[str, Any] = field(default_factory=dict)
    feature_id: Optional[str] = None

    @property
    def name(self) -> Optional[str]:
        return self.properties.get("nombre") or None

    @property
    def category(self) -> Optional[str]:
        return self.properties.get("tipo") or None

    @property
    def description(self) -> str:
        return self.properties.get("descripcion") or ""


class FeatureValidator:
    """Validates single GeoJSON features against the point schema."""

    def __init__(self, schema_path: Path = DEFAULT_SCHEMA_PATH) -> None:
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        schema = orjson.loads(schema_path.read_bytes())
        self._validator = jsonschema.Draft202012Validator(schema)

    def errors(self, feature: Any) -> List[str]:
        return [f"{error.json_path}: {error.message}" for error in self._validator.iter_errors(feature)]


def _read_features(path: Path) -> List[Any]:
    payload = orjson.loads(path.read_bytes())
    if not isinstance(payload, dict) or payload.get("type") != "FeatureCollection":
        raise ValueError(f"{path} is not a GeoJSON FeatureCollection")
    features = payload.get("features")
    if not isinstance(features, list):
        raise ValueError(f"{path} has no feature list")
    return features


def _to_marker(raw: Dict[str, Any], projection: str) -> MarkerFeature:
    lon, lat = raw["geometry"]["coordinates"][:2]
    feature_id = raw.get("id")
    return MarkerFeature(
        lon=float(lon),
        lat=float(lat),
        coordinate=from_lon_lat((lon, lat), projection),
        properties=dict(raw.get("properties") or {}),
        feature_id=str(feature_id) if feature_id is not None else None,
    )


def load_markers(
    path: Path,
    *,
    projection: str = WEB_MERCATOR,
    schema_path: Path = DEFAULT_SCHEMA_PATH,
    metrics: Optional[MetricsRegistry] = None,
) -> List[MarkerFeature]:
    """Read markers from ``path``; any file-level failure yields an empty list."""
    metrics = metrics or MetricsRegistry()
    try:
        validator = FeatureValidator(schema_path)
        raw_features = _read_features(path)
    except (OSError, ValueError) as exc:
        LOGGER.error("markers_load_failed", path=str(path), error=str(exc))
        return []

    markers: List[MarkerFeature] = []
    for index, raw in enumerate(raw_features):
        errors = validator.errors(raw)
        if errors:
            metrics.incr("markers_rejected")
            LOGGER.warning("marker_rejected", path=str(path), index=index, errors=errors)
            continue
        markers.append(_to_marker(raw, projection))
    metrics.incr("markers_loaded", len(markers))
    LOGGER.info("markers_loaded", path=str(path), count=len(markers))
    return markers


def validate_markers(path: Path, *, schema_path: Path = DEFAULT_SCHEMA_PATH) -> List[Tuple[str, bool, str]]:
    """Validate every feature, returning results per feature without raising."""
    validator = FeatureValidator(schema_path)
    results: List[Tuple[str, bool, str]] = []
    for index, raw in enumerate(_read_features(path)):
        label = str(index)
        if isinstance(raw, dict):
            props = raw.get("properties") or {}
            if isinstance(props, dict) and props.get("nombre"):
                label = str(props["nombre"])
        errors = validator.errors(raw)
        results.append((label, not errors, "; ".join(errors) if errors else "ok"))
    return results
