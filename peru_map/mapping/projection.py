"""Conversions between geographic degrees and spherical Web Mercator."""
from __future__ import annotations

import math
from typing import Sequence, Tuple

GEOGRAPHIC = "EPSG:4326"
WEB_MERCATOR = "EPSG:3857"

EARTH_RADIUS = 6378137.0
HALF_SIZE = math.pi * EARTH_RADIUS
# Latitude at which Web Mercator becomes a square world.
MAX_LATITUDE = 85.0511287798066

Coordinate = Tuple[float, float]
Extent = Tuple[float, float, float, float]


def from_lon_lat(lon_lat: Sequence[float], projection: str = WEB_MERCATOR) -> Coordinate:
    """Project a ``(lon, lat)`` pair in degrees into ``projection``."""
    lon, lat = float(lon_lat[0]), float(lon_lat[1])
    if projection == GEOGRAPHIC:
        return (lon, lat)
    _require_supported(projection)
    lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
    x = EARTH_RADIUS * math.radians(lon)
    y = EARTH_RADIUS * math.log(math.tan(math.pi / 4 + math.radians(lat) / 2))
    return (x, y)


def to_lon_lat(coordinate: Sequence[float], projection: str = WEB_MERCATOR) -> Coordinate:
    """Inverse of `from_lon_lat`."""
    x, y = float(coordinate[0]), float(coordinate[1])
    if projection == GEOGRAPHIC:
        return (x, y)
    _require_supported(projection)
    lon = math.degrees(x / EARTH_RADIUS)
    lat = math.degrees(2 * math.atan(math.exp(y / EARTH_RADIUS)) - math.pi / 2)
    return (lon, lat)


def transform_extent(extent: Sequence[float], source: str, destination: str) -> Extent:
    """Reproject ``[minx, miny, maxx, maxy]`` between the supported projections."""
    if source == destination:
        return tuple(float(value) for value in extent)  # type: ignore[return-value]
    if source == GEOGRAPHIC:
        min_x, min_y = from_lon_lat((extent[0], extent[1]), destination)
        max_x, max_y = from_lon_lat((extent[2], extent[3]), destination)
    elif destination == GEOGRAPHIC:
        min_x, min_y = to_lon_lat((extent[0], extent[1]), source)
        max_x, max_y = to_lon_lat((extent[2], extent[3]), source)
    else:
        raise ValueError(f"Unsupported projection pair: {source} -> {destination}")
    return (min_x, min_y, max_x, max_y)


def _require_supported(projection: str) -> None:
    if projection != WEB_MERCATOR:
        raise ValueError(f"Unsupported projection: {projection}")
