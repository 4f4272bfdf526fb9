"""Commands that move the map view to a selected search result."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from peru_map.geocode.models import ResultItem
from peru_map.mapping.projection import GEOGRAPHIC, Coordinate, Extent, from_lon_lat, transform_extent
from peru_map.settings import NavigationSettings


@dataclass(frozen=True, slots=True)
class FitExtent:
    """Fit the view to ``extent`` (already in the surface projection)."""

    extent: Extent
    padding: Tuple[int, int, int, int]
    max_zoom: float
    duration_ms: int


@dataclass(frozen=True, slots=True)
class Recenter:
    """Animate the view to ``center`` at a fixed zoom."""

    center: Coordinate
    zoom: float
    duration_ms: int


NavigationCommand = Union[FitExtent, Recenter]


def build_navigation(
    item: ResultItem,
    projection: str,
    settings: Optional[NavigationSettings] = None,
) -> NavigationCommand:
    settings = settings or NavigationSettings()
    box = item.bounding_box
    if box is not None:
        extent = transform_extent(box.as_lon_lat_extent(), GEOGRAPHIC, projection)
        pad = settings.fit_padding_px
        return FitExtent(
            extent=extent,
            padding=(pad, pad, pad, pad),
            max_zoom=settings.fit_max_zoom,
            duration_ms=settings.fit_duration_ms,
        )
    return Recenter(
        center=from_lon_lat((item.lon, item.lat), projection),
        zoom=settings.recenter_zoom,
        duration_ms=settings.recenter_duration_ms,
    )
