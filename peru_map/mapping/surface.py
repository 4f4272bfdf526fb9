"""Headless map surface: view state, marker layer, hit-testing and popup."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from peru_map.mapping.markers import MarkerFeature
from peru_map.mapping.popup import PopupContent, PopupOverlay
from peru_map.mapping.projection import HALF_SIZE, WEB_MERCATOR, Coordinate, from_lon_lat
from peru_map.observability.tracing import log_navigation
from peru_map.search.navigation import FitExtent, NavigationCommand, Recenter

TILE_SIZE = 256
MAX_RESOLUTION = 2 * HALF_SIZE / TILE_SIZE
Pixel = Tuple[float, float]


def resolution_for_zoom(zoom: float) -> float:
    return MAX_RESOLUTION / math.pow(2, zoom)


def zoom_for_resolution(resolution: float) -> float:
    return math.log2(MAX_RESOLUTION / resolution)


@dataclass(frozen=True, slots=True)
class MapView:
    """Center and zoom of the surface in its working projection."""

    center: Coordinate
    zoom: float
    projection: str = WEB_MERCATOR

    @property
    def resolution(self) -> float:
        """Map units per pixel at this zoom."""
        return resolution_for_zoom(self.zoom)


@dataclass(frozen=True, slots=True)
class ViewAnimation:
    """The last view change issued to the surface."""

    kind: str
    center: Coordinate
    zoom: float
    duration_ms: int


class MapSurface:
    """Map view in Web Mercator with a single point marker layer."""

    def __init__(
        self,
        *,
        width_px: int = 1024,
        height_px: int = 768,
        center_lon_lat: Sequence[float] = (-75.015152, -9.189967),
        zoom: float = 5,
        hit_tolerance_px: float = 7,
        popup_offset: Tuple[int, int] = (0, -10),
    ) -> None:
        self.width_px = width_px
        self.height_px = height_px
        self.view = MapView(center=from_lon_lat(center_lon_lat, WEB_MERCATOR), zoom=float(zoom))
        self.hit_tolerance_px = hit_tolerance_px
        self.popup = PopupOverlay(offset=popup_offset)
        self.last_animation: Optional[ViewAnimation] = None
        self._markers: List[MarkerFeature] = []

    def projection(self) -> str:
        return self.view.projection

    @property
    def center(self) -> Coordinate:
        return self.view.center

    @property
    def zoom(self) -> float:
        return self.view.zoom

    @property
    def resolution(self) -> float:
        return self.view.resolution

    # Marker layer

    def add_features(self, features: Iterable[MarkerFeature]) -> None:
        self._markers.extend(features)

    @property
    def features(self) -> List[MarkerFeature]:
        return list(self._markers)

    # View

    def set_view(self, center: Coordinate, zoom: float, *, animate_ms: int = 0, kind: str = "set_view") -> None:
        self.view = MapView(
            center=(float(center[0]), float(center[1])),
            zoom=max(0.0, float(zoom)),
            projection=self.view.projection,
        )
        self.last_animation = ViewAnimation(kind=kind, center=self.center, zoom=self.zoom, duration_ms=animate_ms)

    def recenter(self, center: Coordinate, zoom: float, *, animate_ms: int = 0) -> None:
        self.set_view(center, zoom, animate_ms=animate_ms, kind="recenter")

    def fit_extent(
        self,
        extent: Sequence[float],
        *,
        padding: Sequence[int] = (0, 0, 0, 0),
        max_zoom: Optional[float] = None,
        animate_ms: int = 0,
    ) -> None:
        """Fit ``extent`` into the viewport; ``padding`` is top, right, bottom, left."""
        top, right, bottom, left = padding
        available_w = self.width_px - left - right
        available_h = self.height_px - top - bottom
        if available_w <= 0 or available_h <= 0:
            raise ValueError("Padding leaves no room to fit the extent")
        min_x, min_y, max_x, max_y = extent
        resolution = max((max_x - min_x) / available_w, (max_y - min_y) / available_h)
        zoom = zoom_for_resolution(resolution) if resolution > 0 else math.inf
        if max_zoom is not None:
            zoom = min(zoom, max_zoom)
        if math.isinf(zoom):
            zoom = self.zoom
        zoom = max(0.0, zoom)
        final_resolution = resolution_for_zoom(zoom)
        center = (
            (min_x + max_x) / 2 - (left - right) / 2 * final_resolution,
            (min_y + max_y) / 2 + (top - bottom) / 2 * final_resolution,
        )
        self.set_view(center, zoom, animate_ms=animate_ms, kind="fit_extent")

    def apply(self, command: NavigationCommand) -> None:
        """Execute a navigation command built from a search result."""
        if isinstance(command, FitExtent):
            self.fit_extent(
                command.extent,
                padding=command.padding,
                max_zoom=command.max_zoom,
                animate_ms=command.duration_ms,
            )
        elif isinstance(command, Recenter):
            self.recenter(command.center, command.zoom, animate_ms=command.duration_ms)
        else:
            raise TypeError(f"Unknown navigation command: {command!r}")
        log_navigation(kind=self.last_animation.kind, zoom=self.zoom, duration_ms=self.last_animation.duration_ms)

    # Pixels

    def pixel_from_coordinate(self, coordinate: Coordinate) -> Pixel:
        res = self.resolution
        return (
            (coordinate[0] - self.center[0]) / res + self.width_px / 2,
            (self.center[1] - coordinate[1]) / res + self.height_px / 2,
        )

    def coordinate_from_pixel(self, pixel: Pixel) -> Coordinate:
        res = self.resolution
        return (
            self.center[0] + (pixel[0] - self.width_px / 2) * res,
            self.center[1] - (pixel[1] - self.height_px / 2) * res,
        )

    def pick_feature_at(self, pixel: Pixel, tolerance: Optional[float] = None) -> Optional[MarkerFeature]:
        """Return the marker nearest to ``pixel`` within the hit tolerance."""
        tolerance = self.hit_tolerance_px if tolerance is None else tolerance
        best: Optional[MarkerFeature] = None
        best_distance = math.inf
        for marker in self._markers:
            mx, my = self.pixel_from_coordinate(marker.coordinate)
            distance = math.hypot(mx - pixel[0], my - pixel[1])
            if distance <= tolerance and distance < best_distance:
                best, best_distance = marker, distance
        return best

    def has_feature_at(self, pixel: Pixel) -> bool:
        return self.pick_feature_at(pixel) is not None

    def cursor_at(self, pixel: Pixel) -> str:
        return "pointer" if self.has_feature_at(pixel) else "default"

    # Popup

    def single_click(self, pixel: Pixel) -> Optional[MarkerFeature]:
        """Open the popup for the marker under ``pixel``, or close it on a miss."""
        feature = self.pick_feature_at(pixel)
        if feature is None:
            self.popup.close()
            return None
        self.popup.open(self.coordinate_from_pixel(pixel), PopupContent.from_properties(feature.properties))
        return feature

    def close_popup(self) -> None:
        self.popup.close()
