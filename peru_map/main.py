"""Command-line entrypoints for the Peru map."""
from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Coroutine, Dict, List, Optional, TypeVar

import httpx
import tomllib
from dotenv import load_dotenv

try:
    import uvloop
except ImportError:  # pragma: no cover - not installed on Windows
    uvloop = None

from peru_map.geocode.client import GeocoderClient
from peru_map.geocode.models import ResultItem
from peru_map.geocode.session import create_geocoder_session
from peru_map.mapping.markers import load_markers, validate_markers
from peru_map.mapping.projection import from_lon_lat, to_lon_lat
from peru_map.mapping.surface import MapSurface
from peru_map.observability.log import configure_logging
from peru_map.observability.metrics import MetricsRegistry, record_duration
from peru_map.search.debounce import DebounceScheduler
from peru_map.search.navigation import FitExtent, NavigationCommand
from peru_map.search.pipeline import SearchPipeline
from peru_map.search.presenter import ResultPresenter
from peru_map.settings import Settings, build_settings

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")
DEFAULT_LOGGING_PATH = Path("config/logging.yaml")
# Replaced in tests to keep lookups off the network.
GEOCODER_TRANSPORT: Optional[httpx.AsyncBaseTransport] = None

T = TypeVar("T")


def load_settings(path: Path) -> Dict[str, object]:
    """Read the TOML configuration file."""
    with path.open("rb") as handle:
        return tomllib.load(handle)


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(prog="peru-map", description="Map of Peru with place search")
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Look up a place and optionally navigate to it")
    search.add_argument("query", help="Free-text place name")
    search.add_argument("--select", type=int, help="Index of the result row to navigate to")

    markers = sub.add_parser("markers", help="List the markers loaded from the points file")
    markers.add_argument("--path", type=Path, help="GeoJSON file to load instead of the configured one")

    click = sub.add_parser("click", help="Click the map at a geographic point and show the popup")
    click.add_argument("--lon", type=float, required=True)
    click.add_argument("--lat", type=float, required=True)
    click.add_argument("--zoom", type=float, help="View zoom used for hit-testing")
    click.add_argument("--path", type=Path, help="GeoJSON file to load instead of the configured one")

    seed = sub.add_parser("seed-points", help="Write the demo points GeoJSON")
    seed.add_argument("--path", type=Path, help="Destination file")

    validate = sub.add_parser("validate-points", help="Validate every feature of the points file")
    validate.add_argument("--path", type=Path, help="GeoJSON file to validate")

    return parser


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run ``coro`` on uvloop where it is installed, else on the default loop."""
    if uvloop is not None:
        return uvloop.run(coro)
    return asyncio.run(coro)


def build_surface(settings: Settings, metrics: MetricsRegistry, *, points_path: Optional[Path] = None) -> MapSurface:
    """Create the map surface at its initial view and load the marker layer."""
    view = settings.map
    surface = MapSurface(
        width_px=view.width_px,
        height_px=view.height_px,
        center_lon_lat=(view.center_lon, view.center_lat),
        zoom=view.zoom,
        hit_tolerance_px=view.hit_tolerance_px,
        popup_offset=(0, view.popup_offset_y),
    )
    path = points_path or settings.app.points_path
    surface.add_features(load_markers(path, projection=surface.projection(), metrics=metrics))
    return surface


def _describe_item(item: ResultItem) -> Dict[str, object]:
    return {
        "label": item.label,
        "lat": item.lat,
        "lon": item.lon,
        "bounding_box": item.bounding_box.model_dump() if item.bounding_box else None,
    }


def _describe_command(command: NavigationCommand) -> Dict[str, object]:
    kind = "fit_extent" if isinstance(command, FitExtent) else "recenter"
    return {"kind": kind, **asdict(command)}


def _describe_view(surface: MapSurface) -> Dict[str, object]:
    lon, lat = to_lon_lat(surface.center, surface.projection())
    return {"center": [round(lon, 6), round(lat, 6)], "zoom": round(surface.zoom, 3)}


async def run_search(args: argparse.Namespace, settings: Settings) -> Dict[str, object]:
    """Type the query, press Enter, and optionally pick one of the rows."""
    metrics = MetricsRegistry()
    surface = build_surface(settings, metrics)
    report: Dict[str, object] = {"query": args.query}

    with record_duration(metrics, "search_duration_ms") as timer:
        async with create_geocoder_session(
            user_agent=settings.geocoder.user_agent,
            timeout=settings.geocoder.timeout_seconds,
            transport=GEOCODER_TRANSPORT,
        ) as session:
            geocoder = GeocoderClient(session, settings.geocoder, metrics)
            presenter = ResultPresenter(surface, settings=settings.navigation, metrics=metrics)
            pipeline = SearchPipeline(
                geocoder,
                presenter,
                scheduler=DebounceScheduler(settings.search.debounce_ms),
                settings=settings.search,
                metrics=metrics,
            )
            pipeline.on_input(args.query)
            pipeline.on_enter()
            await pipeline.drain()

    report["state"] = pipeline.state.value
    report["elapsed_ms"] = timer.elapsed_ms
    report["rows"] = presenter.panel.labels()
    report["results"] = [_describe_item(item) for item in pipeline.results]

    if getattr(args, "select", None) is not None:
        command = pipeline.on_select(args.select)
        report["navigation"] = _describe_command(command)
        report["view"] = _describe_view(surface)

    run_id = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
    metrics.export(
        path=settings.app.metrics_dir / f"search_{run_id}.json",
        run_id=run_id,
        labels={"command": "search", "query": args.query, "selected": getattr(args, "select", None)},
    )
    return report


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI."""
    load_dotenv()
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    try:
        settings = build_settings(load_settings(DEFAULT_SETTINGS_PATH))
    except ValueError as exc:
        raise SystemExit(str(exc))
    configure_logging(DEFAULT_LOGGING_PATH)

    if args.command == "seed-points":
        from scripts.seed_points import seed_points

        target = seed_points(args.path or settings.app.points_path)
        print(json.dumps({"path": str(target)}))
        return

    if args.command == "validate-points":
        path = args.path or settings.app.points_path
        try:
            results = validate_markers(path)
        except (OSError, ValueError) as exc:
            raise SystemExit(f"Failed to read points: {exc}")
        report = [
            {"feature": label, "status": "OK" if ok else "FAIL", "detail": "" if ok else detail}
            for label, ok, detail in results
        ]
        print(json.dumps(report, indent=2, ensure_ascii=False))
        if not all(ok for _, ok, _ in results):
            raise SystemExit(1)
        return

    if args.command == "markers":
        surface = build_surface(settings, MetricsRegistry(), points_path=args.path)
        listing = [
            {
                "name": marker.name,
                "category": marker.category,
                "description": marker.description,
                "lon": marker.lon,
                "lat": marker.lat,
            }
            for marker in surface.features
        ]
        print(json.dumps(listing, indent=2, ensure_ascii=False))
        return

    if args.command == "click":
        surface = build_surface(settings, MetricsRegistry(), points_path=args.path)
        if args.zoom is not None:
            surface.set_view(surface.center, args.zoom)
        pixel = surface.pixel_from_coordinate(from_lon_lat((args.lon, args.lat), surface.projection()))
        feature = surface.single_click(pixel)
        content = surface.popup.content
        print(json.dumps(
            {
                "hit": feature is not None,
                "cursor": surface.cursor_at(pixel),
                "popup": content.as_dict() if content else None,
            },
            indent=2,
            ensure_ascii=False,
        ))
        return

    if args.command == "search":
        try:
            report = run_async(run_search(args, settings))
        except (IndexError, ValueError) as exc:
            raise SystemExit(f"Cannot select result: {exc}")
        print(json.dumps(report, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
