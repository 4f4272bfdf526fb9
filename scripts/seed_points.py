#!/usr/bin/env python
"""Write the demo marker file used by the map."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Dict, List

import orjson
from dotenv import load_dotenv

DEMO_POINTS: List[Dict[str, object]] = [
    {"nombre": "Plaza Mayor de Lima", "tipo": "Histórico", "descripcion": "Centro histórico de Lima.", "coordinates": [-77.0301, -12.0453]},
    {"nombre": "Machu Picchu", "tipo": "Arqueológico", "descripcion": "Ciudadela inca en Cusco.", "coordinates": [-72.5450, -13.1631]},
    {"nombre": "Plaza de Armas del Cusco", "tipo": "Histórico", "descripcion": "Antigua capital del Tahuantinsuyo.", "coordinates": [-71.9787, -13.5167]},
    {"nombre": "Monasterio de Santa Catalina", "tipo": "Histórico", "descripcion": "Arequipa, ciudad blanca.", "coordinates": [-71.5370, -16.3953]},
    {"nombre": "Lago Titicaca", "tipo": "Natural", "descripcion": "Lago navegable más alto del mundo.", "coordinates": [-69.8000, -15.9167]},
    {"nombre": "Chan Chan", "tipo": "Arqueológico", "descripcion": "Ciudad de barro en Trujillo.", "coordinates": [-79.0747, -8.1059]},
    {"nombre": "Iquitos", "tipo": None, "descripcion": "Puerta de la Amazonía peruana.", "coordinates": [-73.2472, -3.7491]},
]


def build_collection(points: List[Dict[str, object]]) -> Dict[str, object]:
    features = []
    for index, point in enumerate(points, start=1):
        properties = {key: value for key, value in point.items() if key != "coordinates"}
        features.append({
            "type": "Feature",
            "id": index,
            "geometry": {"type": "Point", "coordinates": point["coordinates"]},
            "properties": properties,
        })
    return {"type": "FeatureCollection", "features": features}


def seed_points(path: Path) -> Path:
    """Write the demo feature collection to ``path``, replacing any existing file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(build_collection(DEMO_POINTS), option=orjson.OPT_INDENT_2))
    return path


def main() -> None:
    """CLI entrypoint used by `peru-map seed-points`."""
    load_dotenv()
    parser = argparse.ArgumentParser(description="Write the demo points GeoJSON")
    parser.add_argument(
        "--path",
        type=Path,
        default=Path("data/points.json"),
        help="Destination GeoJSON file",
    )
    args = parser.parse_args()
    seed_points(args.path)


if __name__ == "__main__":
    main()
