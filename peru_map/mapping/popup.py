"""Popup overlay anchored to a clicked marker."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from peru_map.mapping.projection import Coordinate

UNNAMED_POINT = "Punto sin nombre"


@dataclass(frozen=True, slots=True)
class PopupContent:
    title: str
    badge: Optional[str]
    description: str

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> "PopupContent":
        return cls(
            title=properties.get("nombre") or UNNAMED_POINT,
            badge=properties.get("tipo") or None,
            description=properties.get("descripcion") or "",
        )

    def as_dict(self) -> dict:
        return {"title": self.title, "badge": self.badge, "description": self.description}


class PopupOverlay:
    """Holds what the popup shows and where; ``position`` is None while closed."""

    def __init__(self, *, offset: Tuple[int, int] = (0, -10)) -> None:
        self.offset = offset
        self.position: Optional[Coordinate] = None
        self.content: Optional[PopupContent] = None

    @property
    def is_open(self) -> bool:
        return self.position is not None

    def open(self, position: Coordinate, content: PopupContent) -> None:
        self.position = position
        self.content = content

    def close(self) -> None:
        self.position = None
        self.content = None
