"""Result list shown under the search box and the selection handling."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from peru_map.geocode.models import ResultItem
from peru_map.mapping.surface import MapSurface
from peru_map.observability.metrics import MetricsRegistry
from peru_map.search.navigation import NavigationCommand, build_navigation
from peru_map.settings import NavigationSettings

NO_RESULTS_LABEL = "Sin resultados"


@dataclass(frozen=True, slots=True)
class ResultRow:
    label: str
    item: Optional[ResultItem] = None
    interactive: bool = True


class ResultPanel:
    """List of rows plus a visibility flag; hiding keeps the rows."""

    def __init__(self) -> None:
        self.rows: List[ResultRow] = []
        self.visible = False

    def set_rows(self, rows: Sequence[ResultRow]) -> None:
        self.rows = list(rows)

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False

    def clear(self) -> None:
        self.rows = []

    def labels(self) -> List[str]:
        return [row.label for row in self.rows]


class ResultPresenter:
    """Renders result sets and turns a selected row into a view change."""

    def __init__(
        self,
        surface: MapSurface,
        *,
        panel: Optional[ResultPanel] = None,
        settings: Optional[NavigationSettings] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self.surface = surface
        self.panel = panel or ResultPanel()
        self._settings = settings or NavigationSettings()
        self._metrics = metrics or MetricsRegistry()

    def present(self, results: Sequence[ResultItem]) -> None:
        if not results:
            self.panel.set_rows([ResultRow(label=NO_RESULTS_LABEL, interactive=False)])
            self._metrics.incr("empty_results")
        else:
            self.panel.set_rows([ResultRow(label=item.label, item=item) for item in results])
            self._metrics.incr("results_presented")
        self.panel.show()

    def select(self, index: int) -> NavigationCommand:
        """Navigate to the row at ``index`` and return to an empty, hidden list."""
        if index < 0 or index >= len(self.panel.rows):
            raise IndexError(f"No result row at position {index}")
        row = self.panel.rows[index]
        if not row.interactive or row.item is None:
            raise ValueError(f"Row {index} cannot be selected")
        command = build_navigation(row.item, self.surface.projection(), self._settings)
        self.surface.apply(command)
        self._metrics.incr("navigations")
        self.clear()
        self.hide()
        return command

    def show(self) -> None:
        self.panel.show()

    def hide(self) -> None:
        self.panel.hide()

    def clear(self) -> None:
        self.panel.clear()
