"""Coordinator wiring search-box events to the geocoder and the result list."""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from peru_map.geocode.client import GeocoderClient
from peru_map.geocode.models import ResultItem
from peru_map.observability.metrics import MetricsRegistry
from peru_map.observability.tracing import clear_context, set_context
from peru_map.search.debounce import DebounceScheduler
from peru_map.search.navigation import NavigationCommand
from peru_map.search.presenter import ResultPresenter
from peru_map.search.validator import is_searchable, normalise_query
from peru_map.settings import SearchSettings


class PipelineState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    QUERYING = "querying"
    PRESENTING = "presenting"


class SearchPipeline:
    """State machine behind the search box.

    Every dispatched lookup is tagged with a generation number. A response is
    presented only while its generation is still the current one. Scheduling a
    new search, clearing, dismissing and selecting all advance the generation,
    so a slow answer never replaces or re-opens what the user has moved past.
    """

    def __init__(
        self,
        geocoder: GeocoderClient,
        presenter: ResultPresenter,
        *,
        scheduler: Optional[DebounceScheduler] = None,
        settings: Optional[SearchSettings] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._settings = settings or SearchSettings()
        self._geocoder = geocoder
        self._presenter = presenter
        self._scheduler = scheduler or DebounceScheduler(self._settings.debounce_ms)
        self._metrics = metrics or MetricsRegistry()
        self._query = ""
        self._generation = 0
        self._results: List[ResultItem] = []
        self._state = PipelineState.IDLE

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def query(self) -> str:
        return self._query

    @property
    def results(self) -> List[ResultItem]:
        return list(self._results)

    @property
    def presenter(self) -> ResultPresenter:
        return self._presenter

    def on_input(self, text: str) -> None:
        """Record the new input value and (re)start the debounce wait."""
        self._query = text
        self._metrics.incr("searches_scheduled")
        self._schedule()
        self._state = PipelineState.DEBOUNCING

    def on_enter(self) -> bool:
        """Skip the remaining debounce wait; ignored while the input is empty."""
        if not self._query:
            return False
        self._schedule()
        return self._scheduler.flush()

    def on_clear(self) -> None:
        self._query = ""
        self._reset()

    def on_outside_click(self) -> None:
        self._reset()

    def on_select(self, index: int) -> NavigationCommand:
        """Navigate to the chosen row and return to idle."""
        command = self._presenter.select(index)
        self._scheduler.cancel()
        self._generation += 1
        self._results = []
        self._state = PipelineState.IDLE
        return command

    async def drain(self) -> None:
        """Wait for the pending timer and any in-flight lookups to settle."""
        await self._scheduler.drain()

    def _schedule(self) -> None:
        # Lookups already in flight belong to the query being replaced.
        self._generation += 1
        self._scheduler.schedule(self._run)

    def _reset(self) -> None:
        self._scheduler.cancel()
        self._generation += 1
        self._results = []
        self._presenter.clear()
        self._presenter.hide()
        self._state = PipelineState.IDLE

    async def _run(self) -> None:
        query = normalise_query(self._query)
        if not is_searchable(query, self._settings.min_query_length):
            self._metrics.incr("searches_skipped")
            self._reset()
            return

        self._generation += 1
        generation = self._generation
        self._results = []
        self._state = PipelineState.QUERYING
        self._metrics.incr("searches_dispatched")
        set_context(generation=generation, query=query)
        try:
            results = await self._geocoder.search(query)
        finally:
            clear_context()

        if generation != self._generation:
            return
        self._results = results
        self._presenter.present(results)
        self._state = PipelineState.PRESENTING
