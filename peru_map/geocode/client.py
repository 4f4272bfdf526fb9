"""Country-scoped place lookup against a Nominatim-compatible endpoint."""
from __future__ import annotations

from typing import Dict, List, Optional

import httpx
import orjson

from peru_map.geocode.errors import RemoteLookupError
from peru_map.geocode.models import ResultItem, parse_results
from peru_map.observability.metrics import MetricsRegistry, record_duration
from peru_map.observability.tracing import log_lookup_failure, log_lookup_result, span
from peru_map.settings import GeocoderSettings


class GeocoderClient:
    """Translates a free-text query into ranked result items.

    Failed lookups are not retried and nothing is cached; the next keystroke
    issues a fresh request.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        settings: Optional[GeocoderSettings] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._session = session
        self._settings = settings or GeocoderSettings()
        self._metrics = metrics or MetricsRegistry()

    def build_params(self, query: str) -> Dict[str, str]:
        params = {
            "q": query,
            "format": "json",
            "addressdetails": "1",
            "limit": str(self._settings.limit),
            "countrycodes": self._settings.country_codes,
        }
        if self._settings.accept_language:
            params["accept-language"] = self._settings.accept_language
        return params

    async def fetch_results(self, query: str) -> List[ResultItem]:
        """Perform the lookup, raising `RemoteLookupError` on any failure."""
        url = self._settings.base_url
        try:
            with record_duration(self._metrics, "lookup_duration_ms") as timer, span(name="geocoder_lookup", url=url):
                response = await self._session.get(
                    url,
                    params=self.build_params(query),
                    headers={"Accept": "application/json"},
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RemoteLookupError(query, reason=f"{type(exc).__name__}: {exc}") from exc
        elapsed_ms = timer.elapsed_ms

        if not response.is_success:
            raise RemoteLookupError(query, status_code=response.status_code)
        try:
            payload = orjson.loads(response.content)
        except orjson.JSONDecodeError as exc:
            raise RemoteLookupError(query, status_code=response.status_code, reason="invalid JSON body") from exc
        if not isinstance(payload, list):
            raise RemoteLookupError(query, status_code=response.status_code, reason="expected a JSON array")

        items = parse_results(payload, self._metrics)
        log_lookup_result(query=query, status=response.status_code, items=len(items), elapsed_ms=elapsed_ms)
        return items

    async def search(self, query: str) -> List[ResultItem]:
        """Return matches for ``query``; failures surface as an empty list."""
        try:
            return await self.fetch_results(query)
        except RemoteLookupError as exc:
            self._metrics.incr("lookup_failures")
            log_lookup_failure(query=query, status=exc.status_code, reason=exc.reason or str(exc))
            return []
