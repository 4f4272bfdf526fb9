import asyncio
from pathlib import Path

import httpx
import pytest

from peru_map.geocode.client import GeocoderClient
from peru_map.geocode.errors import RemoteLookupError
from peru_map.observability.metrics import MetricsRegistry
from peru_map.settings import GeocoderSettings

FIXTURE = Path("tests/fixtures/nominatim_lima.json")


def _lookup(handler, query, *, raising=False, metrics=None):
    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as session:
            client = GeocoderClient(session, GeocoderSettings(), metrics)
            if raising:
                return await client.fetch_results(query)
            return await client.search(query)

    return asyncio.run(_run())


def test_request_parameters_are_country_scoped():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["accept"] = request.headers.get("Accept")
        return httpx.Response(200, json=[])

    assert _lookup(handler, "Miraflores") == []
    params = seen["url"].params
    assert seen["url"].host == "nominatim.openstreetmap.org"
    assert params["q"] == "Miraflores"
    assert params["format"] == "json"
    assert params["addressdetails"] == "1"
    assert params["limit"] == "8"
    assert params["countrycodes"] == "pe"
    assert seen["accept"] == "application/json"


def test_success_parses_items_and_skips_those_without_coordinates():
    metrics = MetricsRegistry()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=FIXTURE.read_bytes())

    items = _lookup(handler, "Lima", metrics=metrics)
    assert [item.label for item in items] == [
        "Lima, Provincia de Lima, Lima Metropolitana, Perú",
        "Perú",
    ]
    assert items[0].bounding_box is not None
    assert items[0].bounding_box.lon_min == -77.1
    assert items[0].address["city"] == "Lima"
    assert items[1].bounding_box is None
    assert metrics.get("malformed_items") == 1


def test_non_success_status_raises_with_code():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="busy")

    with pytest.raises(RemoteLookupError) as info:
        _lookup(handler, "Lima", raising=True)
    assert info.value.status_code == 503


def test_non_success_status_becomes_empty_result_set():
    metrics = MetricsRegistry()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="slow down")

    assert _lookup(handler, "Lima", metrics=metrics) == []
    assert metrics.get("lookup_failures") == 1


def test_transport_failure_becomes_empty_result_set():
    metrics = MetricsRegistry()

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection reset", request=request)

    assert _lookup(handler, "Lima", metrics=metrics) == []
    assert metrics.get("lookup_failures") == 1

    with pytest.raises(RemoteLookupError) as info:
        _lookup(handler, "Lima", raising=True)
    assert info.value.status_code is None
    assert "ConnectError" in info.value.reason


def test_body_that_is_not_an_array_is_a_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "Unable to geocode"})

    assert _lookup(handler, "Lima") == []
    with pytest.raises(RemoteLookupError):
        _lookup(handler, "Lima", raising=True)


def test_accept_language_is_forwarded_when_configured():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = request.url.params
        return httpx.Response(200, json=[])

    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as session:
            client = GeocoderClient(session, GeocoderSettings(accept_language="es", limit=3))
            await client.search("Puno")

    asyncio.run(_run())
    assert seen["params"]["accept-language"] == "es"
    assert seen["params"]["limit"] == "3"


def test_invalid_url_becomes_empty_result_set():
    metrics = MetricsRegistry()

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

    assert _lookup(handler, "Lima", metrics=metrics) == []
    assert metrics.get("lookup_failures") == 1


def test_lookup_duration_is_recorded_per_request():
    metrics = MetricsRegistry()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    _lookup(handler, "Lima", metrics=metrics)
    _lookup(handler, "Cusco", metrics=metrics)
    assert len(metrics.timings("lookup_duration_ms")) == 2
    assert metrics.timing_summary()["lookup_duration_ms"]["count"] == 2
