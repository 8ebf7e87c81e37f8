"""Shared fixtures: an in-memory stand-in for the geocoding provider"""

import asyncio

import pytest

from services.cache import InMemoryResolutionCache
from services.geocoding import Coordinates, LocationUnavailable, NotFound, ProviderResponse
from services.neighbourhoods import GeoResolutionService, NeighbourhoodTaxonomy


def google_response(
    lat: float,
    lon: float,
    suburb: str = "",
    city: str = "",
    region: str = "",
    country: str = "New Zealand",
    country_code: str = "NZ",
    formatted: str = "",
) -> ProviderResponse:
    """Build a Google-style result with only the given components"""
    components = []
    if suburb:
        components.append({"long_name": suburb, "short_name": suburb, "types": ["sublocality", "political"]})
    if city:
        components.append({"long_name": city, "short_name": city, "types": ["administrative_area_level_2", "political"]})
    if region:
        components.append({"long_name": region, "short_name": region, "types": ["administrative_area_level_1", "political"]})
    if country:
        components.append({"long_name": country, "short_name": country_code, "types": ["country", "political"]})

    return ProviderResponse(
        provider="google",
        coordinates=Coordinates(latitude=lat, longitude=lon),
        formatted_address=formatted,
        raw={"address_components": components, "formatted_address": formatted},
    )


class FakeGeoProvider:
    """
    Answers forward lookups by exact query text and reverse lookups by
    coordinate cache key. Unknown queries raise NotFound. A registered
    exception is raised instead of returning a result.
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.forward_results: dict = {}
        self.reverse_results: dict = {}
        self.forward_calls: list[str] = []
        self.reverse_calls: list[Coordinates] = []
        self.device_result = None
        self.in_flight = 0
        self.max_in_flight = 0

    def add_forward(self, query: str, lat: float, lon: float, **address):
        self.forward_results[query] = google_response(lat, lon, **address)

    def add_reverse(self, lat: float, lon: float, **address):
        key = Coordinates(latitude=lat, longitude=lon).cache_key()
        self.reverse_results[key] = google_response(lat, lon, **address)

    def fail_forward(self, query: str, error: Exception):
        self.forward_results[query] = error

    def fail_reverse(self, lat: float, lon: float, error: Exception):
        self.reverse_results[Coordinates(latitude=lat, longitude=lon).cache_key()] = error

    async def forward_geocode(self, query: str) -> ProviderResponse:
        self.forward_calls.append(query)
        return await self._respond(self.forward_results.get(query), query)

    async def reverse_geocode(self, coord: Coordinates) -> ProviderResponse:
        self.reverse_calls.append(coord)
        return await self._respond(self.reverse_results.get(coord.cache_key()), coord.cache_key())

    async def current_device_location(self) -> Coordinates:
        if isinstance(self.device_result, Exception):
            raise self.device_result
        if self.device_result is None:
            raise LocationUnavailable("No device location has been reported")
        return self.device_result

    async def _respond(self, result, query: str):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        if result is None:
            raise NotFound(query)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def make_response():
    return google_response


@pytest.fixture
def taxonomy():
    return NeighbourhoodTaxonomy.load_default()


@pytest.fixture
def provider():
    return FakeGeoProvider()


@pytest.fixture
def cache():
    return InMemoryResolutionCache()


@pytest.fixture
def service(provider, taxonomy, cache):
    return GeoResolutionService(provider, taxonomy, cache=cache)
