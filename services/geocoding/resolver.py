"""Cache-checked geocoding: provider call on miss, parse, write-through"""

import logging
from typing import TYPE_CHECKING

from .errors import NotFound
from .models import Coordinates, NotFoundResult, ParsedAddress
from .parser import AddressParser

if TYPE_CHECKING:
    from services.cache import ResolutionCache

logger = logging.getLogger(__name__)


def normalize_query(query: str) -> str:
    """Lower-case and collapse whitespace/comma spacing for cache keys"""
    parts = [" ".join(part.lower().split()) for part in query.split(",")]
    return ",".join(part for part in parts if part)


class AddressResolver:
    """
    Geocodes through a ResolutionCache.

    Forward lookups store the parsed address and the point under separate
    keys so centroid lookups can be served without the full address.

    A NotFound answer is cached as a NotFoundResult marker and re-raised on
    a hit. Transient failures (unavailable, rate limited) are never cached.
    """

    def __init__(self, provider, cache: "ResolutionCache", parser: AddressParser | None = None):
        self.provider = provider
        self.cache = cache
        self.parser = parser or AddressParser()

    async def reverse(self, coord: Coordinates) -> ParsedAddress:
        """Coordinates -> ParsedAddress"""
        key = f"reverse:{coord.cache_key()}"
        cached = await self.cache.get(key)
        if isinstance(cached, NotFoundResult):
            raise NotFound(cached.query)
        if isinstance(cached, ParsedAddress):
            return cached

        logger.debug(f"Reverse geocoding {coord.cache_key()} (cache miss)")
        try:
            response = await self.provider.reverse_geocode(coord)
        except NotFound as e:
            await self.cache.set(key, NotFoundResult(query=e.query))
            raise
        address = self.parser.parse(response)
        await self.cache.set(key, address)
        return address

    async def forward(self, query: str) -> tuple[Coordinates, ParsedAddress]:
        """Free text -> (point, ParsedAddress)"""
        normalized = normalize_query(query)
        address_key = f"forward:{normalized}:address"
        point_key = f"forward:{normalized}:point"

        address = await self.cache.get(address_key)
        if isinstance(address, NotFoundResult):
            raise NotFound(address.query)
        point = await self.cache.get(point_key)
        if isinstance(address, ParsedAddress) and isinstance(point, Coordinates):
            return point, address

        logger.debug(f"Forward geocoding '{query}' (cache miss)")
        try:
            response = await self.provider.forward_geocode(query)
        except NotFound as e:
            marker = NotFoundResult(query=e.query)
            await self.cache.set(address_key, marker)
            await self.cache.set(point_key, marker)
            raise
        address = self.parser.parse(response)
        await self.cache.set(address_key, address)
        await self.cache.set(point_key, response.coordinates)
        return response.coordinates, address

    async def locate(self, query: str) -> Coordinates:
        """Free text -> point (centroid lookups)"""
        point = await self.cache.get(f"forward:{normalize_query(query)}:point")
        if isinstance(point, NotFoundResult):
            raise NotFound(point.query)
        if isinstance(point, Coordinates):
            return point
        point, _ = await self.forward(query)
        return point
