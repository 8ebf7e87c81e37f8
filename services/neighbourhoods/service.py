"""Neighbourhood resolution façade"""

import logging

from services.cache import InMemoryResolutionCache, ResolutionCache
from services.geocoding.errors import GeoResolutionError, NoMatch, OutOfTerritory
from services.geocoding.models import Coordinates, LocationQuery, ParsedAddress
from services.geocoding.parser import AddressParser
from services.geocoding.resolver import AddressResolver

from .matcher import NeighbourhoodMatcher
from .models import (
    Confidence,
    NearbyNeighbourhoods,
    NeighbourhoodBounds,
    NeighbourhoodResolution,
    ResolvedNeighbourhood,
)
from .proximity import ProximityEngine
from .taxonomy import NeighbourhoodTaxonomy

logger = logging.getLogger(__name__)

QueryLike = LocationQuery | Coordinates | str

DEFAULT_BOUNDS_RADIUS_M = 2000


class GeoResolutionService:
    """
    Resolves locations to taxonomy neighbourhoods and ranks neighbourhoods
    by proximity.

    Provider failures never propagate out of this class: they come back as
    empty results carrying a FailureKind, and are logged.
    """

    def __init__(
        self,
        provider,
        taxonomy: NeighbourhoodTaxonomy,
        cache: ResolutionCache | None = None,
        matcher: NeighbourhoodMatcher | None = None,
        engine: ProximityEngine | None = None,
        parser: AddressParser | None = None,
    ):
        self.provider = provider
        self.taxonomy = taxonomy
        self.cache = cache if cache is not None else InMemoryResolutionCache()
        self.resolver = AddressResolver(provider, self.cache, parser)
        self.matcher = matcher or NeighbourhoodMatcher(taxonomy)
        self.engine = engine or ProximityEngine(self.resolver, taxonomy.country)

    @classmethod
    def from_settings(
        cls,
        settings,
        provider,
        taxonomy: NeighbourhoodTaxonomy,
        cache: ResolutionCache,
    ) -> "GeoResolutionService":
        service = cls(
            provider,
            taxonomy,
            cache=cache,
            matcher=NeighbourhoodMatcher(taxonomy, tie_break=settings.MATCHER_TIE_BREAK),
        )
        service.engine = ProximityEngine(
            service.resolver,
            taxonomy.country,
            concurrency=settings.PROXIMITY_CONCURRENCY,
            same_region_estimate_km=settings.SAME_REGION_ESTIMATE_KM,
            other_region_margin_km=settings.OTHER_REGION_MARGIN_KM,
            unfiltered_other_region_km=settings.UNFILTERED_OTHER_REGION_KM,
        )
        return service

    # ── Resolve ───────────────────────────────────────────────────

    async def resolve_neighbourhood(self, query: QueryLike) -> ResolvedNeighbourhood | None:
        """The neighbourhood a location lies in, or None"""
        return (await self.resolve_neighbourhood_detailed(query)).neighbourhood

    async def resolve_neighbourhood_detailed(self, query: QueryLike) -> NeighbourhoodResolution:
        query = LocationQuery.coerce(query)
        try:
            address = await self._address_for(query)
        except GeoResolutionError as e:
            logger.warning(f"Could not resolve {_describe(query)}: {e.kind.value} ({e})")
            return NeighbourhoodResolution(failure=e.kind)
        return self.neighbourhood_for_address(address)

    def match_address(self, address: ParsedAddress) -> ResolvedNeighbourhood:
        """
        Territory check and taxonomy match for an already-parsed address.

        Raises:
            OutOfTerritory: The address lies outside the taxonomy's country
            NoMatch: The address is domestic but no entry lists its suburb
        """
        if not address.is_domestic(self.taxonomy.country, self.taxonomy.country_code):
            raise OutOfTerritory(address.country)

        entry = self.matcher.match(address)
        if entry is None:
            raise NoMatch(address.suburb)

        # The user's own point lies in the neighbourhood by definition
        return ResolvedNeighbourhood(
            neighbourhood=entry,
            distance_km=0.0,
            confidence=Confidence.EXACT,
            detected_address=address,
        )

    def neighbourhood_for_address(self, address: ParsedAddress) -> NeighbourhoodResolution:
        try:
            neighbourhood = self.match_address(address)
        except (OutOfTerritory, NoMatch) as e:
            logger.info(f"No neighbourhood for '{address.formatted_address or address.suburb}': {e}")
            return NeighbourhoodResolution(address=address, failure=e.kind)
        return NeighbourhoodResolution(address=address, neighbourhood=neighbourhood)

    async def resolve_current_location(self) -> NeighbourhoodResolution:
        """Resolve the neighbourhood of the device's last reported position"""
        try:
            coords = await self.provider.current_device_location()
        except GeoResolutionError as e:
            logger.info(f"Device location unavailable: {e.kind.value}")
            return NeighbourhoodResolution(failure=e.kind)
        return await self.resolve_neighbourhood_detailed(LocationQuery(coordinates=coords))

    # ── Nearby ────────────────────────────────────────────────────

    async def find_nearby(self, query: QueryLike, radius_km: float | None = None) -> list[ResolvedNeighbourhood]:
        """Neighbourhoods within *radius_km* of a location, nearest first"""
        return (await self.find_nearby_detailed(query, radius_km)).neighbourhoods

    async def find_nearby_detailed(self, query: QueryLike, radius_km: float | None = None) -> NearbyNeighbourhoods:
        query = LocationQuery.coerce(query)
        try:
            origin, origin_region = await self._origin_for(query)
        except GeoResolutionError as e:
            logger.warning(f"Could not locate {_describe(query)}: {e.kind.value} ({e})")
            return NearbyNeighbourhoods(radius_km=radius_km, failure=e.kind)

        ranked = await self.engine.rank(
            origin,
            self.taxonomy.all_entries(),
            radius_km=radius_km,
            origin_region=origin_region,
        )
        return NearbyNeighbourhoods(
            neighbourhoods=ranked,
            origin=origin,
            origin_region=origin_region,
            radius_km=radius_km,
        )

    async def neighbourhood_bounds(self, neighbourhood_id: str) -> NeighbourhoodBounds | None:
        """Approximate centre and radius of a neighbourhood"""
        entry = self.taxonomy.get(neighbourhood_id)
        if entry is None:
            return None
        try:
            center = await self.engine.resolve_centroid(entry)
        except GeoResolutionError as e:
            logger.warning(f"Error getting bounds for {neighbourhood_id}: {e.kind.value}")
            return None
        return NeighbourhoodBounds(
            neighbourhood_id=neighbourhood_id,
            center=center,
            radius_m=DEFAULT_BOUNDS_RADIUS_M,
        )

    # ── Private helpers ───────────────────────────────────────────

    async def _address_for(self, query: LocationQuery) -> ParsedAddress:
        if query.coordinates is not None:
            return await self.resolver.reverse(query.coordinates)
        _, address = await self.resolver.forward(query.text)
        return address

    async def _origin_for(self, query: LocationQuery) -> tuple[Coordinates, str | None]:
        if query.coordinates is None:
            point, address = await self.resolver.forward(query.text)
            return point, self.taxonomy.region_for_address(address)

        # Region only feeds distance estimates, so a failed lookup is fine
        try:
            address = await self.resolver.reverse(query.coordinates)
        except GeoResolutionError as e:
            logger.info(f"Origin region unknown ({e.kind.value})")
            return query.coordinates, None
        return query.coordinates, self.taxonomy.region_for_address(address)


def _describe(query: LocationQuery) -> str:
    if query.coordinates is not None:
        return f"({query.coordinates.cache_key()})"
    return f"'{query.text}'"
