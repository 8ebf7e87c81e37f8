"""
Proximity ranking of neighbourhoods around a point.

Each candidate's centroid is forward-geocoded on demand (through the
resolution cache) and its great-circle distance to the origin computed.
Candidates whose centroid cannot be resolved are kept with a heuristic
distance and flagged ``estimated`` rather than dropped.
"""

import asyncio
import logging
from typing import Iterable

from services.geocoding.errors import GeoResolutionError
from services.geocoding.models import Coordinates
from services.geocoding.resolver import AddressResolver
from services.geofence import haversine_km

from .models import Confidence, NeighbourhoodEntry, ResolvedNeighbourhood

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 6
SAME_REGION_ESTIMATE_KM = 2.5
OTHER_REGION_MARGIN_KM = 20.0
UNFILTERED_OTHER_REGION_KM = 50.0


class ProximityEngine:
    def __init__(
        self,
        resolver: AddressResolver,
        country: str,
        concurrency: int = DEFAULT_CONCURRENCY,
        same_region_estimate_km: float = SAME_REGION_ESTIMATE_KM,
        other_region_margin_km: float = OTHER_REGION_MARGIN_KM,
        unfiltered_other_region_km: float = UNFILTERED_OTHER_REGION_KM,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if other_region_margin_km <= 0:
            raise ValueError("other_region_margin_km must be positive")
        self.resolver = resolver
        self.country = country
        self.concurrency = concurrency
        # Shared by every rank call so concurrent searches stay within the bound
        self._semaphore = asyncio.Semaphore(concurrency)
        self.same_region_estimate_km = same_region_estimate_km
        self.other_region_margin_km = other_region_margin_km
        self.unfiltered_other_region_km = unfiltered_other_region_km

    async def rank(
        self,
        origin: Coordinates,
        candidates: Iterable[NeighbourhoodEntry],
        radius_km: float | None = None,
        origin_region: str | None = None,
    ) -> list[ResolvedNeighbourhood]:
        """
        Rank candidates by distance from *origin*.

        Args:
            origin: Reference point
            candidates: Neighbourhoods in taxonomy declaration order
            radius_km: Keep only entries within this distance; None or 0
                disables filtering
            origin_region: Region key of the origin, used for estimates

        Returns:
            Entries sorted by ascending distance; equal distances keep
            declaration order
        """
        if radius_km is not None and radius_km < 0:
            raise ValueError("radius_km must not be negative")
        filter_radius = radius_km or None

        candidates = list(candidates)
        if not candidates:
            return []

        results = await asyncio.gather(*(
            self._resolve(origin, entry, filter_radius, origin_region)
            for entry in candidates
        ))

        if filter_radius is not None:
            results = [r for r in results if r.distance_km <= filter_radius]

        # list.sort is stable
        results.sort(key=lambda r: r.distance_km)

        estimated = sum(1 for r in results if r.is_estimated)
        if estimated:
            logger.info(f"Proximity ranking returned {estimated} estimated of {len(results)} neighbourhoods")
        return results

    def centroid_query(self, entry: NeighbourhoodEntry) -> str:
        """Free-text query whose geocode stands in for the neighbourhood centre"""
        return f"{entry.suburbs[0]}, {entry.region}, {self.country}"

    async def resolve_centroid(self, entry: NeighbourhoodEntry) -> Coordinates:
        return await self.resolver.locate(self.centroid_query(entry))

    def estimate_distance(
        self,
        entry: NeighbourhoodEntry,
        radius_km: float | None,
        origin_region: str | None,
    ) -> float:
        """
        Heuristic distance for an entry whose centroid is unknown.

        Same region as the origin: a small fixed distance. Otherwise a value
        beyond the search radius, or a large fixed distance when unfiltered.
        """
        if origin_region is not None and entry.region_key == origin_region:
            return self.same_region_estimate_km
        if radius_km:
            return radius_km + self.other_region_margin_km
        return self.unfiltered_other_region_km

    async def _resolve(
        self,
        origin: Coordinates,
        entry: NeighbourhoodEntry,
        radius_km: float | None,
        origin_region: str | None,
    ) -> ResolvedNeighbourhood:
        try:
            async with self._semaphore:
                centroid = await self.resolve_centroid(entry)
        except GeoResolutionError as e:
            distance = self.estimate_distance(entry, radius_km, origin_region)
            logger.warning(
                f"Centroid for {entry.id} unavailable ({e.kind.value}), "
                f"using estimated distance {distance:.1f} km"
            )
            return ResolvedNeighbourhood(
                neighbourhood=entry,
                distance_km=distance,
                confidence=Confidence.ESTIMATED,
                failure=e.kind,
            )

        return ResolvedNeighbourhood(
            neighbourhood=entry,
            distance_km=haversine_km(origin, centroid),
            confidence=Confidence.EXACT,
            centroid=centroid,
        )
