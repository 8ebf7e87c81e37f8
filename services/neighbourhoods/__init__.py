"""Neighbourhood taxonomy, matching and proximity ranking"""

from .matcher import NeighbourhoodMatcher
from .models import (
    Confidence,
    NearbyNeighbourhoods,
    NeighbourhoodBounds,
    NeighbourhoodEntry,
    NeighbourhoodResolution,
    NeighbourhoodType,
    ResolvedNeighbourhood,
    SuburbSuggestion,
)
from .proximity import ProximityEngine
from .service import GeoResolutionService
from .taxonomy import NeighbourhoodTaxonomy, Region

__all__ = [
    "Confidence",
    "GeoResolutionService",
    "NearbyNeighbourhoods",
    "NeighbourhoodBounds",
    "NeighbourhoodEntry",
    "NeighbourhoodMatcher",
    "NeighbourhoodResolution",
    "NeighbourhoodTaxonomy",
    "NeighbourhoodType",
    "ProximityEngine",
    "Region",
    "ResolvedNeighbourhood",
    "SuburbSuggestion",
]
