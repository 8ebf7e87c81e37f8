"""Pydantic models for the neighbourhood taxonomy and resolution results"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.geocoding.errors import FailureKind
from services.geocoding.models import Coordinates, ParsedAddress


class Confidence(str, Enum):
    """Whether a distance came from a resolved centroid or a heuristic"""

    EXACT = "exact"
    ESTIMATED = "estimated"


class NeighbourhoodType(BaseModel):
    """Community type classification"""

    model_config = ConfigDict(frozen=True)

    key: str
    icon: str = ""
    features: tuple[str, ...] = ()
    community_style: str = ""


class NeighbourhoodEntry(BaseModel):
    """A curated neighbourhood: a named group of suburbs within a region"""

    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    name: str
    local_name: str = ""
    region_key: str
    region: str
    region_local_name: str = ""
    suburbs: tuple[str, ...] = Field(..., min_length=1)
    type: str
    postcode: str = ""
    features: tuple[str, ...] = ()
    description: str = ""

    @field_validator("suburbs")
    @classmethod
    def no_blank_suburbs(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        # A blank suburb would substring-match every address
        if any(not s.strip() for s in v):
            raise ValueError("suburb names must not be blank")
        return v


class ResolvedNeighbourhood(BaseModel):
    """A neighbourhood plus the distance computed for one query"""

    neighbourhood: NeighbourhoodEntry
    distance_km: float | None = None
    confidence: Confidence = Confidence.EXACT
    centroid: Coordinates | None = None
    failure: FailureKind | None = None
    detected_address: ParsedAddress | None = None

    @property
    def id(self) -> str:
        return self.neighbourhood.id

    @property
    def name(self) -> str:
        return self.neighbourhood.name

    @property
    def is_estimated(self) -> bool:
        return self.confidence == Confidence.ESTIMATED


class NeighbourhoodResolution(BaseModel):
    """Outcome of resolving a single location to its neighbourhood"""

    neighbourhood: ResolvedNeighbourhood | None = None
    address: ParsedAddress | None = None
    failure: FailureKind | None = None


class NearbyNeighbourhoods(BaseModel):
    """Outcome of a proximity search"""

    neighbourhoods: list[ResolvedNeighbourhood] = Field(default_factory=list)
    origin: Coordinates | None = None
    origin_region: str | None = None
    radius_km: float | None = None
    failure: FailureKind | None = None

    @property
    def has_estimates(self) -> bool:
        return any(n.is_estimated for n in self.neighbourhoods)


class NeighbourhoodBounds(BaseModel):
    """Approximate circular extent of a neighbourhood"""

    neighbourhood_id: str
    center: Coordinates
    radius_m: int = 2000


class SuburbSuggestion(BaseModel):
    """Autocomplete candidate for suburb or postcode entry"""

    model_config = ConfigDict(frozen=True)

    suburb: str
    neighbourhood_id: str
    neighbourhood: str
    region_key: str
    region: str
    postcode: str = ""
