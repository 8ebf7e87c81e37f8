"""
Neighbourhood taxonomy

Static, read-only reference data: region -> neighbourhood -> suburb names.
Loaded once at startup from a declarative JSON document and validated; any
problem with the document is a configuration error and aborts startup.

Document layout:
- country / country_code: the territory the taxonomy covers
- types: {type_key: {icon, features, community_style}}
- regions: {region_key: {name, local_name, aliases, neighbourhoods: {
      neighbourhood_key: {name, local_name, suburbs, postcode, type,
                          features, description}}}}

Declaration order in the document is the iteration order of the taxonomy.
"""

import json
import logging
import unicodedata
from collections import defaultdict
from importlib import resources
from pathlib import Path
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from services.geocoding.errors import TaxonomyError
from services.geocoding.models import ParsedAddress

from .models import NeighbourhoodEntry, NeighbourhoodType, SuburbSuggestion

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = "neighbourhoods.json"
DEFAULT_SUGGESTION_LIMIT = 10


class Region(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    local_name: str = ""
    aliases: tuple[str, ...] = ()


# --- Document schema ---

class _TypeSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    icon: str = ""
    features: list[str] = []
    community_style: str = ""


class _NeighbourhoodSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    local_name: str = ""
    suburbs: list[str] = Field(..., min_length=1)
    postcode: str = ""
    type: str
    features: list[str] = []
    description: str = ""


class _RegionSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    local_name: str = ""
    aliases: list[str] = []
    neighbourhoods: dict[str, _NeighbourhoodSpec] = Field(..., min_length=1)


class _TaxonomyDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str = ""
    country: str = Field(..., min_length=1)
    country_code: str = Field(..., min_length=2, max_length=2)
    types: dict[str, _TypeSpec] = {}
    regions: dict[str, _RegionSpec] = Field(..., min_length=1)


def fold_text(text: str) -> str:
    """
    Normalize text for loose comparison.

    - Lowercase
    - Remove diacritics (Tāmaki -> tamaki)
    - Hyphens and punctuation become spaces
    - Collapse multiple spaces
    """
    text = unicodedata.normalize("NFKD", text.lower())
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = "".join(c if c.isalnum() or c.isspace() else " " for c in text)
    return " ".join(text.split())


class NeighbourhoodTaxonomy:
    """Immutable, in-memory view over a validated taxonomy document"""

    def __init__(self, data: dict[str, Any], source: str = "<memory>"):
        self.source = source
        try:
            document = _TaxonomyDocument.model_validate(data)
        except ValidationError as e:
            raise TaxonomyError(source, str(e)) from e

        self.version = document.version
        self.country = document.country
        self.country_code = document.country_code.upper()

        self._types = {
            key: NeighbourhoodType(key=key, **spec.model_dump())
            for key, spec in document.types.items()
        }

        regions: list[Region] = []
        entries: list[NeighbourhoodEntry] = []
        by_region: dict[str, list[NeighbourhoodEntry]] = {}
        by_id: dict[str, NeighbourhoodEntry] = {}

        for region_key, region_spec in document.regions.items():
            regions.append(Region(
                key=region_key,
                name=region_spec.name,
                local_name=region_spec.local_name,
                aliases=tuple(region_spec.aliases),
            ))
            by_region[region_key] = []

            for key, spec in region_spec.neighbourhoods.items():
                if self._types and spec.type not in self._types:
                    raise TaxonomyError(source, f"neighbourhood '{region_key}/{key}' has unknown type '{spec.type}'")

                entry_id = f"{region_key}-{key}"
                if entry_id in by_id:
                    raise TaxonomyError(source, f"duplicate neighbourhood id '{entry_id}'")

                try:
                    entry = NeighbourhoodEntry(
                        id=entry_id,
                        key=key,
                        name=spec.name,
                        local_name=spec.local_name,
                        region_key=region_key,
                        region=region_spec.name,
                        region_local_name=region_spec.local_name,
                        suburbs=tuple(spec.suburbs),
                        type=spec.type,
                        postcode=spec.postcode,
                        features=tuple(spec.features),
                        description=spec.description,
                    )
                except ValidationError as e:
                    raise TaxonomyError(source, f"neighbourhood '{entry_id}': {e}") from e

                entries.append(entry)
                by_region[region_key].append(entry)
                by_id[entry_id] = entry

        self._regions = tuple(regions)
        self._entries = tuple(entries)
        self._by_region = {k: tuple(v) for k, v in by_region.items()}
        self._by_id = by_id

        self._warn_overlaps()
        logger.info(f"Loaded {len(self._entries)} neighbourhoods in {len(self._regions)} regions from {source}")

    # ── Loading ───────────────────────────────────────────────────

    @classmethod
    def from_file(cls, path: str | Path) -> "NeighbourhoodTaxonomy":
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise TaxonomyError(str(path), f"cannot read file: {e}") from e
        except json.JSONDecodeError as e:
            raise TaxonomyError(str(path), f"invalid JSON: {e}") from e
        return cls(data, source=str(path))

    @classmethod
    def load_default(cls) -> "NeighbourhoodTaxonomy":
        """Load the taxonomy shipped with the package"""
        resource = resources.files("services.neighbourhoods") / "data" / DEFAULT_DATA_FILE
        try:
            data = json.loads(resource.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise TaxonomyError(DEFAULT_DATA_FILE, str(e)) from e
        return cls(data, source=DEFAULT_DATA_FILE)

    # ── Queries ───────────────────────────────────────────────────

    def all_entries(self) -> tuple[NeighbourhoodEntry, ...]:
        return self._entries

    def entries_for_region(self, region_key: str) -> tuple[NeighbourhoodEntry, ...]:
        return self._by_region.get(region_key, ())

    def get(self, neighbourhood_id: str) -> NeighbourhoodEntry | None:
        return self._by_id.get(neighbourhood_id)

    def regions(self) -> tuple[Region, ...]:
        return self._regions

    def types(self) -> tuple[NeighbourhoodType, ...]:
        return tuple(self._types.values())

    def neighbourhood_type(self, key: str) -> NeighbourhoodType | None:
        return self._types.get(key)

    def region_for_address(self, address: ParsedAddress) -> str | None:
        """
        Detect which taxonomy region an address falls in, from its city and
        region fields. Returns the region key, or None.
        """
        haystacks = [fold_text(v) for v in (address.city, address.region) if v]
        if not haystacks:
            return None

        for region in self._regions:
            tokens = {fold_text(t) for t in (region.key, region.name, region.local_name, *region.aliases)}
            tokens.discard("")
            if any(token in hay for token in tokens for hay in haystacks):
                return region.key
        return None

    def suggest_suburbs(
        self,
        prefix: str,
        region_key: str | None = None,
        limit: int = DEFAULT_SUGGESTION_LIMIT,
    ) -> list[SuburbSuggestion]:
        """
        Autocomplete suburbs from the taxonomy.

        A suburb matches when the folded prefix starts the suburb name or
        one of its words ("eden" finds Mount Eden), or starts the postcode
        of its neighbourhood. Results follow declaration order.

        Args:
            prefix: What the user has typed so far
            region_key: Only suggest suburbs in this region
            limit: Maximum number of suggestions

        Returns:
            Up to *limit* suggestions, one per suburb name
        """
        folded = fold_text(prefix)
        if not folded or limit <= 0:
            return []

        if region_key is not None:
            entries = self.entries_for_region(region_key)
        else:
            entries = self._entries

        suggestions: list[SuburbSuggestion] = []
        seen: set[str] = set()
        for entry in entries:
            postcode_hit = bool(entry.postcode) and entry.postcode.startswith(folded)
            for suburb in entry.suburbs:
                name = fold_text(suburb)
                if name in seen:
                    continue
                if not (postcode_hit or f" {folded}" in f" {name}"):
                    continue

                seen.add(name)
                suggestions.append(SuburbSuggestion(
                    suburb=suburb,
                    neighbourhood_id=entry.id,
                    neighbourhood=entry.name,
                    region_key=entry.region_key,
                    region=entry.region,
                    postcode=entry.postcode,
                ))
                if len(suggestions) >= limit:
                    return suggestions
        return suggestions

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[NeighbourhoodEntry]:
        return iter(self._entries)

    # ── Private helpers ───────────────────────────────────────────

    def _warn_overlaps(self) -> None:
        """Suburbs listed under more than one neighbourhood make matching order-dependent"""
        owners: dict[str, list[str]] = defaultdict(list)
        for entry in self._entries:
            for suburb in entry.suburbs:
                owners[suburb.strip().lower()].append(entry.id)
        for suburb, ids in owners.items():
            if len(set(ids)) > 1:
                logger.warning(f"Suburb '{suburb}' is listed under several neighbourhoods: {', '.join(ids)}")
