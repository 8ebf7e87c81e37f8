"""Match parsed addresses to taxonomy neighbourhoods by suburb name"""

import logging
from typing import Literal

from services.geocoding.models import ParsedAddress

from .models import NeighbourhoodEntry
from .taxonomy import NeighbourhoodTaxonomy

logger = logging.getLogger(__name__)

TieBreak = Literal["first", "most_specific"]


def _normalize(value: str) -> str:
    return value.strip().lower()


def suburbs_match(taxonomy_suburb: str, address_suburb: str) -> bool:
    """
    Bidirectional substring test on normalised names.

    Provider suburbs are sometimes finer ("Mount Eden Village") and sometimes
    coarser ("Eden") than the curated names, so either may contain the other.
    """
    s = _normalize(taxonomy_suburb)
    a = _normalize(address_suburb)
    if not s or not a:
        return False
    return s in a or a in s


class NeighbourhoodMatcher:
    """
    Finds the neighbourhood whose suburb list covers an address's suburb.

    Tie-break policies when several entries match:
    - ``first``: the first entry in taxonomy declaration order
    - ``most_specific``: the entry whose matching suburb name is closest in
      length to the address suburb (exact matches first); declaration order
      among equals
    """

    def __init__(self, taxonomy: NeighbourhoodTaxonomy, tie_break: TieBreak = "first"):
        if tie_break not in ("first", "most_specific"):
            raise ValueError(f"Unknown tie-break policy: {tie_break}")
        self.taxonomy = taxonomy
        self.tie_break = tie_break

    def match(self, address: ParsedAddress) -> NeighbourhoodEntry | None:
        suburb = _normalize(address.suburb)
        # City alone cannot tell neighbourhoods apart
        if not suburb:
            return None

        if self.tie_break == "first":
            for entry in self.taxonomy.all_entries():
                if any(suburbs_match(s, suburb) for s in entry.suburbs):
                    return entry
            logger.debug(f"No neighbourhood lists suburb '{suburb}'")
            return None

        return self._most_specific(suburb)

    def _most_specific(self, suburb: str) -> NeighbourhoodEntry | None:
        best: tuple[int, NeighbourhoodEntry] | None = None
        for entry in self.taxonomy.all_entries():
            gaps = [
                abs(len(_normalize(s)) - len(suburb))
                for s in entry.suburbs
                if suburbs_match(s, suburb)
            ]
            if not gaps:
                continue
            gap = min(gaps)
            # Strict comparison keeps declaration order among equals
            if best is None or gap < best[0]:
                best = (gap, entry)
                if gap == 0:
                    break
        if best is None:
            return None
        return best[1]
