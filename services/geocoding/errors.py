"""Exception hierarchy for geocoding and neighbourhood resolution."""

from enum import Enum


class FailureKind(str, Enum):
    """Why a resolution produced no (or only an estimated) result."""

    PROVIDER_UNAVAILABLE = "provider_unavailable"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    LOCATION_UNAVAILABLE = "location_unavailable"
    LOCATION_TIMEOUT = "location_timeout"
    OUT_OF_TERRITORY = "out_of_territory"
    NO_MATCH = "no_match"


class GeoResolutionError(Exception):
    """Base exception for all resolution errors."""

    kind: FailureKind = FailureKind.PROVIDER_UNAVAILABLE


# ── Provider errors ──────────────────────────────────────────────


class ProviderUnavailable(GeoResolutionError):
    """Network failure, timeout or outage at the geocoding provider."""

    kind = FailureKind.PROVIDER_UNAVAILABLE


class RateLimited(GeoResolutionError):
    """The provider throttled the request."""

    kind = FailureKind.RATE_LIMITED


class NotFound(GeoResolutionError):
    """The provider returned no result for the query."""

    kind = FailureKind.NOT_FOUND

    def __init__(self, query: str):
        self.query = query
        super().__init__(f"No geocoding result for '{query}'")


# ── Device location errors ───────────────────────────────────────


class LocationPermissionDenied(GeoResolutionError):
    kind = FailureKind.PERMISSION_DENIED


class LocationUnavailable(GeoResolutionError):
    kind = FailureKind.LOCATION_UNAVAILABLE


class LocationTimeout(GeoResolutionError):
    kind = FailureKind.LOCATION_TIMEOUT


# ── Resolution outcomes ──────────────────────────────────────────


class OutOfTerritory(GeoResolutionError):
    """The address resolved but lies outside the target country."""

    kind = FailureKind.OUT_OF_TERRITORY

    def __init__(self, country: str):
        self.country = country
        super().__init__(f"Address is outside the target territory: '{country}'")


class NoMatch(GeoResolutionError):
    """The address is domestic but matches no taxonomy entry."""

    kind = FailureKind.NO_MATCH

    def __init__(self, suburb: str):
        self.suburb = suburb
        super().__init__(f"No neighbourhood matches suburb '{suburb}'")


class TaxonomyError(Exception):
    """The static neighbourhood data is malformed. Fatal at startup."""

    def __init__(self, source: str, detail: str):
        self.source = source
        super().__init__(f"Invalid neighbourhood taxonomy at {source}: {detail}")
