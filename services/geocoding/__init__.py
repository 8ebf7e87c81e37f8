"""Geocoding service package"""

from .device import DeviceLocator, ReportedDeviceLocation
from .errors import (
    FailureKind,
    GeoResolutionError,
    LocationPermissionDenied,
    LocationTimeout,
    LocationUnavailable,
    NoMatch,
    NotFound,
    OutOfTerritory,
    ProviderUnavailable,
    RateLimited,
    TaxonomyError,
)
from .models import Coordinates, LocationQuery, NotFoundResult, ParsedAddress, ProviderResponse
from .parser import AddressParser
from .resolver import AddressResolver
from .service import GeoProvider, build_geo_provider

__all__ = [
    "AddressParser",
    "AddressResolver",
    "Coordinates",
    "DeviceLocator",
    "FailureKind",
    "GeoProvider",
    "GeoResolutionError",
    "LocationPermissionDenied",
    "LocationQuery",
    "LocationTimeout",
    "LocationUnavailable",
    "NoMatch",
    "NotFound",
    "NotFoundResult",
    "OutOfTerritory",
    "ParsedAddress",
    "ProviderResponse",
    "ProviderUnavailable",
    "RateLimited",
    "ReportedDeviceLocation",
    "TaxonomyError",
    "build_geo_provider",
]
