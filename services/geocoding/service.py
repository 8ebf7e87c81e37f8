"""Geocoding provider wrapper (geopy, async)"""

import asyncio
import logging
import ssl
from typing import Literal

import certifi
from geopy.adapters import AioHTTPAdapter
from geopy.exc import (
    GeocoderQueryError,
    GeocoderQuotaExceeded,
    GeocoderServiceError,
    GeocoderTimedOut,
    GeocoderUnavailable,
)
from geopy.geocoders import GoogleV3, Nominatim

from .device import DeviceLocator
from .errors import (
    LocationTimeout,
    LocationUnavailable,
    NotFound,
    ProviderUnavailable,
    RateLimited,
)
from .models import Coordinates, ProviderResponse

logger = logging.getLogger(__name__)

ProviderName = Literal["google", "nominatim"]


def get_ssl_context():
    """Get SSL context for provider requests"""
    return ssl.create_default_context(cafile=certifi.where())


class GeoProvider:
    """
    Async forward/reverse geocoding plus device location.

    Every call is bounded by ``timeout`` seconds; geopy errors are translated
    into the resolution error hierarchy so callers never see geopy types.
    """

    def __init__(
        self,
        geocoder,
        provider: ProviderName = "google",
        timeout: float = 10,
        country_code: str = "NZ",
        language: str | None = None,
        device_locator: DeviceLocator | None = None,
    ):
        """
        Initialize geocoding provider

        Args:
            geocoder: geopy geocoder built with an async adapter
            provider: Which service the geocoder talks to
            timeout: Request timeout in seconds
            country_code: ISO code results are biased towards
            language: Preferred result language
            device_locator: Source of device fixes (optional)
        """
        self.geocoder = geocoder
        self.provider = provider
        self.timeout = timeout
        self.country_code = country_code
        self.language = language
        self.device_locator = device_locator

    async def forward_geocode(self, query: str) -> ProviderResponse:
        """Convert an address to coordinates (forward geocoding)"""
        if self.provider == "nominatim":
            kwargs = {"addressdetails": True, "country_codes": self.country_code.lower()}
        else:
            kwargs = {"region": self.country_code.lower(), "components": {"country": self.country_code}}
        if self.language:
            kwargs["language"] = self.language

        location = await self._call(
            lambda: self.geocoder.geocode(query, exactly_one=True, timeout=self.timeout, **kwargs),
            query,
        )
        return self._to_response(location)

    async def reverse_geocode(self, coord: Coordinates) -> ProviderResponse:
        """Convert coordinates to an address (reverse geocoding)"""
        query = f"{coord.latitude}, {coord.longitude}"
        kwargs = {}
        if self.provider == "nominatim":
            kwargs["addressdetails"] = True
        if self.language:
            kwargs["language"] = self.language

        location = await self._call(
            lambda: self.geocoder.reverse(query, exactly_one=True, timeout=self.timeout, **kwargs),
            query,
        )
        return self._to_response(location)

    async def current_device_location(self) -> Coordinates:
        """Latest device fix, if a locator is configured"""
        if self.device_locator is None:
            raise LocationUnavailable("Device location is not available")
        try:
            return await asyncio.wait_for(self.device_locator.locate(), self.timeout)
        except asyncio.TimeoutError:
            raise LocationTimeout(f"Device location timed out after {self.timeout}s")

    async def aclose(self) -> None:
        """Release the underlying HTTP session"""
        await self.geocoder.__aexit__(None, None, None)

    async def __aenter__(self) -> "GeoProvider":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def _call(self, request, query: str):
        try:
            location = await asyncio.wait_for(request(), self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Geocoding timed out after {self.timeout}s: {query}")
            raise ProviderUnavailable(f"Geocoding timed out after {self.timeout}s")
        except GeocoderQuotaExceeded as e:
            # Includes GeocoderRateLimited
            logger.warning(f"Geocoding rate limited: {e}")
            raise RateLimited(str(e)) from e
        except GeocoderQueryError as e:
            logger.warning(f"Geocoding rejected query '{query}': {e}")
            raise NotFound(query) from e
        except (GeocoderTimedOut, GeocoderUnavailable, GeocoderServiceError) as e:
            logger.warning(f"Geocoding error: {e}")
            raise ProviderUnavailable(str(e)) from e

        if not location:
            raise NotFound(query)
        return location

    def _to_response(self, location) -> ProviderResponse:
        raw = location.raw if isinstance(location.raw, dict) else {}
        return ProviderResponse(
            provider=self.provider,
            coordinates=Coordinates(latitude=location.latitude, longitude=location.longitude),
            formatted_address=raw.get("formatted_address", location.address or ""),
            raw=raw,
        )


def build_geo_provider(
    settings,
    country_code: str = "NZ",
    device_locator: DeviceLocator | None = None,
) -> GeoProvider:
    """Construct the configured provider (GEOCODER_PROVIDER)"""
    ssl_context = get_ssl_context()
    timeout = settings.GEOCODER_TIMEOUT

    if settings.GEOCODER_PROVIDER == "nominatim":
        geocoder = Nominatim(
            user_agent=settings.NOMINATIM_USER_AGENT,
            timeout=timeout,
            ssl_context=ssl_context,
            adapter_factory=AioHTTPAdapter,
        )
        provider: ProviderName = "nominatim"
    elif settings.GEOCODER_PROVIDER == "google":
        if not settings.GOOGLE_MAPS_API_KEY:
            raise ValueError(
                "Google Maps API key required. Set GOOGLE_MAPS_API_KEY "
                "environment variable or use GEOCODER_PROVIDER=nominatim"
            )
        geocoder = GoogleV3(
            api_key=settings.GOOGLE_MAPS_API_KEY,
            timeout=timeout,
            ssl_context=ssl_context,
            adapter_factory=AioHTTPAdapter,
        )
        provider = "google"
    else:
        raise ValueError(f"Unknown GEOCODER_PROVIDER: {settings.GEOCODER_PROVIDER}")

    return GeoProvider(
        geocoder,
        provider=provider,
        timeout=timeout,
        country_code=country_code,
        language=settings.GEOCODER_LANGUAGE or None,
        device_locator=device_locator,
    )
