"""Pydantic models for geocoding"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Coordinates(BaseModel):
    """Geographic coordinates"""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90, description="Latitude in decimal degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in decimal degrees")

    @field_validator("latitude", "longitude")
    @classmethod
    def round_precision(cls, v: float) -> float:
        """Round to 6 decimal places (~11cm precision)"""
        return round(v, 6)

    def cache_key(self) -> str:
        return f"{self.latitude:.6f},{self.longitude:.6f}"


class ParsedAddress(BaseModel):
    """Structured address components (empty string when the provider omits one)"""

    model_config = ConfigDict(frozen=True)

    street_number: str = ""
    street_name: str = ""
    suburb: str = ""
    city: str = ""
    region: str = ""
    postcode: str = ""
    country: str = ""
    country_code: str = ""
    formatted_address: str = ""

    def is_domestic(self, country: str, country_code: str = "") -> bool:
        """True when the address lies in the given target country"""
        if self.country and self.country.strip().lower() == country.strip().lower():
            return True
        if country_code and self.country_code:
            return self.country_code.strip().upper() == country_code.strip().upper()
        return False


class ProviderResponse(BaseModel):
    """A single geocoding result as returned by the provider"""

    provider: Literal["google", "nominatim"] = "google"
    coordinates: Coordinates
    formatted_address: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)


class LocationQuery(BaseModel):
    """
    Raw location to resolve: a coordinate pair or a free-text locality hint.

    Only one of the two is needed; when both are given the coordinates win.
    """

    coordinates: Coordinates | None = None
    text: str | None = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = " ".join(v.split())
        return v or None

    @model_validator(mode="after")
    def require_one(self) -> "LocationQuery":
        if self.coordinates is None and self.text is None:
            raise ValueError("Either coordinates or a text hint is required")
        return self

    @classmethod
    def from_hint(cls, suburb: str | None = None, city: str | None = None) -> "LocationQuery":
        """Build a text query from separate suburb and city fields"""
        parts = [p.strip() for p in (suburb, city) if p and p.strip()]
        return cls(text=", ".join(parts) if parts else None)

    @classmethod
    def coerce(cls, value: "LocationQuery | Coordinates | str") -> "LocationQuery":
        if isinstance(value, LocationQuery):
            return value
        if isinstance(value, Coordinates):
            return cls(coordinates=value)
        if isinstance(value, str):
            return cls(text=value)
        raise TypeError(f"Unsupported location query: {value!r}")

    @property
    def is_coordinates(self) -> bool:
        return self.coordinates is not None


class NotFoundResult(BaseModel):
    """Cached record that the provider had no result for a query"""

    model_config = ConfigDict(frozen=True)

    query: str = ""
