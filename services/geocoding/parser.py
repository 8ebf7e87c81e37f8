"""Normalise provider responses into ParsedAddress records"""

import re

from .models import ParsedAddress, ProviderResponse

# Nominatim address keys, most specific first
_NOMINATIM_SUBURB_KEYS = ("suburb", "neighbourhood", "city_district", "quarter")
_NOMINATIM_CITY_KEYS = ("city", "town", "village")


class AddressParser:
    """
    Deterministic transform from a provider result to a ParsedAddress.

    Google results are parsed from ``address_components``; Nominatim results
    from the ``address`` details block.
    """

    def parse(self, response: ProviderResponse) -> ParsedAddress:
        if response.provider == "nominatim":
            components = self._parse_nominatim(response.raw)
        else:
            components = self._parse_google(response.raw)

        formatted = (
            response.raw.get("formatted_address")
            or response.raw.get("display_name")
            or response.formatted_address
            or ""
        )

        suburb = components.get("suburb", "")
        city = components.get("city", "")
        # Provider folded suburb and city into one component
        if suburb and city and suburb == city:
            components["suburb"] = extract_suburb(formatted, city)

        return ParsedAddress(formatted_address=formatted, **components)

    def _parse_google(self, raw: dict) -> dict[str, str]:
        """Parse Google Maps API response into address fields"""
        components: dict[str, str] = {}
        locality = ""

        for component in raw.get("address_components", []):
            types = component.get("types", [])
            long_name = component.get("long_name", "")
            if "street_number" in types:
                components["street_number"] = long_name
            if "route" in types:
                components["street_name"] = long_name
            if "sublocality" in types or "locality" in types:
                if not components.get("suburb"):
                    components["suburb"] = long_name
            if "locality" in types and not locality:
                locality = long_name
            if "administrative_area_level_2" in types:
                components["city"] = long_name
            if "administrative_area_level_1" in types:
                components["region"] = long_name
            if "postal_code" in types:
                components["postcode"] = long_name
            if "country" in types:
                components["country"] = long_name
                components["country_code"] = component.get("short_name", "")

        if not components.get("city") and locality:
            components["city"] = locality
        return components

    def _parse_nominatim(self, raw: dict) -> dict[str, str]:
        """Parse a Nominatim ``addressdetails`` block into address fields"""
        address = raw.get("address", {})
        components = {
            "street_number": address.get("house_number", ""),
            "street_name": address.get("road", ""),
            "suburb": _first(address, _NOMINATIM_SUBURB_KEYS),
            "city": _first(address, _NOMINATIM_CITY_KEYS),
            "region": address.get("state", ""),
            "postcode": address.get("postcode", ""),
            "country": address.get("country", ""),
            "country_code": address.get("country_code", "").upper(),
        }
        return {k: v for k, v in components.items() if v}


def extract_suburb(formatted_address: str, city: str) -> str:
    """
    Pick the suburb out of a formatted address when the provider reported the
    same name for suburb and city.

    The suburb is the comma-delimited segment just before the segment holding
    the city (optionally followed by a postcode). Falls back to *city*.
    """
    parts = [part.strip() for part in formatted_address.split(",")]
    city_segment = re.compile(rf"^{re.escape(city.strip())}(\s+\d+)?$", re.IGNORECASE)

    for index, part in enumerate(parts):
        if city_segment.match(part):
            if index > 0 and parts[index - 1]:
                return parts[index - 1]
            break

    return city


def _first(mapping: dict, keys: tuple[str, ...]) -> str:
    for key in keys:
        if mapping.get(key):
            return mapping[key]
    return ""
