"""Geocoding endpoints (cached, parsed addresses)"""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from api.dependencies import get_resolution_service
from services.geocoding import (
    Coordinates,
    GeoResolutionError,
    ParsedAddress,
    ProviderUnavailable,
    RateLimited,
)
from services.neighbourhoods import GeoResolutionService

router = APIRouter(prefix="/geocoding", tags=["geocoding"])


class GeocodeResult(BaseModel):
    """Parsed address for a point, and whether it lies in the covered country"""
    coordinates: Coordinates
    address: ParsedAddress
    domestic: bool


def _http_error(e: GeoResolutionError) -> HTTPException:
    if isinstance(e, (ProviderUnavailable, RateLimited)):
        return HTTPException(status_code=503, detail={"failure": e.kind.value})
    return HTTPException(status_code=404, detail={"failure": e.kind.value})


@router.get("/forward", response_model=GeocodeResult)
async def geocode_address(
    address: str = Query(..., description="Address to geocode", min_length=1),
    service: GeoResolutionService = Depends(get_resolution_service),
):
    """
    Forward geocoding: Convert address to coordinates

    Example: /geocoding/forward?address=Ponsonby%20Road%2C%20Auckland
    """
    try:
        point, parsed = await service.resolver.forward(address)
    except GeoResolutionError as e:
        raise _http_error(e)

    taxonomy = service.taxonomy
    return GeocodeResult(
        coordinates=point,
        address=parsed,
        domestic=parsed.is_domestic(taxonomy.country, taxonomy.country_code),
    )


@router.get("/reverse", response_model=GeocodeResult)
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90, description="Latitude in decimal degrees"),
    lon: float = Query(..., ge=-180, le=180, description="Longitude in decimal degrees"),
    service: GeoResolutionService = Depends(get_resolution_service),
):
    """
    Reverse geocoding: Convert coordinates to address

    Example: /geocoding/reverse?lat=-36.8485&lon=174.7633
    """
    coords = Coordinates(latitude=lat, longitude=lon)
    try:
        parsed = await service.resolver.reverse(coords)
    except GeoResolutionError as e:
        raise _http_error(e)

    taxonomy = service.taxonomy
    return GeocodeResult(
        coordinates=coords,
        address=parsed,
        domestic=parsed.is_domestic(taxonomy.country, taxonomy.country_code),
    )
