"""Neighbourhood endpoints: taxonomy browsing, suburb suggestions, resolution,
device location reports and proximity search"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from api.dependencies import get_device_location, get_resolution_service, get_taxonomy
from core.config import settings
from services.geocoding import Coordinates, FailureKind, LocationQuery, ReportedDeviceLocation
from services.neighbourhoods import (
    GeoResolutionService,
    NearbyNeighbourhoods,
    NeighbourhoodBounds,
    NeighbourhoodEntry,
    NeighbourhoodTaxonomy,
    NeighbourhoodType,
    ResolvedNeighbourhood,
    SuburbSuggestion,
)

router = APIRouter(prefix="/neighbourhoods", tags=["neighbourhoods"])

# Failures caused by the provider rather than by the location itself
_PROVIDER_FAILURES = {FailureKind.PROVIDER_UNAVAILABLE, FailureKind.RATE_LIMITED}


class DeviceLocationReport(BaseModel):
    """Last GPS fix from the client, or a refused permission prompt"""
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    denied: bool = False


def _location_query(lat: Optional[float], lon: Optional[float], q: Optional[str]) -> LocationQuery:
    if lat is not None and lon is not None:
        return LocationQuery(coordinates=Coordinates(latitude=lat, longitude=lon))
    if q and q.strip():
        return LocationQuery(text=q)
    raise HTTPException(status_code=422, detail="Provide lat and lon, or q")


def _raise_for_failure(failure: FailureKind | None) -> None:
    kind = failure or FailureKind.NOT_FOUND
    if kind in _PROVIDER_FAILURES:
        status_code = 503
    elif kind == FailureKind.PERMISSION_DENIED:
        status_code = 403
    else:
        status_code = 404
    raise HTTPException(status_code=status_code, detail={"failure": kind.value})


@router.get("", response_model=List[NeighbourhoodEntry])
async def list_neighbourhoods(
    region: Optional[str] = Query(None, description="Region key, e.g. auckland"),
    taxonomy: NeighbourhoodTaxonomy = Depends(get_taxonomy),
):
    """All neighbourhoods in declaration order, optionally for one region"""
    if region:
        return list(taxonomy.entries_for_region(region))
    return list(taxonomy.all_entries())


@router.get("/types", response_model=List[NeighbourhoodType])
async def list_neighbourhood_types(
    taxonomy: NeighbourhoodTaxonomy = Depends(get_taxonomy),
):
    return list(taxonomy.types())


@router.get("/resolve", response_model=ResolvedNeighbourhood)
async def resolve_neighbourhood(
    lat: Optional[float] = Query(None, ge=-90, le=90, description="Latitude in decimal degrees"),
    lon: Optional[float] = Query(None, ge=-180, le=180, description="Longitude in decimal degrees"),
    q: Optional[str] = Query(None, description="Locality hint, e.g. 'Ponsonby, Auckland'"),
    service: GeoResolutionService = Depends(get_resolution_service),
):
    """
    Detect the neighbourhood a location lies in.

    Example: /neighbourhoods/resolve?lat=-36.8569&lon=174.7457
    """
    result = await service.resolve_neighbourhood_detailed(_location_query(lat, lon, q))
    if result.neighbourhood is None:
        _raise_for_failure(result.failure)
    return result.neighbourhood


@router.get("/nearby", response_model=NearbyNeighbourhoods)
async def nearby_neighbourhoods(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    q: Optional[str] = Query(None),
    radius_km: float = Query(settings.DEFAULT_RADIUS_KM, ge=0, le=2000, description="0 disables the radius filter"),
    service: GeoResolutionService = Depends(get_resolution_service),
):
    """
    Neighbourhoods within radius_km of a location, nearest first.

    Entries whose centre could not be geocoded carry confidence "estimated".
    """
    result = await service.find_nearby_detailed(_location_query(lat, lon, q), radius_km)
    if result.failure is not None:
        _raise_for_failure(result.failure)
    return result


@router.get("/suggest", response_model=List[SuburbSuggestion])
async def suggest_suburbs(
    q: str = Query(..., min_length=1, description="Suburb name or postcode prefix"),
    region: Optional[str] = Query(None, description="Region key, e.g. wellington"),
    limit: int = Query(10, ge=1, le=50),
    taxonomy: NeighbourhoodTaxonomy = Depends(get_taxonomy),
):
    """
    Autocomplete suburbs known to the taxonomy.

    Example: /neighbourhoods/suggest?q=pon
    """
    return taxonomy.suggest_suburbs(q, region_key=region, limit=limit)


@router.post("/current-location")
async def report_current_location(
    report: DeviceLocationReport,
    device_location: ReportedDeviceLocation = Depends(get_device_location),
):
    """Record the device's latest fix, or that the user refused location access"""
    if report.denied:
        device_location.report_denied()
        return {"status": "denied"}

    if report.latitude is None or report.longitude is None:
        raise HTTPException(status_code=422, detail="Provide latitude and longitude, or denied")

    device_location.report(Coordinates(latitude=report.latitude, longitude=report.longitude))
    return {"status": "reported"}


@router.get("/current", response_model=ResolvedNeighbourhood)
async def current_neighbourhood(
    service: GeoResolutionService = Depends(get_resolution_service),
):
    """Neighbourhood of the device's last reported position"""
    result = await service.resolve_current_location()
    if result.neighbourhood is None:
        _raise_for_failure(result.failure)
    return result.neighbourhood


@router.get("/{neighbourhood_id}", response_model=NeighbourhoodEntry)
async def get_neighbourhood(
    neighbourhood_id: str,
    taxonomy: NeighbourhoodTaxonomy = Depends(get_taxonomy),
):
    entry = taxonomy.get(neighbourhood_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Neighbourhood not found")
    return entry


@router.get("/{neighbourhood_id}/bounds", response_model=NeighbourhoodBounds)
async def get_neighbourhood_bounds(
    neighbourhood_id: str,
    service: GeoResolutionService = Depends(get_resolution_service),
):
    """Approximate centre of a neighbourhood with a default 2km radius"""
    if service.taxonomy.get(neighbourhood_id) is None:
        raise HTTPException(status_code=404, detail="Neighbourhood not found")
    bounds = await service.neighbourhood_bounds(neighbourhood_id)
    if bounds is None:
        raise HTTPException(status_code=503, detail="Neighbourhood centre could not be resolved")
    return bounds
