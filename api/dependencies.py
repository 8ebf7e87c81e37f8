from fastapi import HTTPException, Request, status

from services.geocoding import ReportedDeviceLocation
from services.neighbourhoods import GeoResolutionService, NeighbourhoodTaxonomy


def get_resolution_service(request: Request) -> GeoResolutionService:
    """Get the resolution service built during application startup"""
    service = getattr(request.app.state, "resolution_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Geocoding service not configured. Check GEOCODER_PROVIDER settings."
        )
    return service


def get_taxonomy(request: Request) -> NeighbourhoodTaxonomy:
    """Get the neighbourhood taxonomy loaded at startup"""
    taxonomy = getattr(request.app.state, "taxonomy", None)
    if taxonomy is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Neighbourhood taxonomy not loaded"
        )
    return taxonomy


def get_device_location(request: Request) -> ReportedDeviceLocation:
    """Get the store of client-reported device fixes"""
    device_location = getattr(request.app.state, "device_location", None)
    if device_location is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Device location reporting not available"
        )
    return device_location
