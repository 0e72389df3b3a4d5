import logging
from fastapi import APIRouter, HTTPException, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ...dependencies import get_location_service
from ...exceptions import InvalidCoordinatesError
from ...location_service import LocationService
from ...models.api_models import (
    CacheStatsResponse,
    LocationNameResponse,
    LocationResponse,
    ProviderHealthModel,
    ProviderHealthResponse,
    SuggestionsResponse,
)
from ...validation import format_location_for_display

logger = logging.getLogger(__name__)

# Create rate limiter for endpoints
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/v1/location", tags=["location"])


@router.get("/name", response_model=LocationNameResponse, summary="Resolve coordinates to a place name")
@limiter.limit("60/minute")
async def get_location_name(
    request: Request,
    lat: float,
    lng: float,
    service: LocationService = Depends(get_location_service)
) -> LocationNameResponse:
    """Lenient lookup: always answers with some name, invalid input included."""
    name = await service.get_location_name(lat, lng)
    return LocationNameResponse(name=name, latitude=lat, longitude=lng)


@router.get("", response_model=LocationResponse, summary="Resolve coordinates to a detailed location")
@limiter.limit("60/minute")
async def get_detailed_location(
    request: Request,
    lat: float,
    lng: float,
    service: LocationService = Depends(get_location_service)
) -> LocationResponse:
    try:
        result = await service.get_detailed_location(lat, lng)
        return LocationResponse.from_result(result, format_location_for_display(result))
    except InvalidCoordinatesError as e:
        logger.warning(f"Invalid coordinates in detailed location: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error in detailed location: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/suggestions", response_model=SuggestionsResponse, summary="Candidate names from every available provider")
@limiter.limit("20/minute")
async def get_location_suggestions(
    request: Request,
    lat: float,
    lng: float,
    limit: int = Query(5, ge=1, le=10),
    service: LocationService = Depends(get_location_service)
) -> SuggestionsResponse:
    try:
        results = await service.get_location_suggestions(lat, lng)
    except InvalidCoordinatesError as e:
        logger.warning(f"Invalid coordinates in suggestions: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    suggestions = [
        LocationResponse.from_result(r, format_location_for_display(r)) for r in results[:limit]
    ]
    return SuggestionsResponse(suggestions=suggestions, count=len(suggestions))


@router.get("/health", response_model=ProviderHealthResponse, summary="Provider health and availability")
async def get_provider_health(
    service: LocationService = Depends(get_location_service)
) -> ProviderHealthResponse:
    providers = [ProviderHealthModel(**status) for status in service.get_provider_health()]
    return ProviderHealthResponse(
        providers=providers,
        available_count=sum(1 for p in providers if p.available)
    )


@router.get("/cache", response_model=CacheStatsResponse, summary="Cache tier statistics")
async def get_cache_stats(
    include_entries: bool = False,
    service: LocationService = Depends(get_location_service)
) -> CacheStatsResponse:
    return CacheStatsResponse(tiers=service.get_cache_stats(include_entries))


@router.delete("/cache", summary="Clear every cache tier")
async def clear_cache(
    service: LocationService = Depends(get_location_service)
):
    service.clear_cache()
    logger.info("Location cache cleared via API")
    return {"status": "cleared"}
