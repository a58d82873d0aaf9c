"""
Place API routes.

Resolve a business name + address to a verified place, plus the geocode,
place-details and place-reviews lookups used by the store pages.
"""
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from domain.errors import InvalidRequest, MissingApiKey, ProviderLookupFailed
from domain.models import Resolution, ResolutionRequest
from services.address_normalizer import one_line
from services.place_lookup import fetch_place_reviews, geocode_address, lookup_place_details
from services.place_resolver import PlaceResolver
from services.places_gateway import PlacesGateway, get_default_places_gateway
from settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResolvePlaceBody(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    debug: bool = False


class GeocodeBody(BaseModel):
    address: Optional[str] = None
    debug: bool = False


class PlaceDetailsBody(BaseModel):
    id: Optional[str] = None


class TraceStepResponse(CamelModel):
    step: str
    request_description: str
    http_status: Optional[int] = None
    provider_status: Optional[str] = None
    provider_error: Optional[str] = None
    distance_meters: Optional[float] = None
    address_matched: Optional[bool] = None
    note: Optional[str] = None
    sample: Optional[Any] = None


class NormalizedInput(CamelModel):
    name: str
    address: str


class ResolveDebug(CamelModel):
    normalized: NormalizedInput
    steps: List[TraceStepResponse]


class ResolvePlaceResponse(CamelModel):
    place_id: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    formatted_address: Optional[str] = None
    source: str
    debug: Optional[ResolveDebug] = None


class GeocodeResponse(CamelModel):
    lat: float
    lng: float
    place_id: Optional[str] = None
    raw: Optional[str] = None


class PlaceDetailsResponse(CamelModel):
    name: Optional[str] = None
    formatted_address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class PlaceReviewResponse(CamelModel):
    author: str
    profile_photo_url: str
    rating: float
    time: str
    text: str


class PlaceReviewsResponse(CamelModel):
    rating: Optional[float] = None
    total: int = 0
    reviews: List[PlaceReviewResponse]


def _gateway() -> PlacesGateway:
    try:
        return get_default_places_gateway()
    except MissingApiKey as exc:
        logger.error("Places lookup unavailable: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))


def _debug_enabled(requested: bool) -> bool:
    return bool(requested) and settings.PLACES_DEBUG_ALLOWED


def resolution_to_response(resolution: Resolution) -> ResolvePlaceResponse:
    """Convert a domain Resolution to the API response."""
    place = resolution.place
    debug = None
    if resolution.request.debug:
        debug = ResolveDebug(
            normalized=NormalizedInput(**resolution.normalized),
            steps=[TraceStepResponse(**vars(step)) for step in resolution.steps],
        )
    return ResolvePlaceResponse(
        place_id=place.place_id,
        lat=place.lat,
        lng=place.lng,
        formatted_address=place.formatted_address,
        source=place.source.value,
        debug=debug,
    )


def _resolve(name: Optional[str], address: Optional[str], debug: bool) -> ResolvePlaceResponse:
    try:
        request = ResolutionRequest.create(one_line(name), one_line(address), _debug_enabled(debug))
    except InvalidRequest as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    resolver = PlaceResolver(_gateway())
    return resolution_to_response(resolver.resolve(request))


@router.post("/resolve-place", response_model=ResolvePlaceResponse, response_model_exclude_none=True)
def resolve_place(data: ResolvePlaceBody):
    """
    Resolve a business to coordinates and, when verified, a place id.

    Always 200 once the input is valid; an unresolvable address comes back
    with only ``source`` set, so callers must check for ``lat``/``lng``.
    """
    return _resolve(data.name, data.address, data.debug)


@router.get("/resolve-place", response_model=ResolvePlaceResponse, response_model_exclude_none=True)
def resolve_place_query(name: str = "", address: str = "", debug: str = ""):
    return _resolve(name, address, debug == "1")


def _geocode(address: Optional[str], debug: bool) -> GeocodeResponse:
    if not (address or "").strip():
        raise HTTPException(status_code=400, detail="address required")
    gateway = _gateway()
    try:
        hit = geocode_address(gateway, address, debug=_debug_enabled(debug))
    except ProviderLookupFailed as exc:
        if exc.reason == ProviderLookupFailed.UPSTREAM:
            raise HTTPException(
                status_code=502,
                detail={"error": exc.message, "upStatus": exc.http_status, "body": exc.body},
            )
        status_code = 404 if exc.reason == ProviderLookupFailed.NOT_FOUND else 502
        raise HTTPException(
            status_code=status_code,
            detail={
                "error": exc.message,
                "providerStatus": exc.provider_status,
                "providerError": exc.provider_error,
            },
        )
    return GeocodeResponse(lat=hit.lat, lng=hit.lng, place_id=hit.place_id, raw=hit.raw)


@router.post("/geocode", response_model=GeocodeResponse, response_model_exclude_none=True)
def geocode(data: GeocodeBody):
    """Geocode an address to coordinates."""
    return _geocode(data.address, data.debug)


@router.get("/geocode", response_model=GeocodeResponse, response_model_exclude_none=True)
def geocode_query(address: str = "", debug: str = ""):
    return _geocode(address, debug == "1")


def _place_details(place_id: Optional[str]) -> PlaceDetailsResponse:
    if not (place_id or "").strip():
        raise HTTPException(status_code=400, detail="id required")
    try:
        details = lookup_place_details(_gateway(), place_id)
    except ProviderLookupFailed as exc:
        raise HTTPException(
            status_code=404,
            detail={
                "error": exc.message,
                "providerStatus": exc.provider_status,
                "providerError": exc.provider_error,
            },
        )
    return PlaceDetailsResponse(
        name=details.name,
        formatted_address=details.formatted_address,
        lat=details.lat,
        lng=details.lng,
    )


@router.get("/place-details", response_model=PlaceDetailsResponse, response_model_exclude_none=True)
def place_details(id: str = ""):
    """Name, address and coordinates for a place id."""
    return _place_details(id)


@router.post("/place-details", response_model=PlaceDetailsResponse, response_model_exclude_none=True)
def place_details_body(data: PlaceDetailsBody):
    return _place_details(data.id)


@router.get("/place-reviews", response_model=PlaceReviewsResponse)
def place_reviews(place_id: str = Query("", alias="placeId"), lang: str = "ja"):
    """Newest reviews for a place, translated text preferred."""
    if not place_id.strip():
        raise HTTPException(status_code=400, detail="placeId required")
    try:
        reviews = fetch_place_reviews(_gateway(), place_id, language=lang)
    except ProviderLookupFailed as exc:
        raise HTTPException(
            status_code=502,
            detail={
                "error": exc.message,
                "providerStatus": exc.provider_status,
                "providerError": exc.provider_error,
            },
        )
    return PlaceReviewsResponse(
        rating=reviews.rating,
        total=reviews.total,
        reviews=[
            PlaceReviewResponse(
                author=r.author,
                profile_photo_url=r.profile_photo_url,
                rating=r.rating,
                time=r.time,
                text=r.text,
            )
            for r in reviews.reviews
        ],
    )
