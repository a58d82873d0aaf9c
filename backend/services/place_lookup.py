"""
Single-shot provider lookups: geocode, place details and place reviews.

Unlike the resolution cascade these raise ``ProviderLookupFailed`` when the
provider gives nothing usable, so routes can map failures to status codes.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from domain.errors import InvalidRequest, ProviderLookupFailed
from domain.models import GeocodeHit, PlaceDetails, PlaceReview, PlaceReviews
from services.place_resolver import extract_location
from services.places_gateway import PlacesGateway, UpstreamResult
from services.trace import truncate_text

logger = logging.getLogger(__name__)

ZERO_RESULTS = "ZERO_RESULTS"


def _require(value: Optional[str], label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidRequest(f"{label} required")
    return value


def _failure(message: str, result: UpstreamResult) -> ProviderLookupFailed:
    if not result.ok:
        reason = ProviderLookupFailed.UPSTREAM
    elif result.provider_status == ZERO_RESULTS:
        reason = ProviderLookupFailed.NOT_FOUND
    else:
        reason = ProviderLookupFailed.PROVIDER
    logger.warning(
        "%s: http=%s provider=%s error=%s",
        message,
        result.http_status,
        result.provider_status,
        result.provider_error or result.error,
    )
    return ProviderLookupFailed(
        message,
        reason=reason,
        http_status=result.http_status,
        provider_status=result.provider_status,
        provider_error=result.provider_error,
        body=truncate_text(result.raw),
    )


def _result_item(result: UpstreamResult) -> dict:
    item = result.json.get("result")
    return item if isinstance(item, dict) else {}


def geocode_address(gateway: PlacesGateway, address: Optional[str], debug: bool = False) -> GeocodeHit:
    """Geocode an address to its best-match coordinate."""
    address = _require(address, "address")
    result = gateway.geocode(address)
    if not result.ok:
        raise _failure("upstream http error", result)
    if not result.provider_ok:
        raise _failure("google geocode error", result)

    first = result.first("results")
    loc = extract_location(first)
    if loc is None:
        raise ProviderLookupFailed(
            "not found",
            reason=ProviderLookupFailed.NOT_FOUND,
            http_status=result.http_status,
            provider_status=result.provider_status,
        )
    return GeocodeHit(
        lat=loc[0],
        lng=loc[1],
        place_id=first.get("place_id"),
        raw=truncate_text(result.raw) if debug else None,
    )


def lookup_place_details(gateway: PlacesGateway, place_id: Optional[str]) -> PlaceDetails:
    place_id = _require(place_id, "id")
    result = gateway.place_details(place_id)
    if not result.provider_ok:
        raise _failure("lookup failed", result)

    item = _result_item(result)
    loc = extract_location(item)
    return PlaceDetails(
        name=item.get("name"),
        formatted_address=item.get("formatted_address"),
        lat=loc[0] if loc else None,
        lng=loc[1] if loc else None,
    )


def _review_text(review: dict) -> str:
    # Translated text first, then the reviewer's original.
    for key in ("text", "original_text"):
        value = review.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _to_review(review: Any) -> PlaceReview:
    if not isinstance(review, dict):
        review = {}
    return PlaceReview(
        author=review.get("author_name") or "",
        profile_photo_url=review.get("profile_photo_url") or "",
        rating=review.get("rating") or 0,
        time=review.get("relative_time_description") or "",
        text=_review_text(review),
    )


def fetch_place_reviews(
    gateway: PlacesGateway,
    place_id: Optional[str],
    language: Optional[str] = None,
) -> PlaceReviews:
    """Newest reviews for a place plus its aggregate rating."""
    place_id = _require(place_id, "placeId")
    result = gateway.place_reviews(place_id, language=language)
    if not result.provider_ok:
        raise _failure("places error", result)

    item = _result_item(result)
    return PlaceReviews(
        rating=item.get("rating"),
        total=item.get("user_ratings_total") or 0,
        reviews=[_to_review(r) for r in item.get("reviews") or []],
    )
