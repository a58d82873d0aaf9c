"""Thin client for the Google Maps geocoding / places web services.

Each method issues exactly one GET and returns an ``UpstreamResult``; nothing
here retries or raises for HTTP, parse or provider-status failures. Callers
decide what a failed step means.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlencode

import requests

from domain.errors import MissingApiKey
from domain.models import Anchor
from settings import settings

logger = logging.getLogger(__name__)
_session = requests.Session()

PROVIDER_OK = "OK"
FIND_PLACE_FIELDS = "place_id,name,geometry/location,formatted_address,business_status"
DETAILS_FIELDS = "place_id,name,formatted_address,geometry/location"
REVIEW_FIELDS = "reviews,rating,user_ratings_total"

_KEY_RE = re.compile(r"([?&]key=)[^&\s'\"]*")


def redact_key(url: str) -> str:
    """Replace the api key query value so a URL is safe to log or return."""
    return _KEY_RE.sub(r"\1<redacted>", url)


@dataclass
class UpstreamResult:
    """Outcome of one provider call.

    ``ok`` means a 2xx response whose body parsed as JSON. Whether the
    provider itself found anything is ``provider_ok``.
    """

    request_description: str
    ok: bool = False
    http_status: Optional[int] = None
    json: Optional[Any] = None
    raw: str = ""
    error: Optional[str] = None

    @property
    def provider_status(self) -> Optional[str]:
        if isinstance(self.json, dict):
            return self.json.get("status")
        return None

    @property
    def provider_error(self) -> Optional[str]:
        if isinstance(self.json, dict):
            return self.json.get("error_message")
        return None

    @property
    def provider_ok(self) -> bool:
        return self.ok and self.provider_status == PROVIDER_OK

    def first(self, key: str) -> Optional[dict]:
        """First element of a list field (``results``/``candidates``), if usable."""
        if not self.provider_ok:
            return None
        items = self.json.get(key)
        if isinstance(items, list) and items and isinstance(items[0], dict):
            return items[0]
        return None


class PlacesGateway:
    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        language: Optional[str] = None,
        region: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise MissingApiKey()
        self.api_key = api_key
        self.base_url = (base_url or settings.PLACES_API_BASE_URL).rstrip("/")
        self.language = language or settings.PLACES_LANGUAGE
        self.region = region or settings.PLACES_REGION
        self.timeout = timeout if timeout is not None else settings.PLACES_HTTP_TIMEOUT
        self.session = session or _session

    def _get(self, path: str, params: dict[str, Any]) -> UpstreamResult:
        url = f"{self.base_url}/{path}"
        full_params = {**params, "key": self.api_key}
        description = redact_key(f"GET {url}?{urlencode(full_params)}")
        try:
            resp = self.session.get(url, params=full_params, timeout=self.timeout)
        except requests.RequestException as exc:
            # requests puts the full url, key included, in its messages
            msg = redact_key(str(exc))
            logger.warning("Places request failed for %s: %s", path, msg)
            return UpstreamResult(request_description=description, error=f"fetch error: {msg}")

        text = resp.text or ""
        try:
            data = resp.json()
        except ValueError as exc:
            logger.warning("Places JSON error for %s (http %s): %s", path, resp.status_code, exc)
            data = None

        http_ok = 200 <= resp.status_code < 300
        return UpstreamResult(
            request_description=description,
            ok=http_ok and data is not None,
            http_status=resp.status_code,
            json=data,
            raw=text,
            error=None if data is not None else "unparsable body",
        )

    def geocode(self, address: str) -> UpstreamResult:
        return self._get(
            "geocode/json",
            {"address": address, "language": self.language, "region": self.region},
        )

    def find_nearby_by_name(self, name: str, anchor: Anchor, radius_m: float) -> UpstreamResult:
        """Find Place From Text, biased to a circle around the anchor."""
        return self._get(
            "place/findplacefromtext/json",
            {
                "input": name,
                "inputtype": "textquery",
                "fields": FIND_PLACE_FIELDS,
                "locationbias": f"circle:{int(round(radius_m))}@{anchor.lat},{anchor.lng}",
                "language": self.language,
                "region": self.region,
            },
        )

    def text_search_by_name(self, name: str, anchor: Anchor, radius_m: float) -> UpstreamResult:
        return self._get(
            "place/textsearch/json",
            {
                "query": name,
                "location": f"{anchor.lat},{anchor.lng}",
                "radius": str(int(round(radius_m))),
                "language": self.language,
                "region": self.region,
            },
        )

    def place_details(self, place_id: str) -> UpstreamResult:
        return self._get(
            "place/details/json",
            {
                "place_id": place_id,
                "fields": DETAILS_FIELDS,
                "language": self.language,
                "region": self.region,
            },
        )

    def place_reviews(self, place_id: str, language: Optional[str] = None) -> UpstreamResult:
        return self._get(
            "place/details/json",
            {
                "place_id": place_id,
                "fields": REVIEW_FIELDS,
                "reviews_sort": "newest",
                "language": language or self.language,
                # Prefer translated review text.
                "reviews_no_translations": "false",
            },
        )


def get_default_places_gateway() -> PlacesGateway:
    """Build a gateway from current settings; raises MissingApiKey when unset."""
    return PlacesGateway(api_key=settings.GOOGLE_MAPS_API_KEY or "")
