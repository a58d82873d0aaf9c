"""
Core domain models for place resolution.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from domain.errors import InvalidRequest


class PlaceSource(str, Enum):
    """Which cascade step produced a resolved place."""
    GEOCODE = "geocode"
    NEARBY_SEARCH = "nearby_search"
    TEXT_SEARCH = "text_search"


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True)
class ResolutionRequest:
    """A business name plus postal address to be located."""
    name: str
    address: str
    debug: bool = False

    @classmethod
    def create(cls, name: Optional[str], address: Optional[str], debug: bool = False) -> "ResolutionRequest":
        """Build a request, rejecting blank name or address."""
        name = (name or "").strip()
        address = (address or "").strip()
        if not name or not address:
            raise InvalidRequest("name and address required")
        return cls(name=name, address=address, debug=bool(debug))


@dataclass(frozen=True)
class Anchor:
    """Reference point obtained by geocoding the address alone."""
    lat: float
    lng: float
    formatted_address: str = ""


@dataclass
class Candidate:
    """A name-search result, evaluated against the anchor."""
    lat: float
    lng: float
    place_id: Optional[str] = None
    formatted_address: Optional[str] = None
    name: Optional[str] = None
    distance_meters: Optional[float] = None
    address_matches: Optional[bool] = None


@dataclass(frozen=True)
class ResolvedPlace:
    """
    The only externally visible result of a resolution.

    ``place_id`` is set only when a candidate was accepted, in which case
    ``source`` is never GEOCODE.
    """
    source: PlaceSource
    place_id: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    formatted_address: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def verified(self) -> bool:
        return self.place_id is not None


@dataclass(frozen=True)
class TraceStep:
    step: str
    request_description: str
    http_status: Optional[int] = None
    provider_status: Optional[str] = None
    provider_error: Optional[str] = None
    distance_meters: Optional[float] = None
    address_matched: Optional[bool] = None
    note: Optional[str] = None
    sample: Optional[Any] = None


@dataclass
class Resolution:
    """Outcome of one resolution call: the place plus its trace."""
    request: ResolutionRequest
    place: ResolvedPlace
    steps: List[TraceStep] = field(default_factory=list)

    @property
    def normalized(self) -> Dict[str, str]:
        return {"name": self.request.name, "address": self.request.address}


@dataclass(frozen=True)
class GeocodeHit:
    lat: float
    lng: float
    place_id: Optional[str] = None
    raw: Optional[str] = None


@dataclass(frozen=True)
class PlaceDetails:
    name: Optional[str] = None
    formatted_address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


@dataclass(frozen=True)
class PlaceReview:
    author: str
    profile_photo_url: str
    rating: float
    time: str
    text: str


@dataclass
class PlaceReviews:
    rating: Optional[float] = None
    total: int = 0
    reviews: List[PlaceReview] = field(default_factory=list)
