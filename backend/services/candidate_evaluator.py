"""
Scores a name-search candidate against the geocoded anchor.

A candidate is accepted only when it is both close to the anchor and its
formatted address agrees with the anchor's. Proximity alone lets unrelated
neighbours through in dense blocks; address text alone confuses branches of
the same chain.
"""
from __future__ import annotations

from typing import Optional

from domain.models import Anchor, Candidate, LatLng
from services.address_normalizer import similar
from services.distance import haversine_meters
from settings import settings


def evaluate(candidate: Candidate, anchor: Anchor) -> Candidate:
    """Fill in distance to the anchor and whether the addresses agree."""
    candidate.distance_meters = haversine_meters(
        LatLng(candidate.lat, candidate.lng),
        LatLng(anchor.lat, anchor.lng),
    )
    candidate.address_matches = similar(candidate.formatted_address, anchor.formatted_address)
    return candidate


def accept(candidate: Candidate, radius_m: Optional[float] = None) -> bool:
    """Both checks must pass; an unevaluated candidate is never accepted."""
    radius = settings.PLACE_RESOLVE_RADIUS_M if radius_m is None else radius_m
    if candidate.distance_meters is None or candidate.address_matches is None:
        return False
    return candidate.distance_meters <= radius and candidate.address_matches
