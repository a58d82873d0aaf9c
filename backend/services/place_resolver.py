"""
Resolve a business name + postal address to a verified location.

The address alone is geocoded first to get an anchor point. The name is then
searched near that anchor, first with Find Place (location-biased) and, if
its top candidate is rejected, with Text Search in the same radius. Only the
top candidate of each search is evaluated. A candidate is accepted when it is
within the radius of the anchor and its formatted address agrees with the
anchor's; otherwise the anchor itself is returned without a place id.

Resolution runs as a small terminal state machine:

    START -> NOT_FOUND | ANCHORED
    ANCHORED -> RESOLVED | NEARBY_REJECTED
    NEARBY_REJECTED -> RESOLVED | ALL_REJECTED

Each transition makes exactly one upstream call and records one trace step.
Upstream failures never raise out of ``resolve``; they just move the cascade
along.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from domain.models import (
    Anchor,
    Candidate,
    PlaceSource,
    Resolution,
    ResolutionRequest,
    ResolvedPlace,
)
from services.candidate_evaluator import accept, evaluate
from services.places_gateway import PlacesGateway, UpstreamResult
from services.trace import TraceRecorder
from settings import settings

logger = logging.getLogger(__name__)


class ResolutionState(str, Enum):
    START = "start"
    ANCHORED = "anchored"
    NEARBY_REJECTED = "nearby_rejected"
    NOT_FOUND = "not_found"
    RESOLVED = "resolved"
    ALL_REJECTED = "all_rejected"


TERMINAL_STATES = frozenset(
    {ResolutionState.NOT_FOUND, ResolutionState.RESOLVED, ResolutionState.ALL_REJECTED}
)


@dataclass
class _Run:
    """Mutable state for one resolution call; never shared between calls."""
    request: ResolutionRequest
    trace: TraceRecorder
    anchor: Optional[Anchor] = None
    place: Optional[ResolvedPlace] = None
    history: list = field(default_factory=list)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def extract_location(item: Optional[dict]) -> Optional[tuple[float, float]]:
    if not item:
        return None
    geometry = item.get("geometry")
    loc = geometry.get("location") if isinstance(geometry, dict) else None
    if not isinstance(loc, dict):
        return None
    lat, lng = _number(loc.get("lat")), _number(loc.get("lng"))
    if lat is None or lng is None:
        return None
    return lat, lng


def anchor_from_result(item: Optional[dict]) -> Optional[Anchor]:
    """Build an anchor from the first geocode result, if it has a location."""
    loc = extract_location(item)
    if loc is None:
        return None
    return Anchor(lat=loc[0], lng=loc[1], formatted_address=_text(item.get("formatted_address")) or "")


def candidate_from_result(item: Optional[dict]) -> Optional[Candidate]:
    """Build a candidate from the first search hit, if it has a location."""
    loc = extract_location(item)
    if loc is None:
        return None
    return Candidate(
        lat=loc[0],
        lng=loc[1],
        place_id=_text(item.get("place_id")),
        formatted_address=_text(item.get("formatted_address")),
        name=_text(item.get("name")),
    )


class PlaceResolver:
    """Drives the geocode -> nearby search -> text search cascade."""

    def __init__(self, gateway: PlacesGateway, radius_m: Optional[float] = None):
        self.gateway = gateway
        self.radius_m = settings.PLACE_RESOLVE_RADIUS_M if radius_m is None else radius_m
        self._handlers: Dict[ResolutionState, Callable[[_Run], ResolutionState]] = {
            ResolutionState.START: self._geocode_anchor,
            ResolutionState.ANCHORED: self._search_nearby,
            ResolutionState.NEARBY_REJECTED: self._search_text,
        }

    def resolve(self, request: ResolutionRequest) -> Resolution:
        run = _Run(request=request, trace=TraceRecorder(debug=request.debug))
        state = ResolutionState.START
        while state not in TERMINAL_STATES:
            state = self._handlers[state](run)
            run.history.append(state)

        if state is ResolutionState.ALL_REJECTED:
            anchor = run.anchor
            run.place = ResolvedPlace(
                source=PlaceSource.GEOCODE,
                lat=anchor.lat,
                lng=anchor.lng,
                formatted_address=anchor.formatted_address or None,
            )

        logger.info(
            "Resolved place: states=%s source=%s verified=%s",
            "->".join(s.value for s in run.history),
            run.place.source.value,
            run.place.verified,
        )
        return Resolution(request=request, place=run.place, steps=run.trace.steps)

    def _geocode_anchor(self, run: _Run) -> ResolutionState:
        result = self.gateway.geocode(run.request.address)
        anchor = anchor_from_result(result.first("results"))
        if anchor is None:
            run.trace.record_upstream("geocode", result, note="no usable geocode result")
            run.place = ResolvedPlace(source=PlaceSource.GEOCODE)
            return ResolutionState.NOT_FOUND
        run.trace.record_upstream("geocode", result, note="anchor established")
        run.anchor = anchor
        return ResolutionState.ANCHORED

    def _search_nearby(self, run: _Run) -> ResolutionState:
        result = self.gateway.find_nearby_by_name(run.request.name, run.anchor, self.radius_m)
        if self._consider(run, "nearby_search", result, result.first("candidates"), PlaceSource.NEARBY_SEARCH):
            return ResolutionState.RESOLVED
        return ResolutionState.NEARBY_REJECTED

    def _search_text(self, run: _Run) -> ResolutionState:
        result = self.gateway.text_search_by_name(run.request.name, run.anchor, self.radius_m)
        if self._consider(run, "text_search", result, result.first("results"), PlaceSource.TEXT_SEARCH):
            return ResolutionState.RESOLVED
        return ResolutionState.ALL_REJECTED

    def _consider(
        self,
        run: _Run,
        step: str,
        result: UpstreamResult,
        item: Optional[dict],
        source: PlaceSource,
    ) -> bool:
        """Evaluate the top hit of a search, record the step, and resolve on acceptance."""
        candidate = candidate_from_result(item)
        if candidate is None:
            run.trace.record_upstream(step, result, note="no candidate")
            return False

        evaluate(candidate, run.anchor)
        accepted = accept(candidate, self.radius_m) and candidate.place_id is not None
        run.trace.record_upstream(
            step,
            result,
            distance_meters=candidate.distance_meters,
            address_matched=candidate.address_matches,
            note=self._verdict(candidate, accepted),
        )
        if not accepted:
            return False

        run.place = ResolvedPlace(
            source=source,
            place_id=candidate.place_id,
            lat=candidate.lat,
            lng=candidate.lng,
            formatted_address=candidate.formatted_address,
        )
        return True

    def _verdict(self, candidate: Candidate, accepted: bool) -> str:
        if accepted:
            return "accepted"
        reasons = []
        if candidate.distance_meters > self.radius_m:
            reasons.append(f"distance {candidate.distance_meters:.0f}m > {self.radius_m:.0f}m")
        if not candidate.address_matches:
            reasons.append("address mismatch")
        if candidate.place_id is None:
            reasons.append("missing place_id")
        return "rejected: " + ", ".join(reasons)
