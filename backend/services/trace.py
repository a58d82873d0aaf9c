"""
Per-request trace of upstream calls made while resolving a place.

Provider payloads can carry personal data (review authors, profile photos),
so debug samples are built from a fixed allow-list of fields and only the
first candidate/result. Nothing else from a payload is ever copied.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, List, Optional

from domain.models import TraceStep
from services.places_gateway import UpstreamResult

logger = logging.getLogger(__name__)

SAMPLE_TEXT_LIMIT = 1200
_TOP_LEVEL_FIELDS = ("status", "error_message")
_LIST_FIELDS = ("candidates", "results")


def truncate_text(s: str, n: int = SAMPLE_TEXT_LIMIT) -> str:
    return s[:n] + "...(truncated)" if len(s) > n else s


def preview_place(item: Any) -> dict:
    """Project one provider place onto the allow-listed fields."""
    if not isinstance(item, dict):
        return {}
    geometry = item.get("geometry") if isinstance(item.get("geometry"), dict) else {}
    types = item.get("types")
    return {
        "place_id": item.get("place_id"),
        "formatted_address": item.get("formatted_address"),
        "name": item.get("name"),
        "geometry": {"location": geometry.get("location")},
        "business_status": item.get("business_status"),
        "types": types[:3] if isinstance(types, list) else None,
    }


def build_preview(payload: Any) -> Any:
    """Shallow, truncated projection of a provider response for debug output."""
    if isinstance(payload, str):
        return truncate_text(payload)
    if not isinstance(payload, dict):
        return None
    preview: dict = {}
    for key in _TOP_LEVEL_FIELDS:
        if key in payload:
            preview[key] = payload[key]
    for key in _LIST_FIELDS:
        items = payload.get(key)
        if isinstance(items, list) and items:
            preview[key] = [preview_place(items[0])]
    if isinstance(payload.get("result"), dict):
        preview["result"] = preview_place(payload["result"])
    return preview


class TraceRecorder:
    """Append-only, in-memory step log scoped to a single resolution."""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._steps: List[TraceStep] = []

    @property
    def steps(self) -> List[TraceStep]:
        return list(self._steps)

    def record(self, step: TraceStep) -> None:
        if not self.debug and step.sample is not None:
            step = replace(step, sample=None)
        self._steps.append(step)
        logger.debug(
            "resolve step=%s request=%s http=%s provider=%s note=%s",
            step.step,
            step.request_description,
            step.http_status,
            step.provider_status,
            step.note,
        )

    def record_upstream(
        self,
        step: str,
        result: UpstreamResult,
        *,
        distance_meters: Optional[float] = None,
        address_matched: Optional[bool] = None,
        note: Optional[str] = None,
    ) -> TraceStep:
        """Record one gateway call, attaching a sample only in debug mode."""
        sample = None
        if self.debug:
            sample = build_preview(result.json if result.json is not None else result.raw)
        entry = TraceStep(
            step=step,
            request_description=result.request_description,
            http_status=result.http_status,
            provider_status=result.provider_status,
            provider_error=result.provider_error,
            distance_meters=distance_meters,
            address_matched=address_matched,
            note="; ".join(n for n in (result.error, note) if n) or None,
            sample=sample,
        )
        self.record(entry)
        return entry
