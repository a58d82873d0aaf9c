import json
import sys
from pathlib import Path

import pytest

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from services.places_gateway import UpstreamResult  # noqa: E402

ANCHOR_ADDRESS = "日本、〒533-0033 大阪府大阪市東淀川区東中島１丁目１７−５"


def make_upstream(payload, http_status=200, description="GET stub"):
    """An UpstreamResult as the gateway would build it for a JSON payload."""
    return UpstreamResult(
        request_description=description,
        ok=200 <= http_status < 300,
        http_status=http_status,
        json=payload,
        raw=json.dumps(payload, ensure_ascii=False),
    )


def place(lat, lng, address, place_id="ChIJ-shop", name="Cafe Riverside", **extra):
    item = {
        "place_id": place_id,
        "name": name,
        "formatted_address": address,
        "geometry": {"location": {"lat": lat, "lng": lng}},
    }
    item.update(extra)
    return item


ZERO = {"status": "ZERO_RESULTS", "results": [], "candidates": []}


class StubGateway:
    """Stands in for PlacesGateway; answers from canned results and logs calls."""

    def __init__(self, **results):
        self.results = results
        self.calls = []

    def _answer(self, method, *args):
        self.calls.append((method, args))
        return self.results.get(method) or make_upstream(ZERO)

    def geocode(self, address):
        return self._answer("geocode", address)

    def find_nearby_by_name(self, name, anchor, radius_m):
        return self._answer("find_nearby_by_name", name, anchor, radius_m)

    def text_search_by_name(self, name, anchor, radius_m):
        return self._answer("text_search_by_name", name, anchor, radius_m)

    def place_details(self, place_id):
        return self._answer("place_details", place_id)

    def place_reviews(self, place_id, language=None):
        return self._answer("place_reviews", place_id, language)

    @property
    def methods(self):
        return [name for name, _ in self.calls]


@pytest.fixture
def upstream():
    return make_upstream


@pytest.fixture
def make_place():
    return place


@pytest.fixture
def anchor_geocode():
    """Geocode answer anchoring at (34.72, 135.52)."""
    return make_upstream({"status": "OK", "results": [place(34.72, 135.52, ANCHOR_ADDRESS, place_id="ChIJ-addr")]})


@pytest.fixture
def stub_gateway_factory():
    return StubGateway
