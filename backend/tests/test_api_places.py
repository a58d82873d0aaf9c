from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.routes import places as places_router
from settings import settings

SHOP_ADDRESS = "日本、〒533-0033 大阪府大阪市東淀川区東中島1丁目17-5 リバーサイドビル2F"


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(places_router.router)
    return TestClient(app)


@pytest.fixture
def matched_gateway(stub_gateway_factory, anchor_geocode, upstream, make_place):
    return stub_gateway_factory(
        geocode=anchor_geocode,
        find_nearby_by_name=upstream(
            {"status": "OK", "candidates": [make_place(34.7205, 135.5203, SHOP_ADDRESS, place_id="ChIJ-nearby")]}
        ),
    )


def test_resolve_place_returns_verified_place(client, matched_gateway):
    with patch.object(places_router, "get_default_places_gateway", return_value=matched_gateway):
        resp = client.post("/resolve-place", json={"name": "Cafe Riverside", "address": "大阪府大阪市東淀川区"})
    assert resp.status_code == 200
    assert resp.json() == {
        "placeId": "ChIJ-nearby",
        "lat": 34.7205,
        "lng": 135.5203,
        "formattedAddress": SHOP_ADDRESS,
        "source": "nearby_search",
    }


def test_resolve_place_debug_includes_trace(client, matched_gateway):
    with patch.object(places_router, "get_default_places_gateway", return_value=matched_gateway):
        resp = client.post(
            "/resolve-place",
            json={"name": "  Cafe\n Riverside ", "address": "大阪府大阪市東淀川区", "debug": True},
        )
    data = resp.json()
    assert data["debug"]["normalized"] == {"name": "Cafe Riverside", "address": "大阪府大阪市東淀川区"}
    steps = data["debug"]["steps"]
    assert [s["step"] for s in steps] == ["geocode", "nearby_search"]
    assert steps[1]["addressMatched"] is True
    assert "requestDescription" in steps[1]
    assert steps[1]["sample"]["candidates"][0]["place_id"] == "ChIJ-nearby"


def test_resolve_place_debug_can_be_disabled(client, matched_gateway, monkeypatch):
    monkeypatch.setattr(settings, "PLACES_DEBUG_ALLOWED", False)
    with patch.object(places_router, "get_default_places_gateway", return_value=matched_gateway):
        resp = client.post("/resolve-place", json={"name": "Cafe", "address": "大阪府", "debug": True})
    assert "debug" not in resp.json()


@pytest.mark.parametrize(
    "body",
    [
        {"name": "Cafe Riverside", "address": ""},
        {"name": "Cafe Riverside"},
        {"name": " ", "address": "大阪府"},
    ],
)
def test_resolve_place_rejects_missing_input_without_upstream_calls(client, stub_gateway_factory, body):
    gateway = stub_gateway_factory()
    with patch.object(places_router, "get_default_places_gateway", return_value=gateway):
        resp = client.post("/resolve-place", json=body)
    assert resp.status_code == 400
    assert gateway.calls == []


def test_resolve_place_not_found_is_still_200(client, stub_gateway_factory):
    with patch.object(places_router, "get_default_places_gateway", return_value=stub_gateway_factory()):
        resp = client.post("/resolve-place", json={"name": "Nowhere Cafe", "address": "存在しない住所"})
    assert resp.status_code == 200
    assert resp.json() == {"source": "geocode"}


def test_resolve_place_get_variant(client, matched_gateway):
    with patch.object(places_router, "get_default_places_gateway", return_value=matched_gateway):
        resp = client.get("/resolve-place", params={"name": "Cafe Riverside", "address": "大阪府", "debug": "1"})
    data = resp.json()
    assert data["source"] == "nearby_search"
    assert len(data["debug"]["steps"]) == 2


def test_missing_api_key_is_server_error(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", None)
    resp = client.post("/resolve-place", json={"name": "Cafe", "address": "大阪府"})
    assert resp.status_code == 500
    assert resp.json()["detail"] == "missing GOOGLE_MAPS_API_KEY"


def test_geocode_endpoint(client, stub_gateway_factory, anchor_geocode):
    with patch.object(places_router, "get_default_places_gateway", return_value=stub_gateway_factory(geocode=anchor_geocode)):
        resp = client.post("/geocode", json={"address": "大阪府大阪市"})
    assert resp.status_code == 200
    assert resp.json() == {"lat": 34.72, "lng": 135.52, "placeId": "ChIJ-addr"}


def test_geocode_endpoint_status_mapping(client, stub_gateway_factory, upstream):
    cases = [
        (upstream({"status": "ZERO_RESULTS", "results": []}), 404),
        (upstream({"status": "OVER_QUERY_LIMIT"}), 502),
        (upstream({"status": "UNKNOWN_ERROR"}, http_status=500), 502),
    ]
    for result, expected in cases:
        with patch.object(places_router, "get_default_places_gateway", return_value=stub_gateway_factory(geocode=result)):
            resp = client.get("/geocode", params={"address": "somewhere"})
        assert resp.status_code == expected


def test_geocode_endpoint_requires_address(client):
    resp = client.post("/geocode", json={})
    assert resp.status_code == 400


def test_place_details_endpoint(client, stub_gateway_factory, upstream, make_place):
    gateway = stub_gateway_factory(
        place_details=upstream({"status": "OK", "result": make_place(34.7, 135.5, "大阪府大阪市")})
    )
    with patch.object(places_router, "get_default_places_gateway", return_value=gateway):
        resp = client.get("/place-details", params={"id": "ChIJ-shop"})
    assert resp.status_code == 200
    assert resp.json() == {"name": "Cafe Riverside", "formattedAddress": "大阪府大阪市", "lat": 34.7, "lng": 135.5}


def test_place_details_endpoint_errors(client, stub_gateway_factory):
    assert client.post("/place-details", json={}).status_code == 400
    with patch.object(places_router, "get_default_places_gateway", return_value=stub_gateway_factory()):
        resp = client.post("/place-details", json={"id": "bogus"})
    assert resp.status_code == 404


def test_place_reviews_endpoint(client, stub_gateway_factory, upstream):
    payload = {
        "status": "OK",
        "result": {
            "rating": 4.0,
            "user_ratings_total": 3,
            "reviews": [{"author_name": "Hanako", "rating": 4, "relative_time_description": "today", "text": "good"}],
        },
    }
    gateway = stub_gateway_factory(place_reviews=upstream(payload))
    with patch.object(places_router, "get_default_places_gateway", return_value=gateway):
        resp = client.get("/place-reviews", params={"placeId": "ChIJ-shop", "lang": "en"})
    assert resp.status_code == 200
    assert resp.json() == {
        "rating": 4.0,
        "total": 3,
        "reviews": [{"author": "Hanako", "profilePhotoUrl": "", "rating": 4.0, "time": "today", "text": "good"}],
    }
    assert gateway.calls == [("place_reviews", ("ChIJ-shop", "en"))]


def test_place_reviews_endpoint_errors(client, stub_gateway_factory):
    assert client.get("/place-reviews").status_code == 400
    with patch.object(places_router, "get_default_places_gateway", return_value=stub_gateway_factory()):
        resp = client.get("/place-reviews", params={"placeId": "gone"})
    assert resp.status_code == 502
