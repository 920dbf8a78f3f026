"""
API tests for the /places endpoints, run against local JSON storage in a
temp directory with the provider client replaced by a scripted one.
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from factories import ScriptedUpstream, make_payload
from geoplaces.core.exceptions import UpstreamNotFoundError, UpstreamTransientError
from geoplaces.main import app
from geoplaces.repos.local_repo import (
    LocalAnalyticsRepository,
    LocalGeoIndex,
    LocalPlacesRepository,
    LocalReviewsRepository,
    LocalUsersRepository,
)
from geoplaces.routes import places_route

USER = {"X-User-Id": "user-1"}

GOOGLE_DATA = {
    "name": "Padaria Central",
    "formatted_address": "Rua da Consolação, 200 - São Paulo",
    "geometry": {"location": {"lat": -23.551, "lng": -46.631}},
    "rating": 4.2,
    "types": ["bakery", "food", "establishment"],
}


@pytest.fixture
def upstream():
    return ScriptedUpstream()


@pytest.fixture
def client(tmp_path, upstream):
    users = LocalUsersRepository(tmp_path)
    asyncio.run(users.save_user("user-1", {"name": "Ana", "isActive": True}))
    asyncio.run(users.save_user("user-2", {"name": "Bia", "isActive": False}))

    app.dependency_overrides = {
        places_route.get_places_store: lambda: LocalPlacesRepository(tmp_path),
        places_route.get_geo_index: lambda: LocalGeoIndex(tmp_path),
        places_route.get_analytics_repo: lambda: LocalAnalyticsRepository(tmp_path),
        places_route.get_users_repo: lambda: users,
        places_route.get_reviews_repo: lambda: LocalReviewsRepository(tmp_path),
        places_route.get_upstream_client: lambda: upstream,
    }
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides = {}


def _assert_error(response, status_code, code):
    assert response.status_code == status_code
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == code
    assert body["error"]["message"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_missing_caller_is_unauthenticated(client):
    response = client.post("/places/resolve", json={"placeId": "ChIJabc"})

    _assert_error(response, 401, "UNAUTHENTICATED")


@pytest.mark.parametrize("user_id", ["user-2", "stranger"])
def test_inactive_or_unknown_caller_is_denied(client, user_id):
    response = client.post("/places/resolve", json={"placeId": "ChIJabc"}, headers={"X-User-Id": user_id})

    _assert_error(response, 403, "PERMISSION_DENIED")


@pytest.mark.parametrize("body", [{}, {"placeId": ""}, {"placeId": "   "}])
def test_blank_place_id_is_invalid(client, body):
    response = client.post("/places/resolve", json=body, headers=USER)

    _assert_error(response, 400, "INVALID_ARGUMENT")
    assert response.json()["error"]["details"]["errors"]


def test_resolve_fetches_then_serves_from_cache(client, upstream):
    upstream.payloads["ChIJabc"] = make_payload()

    first = client.post("/places/resolve", json={"placeId": "ChIJabc", "language": "en"}, headers=USER)
    second = client.post("/places/resolve", json={"placeId": "ChIJabc"}, headers=USER)

    assert first.status_code == 200
    body = first.json()
    assert body["success"] is True
    assert body["fromCache"] is False
    assert body["degraded"] is False
    assert body["meta"] == {"fromCache": False, "lastUpdate": body["place"]["sync"]["lastSyncedAt"], "language": "en"}
    assert body["place"]["id"] == "ChIJabc"
    assert body["place"]["upstream"]["formattedAddress"] == "Rua Augusta, 100 - São Paulo"
    assert body["place"]["platform"]["category"] == "cafe"
    assert body["place"]["platform"]["createdBy"] == "user-1"

    assert second.json()["fromCache"] is True
    assert len(upstream.calls) == 1


def test_resolve_unavailable_without_cache(client, upstream):
    upstream.fail("ChIJabc", UpstreamTransientError("timeout"))

    response = client.post("/places/resolve", json={"placeId": "ChIJabc"}, headers=USER)

    _assert_error(response, 503, "UNAVAILABLE")


def test_resolve_not_found_without_cache(client, upstream):
    upstream.fail("ChIJgone", UpstreamNotFoundError("gone", status="NOT_FOUND"))

    response = client.post("/places/resolve", json={"placeId": "ChIJgone"}, headers=USER)

    _assert_error(response, 404, "NOT_FOUND")
    assert response.json()["error"]["details"] == {"place_id": "ChIJgone"}


def test_forced_refresh_failure_serves_cached_copy(client, upstream):
    upstream.payloads["ChIJabc"] = make_payload()
    client.post("/places/resolve", json={"placeId": "ChIJabc"}, headers=USER)
    upstream.fail("ChIJabc", UpstreamTransientError("timeout"))

    response = client.post("/places/resolve", json={"placeId": "ChIJabc", "forceRefresh": True}, headers=USER)

    assert response.status_code == 200
    assert response.json()["fromCache"] is True
    assert response.json()["degraded"] is True


def test_ingest_then_search_nearby(client):
    ingest = client.post(
        "/places/ingest",
        json={"placeId": "ChIJpadaria", "googleData": GOOGLE_DATA},
        headers=USER,
    )

    assert ingest.status_code == 200
    assert ingest.json()["placeId"] == "ChIJpadaria"
    assert ingest.json()["place"]["platform"]["category"] == "restaurant"

    response = client.post(
        "/places/nearby",
        json={"center": {"lat": -23.55, "lng": -46.63}, "radiusKm": 2, "filters": {"tags": ["bakery"]}},
        headers=USER,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["hasMore"] is False
    assert body["radiusKm"] == 2
    assert body["appliedFilters"]["tags"] == ["bakery"]
    assert body["appliedFilters"]["isActive"] is True
    [place] = body["places"]
    assert place["id"] == "ChIJpadaria"
    assert 0 < place["distanceKm"] < 0.5


def test_request_level_bounds_apply_when_filters_have_none(client):
    client.post("/places/ingest", json={"placeId": "ChIJpadaria", "googleData": GOOGLE_DATA}, headers=USER)
    elsewhere = {"northeast": {"lat": -23.0, "lng": -46.0}, "southwest": {"lat": -23.2, "lng": -46.2}}

    response = client.post(
        "/places/nearby",
        json={"center": {"lat": -23.55, "lng": -46.63}, "radiusKm": 2, "bounds": elsewhere},
        headers=USER,
    )

    assert response.json()["places"] == []
    assert response.json()["appliedFilters"]["bounds"] == elsewhere


def test_ingest_rejects_malformed_provider_data(client):
    bad = dict(GOOGLE_DATA, geometry={"location": {"lat": 123.0, "lng": -46.6}})

    response = client.post("/places/ingest", json={"placeId": "ChIJbad", "googleData": bad}, headers=USER)

    _assert_error(response, 400, "INVALID_ARGUMENT")


@pytest.mark.parametrize(
    "body",
    [
        {"center": {"lat": -23.55, "lng": -46.63}, "radiusKm": 0},
        {"center": {"lat": 91, "lng": -46.63}},
        {"center": {"lat": -23.55, "lng": -46.63}, "pagination": {"limit": 101}},
        {"center": {"lat": -23.55, "lng": -46.63}, "pagination": {"offset": -1}},
        {"center": {"lat": -23.55, "lng": -46.63}, "filters": {"minRating": -1}},
    ],
)
def test_nearby_rejects_invalid_input(client, body):
    response = client.post("/places/nearby", json=body, headers=USER)

    _assert_error(response, 400, "INVALID_ARGUMENT")


def test_resolve_includes_latest_reviews_with_authors(client, upstream, tmp_path):
    asyncio.run(LocalReviewsRepository(tmp_path).save_reviews("ChIJabc", [
        {"id": "r1", "userId": "user-1", "rating": 9, "comment": "Ótimo café", "createdAt": "2025-03-01T10:00:00+00:00"},
        {"id": "r2", "userId": "someone", "rating": 5, "createdAt": "2025-03-02T10:00:00+00:00"},
    ]))
    upstream.payloads["ChIJabc"] = make_payload()

    response = client.post("/places/resolve", json={"placeId": "ChIJabc"}, headers=USER)

    assert response.status_code == 200
    reviews = response.json()["reviews"]
    assert [r["id"] for r in reviews] == ["r2", "r1"]
    assert reviews[0]["userName"] == "Usuário"
    assert reviews[1]["userName"] == "Ana"
    assert reviews[1]["comment"] == "Ótimo café"


def test_resolve_without_reviews_returns_empty_list(client, upstream):
    upstream.payloads["ChIJabc"] = make_payload()

    response = client.post("/places/resolve", json={"placeId": "ChIJabc"}, headers=USER)

    assert response.json()["reviews"] == []
