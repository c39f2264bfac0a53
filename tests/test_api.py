"""
HTTP-level tests: envelopes, status codes and routing
"""

import pytest
from sqlalchemy import func, select

from src.core.exceptions import TransientStoreError
from src.database.models import Subscriber, WebhookEvent
from src.services import catalog_service, subscription_service


MSISDN = "2348031234567"


async def _count(test_db, model):
    async with test_db.session() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


async def _subscribe(client) -> str:
    response = await client.get("/api/auth/callback", params={"msisdn": "08031234567", "carrier": "MTN"})
    assert response.status_code == 200
    return response.json()["data"]["session_token"]


# ===========================
# AUTH
# ===========================


@pytest.mark.asyncio
async def test_login_requires_msisdn(client):
    response = await client.post("/api/auth/login", json={})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "MSISDN required"}


@pytest.mark.asyncio
async def test_login_unknown_carrier(client):
    response = await client.post("/api/auth/login", json={"msisdn": "08051234567"})

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_login_new_subscriber_gets_link(client, subscription_links):
    response = await client.post("/api/auth/login", json={"msisdn": "0803 123 4567"})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Subscription required"
    assert body["data"]["subscription_link"] == subscription_links["MTN"]
    assert body["data"]["session_token"] is None
    assert body["server_time"].endswith("Z")


@pytest.mark.asyncio
async def test_callback_then_login(client, subscription_links):
    response = await client.get("/api/auth/callback", params={"msisdn": "08031234567", "carrier": "MTN"})

    body = response.json()
    assert response.status_code == 200
    assert body["message"] == "Subscription verified"
    assert body["data"]["status"] == "active"
    assert body["data"]["is_first_time"] is True
    assert body["data"]["session_token"]
    assert "server_time" in body

    response = await client.post("/api/auth/login", json={"msisdn": "+2348031234567"})
    assert response.json()["message"] == "Access granted"
    assert response.json()["data"]["session_token"]


@pytest.mark.asyncio
async def test_callback_missing_carrier(client):
    response = await client.get("/api/auth/callback", params={"msisdn": "08031234567"})

    assert response.status_code == 400
    assert response.json()["message"] == "Missing msisdn or carrier"


@pytest.mark.asyncio
async def test_status_with_bearer_token(client):
    token = await _subscribe(client)

    response = await client.get("/api/auth/status", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["message"] == "Session valid"
    assert response.json()["data"]["remaining_seconds"] > 0


@pytest.mark.asyncio
async def test_status_rejects_malformed_header(client):
    response = await client.get("/api/auth/status", headers={"Authorization": "Token abc"})

    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_status_unknown_token(client):
    response = await client.get("/api/auth/status", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401
    assert response.json()["message"] == "Session expired or invalid"


@pytest.mark.asyncio
async def test_status_unknown_msisdn(client):
    response = await client.get("/api/auth/status", params={"msisdn": "08039999999"})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_logout_invalidates_token(client):
    token = await _subscribe(client)
    headers = {"Authorization": f"Bearer {token}"}

    response = await client.post("/api/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"

    response = await client.get("/api/auth/status", headers=headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_without_token(client):
    response = await client.post("/api/auth/logout")

    assert response.status_code == 401


# ===========================
# WEBHOOK
# ===========================


@pytest.mark.asyncio
async def test_webhook_invalid_json_is_acknowledged(client, test_db):
    response = await client.post(
        "/api/auth/webhook",
        content=b"msisdn=2348031234567&status=renewed",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == 200
    assert response.json()["data"] == {"status": None}
    assert await _count(test_db, WebhookEvent) == 1
    assert await _count(test_db, Subscriber) == 0


@pytest.mark.asyncio
async def test_webhook_bogus_status_is_acknowledged(client, test_db):
    response = await client.post("/api/auth/webhook", json={"msisdn": MSISDN, "status": "bogus"})

    assert response.status_code == 200
    assert response.json()["message"] == "Webhook received"
    assert response.json()["data"] == {"status": None}
    assert await _count(test_db, WebhookEvent) == 1


@pytest.mark.asyncio
async def test_webhook_terminated_expires(client, test_db):
    await _subscribe(client)

    response = await client.post("/api/auth/webhook", json={"msisdn": MSISDN, "status": "terminated"})

    assert response.json()["data"] == {"status": "expired"}
    async with test_db.session() as session:
        subscriber = await subscription_service.get_subscriber_by_msisdn(session, MSISDN)
    assert subscriber.status == "expired"


# ===========================
# INTERACTIONS
# ===========================


@pytest.mark.asyncio
async def test_saved_matches_lifecycle(client, catalog, test_db):
    async with test_db.session() as session:
        subscriber = await subscription_service.renew_subscription(session, MSISDN)
    body = {"subscriber_id": subscriber.id, "match_id": catalog.matches.derby.id}

    response = await client.post("/api/saved-matches", json=body)
    assert response.status_code == 200
    assert response.json()["message"] == "Match saved for watch later."
    assert response.json()["data"]["created"] is True

    response = await client.post("/api/saved-matches", json=body)
    assert response.json()["data"]["created"] is False

    response = await client.get("/api/saved-matches", params={"subscriber_id": subscriber.id})
    assert [row["match_id"] for row in response.json()["data"]] == [catalog.matches.derby.id]

    response = await client.get(f"/api/matches/{catalog.matches.derby.id}/stats")
    assert response.json()["data"] == {"saved_count": 1, "loved_count": 0, "favorite_count": 0}

    response = await client.request("DELETE", "/api/saved-matches", json=body)
    assert response.status_code == 200
    assert response.json()["message"] == "Match removed from saved."

    response = await client.request("DELETE", "/api/saved-matches", json=body)
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Saved match not found"}


@pytest.mark.asyncio
async def test_interaction_requires_match_id(client):
    response = await client.post("/api/loved-matches", json={"subscriber_id": 1})

    assert response.status_code == 400
    assert response.json()["message"] == "match_id is required"


@pytest.mark.asyncio
async def test_top_interactions_empty(client):
    response = await client.get("/api/interactions/top")

    assert response.status_code == 200
    assert response.json()["message"] == "No interactions found."
    assert response.json()["data"] == {"type": None, "rows": []}


# ===========================
# CATALOG
# ===========================


@pytest.mark.asyncio
async def test_categories(client, catalog):
    response = await client.get("/api/categories")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert len(body["data"]) == 4


@pytest.mark.asyncio
async def test_videos_metadata(client, catalog):
    response = await client.get("/api/videos", params={"pageSize": 2, "page": 2})

    body = response.json()
    assert body["metadata"] == {"page": 2, "pageSize": 2, "total": 5}
    assert len(body["data"]) == 2


@pytest.mark.asyncio
async def test_video_not_found(client, catalog):
    response = await client.get("/api/videos/99999")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": {"code": 404, "message": "Video not found"},
    }


@pytest.mark.asyncio
async def test_video_day_filter_invalid(client, catalog):
    response = await client.get("/api/videos/category/Highlights/date/someday")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == 400


@pytest.mark.asyncio
async def test_video_date_range_missing_bounds(client, catalog):
    response = await client.get("/api/videos/date", params={"from": "2024-01-01"})

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_transient_store_error_asks_for_retry(client, monkeypatch):
    async def broken(session):
        raise TransientStoreError()

    monkeypatch.setattr(catalog_service, "list_categories", broken)

    response = await client.get("/api/categories")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": TransientStoreError.default_message,
        "retry": True,
    }


# ===========================
# SEARCH
# ===========================


@pytest.mark.asyncio
async def test_search_autosuggest(client, catalog):
    response = await client.get("/api/search", params={"q": "ars"})

    body = response.json()
    assert response.status_code == 200
    assert body["message"] == "Search results retrieved."
    assert body["data"]["mode"] == "autosuggest"
    assert body["data"]["suggestions"][0]["name"] == "Arsenal"


@pytest.mark.asyncio
async def test_search_full_with_filters(client, catalog):
    response = await client.get(
        "/api/search",
        params={"q": "ars", "league": catalog.leagues.premier_league.id, "limit": 1},
    )

    data = response.json()["data"]
    assert data["mode"] == "full"
    assert len(data["results"]) == 1
    assert data["pagination"] == {"page": 1, "limit": 1, "total": 2}


@pytest.mark.asyncio
async def test_search_invalid_match_status(client):
    response = await client.get("/api/search", params={"match_status": "halftime"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_filter_options_unknown_type(client):
    response = await client.get("/api/filter-options", params={"type": "stadium"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid filter type"}


# ===========================
# HEALTH
# ===========================


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "ok"}
