import pytest

from tests.conftest import FakeScorer, make_verdict

ADMIN_HEADERS = {"X-User-Id": "admin-1", "X-User-Role": "admin"}
DEVICE_HEADERS = {"User-Agent": "Mozilla/5.0 (iPhone)", "Accept-Language": "en-US"}


@pytest.fixture
def scorer():
    return FakeScorer(make_verdict("approved", {"TOXICITY": 0.02}, "Content appears safe"))


@pytest.fixture
def client(db, hasher, scorer):
    from fastapi.testclient import TestClient
    from app.core.database import get_db
    from app.core.rate_limit import limiter
    from app.dependencies import get_device_hasher, get_toxicity_scorer
    from main import app

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_toxicity_scorer] = lambda: scorer
    app.dependency_overrides[get_device_hasher] = lambda: hasher
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = True


def _post_review(client, text="Great burger", rating=5, headers=DEVICE_HEADERS, **extra):
    body = {"menuItemId": "item-1", "rating": rating, "text": text, **extra}
    return client.post("/api/reviews", json=body, headers=headers)


# ── Public review API ─────────────────────────────────────────────────────

def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_submit_approved_review(client, menu_item):
    response = _post_review(client)
    assert response.status_code == 201
    review = response.json()["review"]
    assert review["moderationStatus"] == "approved"
    assert review["menuItemId"] == "item-1"
    assert "deviceIdHash" not in review


def test_submit_shadowed_review_returns_pending_message(client, menu_item, scorer):
    scorer.verdict = make_verdict("shadow", {"INSULT": 0.7}, "Moderate insult detected (70%) - requires manual review")
    response = _post_review(client, text="meh, kind of gross")
    assert response.status_code == 201
    assert response.json()["review"]["moderationStatus"] == "pending"
    assert "pending moderation" in response.json()["message"]


def test_rejected_review_then_device_blocked(client, menu_item, scorer):
    scorer.verdict = make_verdict("rejected", {"THREAT": 0.9}, "High threat detected (90%)")

    first = _post_review(client, text="threatening text")
    assert first.status_code == 400
    assert "rejected by content moderation" in first.json()["detail"]

    scorer.verdict = make_verdict("approved")
    second = _post_review(client, text="a perfectly nice review")
    assert second.status_code == 403
    assert second.json()["detail"] == "This device has been restricted from posting reviews"


@pytest.mark.parametrize("extra_headers", [
    {},
    {"X-Device-Id": "a"},
    {"X-Device-Id": "b"},
    {"X-Forwarded-For": "198.51.100.77"},
])
def test_ban_survives_header_changes(client, menu_item, scorer, extra_headers):
    scorer.verdict = make_verdict("rejected", {"THREAT": 0.9}, "High threat detected (90%)")
    first = _post_review(client, text="threatening text", headers={**DEVICE_HEADERS, "X-Device-Id": "a"})
    assert first.status_code == 400

    scorer.verdict = make_verdict("approved")
    retry = _post_review(client, text="a perfectly nice review", headers={**DEVICE_HEADERS, **extra_headers})
    assert retry.status_code == 403


@pytest.mark.parametrize("body", [
    {"menuItemId": "item-1", "rating": 6},
    {"menuItemId": "item-1", "rating": 0},
    {"menuItemId": "item-1", "rating": 3, "text": "x" * 501},
    {"rating": 3},
])
def test_invalid_submission_is_422(client, menu_item, body):
    response = client.post("/api/reviews", json=body, headers=DEVICE_HEADERS)
    assert response.status_code == 422


def test_submit_for_unknown_menu_item_is_404(client, menu_item):
    response = client.post("/api/reviews", json={"menuItemId": "nope", "rating": 3}, headers=DEVICE_HEADERS)
    assert response.status_code == 404


def test_listing_shows_only_visible_reviews(client, menu_item, scorer):
    _post_review(client, text="lovely")
    scorer.verdict = make_verdict("shadow", {"INSULT": 0.65}, "Moderate insult detected (65%) - requires manual review")
    _post_review(client, text="borderline", headers={"User-Agent": "Mozilla/5.0 (Android)", "Accept-Language": "en-US"})

    response = client.get("/api/reviews/item-1")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["reviews"][0]["text"] == "lovely"

    recent = client.get("/api/reviews/recent").json()
    assert [r["text"] for r in recent["reviews"]] == ["lovely"]


def test_listing_unknown_menu_item_is_404(client, menu_item):
    assert client.get("/api/reviews/unknown-item").status_code == 404


# ── Admin moderation API ──────────────────────────────────────────────────

class TestAdminAuth:

    def test_missing_user_is_401(self, client):
        assert client.get("/api/admin/moderation/pending").status_code == 401

    def test_non_admin_is_403(self, client):
        headers = {"X-User-Id": "student-1", "X-User-Role": "student"}
        assert client.get("/api/admin/moderation/pending", headers=headers).status_code == 403

    def test_base64_encoded_headers_are_decoded(self, client):
        headers = {"X-User-Id": "base64:YWRtaW4tMQ==", "X-User-Role": "base64:YWRtaW4="}
        assert client.get("/api/admin/moderation/pending", headers=headers).status_code == 200


def test_admin_moderation_round_trip(client, menu_item, scorer):
    scorer.verdict = make_verdict("shadow", {"INSULT": 0.7}, "Moderate insult detected (70%) - requires manual review")
    review_id = _post_review(client, text="borderline").json()["review"]["id"]

    pending = client.get("/api/admin/moderation/pending", headers=ADMIN_HEADERS).json()
    assert [p["id"] for p in pending] == [review_id]
    assert pending[0]["menuItem"]["itemName"] == "Cheeseburger"
    assert pending[0]["moderationScores"] == {"INSULT": 0.7}
    device_hash = pending[0]["deviceIdHash"]

    rejected = client.post(
        f"/api/admin/moderation/reject/{review_id}",
        json={"reason": "Harassment", "banDevice": True},
        headers=ADMIN_HEADERS,
    )
    assert rejected.status_code == 200
    assert rejected.json()["deviceBanned"] is True

    banned = client.get("/api/admin/moderation/banned", headers=ADMIN_HEADERS).json()
    assert [b["deviceIdHash"] for b in banned] == [device_hash]
    assert _post_review(client, text="hello again").status_code == 403

    unbanned = client.post(f"/api/admin/moderation/unban/{device_hash}", headers=ADMIN_HEADERS)
    assert unbanned.status_code == 200
    assert client.get("/api/admin/moderation/banned", headers=ADMIN_HEADERS).json() == []

    approved = client.post(f"/api/admin/moderation/approve/{review_id}", headers=ADMIN_HEADERS)
    assert approved.json()["moderationStatus"] == "approved"
    assert client.get("/api/reviews/item-1").json()["total"] == 1

    events = client.get(
        "/api/admin/moderation/events",
        params={"contentType": "review", "contentId": review_id},
        headers=ADMIN_HEADERS,
    ).json()
    assert sorted(e["action"] for e in events) == ["approve", "auto_shadow", "reject"]


def test_reject_requires_reason(client, menu_item):
    review_id = _post_review(client).json()["review"]["id"]
    response = client.post(
        f"/api/admin/moderation/reject/{review_id}",
        json={"banDevice": True},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 422


def test_approve_unknown_review_is_404(client):
    response = client.post("/api/admin/moderation/approve/missing", headers=ADMIN_HEADERS)
    assert response.status_code == 404
