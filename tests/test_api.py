import io

import pytest

from api.auth import issue_token
from conftest import FakeAnalyzer, FakeVisualizer, InlineExecutor, build_result
from dependencies import build_services
from exceptions import AnalysisError, VisualizationError
from main import create_app
from models import MainCategory

TEST_CONFIG = {
    "TESTING": True,
    "JWT_SECRET_KEY": "test-secret-key-with-enough-length-for-hs256",
    "RATELIMIT_ENABLED": False,
    "RATELIMIT_STORAGE_URI": "memory://",
}


@pytest.fixture
def analyzer():
    return FakeAnalyzer(result=build_result(score=20, category=MainCategory.WASTE))


@pytest.fixture
def visualizer():
    return FakeVisualizer()


@pytest.fixture
def app(r, analyzer, visualizer, local_tz):
    services = build_services(redis_client=r, analyzer=analyzer, visualizer=visualizer, executor=InlineExecutor())
    return create_app(services=services, config=TEST_CONFIG)


@pytest.fixture
def client(app):
    return app.test_client()


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def guest(client):
    resp = client.post("/auth/guest")
    assert resp.status_code == 201
    return resp.get_json()


def _analyze_text(client, token, text="Sorted my plastic bottles for recycling"):
    return client.post("/analysis", json={"mediaType": "text", "text": text}, headers=_auth(token))


# ── Identity ─────────────────────────────────────────────────────────────

def test_guest_start(guest):
    assert guest["profile"]["isGuest"] is True
    assert guest["profile"]["totalPoints"] == 0
    assert guest["token"]


def test_missing_and_invalid_tokens(client):
    assert client.get("/users/me").get_json()["error_code"] == "TOKEN_MISSING"
    resp = client.get("/users/me", headers=_auth("garbage"))
    assert resp.status_code == 401
    assert resp.get_json()["error_code"] == "TOKEN_INVALID"


def test_unknown_actor_is_rejected_before_analysis(app, client, analyzer):
    with app.app_context():
        token = issue_token("guest-never-started")

    resp = _analyze_text(client, token)

    assert resp.status_code == 401
    assert resp.get_json()["error_code"] == "UNKNOWN_ACTOR"
    assert analyzer.calls == []


# ── Analysis session ─────────────────────────────────────────────────────

def test_text_analysis_commit_flow(client, guest, analyzer):
    token = guest["token"]

    resp = _analyze_text(client, token, 'Took the "green" bus\x07 today')
    assert resp.status_code == 201
    session = resp.get_json()
    assert session["state"] == "analyzed_with_visualization"
    assert session["result"]["mainCategory"] == "Waste"
    assert analyzer.calls[0] == ("Took the 'green' bus today".encode(), "text/plain")

    resp = client.post("/analysis/commit?withBadge=true", headers=_auth(token))
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["log"]["pointsEarned"] == 80
    assert body["profile"]["totalPoints"] == 80
    assert body["profile"]["logs"][0]["id"] == body["log"]["id"]

    assert client.get("/analysis", headers=_auth(token)).get_json() == {"state": "idle"}
    badges = client.get("/users/me/badges", headers=_auth(token)).get_json()["badges"]
    assert [b["id"] for b in badges] == [body["log"]["id"]]


def test_image_upload(client, guest, analyzer, png_bytes):
    resp = client.post(
        "/analysis",
        data={"file": (io.BytesIO(png_bytes), "snap.png", "image/png"), "mediaType": "image"},
        headers=_auth(guest["token"]),
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    assert analyzer.calls[0][1] == "image/png"


def test_upload_without_file(client, guest):
    resp = client.post("/analysis", data={"mediaType": "image"}, headers=_auth(guest["token"]),
                       content_type="multipart/form-data")
    assert resp.status_code == 400


def test_upload_too_large(app, client, guest):
    app.config["MAX_UPLOAD_BYTES"] = 8
    resp = client.post(
        "/analysis",
        data={"file": (io.BytesIO(b"0123456789"), "clip.mp4", "video/mp4"), "mediaType": "video"},
        headers=_auth(guest["token"]),
        content_type="multipart/form-data",
    )
    assert resp.status_code == 413
    assert resp.get_json()["error_code"] == "PAYLOAD_TOO_LARGE"


def test_empty_text_is_rejected(client, guest):
    resp = client.post("/analysis", json={"mediaType": "text", "text": ""}, headers=_auth(guest["token"]))
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == "VALIDATION_ERROR"


def test_analysis_failure_leaves_actor_idle(client, guest, analyzer):
    analyzer.error = AnalysisError("quota exceeded")
    token = guest["token"]

    resp = _analyze_text(client, token)

    assert resp.status_code == 502
    assert resp.get_json()["error_code"] == "ANALYSIS_FAILED"
    assert client.get("/analysis", headers=_auth(token)).get_json() == {"state": "idle"}
    assert client.get("/users/me", headers=_auth(token)).get_json()["totalPoints"] == 0


def test_badge_commit_refused_without_visualization(client, guest, visualizer):
    visualizer.error = VisualizationError("no image")
    token = guest["token"]
    _analyze_text(client, token)

    resp = client.post("/analysis/commit?withBadge=true", headers=_auth(token))
    assert resp.status_code == 409
    assert resp.get_json()["error_code"] == "SESSION_NOT_READY"

    resp = client.post("/analysis/commit", headers=_auth(token))
    assert resp.status_code == 201
    assert resp.get_json()["log"]["visualizationUrl"] is None


def test_discard_leaves_profile_untouched(client, guest):
    token = guest["token"]
    _analyze_text(client, token)

    assert client.post("/analysis/discard", headers=_auth(token)).status_code == 200

    profile = client.get("/users/me", headers=_auth(token)).get_json()
    assert profile["logs"] == []
    assert profile["totalPoints"] == 0
    resp = client.post("/analysis/commit", headers=_auth(token))
    assert resp.status_code == 404
    assert resp.get_json()["error_code"] == "NO_ACTIVE_SESSION"


# ── Profile ──────────────────────────────────────────────────────────────

def test_delete_log_and_repeat(client, guest):
    token = guest["token"]
    _analyze_text(client, token)
    log_id = client.post("/analysis/commit", headers=_auth(token)).get_json()["log"]["id"]

    first = client.delete(f"/users/me/logs/{log_id}", headers=_auth(token))
    second = client.delete(f"/users/me/logs/{log_id}", headers=_auth(token))

    assert first.status_code == second.status_code == 200
    assert first.get_json() == second.get_json()
    assert first.get_json()["totalPoints"] == 0


def test_login_merges_guest_history(client, guest, r):
    token = guest["token"]
    _analyze_text(client, token)
    client.post("/analysis/commit", headers=_auth(token))

    resp = client.post("/auth/login", json={"name": "Ana", "email": "ana@example.com"}, headers=_auth(token))

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["profile"]["isGuest"] is False
    assert body["profile"]["totalPoints"] == 80
    assert len(body["profile"]["logs"]) == 1
    me = client.get("/users/me", headers=_auth(body["token"])).get_json()
    assert me == body["profile"]
    assert client.get("/users/me", headers=_auth(token)).status_code == 401


def test_login_rejects_bad_email(client):
    resp = client.post("/auth/login", json={"name": "Ana", "email": "not-an-email"})
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == "VALIDATION_ERROR"


def test_logout_clears_identified_profile(client):
    token = client.post("/auth/login", json={"name": "Ana"}).get_json()["token"]

    assert client.post("/auth/logout", headers=_auth(token)).status_code == 200
    resp = client.get("/users/me", headers=_auth(token))
    assert resp.status_code == 401
    assert resp.get_json()["error_code"] == "UNKNOWN_ACTOR"


def test_guest_logout_leaves_identified_profile(client):
    user_token = client.post("/auth/login", json={"name": "Ana"}).get_json()["token"]
    guest_token = client.post("/auth/guest").get_json()["token"]

    assert client.post("/auth/logout", headers=_auth(guest_token)).status_code == 200

    resp = client.get("/users/me", headers=_auth(user_token))
    assert resp.status_code == 200
    assert resp.get_json()["name"] == "Ana"
    assert client.get("/users/me", headers=_auth(guest_token)).status_code == 401


# ── Projections ──────────────────────────────────────────────────────────

def test_leaderboard_includes_current_user_once(client, guest):
    body = client.get("/leaderboard", headers=_auth(guest["token"])).get_json()

    mine = [e for e in body["entries"] if e["isCurrentUser"]]
    assert len(mine) == 1
    assert body["myRank"]["id"] == guest["profile"]["id"]
    assert [e["rank"] for e in body["entries"]] == list(range(1, len(body["entries"]) + 1))


def test_daily_progress(client, guest):
    token = guest["token"]
    _analyze_text(client, token)
    client.post("/analysis/commit", headers=_auth(token))

    body = client.get("/daily-progress", headers=_auth(token)).get_json()

    assert body["categories"]["Waste"] is True
    assert body["completedCount"] == 1
    assert body["ratio"] == 0.25


def test_daily_progress_bad_date(client, guest):
    resp = client.get("/daily-progress?date=yesterday", headers=_auth(guest["token"]))
    assert resp.status_code == 400


def test_health_reports_checks(client):
    resp = client.get("/health")
    body = resp.get_json()
    assert body["checks"]["redis"]["status"] == "OK"
    assert resp.status_code in (200, 503)
