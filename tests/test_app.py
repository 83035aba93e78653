from pathlib import Path

import ai_client
from config import settings
from conftest import ALICE


def test_health_reports_database_and_external_ai(app, monkeypatch):
    monkeypatch.setattr(ai_client, "external_ai_health", lambda: False)
    resp = app.test_client().get("/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["database"] == "ok"
    assert body["externalAI"] == "unavailable"
    assert body["missingConfig"] == []


def test_db_check_counts_rows(app, make_session):
    make_session()
    resp = app.test_client().get("/db-check")
    assert resp.get_json() == {"feedback_sessions_count": 1, "chat_messages_count": 0}


def test_unknown_route_is_json_404(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "not found"}


def test_wrong_method_is_json_405(client):
    resp = client.get("/api/analyze", headers=ALICE)
    assert resp.status_code == 405
    assert "error" in resp.get_json()


def test_fresh_analysis_is_audited(client):
    client.post("/api/analyze", headers=ALICE, json={
        "userId": "alice",
        "videoPath": "user_alice/1_talk.mp4",
        "analysisType": "action_fixes",
    })
    lines = Path(settings.AUDIT_LOG_PATH).read_text(encoding="utf-8").splitlines()
    assert "| ANALYSIS_CREATED |" in lines[-1]
    assert "type=action_fixes" in lines[-1]


def test_missing_required_config(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_URL", "")
    monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
    assert set(settings.missing_required()) == {"AUTH_URL", "OPENAI_API_KEY"}
