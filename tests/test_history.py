import pytest

from conftest import ALICE, BOB
from routes_history import display_filename


def test_lists_recent_sessions_newest_first(client, make_session):
    old = make_session(video_path="user_alice/1_old.mp4")
    mid = make_session(video_path="user_alice/2_mid.mp4", analysis_type="action_fixes")
    new = make_session(video_path="user_alice/3_new.mp4")
    make_session(user_id="bob", video_path="user_bob/4_other.mp4")

    resp = client.get("/api/history", headers=ALICE)
    assert resp.status_code == 200
    items = resp.get_json()
    assert [i["id"] for i in items] == [new, mid, old]

    first = items[0]
    assert first["fileName"] == "new.mp4"
    assert first["videoPath"] == "user_alice/3_new.mp4"
    assert first["analysisType"] == "executive_summary"
    assert first["label"] == "Global Summary"
    assert first["analysisSource"] == "hybrid"
    assert first["feedbackText"] == "Stored feedback"
    assert first["createdAt"].startswith("2025-10-29T12:03")


def test_limit_is_applied_and_clamped(client, make_session):
    for i in range(4):
        make_session(video_path=f"user_alice/{i}_talk.mp4")

    assert len(client.get("/api/history?limit=2", headers=ALICE).get_json()) == 2
    assert len(client.get("/api/history?limit=0", headers=ALICE).get_json()) == 1
    assert client.get("/api/history?limit=abc", headers=ALICE).status_code == 400


def test_session_id_returns_all_views_of_that_video(client, make_session):
    summary = make_session(analysis_type="executive_summary")
    fixes = make_session(analysis_type="action_fixes")
    make_session(video_path="user_alice/9_other.mp4")

    resp = client.get(f"/api/history?feedbackSessionId={summary}", headers=ALICE)
    assert resp.status_code == 200
    assert [i["id"] for i in resp.get_json()] == [fixes, summary]


def test_foreign_session_is_rejected(client, make_session):
    bobs = make_session(user_id="bob", video_path="user_bob/1_talk.mp4")
    resp = client.get(f"/api/history?feedbackSessionId={bobs}", headers=ALICE)
    assert resp.status_code == 401
    assert "error" in resp.get_json()


def test_unknown_session_is_404(client):
    resp = client.get("/api/history?feedbackSessionId=does-not-exist", headers=ALICE)
    assert resp.status_code == 404


def test_requires_auth(client):
    assert client.get("/api/history").status_code == 401


def test_empty_history(client):
    resp = client.get("/api/history", headers=BOB)
    assert resp.status_code == 200
    assert resp.get_json() == []


@pytest.mark.parametrize("path, expected", [
    ("user_abc/1730000000_my_talk.mp4", "my_talk.mp4"),
    ("user_abc/talk.mp4", "talk.mp4"),
    ("user_abc/draft_talk.mp4", "draft_talk.mp4"),
    ("1730000000_talk.mp4", "talk.mp4"),
])
def test_display_filename(path, expected):
    assert display_filename(path) == expected
