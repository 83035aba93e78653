from types import SimpleNamespace

import pytest
import requests

import auth
from errors import AuthenticationError, AuthorizationError


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def test_resolve_user_returns_id(monkeypatch):
    seen = {}

    def fake_get(url, headers=None, timeout=None):
        seen["url"] = url
        seen["headers"] = headers
        return FakeResponse(payload={"id": "9b2c", "email": "a@example.com"})

    monkeypatch.setattr(requests, "get", fake_get)
    monkeypatch.setattr(auth.settings, "AUTH_API_KEY", "anon-key")

    assert auth.resolve_user("tok") == "9b2c"
    assert seen["url"] == "http://auth.test/auth/v1/user"
    assert seen["headers"] == {"Authorization": "Bearer tok", "apikey": "anon-key"}


@pytest.mark.parametrize("response", [
    FakeResponse(status_code=401, payload={"msg": "expired"}),
    FakeResponse(payload={}),
    FakeResponse(payload=ValueError("html")),
])
def test_resolve_user_rejects(monkeypatch, response):
    monkeypatch.setattr(requests, "get", lambda *a, **kw: response)
    with pytest.raises(AuthenticationError):
        auth.resolve_user("tok")


def test_resolve_user_provider_down(monkeypatch):
    def fake_get(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "get", fake_get)
    with pytest.raises(AuthenticationError):
        auth.resolve_user("tok")


@pytest.mark.parametrize("header, expected", [
    ("Bearer abc", "abc"),
    ("bearer  abc ", "abc"),
    ("Basic abc", None),
    ("Bearer ", None),
    (None, None),
])
def test_bearer_token(app, header, expected):
    headers = {"Authorization": header} if header is not None else {}
    with app.test_request_context(headers=headers):
        assert auth.bearer_token() == expected


def test_current_user_id_without_token(app):
    with app.test_request_context():
        with pytest.raises(AuthenticationError):
            auth.current_user_id()


def test_require_video_owner():
    auth.require_video_owner("alice", "user_alice/1_talk.mp4")
    with pytest.raises(AuthorizationError):
        auth.require_video_owner("alice", "user_alice2/1_talk.mp4")
    with pytest.raises(AuthorizationError):
        auth.require_video_owner("alice", "user_alice/../user_bob/1_talk.mp4")


@pytest.mark.parametrize("video_path", ["user_alice/", "user_alice/clips/"])
def test_require_video_owner_needs_a_file_name(video_path):
    with pytest.raises(AuthorizationError):
        auth.require_video_owner("alice", video_path)


def test_require_session_owner():
    row = SimpleNamespace(id="s1", user_id="alice")
    auth.require_session_owner("alice", row)
    with pytest.raises(AuthorizationError):
        auth.require_session_owner("bob", row)
