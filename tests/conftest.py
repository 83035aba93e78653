"""Shared fixtures.

The environment is set before any project module is imported so that
config.Settings and db.engine point at a throwaway SQLite file.
"""
import os
import tempfile
from datetime import datetime, timedelta

_TMP_DIR = tempfile.mkdtemp(prefix="speakingcoach-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP_DIR, "test.db")
os.environ["AUDIT_LOG_PATH"] = os.path.join(_TMP_DIR, "audit.txt")
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ["AUTH_URL"] = "http://auth.test"
os.environ["EXTERNAL_AI_API_URL"] = "http://external-ai.test/analyze/"
os.environ["AWS_S3_BUCKET_NAME"] = "test-bucket"

import pytest  # noqa: E402

import ai_client  # noqa: E402
import auth  # noqa: E402
from app import create_app  # noqa: E402
from db import Base, engine, db_session  # noqa: E402
from errors import AuthenticationError, UpstreamServiceError  # noqa: E402
from models import ChatMessage, FeedbackSession  # noqa: E402

TOKENS = {"token-alice": "alice", "token-bob": "bob"}

ALICE = {"Authorization": "Bearer token-alice"}
BOB = {"Authorization": "Bearer token-bob"}

SAMPLE_RAW_ANALYSIS = {
    "metadata": {"duration": 42.5, "fps": 30},
    "analysis": {
        "audio": {"pace_wpm": 148, "filler_rate": 0.02, "pitch_std": 0.31},
        "visual": {"hand_energy": 0.2, "body_energy": 0.3, "face_energy": 0.4},
        "windows": [{"start": 0, "end": 5, "transcript": "Good evening everyone."}],
    },
}


class FakeAI:
    """Stands in for ai_client and records every call."""

    def __init__(self):
        self.raw_calls = []
        self.prompt_calls = []
        self.chat_calls = []
        self.raw_analysis = SAMPLE_RAW_ANALYSIS
        self.prompt_reply = None
        self.chat_reply = "Slow down in the first ten seconds and pause before your thesis."
        self.fail_raw = False
        self.fail_prompt = False
        self.fail_chat = False

    def generate_raw_analysis(self, video_path):
        self.raw_calls.append(video_path)
        if self.fail_raw:
            raise UpstreamServiceError(detail="external AI down")
        return self.raw_analysis

    def generate_from_prompt(self, data, prompt_text, json_mode=False):
        self.prompt_calls.append({"data": data, "prompt": prompt_text, "json_mode": json_mode})
        if self.fail_prompt:
            raise UpstreamServiceError(detail="LLM down")
        if self.prompt_reply is not None:
            return self.prompt_reply
        return f"Feedback #{len(self.prompt_calls)}"

    def generate_chat_reply(self, messages):
        self.chat_calls.append(messages)
        if self.fail_chat:
            raise UpstreamServiceError(detail="LLM down")
        return self.chat_reply


@pytest.fixture(autouse=True)
def clean_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def app():
    app = create_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture
def fake_auth(monkeypatch):
    def resolve(token):
        if token not in TOKENS:
            raise AuthenticationError()
        return TOKENS[token]

    monkeypatch.setattr(auth, "resolve_user", resolve)


@pytest.fixture
def fake_ai(monkeypatch):
    fake = FakeAI()
    monkeypatch.setattr(ai_client, "generate_raw_analysis", fake.generate_raw_analysis)
    monkeypatch.setattr(ai_client, "generate_from_prompt", fake.generate_from_prompt)
    monkeypatch.setattr(ai_client, "generate_chat_reply", fake.generate_chat_reply)
    return fake


@pytest.fixture
def client(app, fake_auth, fake_ai):
    return app.test_client()


@pytest.fixture
def make_session():
    """Insert a FeedbackSession directly; later calls get later timestamps."""
    base = datetime(2025, 10, 29, 12, 0, 0)
    counter = {"n": 0}

    def _make(user_id="alice", video_path="user_alice/1730000000_talk.mp4",
              analysis_type="executive_summary", feedback_text="Stored feedback",
              raw_analysis=SAMPLE_RAW_ANALYSIS, analysis_source="hybrid"):
        counter["n"] += 1
        with db_session() as db:
            row = FeedbackSession(
                user_id=user_id,
                video_path=video_path,
                analysis_type=analysis_type,
                feedback_text=feedback_text,
                raw_analysis=raw_analysis,
                analysis_source=analysis_source,
                created_at=base + timedelta(minutes=counter["n"]),
            )
            db.add(row)
            db.commit()
            return row.id

    return _make


def count_rows(model):
    with db_session() as db:
        return db.query(model).count()


def all_sessions():
    with db_session() as db:
        return db.query(FeedbackSession).all()


def all_messages(include_archived=True):
    with db_session() as db:
        q = db.query(ChatMessage)
        if not include_archived:
            q = q.filter(ChatMessage.archived.is_(False))
        return q.order_by(ChatMessage.id).all()
