import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from db import Base

ANALYSIS_SOURCES = ("external_ai", "gemini_direct", "hybrid")
CHAT_ROLES = ("user", "assistant")


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class FeedbackSession(Base):
    __tablename__ = "feedback_sessions"
    # One row per (user, video, analysis type): this is the analysis cache key.
    __table_args__ = (
        UniqueConstraint("user_id", "video_path", "analysis_type", name="uq_feedback_unique_analysis"),
        Index("idx_feedback_sessions_user_id", "user_id"),
        Index("idx_feedback_sessions_created_at", "created_at"),
        Index("idx_feedback_sessions_analysis_source", "analysis_source"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False)
    video_path = Column(Text, nullable=False)          # storage key of the uploaded video
    feedback_text = Column(Text, nullable=True)        # rendered text (JSON text for visualizations)
    raw_analysis = Column(JSON(none_as_null=True), nullable=True)  # first-stage output, shared per video
    analysis_source = Column(String(50), nullable=False, default="gemini_direct")
    analysis_type = Column(String(50), nullable=False, default="executive_summary")
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    messages = relationship(
        "ChatMessage",
        back_populates="feedback_session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ChatMessage(Base):
    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("idx_chat_messages_session_created", "feedback_session_id", "created_at"),
    )

    id = Column(Integer, primary_key=True)
    feedback_session_id = Column(
        String(36),
        ForeignKey("feedback_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    role = Column(String(16), nullable=False)          # "user" or "assistant"
    content = Column(Text, nullable=False)
    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    feedback_session = relationship("FeedbackSession", back_populates="messages")
