# Reads and writes for the feedback_sessions and chat_messages tables.
# Every function takes an open Session; callers own its lifetime.
import logging

from sqlalchemy import select, delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from errors import ConflictError, PersistenceError
from models import ChatMessage, FeedbackSession

logger = logging.getLogger(__name__)


def _read(db: Session, what: str, fn):
    try:
        return fn()
    except SQLAlchemyError as e:
        logger.error("Query failed (%s): %s", what, e)
        db.rollback()
        raise PersistenceError("Failed to load your data. Please try again.", detail=str(e))


# ---------------- feedback_sessions ----------------

def find_cached(db: Session, user_id: str, video_path: str, analysis_type: str):
    """The row for one (user, video, analysis type) triple, or None."""
    stmt = select(FeedbackSession).where(
        FeedbackSession.user_id == user_id,
        FeedbackSession.video_path == video_path,
        FeedbackSession.analysis_type == analysis_type,
    )
    return _read(db, "find_cached", lambda: db.execute(stmt).scalars().first())


def find_any_raw_analysis(db: Session, user_id: str, video_path: str):
    """Any stored raw analysis for this video, whatever the analysis type."""
    stmt = (
        select(FeedbackSession.raw_analysis)
        .where(
            FeedbackSession.user_id == user_id,
            FeedbackSession.video_path == video_path,
            FeedbackSession.raw_analysis.isnot(None),
        )
        .order_by(FeedbackSession.created_at.asc())
    )
    rows = _read(db, "find_any_raw_analysis", lambda: db.execute(stmt).scalars().all())
    # skip empty objects left by older rows
    for raw in rows:
        if raw:
            return raw
    return None


def insert(db: Session, row: FeedbackSession) -> FeedbackSession:
    """
    Insert one row and commit.

    ConflictError when the (user, video, analysis type) triple already
    exists; PersistenceError for any other store failure.
    """
    try:
        db.add(row)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info(
            "Unique index hit for user=%s video=%s type=%s",
            row.user_id, row.video_path, row.analysis_type,
        )
        raise ConflictError(detail=str(e.orig))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Insert into feedback_sessions failed: %s", e)
        raise PersistenceError(detail=str(e))
    db.refresh(row)
    return row


def get_session(db: Session, feedback_session_id: str):
    return _read(db, "get_session", lambda: db.get(FeedbackSession, feedback_session_id))


def list_recent(db: Session, user_id: str, limit: int):
    stmt = (
        select(FeedbackSession)
        .where(FeedbackSession.user_id == user_id)
        .order_by(FeedbackSession.created_at.desc())
        .limit(limit)
    )
    return _read(db, "list_recent", lambda: db.execute(stmt).scalars().all())


def list_for_video(db: Session, user_id: str, video_path: str):
    stmt = (
        select(FeedbackSession)
        .where(FeedbackSession.user_id == user_id, FeedbackSession.video_path == video_path)
        .order_by(FeedbackSession.created_at.desc())
    )
    return _read(db, "list_for_video", lambda: db.execute(stmt).scalars().all())


# ---------------- chat_messages ----------------

def _visible_messages(feedback_session_id: str):
    return select(ChatMessage).where(
        ChatMessage.feedback_session_id == feedback_session_id,
        ChatMessage.archived.is_(False),
    )


def list_messages(db: Session, feedback_session_id: str):
    stmt = _visible_messages(feedback_session_id).order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
    return _read(db, "list_messages", lambda: db.execute(stmt).scalars().all())


def recent_messages(db: Session, feedback_session_id: str, limit: int):
    """The last ``limit`` messages, oldest first."""
    stmt = (
        _visible_messages(feedback_session_id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(limit)
    )
    rows = _read(db, "recent_messages", lambda: db.execute(stmt).scalars().all())
    return list(reversed(rows))


def append_messages(db: Session, feedback_session_id: str, messages):
    """
    Append (role, content) pairs in order with one commit.
    Returns the stored ChatMessage rows.
    """
    rows = [
        ChatMessage(feedback_session_id=feedback_session_id, role=role, content=content)
        for role, content in messages
    ]
    try:
        # add and flush one at a time so ids follow insertion order
        for row in rows:
            db.add(row)
            db.flush()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Insert into chat_messages failed: %s", e)
        raise PersistenceError(detail=str(e))
    for row in rows:
        db.refresh(row)
    return rows


def clear_messages(db: Session, feedback_session_id: str, archive: bool) -> int:
    """Archive or delete the visible messages of a session; returns how many."""
    if archive:
        stmt = (
            update(ChatMessage)
            .where(ChatMessage.feedback_session_id == feedback_session_id, ChatMessage.archived.is_(False))
            .values(archived=True)
        )
    else:
        stmt = delete(ChatMessage).where(
            ChatMessage.feedback_session_id == feedback_session_id,
            ChatMessage.archived.is_(False),
        )
    try:
        result = db.execute(stmt)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Clearing chat for %s failed: %s", feedback_session_id, e)
        raise PersistenceError(detail=str(e))
    return result.rowcount
