# Past analyses for the signed-in user.
from flask import Blueprint, request, jsonify

import auth
import feedback_store
from config import settings
from db import db_session
from errors import NotFoundError, ValidationError
from models import FeedbackSession
from prompts import ANALYSIS_LABELS

bp_history = Blueprint("history_bp", __name__, url_prefix="/api")


def display_filename(video_path: str) -> str:
    """'user_1/1730000000_talk.mp4' -> 'talk.mp4'"""
    name = video_path.rsplit("/", 1)[-1]
    prefix, sep, rest = name.partition("_")
    if sep and prefix.isdigit() and rest:
        return rest
    return name


# Turn a DB row into a plain dict that jsonify() can handle.
def to_summary(row: FeedbackSession):
    return {
        "id": row.id,
        "videoPath": row.video_path,
        "fileName": display_filename(row.video_path),
        "analysisType": row.analysis_type,
        "label": ANALYSIS_LABELS.get(row.analysis_type, {}).get("label", row.analysis_type),
        "analysisSource": row.analysis_source,
        "feedbackText": row.feedback_text,
        "createdAt": row.created_at.isoformat() if row.created_at else None,
    }


@bp_history.get("/history")
def history():
    """
    GET /api/history                       -> newest sessions, ?limit=20
    GET /api/history?feedbackSessionId=... -> every analysis view of that session's video
    """
    user_id = auth.current_user_id()
    session_id = (request.args.get("feedbackSessionId") or "").strip()

    with db_session() as db:
        if session_id:
            row = feedback_store.get_session(db, session_id)
            if row is None:
                raise NotFoundError("Feedback session not found.")
            auth.require_session_owner(user_id, row)
            rows = feedback_store.list_for_video(db, user_id, row.video_path)
        else:
            try:
                limit = int(request.args.get("limit", settings.HISTORY_LIMIT))
            except ValueError:
                raise ValidationError("limit must be an integer.")
            limit = min(max(limit, 1), 100)
            rows = feedback_store.list_recent(db, user_id, limit)

        return jsonify([to_summary(r) for r in rows]), 200
