import logging

from flask import Blueprint, request, jsonify

import ai_client
import auth
import feedback_store
from audit import write_event
from config import settings
from db import db_session
from errors import NotFoundError, ValidationError
from models import ChatMessage

logger = logging.getLogger(__name__)

bp_chat = Blueprint("chat_bp", __name__, url_prefix="/api")

CHAT_SYSTEM_MSG = (
    "You are a supportive but honest public speaking coach. "
    "The user is asking follow-up questions about feedback they received on a recorded presentation. "
    "Answer using the feedback below as context. Be specific and practical, and keep answers short "
    "unless the user asks for detail. If the question is unrelated to their presentation, "
    "steer the conversation back politely."
)


def to_dict(row: ChatMessage):
    return {
        "id": row.id,
        "role": row.role,
        "content": row.content,
        "timestamp": row.created_at.isoformat() if row.created_at else None,
    }


def build_chat_messages(feedback_text, history, user_message):
    """System instructions + stored feedback, then prior turns, then the new message."""
    context = feedback_text or "(no feedback text stored for this session)"
    messages = [{
        "role": "system",
        "content": f"{CHAT_SYSTEM_MSG}\n\nFeedback the user received:\n{context}",
    }]
    for m in history:
        messages.append({"role": m.role, "content": m.content})
    messages.append({"role": "user", "content": user_message})
    return messages


def _owned_session(db, user_id, feedback_session_id):
    if not feedback_session_id:
        raise ValidationError("feedbackSessionId is required.")
    row = feedback_store.get_session(db, feedback_session_id)
    if row is None:
        raise NotFoundError("Feedback session not found.")
    auth.require_session_owner(user_id, row)
    return row


@bp_chat.post("/chat")
def chat():
    """
    POST JSON:
    {
      "feedbackSessionId": "5f0c...",
      "message": "How do I fix my pacing in the opening?"
    }
    """
    user_id = auth.current_user_id()
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    session_id = str(data.get("feedbackSessionId") or "").strip()
    message = data.get("message")

    with db_session() as db:
        # Ownership is checked before the message itself is looked at.
        session_row = _owned_session(db, user_id, session_id)

        message = (message or "").strip() if isinstance(message, str) else ""
        if not message:
            raise ValidationError("message is required.")
        if len(message) > settings.CHAT_MAX_MESSAGE_CHARS:
            raise ValidationError(f"message must be at most {settings.CHAT_MAX_MESSAGE_CHARS} characters.")

        history = feedback_store.recent_messages(db, session_id, settings.CHAT_HISTORY_LIMIT)
        reply = ai_client.generate_chat_reply(
            build_chat_messages(session_row.feedback_text, history, message)
        )

        _user_row, assistant_row = feedback_store.append_messages(
            db, session_id, [("user", message), ("assistant", reply)]
        )
        write_event("CHAT_TURN_CREATED", {
            "session": session_id,
            "id": assistant_row.id,
            "input_chars": len(message),
        })

        return jsonify({
            "message": assistant_row.content,
            "id": assistant_row.id,
            "timestamp": assistant_row.created_at.isoformat(),
        }), 200


@bp_chat.route("/chat/history", methods=["GET", "POST"])
def chat_history():
    """GET or POST /api/chat/history?feedbackSessionId=... -> messages, oldest first."""
    user_id = auth.current_user_id()
    session_id = (request.args.get("feedbackSessionId") or "").strip()
    with db_session() as db:
        _owned_session(db, user_id, session_id)
        rows = feedback_store.list_messages(db, session_id)
        return jsonify([to_dict(r) for r in rows]), 200


@bp_chat.delete("/chat/history")
def clear_chat():
    """
    DELETE /api/chat/history?feedbackSessionId=...
    Archives the messages when CHAT_ARCHIVE_ON_CLEAR is on, deletes them otherwise.
    """
    user_id = auth.current_user_id()
    session_id = (request.args.get("feedbackSessionId") or "").strip()
    archive = settings.CHAT_ARCHIVE_ON_CLEAR
    with db_session() as db:
        _owned_session(db, user_id, session_id)
        count = feedback_store.clear_messages(db, session_id, archive=archive)

    write_event("CHAT_CLEARED", {"session": session_id, "count": count, "archived": archive})
    logger.info("Cleared %d chat messages for %s (archived=%s)", count, session_id, archive)
    return jsonify({"cleared": count, "archived": archive}), 200
