import json
import logging
import re

from flask import Blueprint, request, jsonify

import ai_client
import auth
import feedback_store
import prompts
from audit import write_event
from db import db_session
from errors import AuthorizationError, ConflictError, PersistenceError, UpstreamServiceError, ValidationError
from models import FeedbackSession

logger = logging.getLogger(__name__)

bp_analyze = Blueprint("analyze_bp", __name__, url_prefix="/api")

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)


def clean_json_output(text: str) -> str:
    """
    Strip Markdown code fences around a JSON reply and check it parses
    to an object. Returns compact JSON text; UpstreamServiceError otherwise.
    """
    stripped = _FENCE_RE.sub("", text.strip())
    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError as e:
        logger.error("Model returned invalid JSON: %s", e)
        raise UpstreamServiceError(detail=f"invalid JSON from model: {e}")
    if not isinstance(parsed, dict):
        logger.error("Model returned JSON %s, expected an object", type(parsed).__name__)
        raise UpstreamServiceError(detail="JSON from model is not an object")
    return json.dumps(parsed, ensure_ascii=False)


def _response(row_id, feedback, analysis_type, cached):
    return jsonify({
        "success": True,
        "feedback": feedback,
        "feedbackSessionId": row_id,
        "analysisType": analysis_type,
        "cached": cached,
    }), 200


@bp_analyze.post("/analyze")
def analyze():
    """
    POST JSON:
    {
      "userId": "9b2c...",
      "videoPath": "user_9b2c.../1730000000_talk.mp4",
      "analysisType": "executive_summary"
    }
    """
    # ---------------- validating ----------------
    auth_user_id = auth.current_user_id()

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    user_id = str(data.get("userId") or "").strip()
    video_path = str(data.get("videoPath") or "").strip()
    analysis_type = data.get("analysisType")

    if not user_id or not video_path:
        raise ValidationError("userId and videoPath are required.")
    if not analysis_type:
        raise ValidationError("analysisType is required.")
    if not prompts.is_valid_analysis_type(analysis_type):
        raise ValidationError(
            f"Invalid analysisType. Expected one of: {', '.join(prompts.ANALYSIS_TYPES)}."
        )
    if user_id != auth_user_id:
        logger.warning("Body userId %s does not match token user %s", user_id, auth_user_id)
        raise AuthorizationError()
    auth.require_video_owner(user_id, video_path)

    with db_session() as db:
        # ---------------- cache_check ----------------
        row = feedback_store.find_cached(db, user_id, video_path, analysis_type)
        if row is not None:
            logger.info("Cache hit: session=%s type=%s", row.id, analysis_type)
            return _response(row.id, row.feedback_text, analysis_type, True)

        # ---------------- raw_lookup / first_stage ----------------
        raw_analysis = feedback_store.find_any_raw_analysis(db, user_id, video_path)
        if raw_analysis is None:
            logger.info("No raw analysis stored for %s, calling external AI", video_path)
            raw_analysis = ai_client.generate_raw_analysis(video_path)
        else:
            logger.info("Reusing stored raw analysis for %s", video_path)

        # ---------------- derive ----------------
        json_mode = prompts.wants_json(analysis_type)
        prompt_text = prompts.build_prompt(analysis_type, raw_analysis)
        feedback = ai_client.generate_from_prompt(raw_analysis, prompt_text, json_mode=json_mode)
        if json_mode:
            feedback = clean_json_output(feedback)

        # ---------------- persist ----------------
        # Always "hybrid": every view is derived from the external raw analysis
        # by the chat model; there is no direct-video path.
        new_row = FeedbackSession(
            user_id=user_id,
            video_path=video_path,
            feedback_text=feedback,
            raw_analysis=raw_analysis,
            analysis_source="hybrid",
            analysis_type=analysis_type,
        )
        try:
            feedback_store.insert(db, new_row)
        except ConflictError:
            # Another request stored this triple first; serve its row.
            try:
                existing = feedback_store.find_cached(db, user_id, video_path, analysis_type)
            except PersistenceError:
                existing = None
            if existing is None:
                logger.error(
                    "Unique conflict for %s/%s but no row on re-read; returning uncached",
                    video_path, analysis_type,
                )
                return _response(None, feedback, analysis_type, False)
            logger.info("Lost insert race for session=%s, serving stored row", existing.id)
            return _response(existing.id, existing.feedback_text, analysis_type, True)
        except PersistenceError as e:
            # The text is still good; it just is not cached.
            logger.error("Analysis not cached for %s/%s: %s", video_path, analysis_type, e.detail)
            return _response(None, feedback, analysis_type, False)

        write_event("ANALYSIS_CREATED", {
            "id": new_row.id,
            "type": analysis_type,
            "source": new_row.analysis_source,
            "chars": len(feedback),
        })
        logger.info("Stored analysis session=%s type=%s", new_row.id, analysis_type)
        return _response(new_row.id, feedback, analysis_type, False)
