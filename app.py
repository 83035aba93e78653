# app.py
# Flask application entrypoint and factory.
# - Creates DB tables on startup
import logging

from flask import Flask, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from db import engine, Base

# Ensure models are imported so SQLAlchemy knows about them
from models import FeedbackSession, ChatMessage  # noqa: F401  (imported for side-effect)

import ai_client
from errors import register_error_handlers

# Blueprints
from routes_analyze import bp_analyze
from routes_history import bp_history
from routes_chat import bp_chat

logger = logging.getLogger(__name__)


def create_app() -> Flask:
    logging.basicConfig(
        level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = Flask(__name__)

    # Create any missing tables
    Base.metadata.create_all(bind=engine)

    missing = settings.missing_required()
    if missing:
        logger.warning("Missing configuration: %s", ", ".join(missing))

    @app.get("/health")
    def health():
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            database = "ok"
        except SQLAlchemyError as e:
            logger.error("Health check database test failed: %s", e)
            database = "unavailable"
        return jsonify({
            "status": "ok" if database == "ok" else "degraded",
            "database": database,
            "externalAI": "ok" if ai_client.external_ai_health() else "unavailable",
            "missingConfig": settings.missing_required(),
        }), 200

    # Row counts, handy when checking a deployment
    @app.get("/db-check")
    def db_check():
        with engine.connect() as conn:
            sessions = conn.execute(text("SELECT COUNT(*) FROM feedback_sessions")).scalar_one()
            messages = conn.execute(text("SELECT COUNT(*) FROM chat_messages")).scalar_one()
        return jsonify({"feedback_sessions_count": sessions, "chat_messages_count": messages}), 200

    # Note: register each blueprint exactly once
    app.register_blueprint(bp_analyze)   # /api/analyze
    app.register_blueprint(bp_history)   # /api/history
    app.register_blueprint(bp_chat)      # /api/chat, /api/chat/history

    register_error_handlers(app)

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, port=8000)
