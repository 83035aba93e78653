import logging

import requests
from flask import request

from config import settings
from errors import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)


def bearer_token():
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_user(token: str) -> str:
    """
    Ask the identity provider who owns ``token``.
    Returns the user id; raises AuthenticationError otherwise.
    """
    if not settings.AUTH_URL:
        logger.error("AUTH_URL is not configured")
        raise AuthenticationError()

    try:
        resp = requests.get(
            f"{settings.AUTH_URL.rstrip('/')}/auth/v1/user",
            headers={
                "Authorization": f"Bearer {token}",
                "apikey": settings.AUTH_API_KEY or "",
            },
            timeout=10,
        )
    except requests.RequestException as e:
        logger.error("Identity provider unreachable: %s", e)
        raise AuthenticationError()

    if resp.status_code != 200:
        logger.warning("Token rejected by identity provider (status %s)", resp.status_code)
        raise AuthenticationError("Invalid or expired session. Please sign in again.")

    try:
        user_id = resp.json().get("id")
    except ValueError:
        user_id = None
    if not user_id:
        raise AuthenticationError("Invalid or expired session. Please sign in again.")
    return str(user_id)


def current_user_id() -> str:
    """User id for the bearer token on the current request."""
    token = bearer_token()
    if not token:
        raise AuthenticationError()
    return resolve_user(token)


def user_folder(user_id: str) -> str:
    # Uploads are stored as user_<id>/<timestamp>_<filename>
    return f"user_{user_id}/"


def require_video_owner(user_id: str, video_path: str):
    segments = video_path.split("/")
    if not video_path.startswith(user_folder(user_id)) or ".." in segments or not segments[-1]:
        logger.warning("User %s tried to access video %s", user_id, video_path)
        raise AuthorizationError()


def require_session_owner(user_id: str, feedback_session):
    if feedback_session.user_id != user_id:
        logger.warning("User %s tried to access feedback session %s", user_id, feedback_session.id)
        raise AuthorizationError()
