# Calls to the two AI stages.
# First stage: the external video model turns an uploaded video into a
# structured JSON "raw analysis". Second stage: an OpenAI chat model turns
# that JSON into one of the analysis views, and answers chat turns.
# Nothing here retries; one failure is one UpstreamServiceError.
import logging
import os

import openai
import requests

import storage
from config import settings
from errors import UpstreamServiceError, ValidationError

logger = logging.getLogger(__name__)

COACH_SYSTEM_MSG = (
    "You are a professional public speaking coach. "
    "You turn structured video analysis data into clear, specific feedback."
)

openai_client = None
MODEL_ID = None


def get_openai_client():
    """Build the OpenAI client on first use (Azure when configured)."""
    global openai_client, MODEL_ID
    if openai_client is None:
        if settings.AZURE_OPENAI_ENDPOINT and settings.AZURE_OPENAI_API_KEY:
            openai_client = openai.AzureOpenAI(
                api_key=settings.AZURE_OPENAI_API_KEY,
                azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
                api_version="2024-05-01-preview",
            )
            MODEL_ID = settings.AZURE_OPENAI_DEPLOYMENT
        else:
            openai_client = openai.OpenAI(api_key=settings.OPENAI_API_KEY)
            MODEL_ID = settings.OPENAI_MODEL
    return openai_client


def _model_id():
    return MODEL_ID or settings.OPENAI_MODEL


# ---------------- First stage ----------------

def generate_raw_analysis(video_path: str) -> dict:
    """
    Send the stored video to the external model and return its JSON analysis.

    Raises UpstreamServiceError on transport errors, non-2xx replies,
    malformed JSON, or an empty/non-object body.
    """
    if not settings.EXTERNAL_AI_API_URL:
        raise UpstreamServiceError(detail="EXTERNAL_AI_API_URL is not configured")

    local_path = storage.download_video(video_path)
    headers = {}
    if settings.EXTERNAL_AI_API_KEY:
        headers["Authorization"] = f"Bearer {settings.EXTERNAL_AI_API_KEY}"

    try:
        logger.info("External AI request: POST %s (%d bytes)", settings.EXTERNAL_AI_API_URL, os.path.getsize(local_path))
        with open(local_path, "rb") as f:
            resp = requests.post(
                settings.EXTERNAL_AI_API_URL,
                headers=headers,
                files={"file": ("video.mp4", f, "video/mp4")},
                timeout=settings.EXTERNAL_AI_TIMEOUT,
            )
    except requests.Timeout as e:
        logger.error("External AI request timed out after %ss", settings.EXTERNAL_AI_TIMEOUT)
        raise UpstreamServiceError(detail=f"external AI timed out: {e}")
    except requests.RequestException as e:
        logger.error("External AI request failed: %s", e)
        raise UpstreamServiceError(detail=f"external AI request failed: {e}")
    finally:
        os.remove(local_path)

    if not resp.ok:
        logger.error("External AI returned status %s: %s", resp.status_code, resp.reason)
        raise UpstreamServiceError(detail=f"external AI returned status {resp.status_code}")

    try:
        data = resp.json()
    except ValueError:
        logger.error("External AI returned malformed JSON (%d bytes)", len(resp.content or b""))
        raise UpstreamServiceError(detail="external AI returned malformed JSON")

    if not isinstance(data, dict) or not data:
        logger.error("External AI returned an empty or non-object analysis")
        raise UpstreamServiceError(detail="external AI returned an empty analysis")

    logger.info("External AI analysis received for %s, keys=%s", video_path, sorted(data.keys()))
    return data


def external_ai_health() -> bool:
    """True when the external model's /health endpoint answers 2xx."""
    if not settings.EXTERNAL_AI_API_URL:
        return False
    base = settings.EXTERNAL_AI_API_URL.rstrip("/")
    if base.endswith("/analyze"):
        base = base[: -len("/analyze")]
    try:
        return requests.get(f"{base}/health", timeout=5).ok
    except requests.RequestException as e:
        logger.warning("External AI health check failed: %s", e)
        return False


# ---------------- Second stage ----------------

def _complete(messages, json_mode=False, temperature=0.3, max_tokens=2000) -> str:
    try:
        client = get_openai_client()
        kwargs = {
            "model": _model_id(),
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}  # Ask the model for proper JSON
        resp = client.chat.completions.create(**kwargs)
    except openai.OpenAIError as e:
        logger.error("LLM call failed: %s: %s", type(e).__name__, e)
        raise UpstreamServiceError(detail=f"{type(e).__name__}: {e}")

    text = ""
    if resp.choices:
        text = (resp.choices[0].message.content or "").strip()
    if not text:
        logger.error("LLM returned empty content")
        raise UpstreamServiceError(detail="LLM returned empty content")
    return text


def generate_from_prompt(data, prompt_text: str, json_mode: bool = False) -> str:
    """
    Run a fully built analysis prompt through the chat model.

    ``data`` is the raw analysis the prompt was built from; it must be a
    non-empty JSON object. With ``json_mode`` the model is asked for a JSON
    object and the caller checks that the text parses.
    """
    if not isinstance(data, dict) or not data:
        raise ValidationError(detail="analysis data must be a non-empty JSON object")
    if not prompt_text or not prompt_text.strip():
        raise ValidationError(detail="prompt cannot be empty")

    text = _complete(
        [
            {"role": "system", "content": COACH_SYSTEM_MSG},
            {"role": "user", "content": prompt_text},
        ],
        json_mode=json_mode,
    )
    logger.info("Generated %d chars (json_mode=%s, prompt=%d chars)", len(text), json_mode, len(prompt_text))
    return text


def generate_chat_reply(messages) -> str:
    """One chat turn over an already assembled message list."""
    return _complete(messages, temperature=0.4, max_tokens=600)
