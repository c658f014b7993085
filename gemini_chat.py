import logging
import os
from collections.abc import Sequence
from typing import Any

import httpx
from dotenv import load_dotenv
from google import genai
from google.genai import types

from utils import mask_api_key

logger = logging.getLogger(__name__)


PRIMARY_MODEL = "gemini-2.5-flash"
MODEL_CANDIDATES = (PRIMARY_MODEL, "gemini-2.5-pro", "gemini-2.0-flash")
GEMINI_MODELS_URL = "https://generativelanguage.googleapis.com/v1/models"

_BLOCKING_FINISH_REASONS = {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII", "IMAGE_SAFETY"}


class BlockedResponseError(RuntimeError):
    """Gemini returned no text because a safety filter stopped the reply."""


def get_primary_api_key() -> str | None:
    load_dotenv()
    api_key = (os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or "").strip()
    return api_key or None


def get_api_keys() -> list[str]:
    load_dotenv()
    candidates = [get_primary_api_key(), (os.getenv("GEMINI_API_KEY_2") or "").strip()]
    return [key for key in candidates if key]


def create_client(api_key: str) -> genai.Client:
    logger.info("Creating Gemini client api_key=%s", mask_api_key(api_key))
    return genai.Client(api_key=api_key)


def open_chat(
    client: genai.Client,
    history: list[types.Content] | None = None,
    models: Sequence[str] = MODEL_CANDIDATES,
):
    """Create a chat session on the first model the client accepts.

    Only session construction is covered here. A model name the backend does
    not serve is still rejected later, when the first message is sent.
    """
    last_error: Exception | None = None
    for model_name in models:
        try:
            chat = client.chats.create(model=model_name, history=list(history or []))
            logger.info("Opened Gemini chat model=%s history_len=%d", model_name, len(history or []))
            return chat
        except Exception as exc:
            logger.warning("Could not open Gemini chat model=%s: %s", model_name, exc)
            last_error = exc

    if last_error is None:
        raise ValueError("No Gemini model candidates configured.")
    raise last_error


def _block_reason(response: Any) -> str | None:
    feedback = getattr(response, "prompt_feedback", None)
    if feedback is not None and getattr(feedback, "block_reason", None):
        return str(feedback.block_reason)

    for candidate in getattr(response, "candidates", None) or []:
        reason = getattr(candidate, "finish_reason", None)
        name = getattr(reason, "name", reason)
        if name in _BLOCKING_FINISH_REASONS:
            return str(name)
    return None


def send_chat_message(chat, message: str) -> str:
    logger.info("Sending Gemini chat message prompt_len=%d", len(message or ""))
    logger.debug("Prompt preview: %s", (message or "")[:1000])

    response = chat.send_message(message)
    text = response.text
    if not text:
        reason = _block_reason(response)
        if reason:
            raise BlockedResponseError(f"Response was blocked due to safety: {reason}")

    text = (text or "").strip()
    logger.info("Gemini response received resp_len=%d", len(text))
    logger.debug("Response preview: %s", text[:1000])
    return text


def list_gemini_models(
    api_key: str,
    timeout_seconds: float = 60.0,
    transport: httpx.BaseTransport | None = None,
) -> list[dict[str, Any]]:
    """Fetch the raw model list; the 60 s cap matches the other outbound httpx calls."""
    logger.info("Listing Gemini models api_key=%s", mask_api_key(api_key))
    try:
        with httpx.Client(timeout=timeout_seconds, transport=transport) as client:
            resp = client.get(GEMINI_MODELS_URL, params={"key": api_key})
            logger.info("Gemini models HTTP status=%d", resp.status_code)

            if resp.status_code >= 400:
                logger.error("Gemini models error response: %s", resp.text[:1000])
                raise RuntimeError(f"Gemini models request failed: HTTP {resp.status_code} - {resp.text[:500]}")

            data = resp.json()
    except Exception:
        logger.exception("Gemini models request failed")
        raise

    models = data.get("models") if isinstance(data, dict) else None
    return models if isinstance(models, list) else []
