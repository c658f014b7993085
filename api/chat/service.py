import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from functools import lru_cache

from google.genai import types

from api.chat.schemas import ChatTurn
from api.errors import ConfigurationError, ValidationError, classify_error
from gemini_chat import MODEL_CANDIDATES, create_client, get_api_keys, open_chat, send_chat_message
from utils import clean_text, mask_api_key

logger = logging.getLogger(__name__)


class CredentialPool:
    """Ordered API keys plus a process-wide cursor used for failover."""

    def __init__(self, api_keys: Iterable[str | None]) -> None:
        self._keys = tuple(key for key in api_keys if key)
        self._index = 0
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls) -> "CredentialPool":
        return cls(get_api_keys())

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def is_empty(self) -> bool:
        return not self._keys

    @property
    def index(self) -> int:
        return self._index

    def current(self) -> tuple[int, str]:
        if self.is_empty:
            raise ConfigurationError()
        with self._lock:
            return self._index, self._keys[self._index]

    def rotate(self, failed_index: int) -> tuple[int, str]:
        """Move off ``failed_index`` unless another caller already did."""
        if self.is_empty:
            raise ConfigurationError()
        with self._lock:
            if self._index == failed_index:
                self._index = (self._index + 1) % len(self._keys)
            return self._index, self._keys[self._index]


def sanitize_history(turns: Iterable[ChatTurn] | None) -> list[types.Content]:
    history: list[types.Content] = []
    for turn in turns or []:
        text = turn.body
        if not clean_text(text):
            continue
        role = "user" if turn.role == "user" else "model"
        history.append(types.Content(role=role, parts=[types.Part(text=text)]))
    return history


class ChatRelay:
    def __init__(
        self,
        pool: CredentialPool,
        client_factory: Callable[[str], object] = create_client,
        models: Sequence[str] = MODEL_CANDIDATES,
    ) -> None:
        self.pool = pool
        self._client_factory = client_factory
        self._models = tuple(models)
        self._client = None
        self._client_index: int | None = None
        self._client_lock = threading.Lock()

    def _client_for(self, index: int, api_key: str):
        with self._client_lock:
            if self._client is None or self._client_index != index:
                self._client = self._client_factory(api_key)
                self._client_index = index
            return self._client

    def handle_chat(self, message: str | None, history: Iterable[ChatTurn] | None = None) -> str:
        if not clean_text(message):
            raise ValidationError()
        if self.pool.is_empty:
            raise ConfigurationError()

        contents = sanitize_history(history)
        index, api_key = self.pool.current()
        try:
            client = self._client_for(index, api_key)
            chat = open_chat(client, contents, models=self._models)
            return send_chat_message(chat, message)
        except Exception as exc:
            error = classify_error(exc)
            logger.exception(
                "Gemini chat failed api_key=%s classification=%s",
                mask_api_key(api_key),
                type(error).__name__,
            )
            if error.retryable and len(self.pool) > 1:
                try:
                    return self._retry_with_next_key(index, message)
                except Exception:
                    logger.exception("Retry with alternate API key failed")
            raise error from exc

    def _retry_with_next_key(self, failed_index: int, message: str) -> str:
        index, api_key = self.pool.rotate(failed_index)
        logger.info("Switched to API key %d (%s)", index + 1, mask_api_key(api_key))
        # Retry runs without the caller's history, on the primary model only.
        logger.warning("Retrying without conversation history on model=%s", self._models[0])
        client = self._client_for(index, api_key)
        chat = open_chat(client, models=self._models[:1])
        return send_chat_message(chat, message)


@lru_cache()
def get_chat_relay() -> ChatRelay:
    return ChatRelay(CredentialPool.from_env())
