from collections.abc import Callable

from google.genai import errors as genai_errors

from gemini_chat import BlockedResponseError


class ChatError(Exception):
    status_code = 500
    user_message = "Failed to get response from AI"
    retryable = False

    def __init__(self, details: str | None = None, user_message: str | None = None) -> None:
        if user_message:
            self.user_message = user_message
        super().__init__(self.user_message)
        self.details = details


class ValidationError(ChatError):
    status_code = 400
    user_message = "Message is required"


class ConfigurationError(ChatError):
    user_message = "API key not configured. Please set GEMINI_API_KEY in the .env file"


class InvalidCredentialError(ChatError):
    user_message = "Invalid or missing API key. Please check your GEMINI_API_KEY in .env"
    retryable = True


class QuotaExceededError(ChatError):
    user_message = "API quota exceeded. Please try again later."
    retryable = True


class ContentBlockedError(ChatError):
    user_message = "The message was blocked by safety filters. Please try rephrasing."


class UnknownBackendError(ChatError):
    pass


def _api_error_matches(exc: Exception, codes: set[int], statuses: set[str]) -> bool:
    if not isinstance(exc, genai_errors.APIError):
        return False
    return exc.code in codes or (exc.status or "") in statuses


def _is_credential_failure(exc: Exception, text: str) -> bool:
    return "API_KEY" in text or _api_error_matches(exc, {401}, {"UNAUTHENTICATED"})


def _is_quota_failure(exc: Exception, text: str) -> bool:
    if "quota" in text or "429" in text:
        return True
    return _api_error_matches(exc, {429}, {"RESOURCE_EXHAUSTED"})


def _is_safety_block(exc: Exception, text: str) -> bool:
    return isinstance(exc, BlockedResponseError) or "safety" in text


# First match wins.
CLASSIFICATION_RULES: list[tuple[Callable[[Exception, str], bool], type[ChatError]]] = [
    (_is_credential_failure, InvalidCredentialError),
    (_is_quota_failure, QuotaExceededError),
    (_is_safety_block, ContentBlockedError),
]


def classify_error(exc: Exception) -> ChatError:
    text = str(exc)
    for matches, error_cls in CLASSIFICATION_RULES:
        if matches(exc, text):
            return error_cls(details=text)
    return UnknownBackendError(details=text)
