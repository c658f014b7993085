import pytest
from google.genai import errors as genai_errors

from api.errors import (
    ContentBlockedError,
    InvalidCredentialError,
    QuotaExceededError,
    UnknownBackendError,
    classify_error,
)
from gemini_chat import BlockedResponseError


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("429 quota exceeded", QuotaExceededError),
        ("invalid API_KEY", InvalidCredentialError),
        ("connection reset by peer", UnknownBackendError),
        ("Response was blocked due to safety", ContentBlockedError),
        ("HTTP 429", QuotaExceededError),
        # first match wins
        ("API_KEY over quota", InvalidCredentialError),
        # case-sensitive
        ("QUOTA", UnknownBackendError),
        ("api_key", UnknownBackendError),
    ],
)
def test_classify_error_by_message(raw, expected):
    error = classify_error(RuntimeError(raw))

    assert type(error) is expected
    assert error.details == raw


def test_classify_structured_unauthenticated_error():
    exc = genai_errors.ClientError(
        401,
        {"error": {"code": 401, "message": "Request had invalid authentication credentials.", "status": "UNAUTHENTICATED"}},
    )

    assert isinstance(classify_error(exc), InvalidCredentialError)


def test_classify_structured_resource_exhausted_error():
    exc = genai_errors.ClientError(
        429,
        {"error": {"code": 429, "message": "Resource has been exhausted.", "status": "RESOURCE_EXHAUSTED"}},
    )

    assert isinstance(classify_error(exc), QuotaExceededError)


def test_classify_blocked_response():
    error = classify_error(BlockedResponseError("Response was blocked: PROHIBITED_CONTENT"))

    assert isinstance(error, ContentBlockedError)
    assert error.user_message.startswith("The message was blocked by safety filters")


def test_retryable_flags():
    assert InvalidCredentialError.retryable
    assert QuotaExceededError.retryable
    assert not ContentBlockedError.retryable
    assert not UnknownBackendError.retryable
