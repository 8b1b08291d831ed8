"""Error kinds surfaced by the book pipeline and their HTTP mapping."""

import re
from typing import Optional

import openai


_SECRET_PATTERNS = [
    re.compile(r"sk-[A-Za-z0-9_\-]{8,}"),
    re.compile(r"(?i)bearer\s+[A-Za-z0-9_\-\.=]+"),
]


def redact_secrets(text: Optional[str]) -> Optional[str]:
    """Mask anything that looks like a provider credential."""
    if not text:
        return text
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub("[REDACTED]", text)
    return text


class BookEngineError(Exception):
    code = "generation_failed"
    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = redact_secrets(detail)

    def to_dict(self) -> dict:
        body = {"status": "error", "message": self.message, "code": self.code}
        if self.detail:
            body["detail"] = self.detail
        return body


class InvalidInput(BookEngineError):
    code = "invalid_input"
    status_code = 400


class UpstreamThrottled(BookEngineError):
    code = "upstream_throttled"
    status_code = 429


class UpstreamMalformed(BookEngineError):
    code = "upstream_malformed"
    status_code = 500


class UpstreamUnavailable(BookEngineError):
    code = "upstream_unavailable"
    status_code = 500


class PersistenceFailure(BookEngineError):
    code = "persistence_failure"
    status_code = 500


class GenerationFailed(BookEngineError):
    code = "generation_failed"
    status_code = 500


class RequestAborted(BookEngineError):
    code = "client_disconnected"
    status_code = 499


QUOTA_MESSAGE = (
    "The AI provider quota for this service is exhausted. "
    "Check the provider account's plan and billing details, then try again."
)
THROTTLED_MESSAGE = "The AI provider is rate limiting requests. Please wait a moment and try again."


def translate_openai_error(error: openai.OpenAIError, action: str) -> BookEngineError:
    """Map an OpenAI SDK exception onto one of the pipeline error kinds.

    ``action`` names the step that failed (e.g. "story generation") and is
    used in the user-facing message.
    """
    diagnostic = str(error)

    if isinstance(error, openai.RateLimitError):
        if getattr(error, "code", None) == "insufficient_quota":
            return UpstreamThrottled(QUOTA_MESSAGE, detail=diagnostic)
        return UpstreamThrottled(THROTTLED_MESSAGE, detail=diagnostic)

    # APITimeoutError subclasses APIConnectionError
    if isinstance(error, openai.APIConnectionError):
        return UpstreamUnavailable(f"The AI provider could not be reached during {action}", detail=diagnostic)

    if isinstance(error, openai.APIStatusError) and error.status_code == 429:
        return UpstreamThrottled(THROTTLED_MESSAGE, detail=diagnostic)

    return GenerationFailed(f"AI {action} failed", detail=diagnostic)
