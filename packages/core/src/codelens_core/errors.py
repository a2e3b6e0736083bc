"""Error taxonomy for the review pipeline.

Every failure the pipeline surfaces is a CodeLensError carrying a stable
``error_code`` and a ``user_message`` that is safe to show to whoever
submitted the code. The raw ``str(exc)`` may contain provider text and is
meant for logs only.

Response parse failures are deliberately absent: the normaliser absorbs them
into a degraded result instead of raising.
"""

from __future__ import annotations

SERVICE_UNAVAILABLE_MESSAGE = "AI service is temporarily unavailable"
INVALID_API_KEY_MESSAGE = "Invalid API key configuration"
REVIEW_FAILED_MESSAGE = "Code analysis failed"

# Substrings (matched case-insensitively) that mark a failure as transient.
RETRYABLE_KEYWORDS = (
    "timeout",
    "rate limit",
    "quota",
    "network error",
    "server unavailable",
    "busy",
    "overload",
)


class CodeLensError(Exception):
    error_code = "INTERNAL_ERROR"
    user_message = REVIEW_FAILED_MESSAGE

    def __init__(self, message: str = ""):
        super().__init__(message or self.user_message)
        # Set by ReviewService so callers can correlate the failure with logs.
        self.request_id: str | None = None


class InvalidInputError(CodeLensError):
    """Client-caused: the submitted code, file name or framework is unusable.

    The message names the violated rule and is shown to the user verbatim.
    """

    error_code = "INVALID_INPUT"

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return str(self)


class AIServiceError(CodeLensError):
    error_code = "AI_SERVICE_ERROR"
    user_message = SERVICE_UNAVAILABLE_MESSAGE


class AITimeoutError(AIServiceError):
    error_code = "AI_TIMEOUT"


class AIQuotaExceededError(AIServiceError):
    error_code = "AI_QUOTA_EXCEEDED"


class AIRateLimitedError(AIServiceError):
    error_code = "RATE_LIMIT_EXCEEDED"


class AIServiceUnavailableError(AIServiceError):
    error_code = "AI_SERVICE_UNAVAILABLE"


class AIAuthError(AIServiceError):
    """The provider rejected our credentials. Never retried."""

    error_code = "AI_AUTH_ERROR"
    user_message = INVALID_API_KEY_MESSAGE


class InternalError(CodeLensError):
    error_code = "INTERNAL_ERROR"


_TRANSIENT_ERRORS = (AITimeoutError, AIQuotaExceededError, AIRateLimitedError, AIServiceUnavailableError)


def is_retryable(exc: BaseException) -> bool:
    """Return True if the failure is transient.

    Classified errors decide by type, so provider text quoted into an auth
    failure cannot make it retryable. Anything else is matched against the
    transient-failure keywords.
    """
    if isinstance(exc, AIAuthError):
        return False
    if isinstance(exc, _TRANSIENT_ERRORS):
        return True
    message = str(exc).lower()
    return any(keyword in message for keyword in RETRYABLE_KEYWORDS)


def classify_error(exc: BaseException) -> AIServiceError:
    """Map an arbitrary provider failure onto the AIServiceError hierarchy.

    Already-classified errors pass through untouched. Otherwise the message
    is matched against keyword groups; the first matching group wins.
    """
    if isinstance(exc, AIServiceError):
        return exc

    message = str(exc)
    lowered = message.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return AITimeoutError(message)
    if "quota" in lowered:
        return AIQuotaExceededError(message)
    if "rate limit" in lowered:
        return AIRateLimitedError(message)
    if any(k in lowered for k in ("network", "unavailable", "busy", "overload")):
        return AIServiceUnavailableError(message)
    if any(k in lowered for k in ("api key", "authentication", "unauthorized", "permission")):
        return AIAuthError(message)
    return AIServiceError(message)
