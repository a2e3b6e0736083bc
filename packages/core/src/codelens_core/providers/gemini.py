from __future__ import annotations

try:
    from google import genai
    from google.genai import errors as genai_errors
    from google.genai import types as genai_types
except ImportError:
    genai = None  # type: ignore[assignment]
    genai_errors = None  # type: ignore[assignment]
    genai_types = None  # type: ignore[assignment]

from codelens_core.errors import (
    AIAuthError,
    AIQuotaExceededError,
    AIRateLimitedError,
    AIServiceError,
    AIServiceUnavailableError,
    AITimeoutError,
)
from codelens_core.providers.base import BaseReviewer

_BLOCKED_HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)
_BLOCK_THRESHOLD = "BLOCK_MEDIUM_AND_ABOVE"


class GeminiReviewer(BaseReviewer):
    MODEL = "gemini-2.0-flash"

    def __init__(self, api_key: str, **kwargs):
        if genai is None:
            raise ImportError(
                "The 'google-genai' package is required for this provider. "
                "Install it with: pip install 'codelens[gemini]'"
            )
        super().__init__(**kwargs)
        # The SDK's own HTTP timeout matches ours so abandoned calls do not linger.
        # Retries are left at the SDK default of none; _call_with_retry owns them.
        self.client = genai.Client(
            api_key=api_key,
            http_options=genai_types.HttpOptions(timeout=int(self.timeout_s * 1000)),
        )

    def _generation_config(self, system_prompt: str):
        return genai_types.GenerateContentConfig(
            system_instruction=system_prompt or None,
            temperature=self.TEMPERATURE,
            top_p=self.TOP_P,
            top_k=self.TOP_K,
            max_output_tokens=self.MAX_TOKENS,
            # JSON mode; normalize_review still guards against anything else.
            response_mime_type="application/json",
            safety_settings=[
                genai_types.SafetySetting(category=category, threshold=_BLOCK_THRESHOLD)
                for category in _BLOCKED_HARM_CATEGORIES
            ],
        )

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=user_prompt,
                config=self._generation_config(system_prompt),
            )
        except genai_errors.APIError as e:
            raise _translate_api_error(e) from e
        if response is None:
            raise AIServiceError("Invalid response from AI service")
        return (response.text or "").strip()


def _translate_api_error(e) -> AIServiceError:
    code = getattr(e, "code", None)
    status = str(getattr(e, "status", "") or "")
    if code == 429 or status == "RESOURCE_EXHAUSTED":
        if "quota" in str(e).lower():
            return AIQuotaExceededError(f"Gemini quota exceeded: {e}")
        return AIRateLimitedError(f"Gemini rate limit reached: {e}")
    if code in (401, 403) or status in ("UNAUTHENTICATED", "PERMISSION_DENIED"):
        return AIAuthError(f"Gemini authentication failed: {e}")
    if code == 504 or status == "DEADLINE_EXCEEDED":
        return AITimeoutError(f"Gemini request timeout: {e}")
    if code is not None and code >= 500:
        return AIServiceUnavailableError(f"Gemini server unavailable: {e}")
    return AIServiceError(f"Gemini API error: {e}")
