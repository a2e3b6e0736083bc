from __future__ import annotations

try:
    import openai as _openai_sdk
    from openai import OpenAI as _OpenAI
except ImportError:
    _openai_sdk = None  # type: ignore[assignment]
    _OpenAI = None  # type: ignore[assignment,misc]

from codelens_core.errors import (
    AIAuthError,
    AIQuotaExceededError,
    AIRateLimitedError,
    AIServiceError,
    AIServiceUnavailableError,
    AITimeoutError,
)
from codelens_core.providers.base import BaseReviewer


class OpenAIReviewer(BaseReviewer):
    MODEL = "gpt-4o"

    def __init__(self, api_key: str, **kwargs):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. " "Install it with: pip install 'codelens[openai]'"
            )
        super().__init__(**kwargs)
        # max_retries=0: the SDK must not retry behind _call_with_retry's back.
        self.client = _OpenAI(api_key=api_key, max_retries=0, timeout=self.timeout_s)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        try:
            # Chat completions has no top_k; temperature and top_p carry the sampling config.
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.TEMPERATURE,
                top_p=self.TOP_P,
                max_tokens=self.MAX_TOKENS,
            )
        except _openai_sdk.APITimeoutError as e:
            raise AITimeoutError(f"OpenAI request timeout: {e}") from e
        except _openai_sdk.APIConnectionError as e:
            raise AIServiceUnavailableError(f"OpenAI network error: {e}") from e
        except _openai_sdk.RateLimitError as e:
            if getattr(e, "code", None) == "insufficient_quota":
                raise AIQuotaExceededError(f"OpenAI quota exceeded: {e}") from e
            raise AIRateLimitedError(f"OpenAI rate limit reached: {e}") from e
        except (_openai_sdk.AuthenticationError, _openai_sdk.PermissionDeniedError) as e:
            raise AIAuthError(f"OpenAI authentication failed: {e}") from e
        except _openai_sdk.APIStatusError as e:
            if e.status_code >= 500:
                raise AIServiceUnavailableError(f"OpenAI server unavailable: {e}") from e
            raise AIServiceError(f"OpenAI API error: {e}") from e

        if not response.choices:
            raise AIServiceError("Invalid response from AI service")
        return response.choices[0].message.content or ""
