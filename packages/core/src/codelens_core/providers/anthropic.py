from __future__ import annotations

from codelens_core.errors import (
    AIAuthError,
    AIRateLimitedError,
    AIServiceError,
    AIServiceUnavailableError,
    AITimeoutError,
)
from codelens_core.providers.base import BaseReviewer


class AnthropicReviewer(BaseReviewer):
    MODEL = "claude-sonnet-4-20250514"

    def __init__(self, api_key: str, **kwargs):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'codelens[anthropic]'"
            )
        super().__init__(**kwargs)
        # max_retries=0: the SDK must not retry behind _call_with_retry's back.
        self.client = Anthropic(api_key=api_key, max_retries=0, timeout=self.timeout_s)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        # Imported inside the method because the anthropic package is optional;
        # __init__ already validated it is installed before we reach here.
        import anthropic
        from anthropic.types import TextBlock

        kwargs = {}
        if system_prompt:
            kwargs["system"] = system_prompt
        try:
            response = self.client.messages.create(
                model=self.model,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=self.TEMPERATURE,
                top_k=self.TOP_K,
                max_tokens=self.MAX_TOKENS,
                **kwargs,
            )
        except anthropic.APITimeoutError as e:
            raise AITimeoutError(f"Anthropic request timeout: {e}") from e
        except anthropic.APIConnectionError as e:
            raise AIServiceUnavailableError(f"Anthropic network error: {e}") from e
        except anthropic.RateLimitError as e:
            raise AIRateLimitedError(f"Anthropic rate limit reached: {e}") from e
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise AIAuthError(f"Anthropic authentication failed: {e}") from e
        except anthropic.APIStatusError as e:
            if e.status_code >= 500:
                # 529 is Anthropic's "overloaded" status.
                raise AIServiceUnavailableError(f"Anthropic server unavailable: {e}") from e
            raise AIServiceError(f"Anthropic API error: {e}") from e

        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()
