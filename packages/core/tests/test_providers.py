"""Tests for AI provider implementations.

Shared behaviour (prompt construction, timeout, retry/backoff, health check)
lives in BaseReviewer and is tested once via a lightweight stub, not
duplicated per provider. Provider-specific tests cover only what differs
between implementations: the SDK client setup and _call_api.
"""

import json
import threading
from unittest.mock import patch

import pytest

from codelens_core.errors import (
    AIAuthError,
    AIRateLimitedError,
    AIServiceError,
    AIServiceUnavailableError,
    AITimeoutError,
)
from codelens_core.providers.anthropic import AnthropicReviewer
from codelens_core.providers.base import HEALTH_CHECK_PROMPT, BaseReviewer
from codelens_core.providers.gemini import GeminiReviewer
from codelens_core.providers.openai import OpenAIReviewer

VALID_JSON = json.dumps(
    {
        "overallScore": 8,
        "summary": "Solid",
        "language": "python",
        "framework": "none",
        "issues": [{"category": "BUG", "severity": "HIGH", "title": "Off by one", "line": 3}],
        "positiveAspects": [],
        "recommendations": [],
    }
)


class _StubReviewer(BaseReviewer):
    """Minimal concrete subclass used to test BaseReviewer shared methods.

    Replies are taken in order from ``replies``; an Exception instance in the
    list is raised instead of returned.
    """

    MODEL = "stub-model"

    def __init__(self, replies=None, **kwargs):
        super().__init__(**kwargs)
        self.replies = list(replies) if replies is not None else [VALID_JSON]
        self.calls = []

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        reply = self.replies[min(len(self.calls), len(self.replies)) - 1]
        if isinstance(reply, Exception):
            raise reply
        return reply


# ---------------------------------------------------------------------------
# Shared behaviour, tested once through the stub
# ---------------------------------------------------------------------------


class TestBaseReviewerPrompts:
    def test_system_prompt_is_guidelines(self):
        assert _StubReviewer(guidelines="## My Guidelines")._build_system_prompt() == "## My Guidelines"

    def test_user_prompt_contains_fenced_code(self):
        prompt = _StubReviewer()._build_user_prompt("print('hi')", "python")
        assert "```python\nprint('hi')\n```" in prompt

    def test_user_prompt_lists_review_dimensions(self):
        prompt = _StubReviewer()._build_user_prompt("x = 1", "python")
        for heading in ("Security Analysis", "Performance Review", "Testing Considerations"):
            assert heading in prompt

    def test_user_prompt_contains_schema(self):
        prompt = _StubReviewer()._build_user_prompt("x = 1", "python")
        assert '"overallScore"' in prompt
        assert '"language": "python"' in prompt
        assert "CODE_STYLE" in prompt

    def test_supported_framework_mentioned(self):
        prompt = _StubReviewer()._build_user_prompt("x = 1", "python", "django")
        assert "python code and django framework" in prompt
        assert '"framework": "django"' in prompt

    def test_unsupported_framework_omitted(self):
        prompt = _StubReviewer()._build_user_prompt("x = 1", "python", "in-house-kit")
        assert "in-house-kit" not in prompt
        assert '"framework": "none"' in prompt

    def test_prompt_is_deterministic(self):
        reviewer = _StubReviewer()
        assert reviewer._build_user_prompt("x = 1", "go", "gin") == reviewer._build_user_prompt("x = 1", "go", "gin")


class TestBaseReviewerReview:
    def test_review_returns_normalised_result(self):
        result = _StubReviewer().review("def f(): pass", "python")
        assert result.overall_score == 8
        assert result.language == "python"
        assert result.issues[0].title == "Off by one"

    def test_system_and_user_prompt_sent(self):
        reviewer = _StubReviewer(guidelines="# Rules")
        reviewer.review("def f(): pass", "python")
        system, user = reviewer.calls[0]
        assert system == "# Rules"
        assert "def f(): pass" in user

    def test_unparseable_reply_degrades_instead_of_raising(self):
        result = _StubReviewer(replies=["I cannot help with that."]).review("x = 1", "python")
        assert result.degraded is True
        assert result.overall_score == 5


class TestBaseReviewerRetry:
    def test_exhausts_retries_with_exponential_backoff(self):
        reviewer = _StubReviewer(replies=[RuntimeError("network error")], max_retries=3)
        with patch("codelens_core.providers.base.time.sleep") as sleep:
            with pytest.raises(AIServiceUnavailableError):
                reviewer.review("x = 1", "python")
        assert len(reviewer.calls) == 4
        assert [c.args[0] for c in sleep.call_args_list] == [1, 2, 4]

    def test_retries_on_transient_failure(self):
        reviewer = _StubReviewer(replies=[RuntimeError("rate limit exceeded"), VALID_JSON])
        with patch("codelens_core.providers.base.time.sleep") as sleep:
            result = reviewer.review("x = 1", "python")
        assert result.overall_score == 8
        assert len(reviewer.calls) == 2
        sleep.assert_called_once_with(1)

    def test_non_transient_failure_not_retried(self):
        reviewer = _StubReviewer(replies=[RuntimeError("bad request payload"), VALID_JSON])
        with patch("codelens_core.providers.base.time.sleep") as sleep:
            with pytest.raises(AIServiceError, match="bad request payload"):
                reviewer.review("x = 1", "python")
        assert len(reviewer.calls) == 1
        sleep.assert_not_called()

    def test_auth_error_is_fatal(self):
        reviewer = _StubReviewer(replies=[AIAuthError("authentication failed")])
        with patch("codelens_core.providers.base.time.sleep"):
            with pytest.raises(AIAuthError):
                reviewer.review("x = 1", "python")
        assert len(reviewer.calls) == 1

    def test_auth_error_quoting_transient_text_is_fatal(self):
        error = AIAuthError("Gemini authentication failed: 403 PERMISSION_DENIED. The API requires a quota project")
        reviewer = _StubReviewer(replies=[error], max_retries=3)
        with patch("codelens_core.providers.base.time.sleep") as sleep:
            with pytest.raises(AIAuthError):
                reviewer.review("x = 1", "python")
        assert len(reviewer.calls) == 1
        sleep.assert_not_called()

    def test_zero_retries_means_single_attempt(self):
        reviewer = _StubReviewer(replies=[AIRateLimitedError("rate limit")], max_retries=0)
        with patch("codelens_core.providers.base.time.sleep") as sleep:
            with pytest.raises(AIRateLimitedError):
                reviewer.review("x = 1", "python")
        assert len(reviewer.calls) == 1
        sleep.assert_not_called()

    def test_empty_reply_is_not_retried(self):
        reviewer = _StubReviewer(replies=["   "])
        with patch("codelens_core.providers.base.time.sleep"):
            with pytest.raises(AIServiceError, match="Empty response"):
                reviewer.review("x = 1", "python")
        assert len(reviewer.calls) == 1

    def test_original_exception_chained(self):
        cause = RuntimeError("quota exhausted")
        reviewer = _StubReviewer(replies=[cause], max_retries=0)
        with pytest.raises(AIServiceError) as exc_info:
            reviewer.review("x = 1", "python")
        assert exc_info.value.__cause__ is cause


class TestBaseReviewerTimeout:
    def test_slow_call_times_out_and_is_retried(self):
        release = threading.Event()

        class _SlowReviewer(_StubReviewer):
            def _call_api(self, system_prompt, user_prompt):
                self.calls.append(user_prompt)
                # Event.wait rather than time.sleep: the test patches time.sleep.
                release.wait(5)
                return VALID_JSON

        reviewer = _SlowReviewer(timeout_s=0.05, max_retries=1)
        try:
            with patch("codelens_core.providers.base.time.sleep") as sleep:
                with pytest.raises(AITimeoutError, match="AI service timeout"):
                    reviewer.review("x = 1", "python")
        finally:
            release.set()
        assert len(reviewer.calls) == 2
        sleep.assert_called_once_with(1)


class TestBaseReviewerHealthCheck:
    def test_healthy_when_reply_contains_ok(self):
        reviewer = _StubReviewer(replies=["OK"])
        assert reviewer.health_check() is True
        system, user = reviewer.calls[0]
        assert system == ""
        assert user == HEALTH_CHECK_PROMPT

    def test_unhealthy_on_other_reply(self):
        assert _StubReviewer(replies=["nope"]).health_check() is False

    def test_unhealthy_on_error(self):
        assert _StubReviewer(replies=[RuntimeError("network error")]).health_check() is False


# ---------------------------------------------------------------------------
# Provider-specific, only what differs between SDKs
# ---------------------------------------------------------------------------


class TestGeminiReviewer:
    def test_model_is_gemini(self):
        assert "gemini" in GeminiReviewer.MODEL

    def test_raises_import_error_without_sdk(self):
        with patch("codelens_core.providers.gemini.genai", None):
            with pytest.raises(ImportError, match="google-genai"):
                GeminiReviewer(api_key="key")

    def test_call_api_sends_prompts_and_config(self, mocker):
        genai = mocker.patch("codelens_core.providers.gemini.genai")
        genai.Client.return_value.models.generate_content.return_value.text = "  {}  "

        reviewer = GeminiReviewer(api_key="key", timeout_s=10)
        assert reviewer._call_api("system", "user") == "{}"

        genai.Client.assert_called_once()
        assert genai.Client.call_args.kwargs["api_key"] == "key"
        call = genai.Client.return_value.models.generate_content.call_args
        assert call.kwargs["model"] == GeminiReviewer.MODEL
        assert call.kwargs["contents"] == "user"
        config = call.kwargs["config"]
        assert config.system_instruction == "system"
        assert config.temperature == 0.1
        assert config.top_k == 40
        assert len(config.safety_settings) == 4
        assert config.response_mime_type == "application/json"

    def test_model_name_override(self, mocker):
        mocker.patch("codelens_core.providers.gemini.genai")
        assert GeminiReviewer(api_key="key", model="gemini-2.5-pro").model == "gemini-2.5-pro"

    @pytest.mark.parametrize(
        "code, status, message, expected",
        [
            (429, "RESOURCE_EXHAUSTED", "Quota exceeded for metric", "AIQuotaExceededError"),
            (429, "RESOURCE_EXHAUSTED", "Too many requests", "AIRateLimitedError"),
            (403, "PERMISSION_DENIED", "API key not valid", "AIAuthError"),
            (504, "DEADLINE_EXCEEDED", "Deadline exceeded", "AITimeoutError"),
            (503, "UNAVAILABLE", "The model is overloaded", "AIServiceUnavailableError"),
            (400, "INVALID_ARGUMENT", "Bad request", "AIServiceError"),
        ],
    )
    def test_api_errors_translated(self, mocker, code, status, message, expected):
        from google.genai import errors as genai_errors

        genai = mocker.patch("codelens_core.providers.gemini.genai")
        api_error = genai_errors.APIError(code, {"error": {"code": code, "status": status, "message": message}})
        genai.Client.return_value.models.generate_content.side_effect = api_error

        reviewer = GeminiReviewer(api_key="key")
        with pytest.raises(AIServiceError) as exc_info:
            reviewer._call_api("", "user")
        assert type(exc_info.value).__name__ == expected
        assert exc_info.value.__cause__ is api_error

    def test_translated_errors_drive_retry(self, mocker):
        from google.genai import errors as genai_errors

        genai = mocker.patch("codelens_core.providers.gemini.genai")
        busy = genai_errors.APIError(503, {"error": {"code": 503, "status": "UNAVAILABLE", "message": "busy"}})
        response = mocker.Mock(text=VALID_JSON)
        genai.Client.return_value.models.generate_content.side_effect = [busy, response]

        reviewer = GeminiReviewer(api_key="key")
        with patch("codelens_core.providers.base.time.sleep"):
            result = reviewer.review("x = 1", "python")
        assert result.overall_score == 8


class TestAnthropicReviewer:
    def test_raises_import_error_without_sdk(self):
        """AnthropicReviewer.__init__ must raise if the anthropic package is absent."""
        with patch.dict("sys.modules", {"anthropic": None}):
            with pytest.raises(ImportError, match="anthropic"):
                AnthropicReviewer(api_key="key")

    def test_model_is_claude(self):
        assert "claude" in AnthropicReviewer.MODEL

    def test_sdk_retries_disabled(self, mocker):
        client_cls = mocker.patch("anthropic.Anthropic")
        AnthropicReviewer(api_key="key", timeout_s=12)
        client_cls.assert_called_once_with(api_key="key", max_retries=0, timeout=12)

    def test_call_api_joins_text_blocks(self, mocker):
        from anthropic.types import TextBlock

        client_cls = mocker.patch("anthropic.Anthropic")
        client_cls.return_value.messages.create.return_value.content = [
            TextBlock(type="text", text='{"a": '),
            TextBlock(type="text", text="1}"),
        ]
        reviewer = AnthropicReviewer(api_key="key")
        assert reviewer._call_api("system", "user") == '{"a": 1}'
        kwargs = client_cls.return_value.messages.create.call_args.kwargs
        assert kwargs["system"] == "system"
        assert kwargs["messages"] == [{"role": "user", "content": "user"}]

    def test_empty_system_prompt_not_sent(self, mocker):
        client_cls = mocker.patch("anthropic.Anthropic")
        client_cls.return_value.messages.create.return_value.content = []
        AnthropicReviewer(api_key="key")._call_api("", HEALTH_CHECK_PROMPT)
        assert "system" not in client_cls.return_value.messages.create.call_args.kwargs


class TestOpenAIReviewer:
    def test_raises_import_error_without_sdk(self):
        """OpenAIReviewer.__init__ must raise if the openai package is absent."""
        with patch("codelens_core.providers.openai._OpenAI", None):
            with pytest.raises(ImportError, match="openai"):
                OpenAIReviewer(api_key="key")

    def test_model_is_gpt(self):
        assert "gpt" in OpenAIReviewer.MODEL

    def test_call_api_sends_system_then_user(self, mocker):
        client_cls = mocker.patch("codelens_core.providers.openai._OpenAI")
        choice = mocker.Mock()
        choice.message.content = "{}"
        client_cls.return_value.chat.completions.create.return_value.choices = [choice]

        reviewer = OpenAIReviewer(api_key="key")
        assert reviewer._call_api("system", "user") == "{}"
        kwargs = client_cls.return_value.chat.completions.create.call_args.kwargs
        assert [m["role"] for m in kwargs["messages"]] == ["system", "user"]
        assert kwargs["top_p"] == 0.8
        assert "top_k" not in kwargs

    def test_no_choices_is_an_error(self, mocker):
        client_cls = mocker.patch("codelens_core.providers.openai._OpenAI")
        client_cls.return_value.chat.completions.create.return_value.choices = []
        with pytest.raises(AIServiceError, match="Invalid response"):
            OpenAIReviewer(api_key="key")._call_api("", "user")
