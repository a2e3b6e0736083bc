"""Base reviewer implementing the Template Method pattern.

All providers share the same review algorithm:
    review() → _build_system_prompt() + _build_user_prompt()
             → _call_with_retry() → _call_with_timeout() → _call_api()   ← only this differs per provider
             → normalize_review()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

Everything else (prompt construction, timeout, retry/backoff, response
normalisation) lives here so it is defined once and inherited consistently
by every provider.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from codelens_core.errors import AIServiceError, AITimeoutError, classify_error, is_retryable
from codelens_core.models import NO_FRAMEWORK, ReviewResult
from codelens_core.utils.languages import is_supported_framework
from codelens_core.utils.response import normalize_review

logger = logging.getLogger(__name__)

# Shared defaults; subclasses may override as class attributes if needed.
_MAX_RETRIES = 3
_MAX_TOKENS = 8192
_REQUEST_TIMEOUT_S = 45.0

HEALTH_CHECK_PROMPT = "Respond with 'OK' if service is working."

REVIEW_DIMENSIONS = (
    "**Security Analysis**: Vulnerabilities, input validation, data protection",
    "**Performance Review**: Algorithm efficiency, memory usage, optimization opportunities",
    "**Code Quality**: Readability, maintainability, structure, naming conventions",
    "**Best Practices**: Language/framework conventions, design patterns",
    "**Error Handling**: Exception management, edge cases, robustness",
    "**Testing Considerations**: Testability, mockability, coverage suggestions",
)


class BaseReviewer(ABC):
    MODEL: str = ""
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    REQUEST_TIMEOUT_S: float = _REQUEST_TIMEOUT_S
    # Low temperature and a narrow sampling window keep the JSON structure stable.
    TEMPERATURE: float = 0.1
    TOP_P: float = 0.8
    TOP_K: int = 40

    def __init__(
        self,
        guidelines: str = "",
        model: str | None = None,
        timeout_s: float | None = None,
        max_retries: int | None = None,
    ):
        self.guidelines = guidelines
        self.model = model or self.MODEL
        self.timeout_s = self.REQUEST_TIMEOUT_S if timeout_s is None else timeout_s
        self.max_retries = self.MAX_RETRIES if max_retries is None else max_retries

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def review(self, code: str, language: str, framework: str | None = None) -> ReviewResult:
        """Review one snippet and return a normalised ReviewResult.

        Concrete here because the algorithm is identical for every provider:
        build prompts → call API with timeout and retry → normalise the reply.
        Raises a classified AIServiceError once retries are exhausted; reply
        formatting problems never raise (see normalize_review).
        """
        system = self._build_system_prompt()
        user = self._build_user_prompt(code, language, framework)
        start = time.monotonic()
        raw = self._call_with_retry(system, user)
        logger.info(
            "%s review of %s code completed in %dms",
            self.__class__.__name__,
            language,
            (time.monotonic() - start) * 1000,
        )
        return normalize_review(raw, language, framework)

    def health_check(self) -> bool:
        """Return True if the provider answers a trivial prompt. Never raises."""
        try:
            reply = self._call_with_timeout("", HEALTH_CHECK_PROMPT, self.timeout_s)
        except Exception as e:
            logger.error("%s health check failed: %s", self.__class__.__name__, e)
            return False
        healthy = "OK" in (reply or "")
        logger.info("%s health check: %s", self.__class__.__name__, "HEALTHY" if healthy else "UNHEALTHY")
        return healthy

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        This is the only method subclasses must implement. It should raise
        on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_timeout(self, system_prompt: str, user_prompt: str, timeout_s: float) -> str:
        """Race one _call_api attempt against a timer.

        If the timer wins the call is abandoned, not cancelled: the SDK has no
        cancel hook, so a late reply is simply discarded when it arrives.
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="codelens-call")
        future = executor.submit(self._call_api, system_prompt, user_prompt)
        try:
            return future.result(timeout=timeout_s)
        except FutureTimeoutError:
            raise AITimeoutError("AI service timeout")
        finally:
            executor.shutdown(wait=False)

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str:
        """Call the provider, retrying transient failures with exponential backoff.

        Attempt 0 is the initial call; up to ``max_retries`` retries follow,
        each preceded by a 2**n second sleep. Only failures whose message
        matches a transient keyword are retried. The final failure is raised
        as a classified AIServiceError.
        """
        attempt = 0
        while True:
            try:
                raw = self._call_with_timeout(system_prompt, user_prompt, self.timeout_s)
                if not raw or not raw.strip():
                    raise AIServiceError("Empty response from AI service")
                if attempt:
                    logger.info("%s API succeeded on attempt %d", self.__class__.__name__, attempt + 1)
                return raw
            except Exception as e:
                if not is_retryable(e) or attempt >= self.max_retries:
                    logger.error(
                        "%s API failed after %d attempt(s): %s",
                        self.__class__.__name__,
                        attempt + 1,
                        e,
                    )
                    error = classify_error(e)
                    if error is e:
                        raise
                    raise error from e
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.max_retries + 1,
                    e,
                    delay,
                )
                time.sleep(delay)
                attempt += 1

    def _build_system_prompt(self) -> str:
        """Build the system prompt injected once per review call.

        Kept in base so all providers produce a consistent reviewer persona;
        the only variable is the guidelines content itself.
        """
        return self.guidelines

    def _build_user_prompt(self, code: str, language: str, framework: str | None = None) -> str:
        """Build the per-request prompt: fenced code, review dimensions, output schema.

        Pure function of its arguments. A framework is only mentioned when it
        is one we know; anything else is reviewed generically and the schema
        says "none".
        """
        known_framework = framework if is_supported_framework(framework) else None
        framework_context = f" and {known_framework} framework" if known_framework else ""
        schema_framework = known_framework or NO_FRAMEWORK
        dimensions = "\n".join(f"{i}. {d}" for i, d in enumerate(REVIEW_DIMENSIONS, 1))
        return f"""Please conduct a comprehensive code review for the following {language} code{framework_context}:

```{language}
{code}
```

## Review Requirements:

### Language-Specific Analysis:
- Apply {language}-specific best practices and conventions
- Consider language-specific performance characteristics
- Review language-specific security concerns
- Check for framework-specific patterns if applicable

### Comprehensive Assessment:
{dimensions}

### Response Format:
Return a single JSON object with this exact structure:

{{
  "overallScore": <number from 0 to 10>,
  "summary": "Brief overall assessment",
  "language": "{language}",
  "framework": "{schema_framework}",
  "issues": [
    {{
      "category": "SECURITY|PERFORMANCE|MAINTAINABILITY|BUG|CODE_STYLE|BEST_PRACTICE|TESTING|DOCUMENTATION",
      "severity": "CRITICAL|HIGH|MEDIUM|LOW|INFO",
      "title": "Clear issue title",
      "description": "Detailed explanation",
      "line": <line number in the snippet (integer, 0 if unknown)>,
      "codeSnippet": "problematic code",
      "suggestion": "improved code",
      "reasoning": "Why this change is important"
    }}
  ],
  "positiveAspects": ["What was done well"],
  "recommendations": ["Specific actionable items"]
}}

Focus on practical, implementable advice that respects {language} ecosystem conventions.
Do not return any text outside the JSON object."""
