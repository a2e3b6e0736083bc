"""Core code review orchestration."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from codelens_core.config import ReviewSettings, load_guidelines
from codelens_core.errors import CodeLensError, InternalError
from codelens_core.models import NO_FRAMEWORK, ReviewMetadata, ReviewRequest, ReviewResponse
from codelens_core.providers.anthropic import AnthropicReviewer
from codelens_core.providers.base import BaseReviewer
from codelens_core.providers.gemini import GeminiReviewer
from codelens_core.providers.openai import OpenAIReviewer
from codelens_core.utils.languages import SUPPORTED_FRAMEWORKS, SUPPORTED_LANGUAGES, detect_language
from codelens_core.validation import validate_request

logger = logging.getLogger(__name__)

PROVIDERS = ("gemini", "anthropic", "openai")


def generate_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


@dataclass(frozen=True)
class HealthStatus:
    healthy: bool
    provider: str
    model: str
    response_time_ms: int
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def status(self) -> str:
        return "healthy" if self.healthy else "unhealthy"


def _get_reviewer(config: dict, settings: ReviewSettings | None = None) -> BaseReviewer:
    settings = settings or ReviewSettings.from_config(config)
    kwargs = {
        "guidelines": load_guidelines(config),
        "model": settings.model_name,
        "timeout_s": settings.request_timeout_s,
        "max_retries": settings.max_retries,
    }
    model = settings.model
    if model == "gemini":
        return GeminiReviewer(api_key=config.get("gemini_api_key"), **kwargs)
    if model == "anthropic":
        return AnthropicReviewer(api_key=config.get("anthropic_api_key"), **kwargs)
    if model == "openai":
        return OpenAIReviewer(api_key=config.get("openai_api_key"), **kwargs)
    raise ValueError(f"Unknown model provider: {model!r}. Choose one of: {', '.join(PROVIDERS)}.")


@dataclass(frozen=True)
class ReviewService:
    """One explicitly constructed, immutable handle on the review pipeline.

    Build it once at startup (see build_service) and pass it to whatever
    handles requests. It keeps no per-request state, so concurrent callers can
    share it; tests construct it directly around a stub reviewer.
    """

    reviewer: BaseReviewer
    settings: ReviewSettings = field(default_factory=ReviewSettings)

    def review(self, request: ReviewRequest) -> ReviewResponse:
        """Run validate → detect → prompt → invoke → normalise for one request.

        Validation failures raise InvalidInputError before any provider call.
        Provider failures surface as the classified AIServiceError; anything
        unexpected is wrapped in InternalError. Every raised CodeLensError
        carries the request id.
        """
        start = time.monotonic()
        request_id = generate_request_id()
        code_size = len(request.code) if isinstance(request.code, str) else 0
        logger.info(
            "[%s] Code review request: language=%s framework=%s code_length=%d file_name=%s",
            request_id,
            request.language or "auto",
            request.framework or NO_FRAMEWORK,
            code_size,
            request.file_name or "none",
        )

        try:
            clean = validate_request(request, self.settings)
            language = clean.language or detect_language(clean.code, clean.file_name)
            result = self.reviewer.review(clean.code, language, clean.framework)
        except CodeLensError as e:
            e.request_id = request_id
            logger.error("[%s] Code review failed after %dms: %s", request_id, _elapsed_ms(start), e)
            raise
        except Exception as e:
            logger.exception("[%s] Unexpected error during code review", request_id)
            error = InternalError(str(e))
            error.request_id = request_id
            raise error from e

        processing_ms = _elapsed_ms(start)
        logger.info(
            "[%s] Code review completed: score=%s issues=%d language=%s framework=%s in %dms",
            request_id,
            result.overall_score,
            len(result.issues),
            result.language,
            result.framework,
            processing_ms,
        )
        return ReviewResponse(
            result=result,
            metadata=ReviewMetadata(
                request_id=request_id,
                processing_time_ms=processing_ms,
                code_size=code_size,
                language=result.language,
                framework=result.framework,
                model=self.reviewer.model,
            ),
        )

    def supported_languages(self) -> dict[str, tuple[str, ...]]:
        return dict(SUPPORTED_LANGUAGES)

    def supported_frameworks(self) -> list[str]:
        return sorted(SUPPORTED_FRAMEWORKS)

    def health(self) -> HealthStatus:
        start = time.monotonic()
        healthy = self.reviewer.health_check()
        return HealthStatus(
            healthy=healthy,
            provider=self.settings.model,
            model=self.reviewer.model,
            response_time_ms=_elapsed_ms(start),
        )

    def status(self) -> dict:
        """Service capabilities plus a live health probe."""
        health = self.health()
        return {
            "service": "codelens",
            "status": "operational" if health.healthy else "degraded",
            "timestamp": health.timestamp,
            "provider": health.provider,
            "model": health.model,
            "capabilities": {
                "languages": len(SUPPORTED_LANGUAGES),
                "frameworks": len(SUPPORTED_FRAMEWORKS),
                "maxCodeSize": self.settings.max_code_length,
                "timeoutMs": self.settings.request_timeout_ms,
                "maxRetries": self.settings.max_retries,
            },
        }


def build_service(config: dict) -> ReviewService:
    """Construct the ReviewService described by a merged config dict."""
    settings = ReviewSettings.from_config(config)
    return ReviewService(reviewer=_get_reviewer(config, settings), settings=settings)
