"""Turn the model's free-form reply into a ReviewResult.

The reply is untrusted text. ``normalize_review`` never raises: anything it
cannot make sense of is replaced by ``fallback_review``, which has exactly
the same shape as a real result. By the time we get here the (slow,
rate-limited) provider call has already succeeded, so a formatting problem
should not cost the caller a full retry cycle.
"""

from __future__ import annotations

import json
import logging
import math

from codelens_core.models import NO_FRAMEWORK, Category, Issue, ReviewResult, Severity

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("overallScore", "summary", "language", "issues")
FALLBACK_SCORE = 5


class _MalformedReview(ValueError):
    pass


def extract_json_block(text: str) -> str | None:
    """Return the span from the first ``{`` to the last ``}``, or None."""
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start : end + 1]


def _string_list(value) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value if item is not None and str(item).strip())


def _parse_score(value) -> float:
    if isinstance(value, bool):
        raise _MalformedReview(f"overallScore is not a number: {value!r}")
    try:
        score = float(value)
    except (TypeError, ValueError, OverflowError):
        raise _MalformedReview(f"overallScore is not a number: {value!r}")
    if not math.isfinite(score):
        raise _MalformedReview(f"overallScore is not finite: {value!r}")
    return score


def _build_result(data, language: str, framework: str) -> ReviewResult:
    if not isinstance(data, dict):
        raise _MalformedReview("response JSON is not an object")

    missing = [f for f in REQUIRED_FIELDS if f not in data]
    if missing:
        raise _MalformedReview(f"missing required field(s): {', '.join(missing)}")

    issues = data["issues"]
    if not isinstance(issues, list):
        raise _MalformedReview("issues is not a list")

    return ReviewResult(
        overall_score=_parse_score(data["overallScore"]),
        summary=str(data["summary"] or ""),
        # The pipeline's own language/framework win over whatever the model claims.
        language=language,
        framework=framework or NO_FRAMEWORK,
        issues=tuple(Issue.from_dict(item) for item in issues if isinstance(item, dict)),
        positive_aspects=_string_list(data.get("positiveAspects")),
        recommendations=_string_list(data.get("recommendations")),
    )


def fallback_review(language: str, framework: str | None, reason: str = "") -> ReviewResult:
    """The degraded result returned when the model reply cannot be used."""
    return ReviewResult(
        overall_score=FALLBACK_SCORE,
        summary="Analysis completed but response formatting failed",
        language=language,
        framework=framework or NO_FRAMEWORK,
        issues=(
            Issue(
                category=Category.CODE_STYLE,
                severity=Severity.LOW,
                title="Response Parsing Issue",
                description="The AI response could not be properly parsed, so this review is partial.",
                line=0,
                code_snippet="",
                suggestion="Please try the review again",
                reasoning=reason or "Technical issue with response formatting",
            ),
        ),
        positive_aspects=("Code was successfully analyzed by AI",),
        recommendations=(
            "Please check the code manually for detailed review",
            "Try again with a smaller code snippet if issue persists",
        ),
        degraded=True,
    )


def normalize_review(raw: str, language: str, framework: str | None = None) -> ReviewResult:
    """Parse ``raw`` into a ReviewResult, falling back instead of raising."""
    block = extract_json_block(raw)
    if block is None:
        logger.warning("No JSON object found in AI response: %s", (raw or "")[:200])
        return fallback_review(language, framework, "No JSON object found in AI response")

    try:
        data = json.loads(block)
        return _build_result(data, language, framework or NO_FRAMEWORK)
    # JSONDecodeError is a ValueError; so is json.loads rejecting an over-long integer.
    except (ValueError, RecursionError, _MalformedReview) as e:
        logger.warning("Failed to parse AI response: %s", e)
        return fallback_review(language, framework, f"Failed to parse AI response: {e}")
