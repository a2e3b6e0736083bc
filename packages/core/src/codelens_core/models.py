"""Review request and result models.

Results are frozen once built: the normaliser is the only place that turns
untrusted model output into these types, and everything downstream (the
orchestrator, the CLI renderers) only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Category(str, Enum):
    SECURITY = "SECURITY"
    PERFORMANCE = "PERFORMANCE"
    MAINTAINABILITY = "MAINTAINABILITY"
    BUG = "BUG"
    CODE_STYLE = "CODE_STYLE"
    BEST_PRACTICE = "BEST_PRACTICE"
    TESTING = "TESTING"
    DOCUMENTATION = "DOCUMENTATION"


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"


DEFAULT_CATEGORY = Category.CODE_STYLE
DEFAULT_SEVERITY = Severity.MEDIUM
NO_FRAMEWORK = "none"

MIN_SCORE = 0.0
MAX_SCORE = 10.0


def _coerce_enum(enum_cls, value, default):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().upper())
        except ValueError:
            pass
    return default


def _coerce_line(value) -> int:
    # bool is an int subclass; a model answering "line": true is not a line number.
    if isinstance(value, bool):
        return 0
    try:
        line = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return line if line > 0 else 0


def clamp_score(score: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, float(score)))


@dataclass
class ReviewRequest:
    """One incoming review call. Lives only for the duration of that call."""

    code: str
    language: str | None = None
    file_name: str | None = None
    framework: str | None = None


@dataclass(frozen=True)
class Issue:
    category: Category = DEFAULT_CATEGORY
    severity: Severity = DEFAULT_SEVERITY
    title: str = ""
    description: str = ""
    line: int = 0  # 0 = unknown
    code_snippet: str = ""
    suggestion: str = ""
    reasoning: str = ""

    @classmethod
    def from_dict(cls, raw: dict) -> Issue:
        """Build an Issue from one entry of the model's ``issues`` array.

        Missing or unrecognised category/severity fall back to CODE_STYLE /
        MEDIUM; a missing or invalid line becomes 0.
        """
        return cls(
            category=_coerce_enum(Category, raw.get("category"), DEFAULT_CATEGORY),
            severity=_coerce_enum(Severity, raw.get("severity"), DEFAULT_SEVERITY),
            title=str(raw.get("title") or ""),
            description=str(raw.get("description") or ""),
            line=_coerce_line(raw.get("line")),
            code_snippet=str(raw.get("codeSnippet") or ""),
            suggestion=str(raw.get("suggestion") or ""),
            reasoning=str(raw.get("reasoning") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "line": self.line,
            "codeSnippet": self.code_snippet,
            "suggestion": self.suggestion,
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class ReviewResult:
    overall_score: float
    summary: str
    language: str
    framework: str = NO_FRAMEWORK
    issues: tuple[Issue, ...] = ()
    positive_aspects: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    # True only for the canned result produced when the model reply was unparseable.
    degraded: bool = False

    def __post_init__(self):
        object.__setattr__(self, "overall_score", clamp_score(self.overall_score))
        object.__setattr__(self, "framework", self.framework or NO_FRAMEWORK)

    def to_dict(self) -> dict:
        return {
            "overallScore": self.overall_score,
            "summary": self.summary,
            "language": self.language,
            "framework": self.framework,
            "issues": [issue.to_dict() for issue in self.issues],
            "positiveAspects": list(self.positive_aspects),
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class ReviewMetadata:
    request_id: str
    processing_time_ms: int
    code_size: int
    language: str
    framework: str
    model: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        return {
            "requestId": self.request_id,
            "processingTime": f"{self.processing_time_ms}ms",
            "timestamp": self.timestamp,
            "codeSize": self.code_size,
            "language": self.language,
            "framework": self.framework,
            "model": self.model,
        }


@dataclass(frozen=True)
class ReviewResponse:
    """Final payload of one review call: the result plus request metadata."""

    result: ReviewResult
    metadata: ReviewMetadata

    def to_dict(self) -> dict:
        return {**self.result.to_dict(), "metadata": self.metadata.to_dict()}
