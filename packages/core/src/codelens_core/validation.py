"""Request validation.

Runs before anything touches the AI provider. Each check raises
InvalidInputError with a message naming the violated rule; there is no
partial success.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from codelens_core.errors import InvalidInputError
from codelens_core.models import ReviewRequest
from codelens_core.utils.languages import (
    SUPPORTED_LANGUAGES,
    file_extension,
    is_supported_framework,
    is_supported_language,
    language_for_extension,
)

if TYPE_CHECKING:
    from codelens_core.config import ReviewSettings

logger = logging.getLogger(__name__)

DEFAULT_MAX_CODE_LENGTH = 15000
DEFAULT_MAX_FILE_NAME_LENGTH = 255
DEFAULT_MAX_FRAMEWORK_NAME_LENGTH = 100

# The field check and the request check historically used different minimums.
# Both run; the request minimum is the stricter one.
MIN_FIELD_CONTENT_CHARS = 5
MIN_REQUEST_CONTENT_CHARS = 10
MAX_LINE_LENGTH = 1000

_INVALID_FILE_NAME_CHARS = re.compile(r'[<>:"|?*\\/]')
_WHITESPACE = re.compile(r"\s")


def validate_code(code, max_length: int = DEFAULT_MAX_CODE_LENGTH) -> str:
    """Validate submitted code and return it trimmed."""
    if not isinstance(code, str):
        raise InvalidInputError("Code must be a string")

    trimmed = code.strip()
    if not trimmed:
        raise InvalidInputError("Code cannot be empty or only whitespace")

    if len(trimmed) > max_length:
        raise InvalidInputError(f"Code exceeds maximum allowed size ({max_length} characters)")

    content_chars = len(_WHITESPACE.sub("", trimmed))
    if content_chars < MIN_FIELD_CONTENT_CHARS:
        raise InvalidInputError(
            f"Code must contain meaningful content (at least {MIN_FIELD_CONTENT_CHARS} non-whitespace characters)"
        )
    if content_chars < MIN_REQUEST_CONTENT_CHARS:
        raise InvalidInputError(
            f"Code must contain meaningful content (at least {MIN_REQUEST_CONTENT_CHARS} non-whitespace characters)"
        )

    for line in trimmed.split("\n"):
        if len(line) > MAX_LINE_LENGTH:
            raise InvalidInputError("Code contains unusually long lines which may indicate malicious content")

    return trimmed


def validate_file_name(file_name, max_length: int = DEFAULT_MAX_FILE_NAME_LENGTH) -> str | None:
    """Validate an optional file name. Unknown extensions are logged, not rejected."""
    if file_name is None:
        return None
    if not isinstance(file_name, str):
        raise InvalidInputError("File name must be a string")

    trimmed = file_name.strip()
    if not trimmed:
        raise InvalidInputError("File name cannot be empty")
    if len(trimmed) > max_length:
        raise InvalidInputError(f"File name must not exceed {max_length} characters")
    if _INVALID_FILE_NAME_CHARS.search(trimmed):
        raise InvalidInputError("File name contains invalid characters")

    ext = file_extension(trimmed)
    if ext is not None and language_for_extension(trimmed) is None:
        logger.warning("Uncommon file extension: %s", ext)

    return trimmed


def validate_framework(framework, max_length: int = DEFAULT_MAX_FRAMEWORK_NAME_LENGTH) -> str | None:
    """Validate an optional framework hint and return it normalised to lower case."""
    if framework is None:
        return None
    if not isinstance(framework, str):
        raise InvalidInputError("Framework must be a string")
    if len(framework) > max_length:
        raise InvalidInputError(f"Framework name must not exceed {max_length} characters")

    normalized = framework.strip().lower()
    if not normalized:
        return None
    if not is_supported_framework(normalized):
        logger.warning("Unsupported framework %r; using generic analysis.", normalized)
    return normalized


def validate_language(language) -> str | None:
    """Validate an explicitly requested language against the supported table."""
    if language is None:
        return None
    if not isinstance(language, str):
        raise InvalidInputError("Language must be a string")

    normalized = language.strip().lower()
    if not normalized:
        return None
    if not is_supported_language(normalized):
        supported = ", ".join(SUPPORTED_LANGUAGES)
        raise InvalidInputError(f"Unsupported language. Supported languages: {supported}")
    return normalized


def validate_request(request: ReviewRequest, settings: ReviewSettings) -> ReviewRequest:
    """Validate every field of ``request`` and return a normalised copy."""
    return ReviewRequest(
        code=validate_code(request.code, settings.max_code_length),
        language=validate_language(request.language),
        file_name=validate_file_name(request.file_name, settings.max_file_name_length),
        framework=validate_framework(request.framework, settings.max_framework_name_length),
    )
