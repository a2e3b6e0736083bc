"""Provider API key resolution.

Resolution order (stops at first success):
  1. The key already resolved into the config dict by load_config
     (GEMINI_API_KEY / GOOGLE_API_KEY, ANTHROPIC_API_KEY, OPENAI_API_KEY)
  2. An ``api_keys`` mapping in .codelens.yml, for local setups that keep
     keys out of the shell profile
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

API_KEY_ENV_VARS = {
    "gemini": "GEMINI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}


def resolve_api_key(provider: str, config: dict) -> str | None:
    """Return the API key for ``provider`` or None if no source has one.

    Never raises. Callers should check for None and emit a UsageError.
    """
    key = config.get(f"{provider}_api_key")
    if key:
        return key

    file_keys = config.get("api_keys") or {}
    key = file_keys.get(provider) if isinstance(file_keys, dict) else None
    if key:
        logger.debug("Resolved %s API key from config file.", provider)
        return key

    return None
