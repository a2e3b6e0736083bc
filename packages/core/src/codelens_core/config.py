import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "gemini",
    "model_name": None,  # None = the provider's built-in default model
    "max_code_length": 15000,
    "max_file_name_length": 255,
    "max_framework_name_length": 100,
    "request_timeout_ms": 45000,
    "max_retries": 3,
    "guidelines": None,  # None = use built-in default; set to a path string to override
    "log_level": "WARNING",
}

# Environment variables that override integer limits from the config file.
_INT_ENV_OVERRIDES = {
    "MAX_CODE_LENGTH": "max_code_length",
    "MAX_FILE_NAME_LENGTH": "max_file_name_length",
    "MAX_FRAMEWORK_NAME_LENGTH": "max_framework_name_length",
    "AI_REQUEST_TIMEOUT": "request_timeout_ms",
    "AI_MAX_RETRIES": "max_retries",
}

BUILTIN_GUIDELINES_DIR = Path(__file__).parent / "guidelines"
_BUILTIN_DEFAULT = BUILTIN_GUIDELINES_DIR / "reviewer.md"


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


def load_config(config_path: str = ".codelens.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .codelens.yml in the current directory
      3. Environment variable overrides (limits, model name, log level)
      4. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    for env_name, key in _INT_ENV_OVERRIDES.items():
        value = _env_int(env_name)
        if value is not None:
            config[key] = value
    if os.environ.get("AI_MODEL_NAME"):
        config["model_name"] = os.environ["AI_MODEL_NAME"]
    if os.environ.get("LOG_LEVEL"):
        config["log_level"] = os.environ["LOG_LEVEL"]

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["log_level"] = str(config.get("log_level") or DEFAULT_CONFIG["log_level"]).upper()

    # Resolve credentials from environment variables
    config["gemini_api_key"] = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config


def load_guidelines(config: dict) -> str:
    """
    Load the reviewer's system instruction.

    If ``guidelines`` is set in config, loads from that path (relative to cwd).
    Otherwise falls back to the built-in default.
    """
    custom_path = config.get("guidelines")
    if custom_path:
        p = Path(custom_path)
        if not p.exists():
            raise FileNotFoundError(f"Guidelines file not found: {custom_path}")
        return p.read_text()

    if _BUILTIN_DEFAULT.exists():
        return _BUILTIN_DEFAULT.read_text()

    raise FileNotFoundError("No guidelines configured and built-in default is missing.")


@dataclass(frozen=True)
class ReviewSettings:
    """Immutable pipeline limits, built once from the merged config dict."""

    model: str = DEFAULT_CONFIG["model"]
    model_name: Optional[str] = None
    max_code_length: int = DEFAULT_CONFIG["max_code_length"]
    max_file_name_length: int = DEFAULT_CONFIG["max_file_name_length"]
    max_framework_name_length: int = DEFAULT_CONFIG["max_framework_name_length"]
    request_timeout_ms: int = DEFAULT_CONFIG["request_timeout_ms"]
    max_retries: int = DEFAULT_CONFIG["max_retries"]

    @classmethod
    def from_config(cls, config: dict) -> "ReviewSettings":
        settings = cls(
            model=config.get("model", DEFAULT_CONFIG["model"]),
            model_name=config.get("model_name"),
            max_code_length=int(config.get("max_code_length", DEFAULT_CONFIG["max_code_length"])),
            max_file_name_length=int(config.get("max_file_name_length", DEFAULT_CONFIG["max_file_name_length"])),
            max_framework_name_length=int(
                config.get("max_framework_name_length", DEFAULT_CONFIG["max_framework_name_length"])
            ),
            request_timeout_ms=int(config.get("request_timeout_ms", DEFAULT_CONFIG["request_timeout_ms"])),
            max_retries=int(config.get("max_retries", DEFAULT_CONFIG["max_retries"])),
        )
        if settings.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if settings.request_timeout_ms <= 0:
            raise ValueError("request_timeout_ms must be positive")
        return settings

    @property
    def request_timeout_s(self) -> float:
        return self.request_timeout_ms / 1000
