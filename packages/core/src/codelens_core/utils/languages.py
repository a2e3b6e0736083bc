from __future__ import annotations

from types import MappingProxyType

SUPPORTED_LANGUAGES = MappingProxyType(
    {
        "javascript": ("js", "jsx", "mjs", "cjs"),
        "typescript": ("ts", "tsx"),
        "python": ("py", "pyw"),
        "java": ("java",),
        "cpp": ("cpp", "cc", "cxx", "c++"),
        "c": ("c",),
        "csharp": ("cs",),
        "go": ("go",),
        "rust": ("rs",),
        "php": ("php",),
        "ruby": ("rb",),
        "swift": ("swift",),
        "kotlin": ("kt", "kts"),
        "html": ("html", "htm"),
        "css": ("css",),
        "sql": ("sql",),
        "r": ("r",),
        "shell": ("sh", "bash"),
        "powershell": ("ps1",),
        "perl": ("pl",),
        "lua": ("lua",),
        "dart": ("dart",),
        "scala": ("scala",),
        "haskell": ("hs",),
    }
)

# Advisory only: unknown frameworks are still reviewed, just without framework context.
SUPPORTED_FRAMEWORKS = frozenset(
    {
        # JavaScript / TypeScript
        "react",
        "vue",
        "angular",
        "nextjs",
        "nuxt",
        "svelte",
        "express",
        "nest",
        "fastify",
        # Python
        "django",
        "flask",
        "fastapi",
        "pandas",
        "numpy",
        "tensorflow",
        "pytorch",
        # Java
        "spring",
        "springboot",
        "hibernate",
        "jakarta",
        "junit",
        "mockito",
        # C#
        "aspnet",
        "entityframework",
        "xunit",
        "nunit",
        # Mobile
        "reactnative",
        "flutter",
        "xamarin",
        "ionic",
        # Other
        "laravel",
        "rails",
        "gin",
        "echo",
        "rocket",
    }
)

DEFAULT_LANGUAGE = "javascript"
SAMPLE_CHARS = 500


def _build_extension_index() -> dict[str, str]:
    index: dict[str, str] = {}
    for language, extensions in SUPPORTED_LANGUAGES.items():
        for ext in extensions:
            index.setdefault(ext, language)  # first listed language wins
    return index


_EXTENSION_TO_LANGUAGE = MappingProxyType(_build_extension_index())


def _has_any(sample: str, *needles: str) -> bool:
    return any(n in sample for n in needles)


# Evaluated in order; the first predicate that matches decides. No scoring.
_HEURISTICS = (
    ("php", lambda s: "<?php" in s),
    ("python", lambda s: _has_any(s, "def ", "import ") and ":" in s),
    ("javascript", lambda s: "function" in s and "{" in s and "}" in s),
    ("java", lambda s: _has_any(s, "public class", "import java.")),
    ("cpp", lambda s: "#include" in s and _has_any(s, "iostream", "stdio.h")),
    ("csharp", lambda s: _has_any(s, "using System;", "namespace ")),
    ("go", lambda s: "package main" in s and "func " in s),
    ("rust", lambda s: "fn " in s and "let " in s),
    ("html", lambda s: _has_any(s, "<!DOCTYPE html>", "<html>")),
    ("css", lambda s: _has_any(s, "@import", "color:", "background:")),
    ("sql", lambda s: _has_any(s, "SELECT", "INSERT", "CREATE TABLE")),
)


def file_extension(file_name: str) -> str | None:
    base = file_name.rsplit("/", 1)[-1]
    if "." not in base:
        return None
    return base.rsplit(".", 1)[-1].lower() or None


def language_for_extension(file_name: str | None) -> str | None:
    """Return the language whose extension list contains the file's extension."""
    if not file_name:
        return None
    ext = file_extension(file_name)
    if ext is None:
        return None
    return _EXTENSION_TO_LANGUAGE.get(ext)


def detect_language(code: str, file_name: str | None = None) -> str:
    """Best-effort language guess: file extension first, then lexical sniffing.

    Only the first 500 characters of ``code`` are inspected. Falls back to
    javascript when nothing matches. Never raises.
    """
    by_extension = language_for_extension(file_name)
    if by_extension:
        return by_extension

    sample = (code or "")[:SAMPLE_CHARS]
    for language, matches in _HEURISTICS:
        if matches(sample):
            return language
    return DEFAULT_LANGUAGE


def is_supported_language(language: str | None) -> bool:
    return bool(language) and language.strip().lower() in SUPPORTED_LANGUAGES


def is_supported_framework(framework: str | None) -> bool:
    return bool(framework) and framework.strip().lower() in SUPPORTED_FRAMEWORKS
