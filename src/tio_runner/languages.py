from __future__ import annotations

import re

from .errors import UnsupportedLanguageError

DEFAULT_TIO_LANGUAGES: dict[str, str] = {
    "c": "c-gcc",
    "cpp": "cpp-gcc",
    "cc": "cpp-gcc",
    "cxx": "cpp-gcc",
    "csharp": "cs-mono",
    "python": "python3",
    "ruby": "ruby",
    "rust": "rust",
    "java": "java-openjdk",
    "js": "javascript-node",
    "go": "go",
    "hs": "haskell",
}

# Checked in order; the first matching prefix wins.
_TIO_MATCHERS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^cpp"), "cpp"),
    (re.compile(r"^c\+\+"), "cpp"),
    (re.compile(r"^c-?(gcc|clang)"), "c"),
    (re.compile(r"^c$"), "c"),
    (re.compile(r"^python"), "python"),
    (re.compile(r"^pypy"), "python"),
    (re.compile(r"^ruby"), "ruby"),
    (re.compile(r"^rust"), "rust"),
    (re.compile(r"^java(?!script)"), "java"),
    (re.compile(r"^javascript"), "js"),
    (re.compile(r"^node"), "js"),
    (re.compile(r"^typescript"), "js"),
    (re.compile(r"^go"), "go"),
    (re.compile(r"^haskell"), "hs"),
    (re.compile(r"^hs"), "hs"),
    (re.compile(r"^cs"), "csharp"),
    (re.compile(r"^csharp"), "csharp"),
)


def map_language(name: str, compiler: str = "") -> str:
    """Translate an internal language id and compiler hint into a tio.run token.

    Example:
        ```python
        map_language("cpp", compiler="clang++")  # "cpp-clang"
        ```
    """
    compiler = compiler.lower()
    if name in {"cpp", "cc", "cxx"}:
        return "cpp-clang" if "clang" in compiler else "cpp-gcc"
    if name == "c":
        return "c-clang" if "clang" in compiler else "c-gcc"
    if name == "python":
        return "python2" if "python2" in compiler else "python3"
    if name in {"ruby", "js", "java", "rust", "go", "hs", "csharp"}:
        return DEFAULT_TIO_LANGUAGES[name]
    raise UnsupportedLanguageError(f"Unsupported language for tio.run: {name}")


def default_tio_language(choice: str) -> str | None:
    """Return the default tio.run token for a language choice, if any.

    Example:
        ```python
        default_tio_language("Python")  # "python3"
        ```
    """
    return DEFAULT_TIO_LANGUAGES.get(choice.lower())


def choice_for_tio_language(tio_language: str | None) -> str | None:
    """Reverse-map a tio.run token to the closest internal language choice.

    Example:
        ```python
        choice_for_tio_language("pypy3")  # "python"
        ```
    """
    if not tio_language:
        return None
    normalized = tio_language.lower()
    for choice, token in DEFAULT_TIO_LANGUAGES.items():
        if normalized == token:
            return choice
    for pattern, choice in _TIO_MATCHERS:
        if pattern.search(normalized):
            return choice
    return None


def is_locally_supported(tio_language: str | None) -> bool:
    """Return True when a tio.run token maps back to a known language choice.

    Example:
        ```python
        is_locally_supported("brainfuck")  # False
        ```
    """
    return choice_for_tio_language(tio_language) is not None


def sanitize_extension(tio_language: str) -> str:
    """Derive a filesystem-safe extension from a tio.run token.

    Example:
        ```python
        sanitize_extension("C++ (gcc)")  # "c-gcc"
        ```
    """
    sanitized = re.sub(r"[^a-z0-9]+", "-", tio_language.lower()).strip("-")
    return sanitized or "tio"
