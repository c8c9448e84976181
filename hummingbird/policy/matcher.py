"""Pattern matching for permission rules."""

import re
from functools import lru_cache
from typing import Any

from hummingbird.structured import stringify


@lru_cache(maxsize=512)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a glob (``*`` and ``?`` only) into an anchored regex."""
    parts: list[str] = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


@lru_cache(maxsize=512)
def _compile_regex(pattern: str) -> re.Pattern[str]:
    """Compile regex pattern with literal fallback for invalid regex input."""
    try:
        return re.compile(pattern)
    except re.error:
        return re.compile(re.escape(pattern))


def match_glob(value: str, pattern: str) -> bool:
    """Return whether the whole value matches the glob pattern.

    ``*`` matches any run of characters (including none), ``?`` exactly one;
    everything else is literal.
    """
    return _compile_glob(pattern).fullmatch(value) is not None


def is_regex_pattern(pattern: str) -> bool:
    """Patterns written as ``/.../`` are regular expressions."""
    return len(pattern) >= 2 and pattern.startswith("/") and pattern.endswith("/")


def match_value(value: Any, pattern: str) -> bool:
    """Match a single argument value against a glob or ``/regex/`` pattern."""
    text = stringify(value)
    if is_regex_pattern(pattern):
        return _compile_regex(pattern[1:-1]).search(text) is not None
    return match_glob(text, pattern)


def match_args(args: dict[str, Any], patterns: dict[str, str]) -> bool:
    """Return whether every patterned argument is present and matches."""
    for key, pattern in patterns.items():
        if key not in args:
            return False
        if not match_value(args[key], pattern):
            return False
    return True


def is_more_specific(pattern1: str, pattern2: str) -> bool:
    """Return whether pattern1 is more specific than pattern2.

    Fewer ``*`` wildcards wins; on a tie the longer pattern wins. The
    permission engine evaluates rules strictly in list order and does not
    consult this.
    """
    wildcards1 = pattern1.count("*")
    wildcards2 = pattern2.count("*")
    if wildcards1 != wildcards2:
        return wildcards1 < wildcards2
    return len(pattern1) > len(pattern2)
