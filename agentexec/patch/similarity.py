"""Similarity gate for broadcasting a replacement to every occurrence."""

from __future__ import annotations

import re

# Above this similarity a search/replace pair is a small tweak of the same text
SIMILARITY_THRESHOLD = 0.8

# Additions that are safe to repeat at every occurrence
SAFE_ADDITION_PATTERNS = (
    re.compile(r"^[A-Za-z][A-Za-z0-9-]*:\s*\S"),  # header line, e.g. "Connection: close"
    re.compile(r"^import\s+\S"),
    re.compile(r"^from\s+\S+\s+import\s+\S"),
    re.compile(r"^#include\s*[<\"]"),
    re.compile(r"^using\s+[\w.]+;"),
    re.compile(r"^(const|let|var)\s+\w+\s*=\s*require\("),
)


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """``(maxLen - editDistance) / maxLen``; 1.0 for two empty strings."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return (max_len - levenshtein(a, b)) / max_len


def is_safe_addition(search_text: str, replace_text: str) -> bool:
    """Whether the replacement keeps the search text and only adds known-safe lines."""
    if not search_text or search_text not in replace_text or search_text == replace_text:
        return False
    added = replace_text.replace(search_text, "", 1)
    lines = [line.strip() for line in re.split(r"\r\n|\r|\n", added) if line.strip()]
    return bool(lines) and all(
        any(pattern.match(line) for pattern in SAFE_ADDITION_PATTERNS) for line in lines
    )


def broadcast_is_safe(search_text: str, replace_text: str) -> bool:
    """Whether a replacement may be applied to every occurrence without being asked to."""
    if is_safe_addition(search_text, replace_text):
        return True
    return similarity(search_text, replace_text) > SIMILARITY_THRESHOLD
