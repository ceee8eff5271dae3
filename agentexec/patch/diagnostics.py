"""Diagnostic text for search text that could not be located.

The message is read by a human or by the agent itself, which must be able to
correct its next edit from it alone.
"""

from __future__ import annotations

import difflib

# Minimum similarity for suggesting the file's own text
SUGGESTION_CUTOFF = 0.75

# Lines of current content shown in a not-found diagnostic
PREVIEW_LINES = 20

MAX_SIMILAR_LINES = 3

# Leading characters compared by the similar-line heuristic
SIMILAR_PREFIX = 20

DEBUGGING_HINTS = """DEBUGGING HINTS:
1. Check for exact whitespace and indentation match
2. Look for special characters that might need escaping
3. Consider using smaller, more specific search blocks
4. Read the file to examine its exact content first
5. Try searching for a unique line first, then expand context"""


def find_similar_lines(content: str, search_text: str) -> list[tuple[int, str]]:
    """Up to three ``(line_number, line)`` pairs that overlap the first search line."""
    first = next((line.strip() for line in search_text.split("\n") if line.strip()), "")
    if not first:
        return []
    similar = []
    for number, line in enumerate(content.split("\n"), start=1):
        trimmed = line.strip()
        if not trimmed:
            continue
        if first[:SIMILAR_PREFIX] in trimmed or trimmed[:SIMILAR_PREFIX] in first:
            similar.append((number, trimmed))
            if len(similar) == MAX_SIMILAR_LINES:
                break
    return similar


def _ratio(a: str, b: str) -> float:
    matcher = difflib.SequenceMatcher(None, a, b)
    if matcher.real_quick_ratio() < SUGGESTION_CUTOFF or matcher.quick_ratio() < SUGGESTION_CUTOFF:
        return 0.0
    return matcher.ratio()


def suggest_exact_text(content: str, search_text: str) -> str | None:
    """The file's own text for the run of lines closest to the search lines.

    Lines are compared trimmed; the run is suggested when its average line
    similarity reaches ``SUGGESTION_CUTOFF``.
    """
    wanted = [line.strip() for line in search_text.split("\n") if line.strip()]
    if not wanted:
        return None
    lines = content.split("\n")
    trimmed = [line.strip() for line in lines]

    best_score, best_first = 0.0, None
    for first in range(len(lines) - len(wanted) + 1):
        if _ratio(trimmed[first], wanted[0]) == 0.0:
            continue
        score = sum(
            difflib.SequenceMatcher(None, trimmed[first + offset], want).ratio()
            for offset, want in enumerate(wanted)
        ) / len(wanted)
        if score > best_score:
            best_score, best_first = score, first

    if best_first is None or best_score < SUGGESTION_CUTOFF:
        return None
    window = lines[best_first : best_first + len(wanted)]
    return "\n".join(line.rstrip("\r") for line in window)


def not_found_message(content: str, search_text: str, similar: list[tuple[int, str]]) -> str:
    search_lines = search_text.split("\n")
    file_lines = content.split("\n")

    parts = [
        "Search content not found in file:",
        f"SEARCH ({len(search_lines)} lines):",
        search_text,
        "",
        f"FILE CONTENT PREVIEW (first {PREVIEW_LINES} lines):",
    ]
    preview = enumerate(file_lines[:PREVIEW_LINES], start=1)
    parts += [f"{number}: {line}" for number, line in preview]
    if len(file_lines) > PREVIEW_LINES:
        parts.append("... (truncated)")
    parts += ["", DEBUGGING_HINTS]

    if similar:
        parts += ["", "SIMILAR LINES FOUND:"]
        parts += [f"Line {number}: {line}" for number, line in similar]

    exact = suggest_exact_text(content, search_text)
    if exact is not None:
        parts += ["", f"Use this exact text instead:\n{exact}"]

    return "\n".join(parts)


def ambiguous_message(search_text: str, occurrences: int) -> str:
    return (
        f"Found {occurrences} occurrences of the search text. "
        "Add more surrounding context to make it unique, or set replace_all "
        "to change every occurrence.\n"
        f"SEARCH:\n{search_text}"
    )
