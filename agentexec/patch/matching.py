"""Search text location cascade.

Each strategy looks for the search text of a block in the current buffer and
returns the matched spans, in order, as ``Match`` objects carrying the
replacement adapted to that strategy. The first strategy that finds anything
wins:

1. ``exact``: plain substring.
2. ``line_endings``: ``\\r\\n`` and ``\\r`` treated as ``\\n``.
3. ``whitespace``: whitespace runs collapsed to one space, ends trimmed.
4. ``unescape``: shell escaping artifacts (``\\$``, ``\\"``, ...) removed.
5. ``key_line``: anchored on the longest search line with a special character.

Every strategy reports all non-overlapping occurrences so the caller can
detect ambiguity.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from ..types import SearchReplaceBlock

logger = logging.getLogger(__name__)

_ESCAPE_RE = re.compile(r"\\([$\"|()\[\]])")
_SPECIAL_RE = re.compile(r"[^A-Za-z0-9\s]")
_LINE_BREAK_RE = re.compile(r"\r\n|\r")


@dataclass
class Match:
    """A located span ``content[start:end]`` and the text that replaces it."""

    start: int
    end: int
    replace_text: str
    strategy: str


def find_all(haystack: str, needle: str) -> list[int]:
    """Start offsets of non-overlapping occurrences."""
    positions: list[int] = []
    if not needle:
        return positions
    index = haystack.find(needle)
    while index != -1:
        positions.append(index)
        index = haystack.find(needle, index + len(needle))
    return positions


def normalize_line_endings(text: str) -> str:
    return _LINE_BREAK_RE.sub("\n", text)


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def unescape_shell(text: str) -> str:
    return _ESCAPE_RE.sub(r"\1", text)


def _normalized_line_endings_with_map(content: str) -> tuple[str, list[int]]:
    """Normalize line endings; ``bounds[i]`` is the original offset of normalized index ``i``."""
    chars: list[str] = []
    bounds: list[int] = []
    i = 0
    while i < len(content):
        bounds.append(i)
        if content[i] == "\r":
            chars.append("\n")
            i += 2 if content.startswith("\r\n", i) else 1
        else:
            chars.append(content[i])
            i += 1
    bounds.append(len(content))
    return "".join(chars), bounds


def _collapsed_with_map(content: str) -> tuple[str, list[int]]:
    """Collapse whitespace; ``starts[i]`` is the original offset of collapsed char ``i``."""
    chars: list[str] = []
    starts: list[int] = []
    in_space = False
    for i, ch in enumerate(content):
        if ch.isspace():
            if not in_space and chars:
                chars.append(" ")
                starts.append(i)
            in_space = True
        else:
            chars.append(ch)
            starts.append(i)
            in_space = False
    if chars and chars[-1] == " ":
        chars.pop()
        starts.pop()
    return "".join(chars), starts


def match_exact(content: str, block: SearchReplaceBlock) -> list[Match]:
    needle = block.search_text
    return [
        Match(start, start + len(needle), block.replace_text, "exact")
        for start in find_all(content, needle)
    ]


def match_line_endings(content: str, block: SearchReplaceBlock) -> list[Match]:
    needle = normalize_line_endings(block.search_text)
    normalized, bounds = _normalized_line_endings_with_map(content)
    replace = normalize_line_endings(block.replace_text)

    matches = []
    for start in find_all(normalized, needle):
        orig_start, orig_end = bounds[start], bounds[start + len(needle)]
        span = content[orig_start:orig_end]
        text = replace.replace("\n", "\r\n") if "\r\n" in span else replace
        matches.append(Match(orig_start, orig_end, text, "line_endings"))
    return matches


def match_whitespace(content: str, block: SearchReplaceBlock) -> list[Match]:
    needle = collapse_whitespace(block.search_text)
    if not needle:
        return []
    collapsed, starts = _collapsed_with_map(content)
    # The needle is trimmed, so both ends land on non-space characters.
    return [
        Match(starts[index], starts[index + len(needle) - 1] + 1, block.replace_text, "whitespace")
        for index in find_all(collapsed, needle)
    ]


def match_unescaped(content: str, block: SearchReplaceBlock) -> list[Match]:
    needle = unescape_shell(block.search_text)
    if needle == block.search_text:
        return []
    replace = unescape_shell(block.replace_text)
    return [
        Match(start, start + len(needle), replace, "unescape")
        for start in find_all(content, needle)
    ]


def match_key_line(content: str, block: SearchReplaceBlock) -> list[Match]:
    search = normalize_line_endings(block.search_text)
    keeps_newline = search.endswith("\n")
    search_lines = search.split("\n")
    if keeps_newline:
        search_lines.pop()

    candidates = [
        (index, line.strip())
        for index, line in enumerate(search_lines)
        if line.strip() and _SPECIAL_RE.search(line)
    ]
    if not candidates:
        return []
    key_index, key = max(candidates, key=lambda candidate: len(candidate[1]))

    file_lines = content.split("\n")
    windows: list[int] = []
    for position, line in enumerate(file_lines):
        if line.strip() != key:
            continue
        first = position - key_index
        last = first + len(search_lines)
        if first < 0 or last > len(file_lines):
            continue
        if windows and first < windows[-1] + len(search_lines):
            continue
        score = sum(
            1
            for offset, wanted in enumerate(search_lines)
            if file_lines[first + offset].strip() == wanted.strip()
        )
        # At least half of the search lines must agree with the window
        if score * 2 >= len(search_lines):
            windows.append(first)

    line_offsets = [0]
    for line in file_lines[:-1]:
        line_offsets.append(line_offsets[-1] + len(line) + 1)

    matches = []
    for first in windows:
        last = first + len(search_lines) - 1
        start = line_offsets[first]
        last_line = file_lines[last]
        end = line_offsets[last] + len(last_line[:-1] if last_line.endswith("\r") else last_line)
        if keeps_newline:
            end = min(line_offsets[last] + len(last_line) + 1, len(content))
        logger.debug("Key line %r anchored block at line %d", key, first + 1)
        matches.append(Match(start, end, block.replace_text, "key_line"))
    return matches


MatchStrategy = Callable[[str, SearchReplaceBlock], "list[Match]"]

MATCH_STRATEGIES: tuple[MatchStrategy, ...] = (
    match_exact,
    match_line_endings,
    match_whitespace,
    match_unescaped,
    match_key_line,
)


def locate(content: str, block: SearchReplaceBlock) -> list[Match]:
    """Run the cascade and return the first non-empty set of matches."""
    if block.search_text == "":
        return [Match(0, 0, block.replace_text, "empty")]
    for strategy in MATCH_STRATEGIES:
        matches = strategy(content, block)
        if matches:
            if strategy is not match_exact:
                logger.debug("Search text located by %s", matches[0].strategy)
            return matches
    return []
