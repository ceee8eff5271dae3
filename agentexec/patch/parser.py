"""SEARCH/REPLACE document parser.

Grammar, one block::

    ------- SEARCH          (or <<<<<<< SEARCH)
    literal search lines
    =======
    literal replace lines
    +++++++ REPLACE         (or >>>>>>> REPLACE)

Marker characters may repeat three or more times. Lines are split on
``\\n`` and one trailing ``\\r`` is dropped from every line, so search and
replace text always use ``\\n``.
"""

from __future__ import annotations

import logging
from enum import Enum

from ..errors import ParseError
from ..types import SearchReplaceBlock

logger = logging.getLogger(__name__)

SEARCH_LEADS = frozenset("-<")
DIVIDER_LEADS = frozenset("=")
REPLACE_LEADS = frozenset("+>")

MIN_MARKER_LENGTH = 3


class ParserState(Enum):
    NONE = "none"
    SEARCH = "search"
    REPLACE = "replace"


def _is_marker(line: str, leads: frozenset[str], word: str | None = None) -> bool:
    head = line
    if word is not None:
        suffix = " " + word
        if not line.endswith(suffix):
            return False
        head = line[: -len(suffix)]
    return (
        len(head) >= MIN_MARKER_LENGTH
        and head[0] in leads
        and head == head[0] * len(head)
    )


def is_search_start(line: str) -> bool:
    return _is_marker(line, SEARCH_LEADS, "SEARCH")


def is_divider(line: str) -> bool:
    return _is_marker(line, DIVIDER_LEADS)


def is_replace_end(line: str) -> bool:
    return _is_marker(line, REPLACE_LEADS, "REPLACE")


def parse_search_replace(diff: str) -> list[SearchReplaceBlock]:
    """Parse a diff document into blocks, in document order.

    Text outside of blocks is ignored.

    Raises:
        ParseError: Markers are out of order or a block is left open.
    """
    blocks: list[SearchReplaceBlock] = []
    state = ParserState.NONE
    search_lines: list[str] = []
    content: list[str] = []

    for number, raw in enumerate(diff.split("\n"), start=1):
        line = raw[:-1] if raw.endswith("\r") else raw

        if is_search_start(line):
            if state != ParserState.NONE:
                raise ParseError(
                    "Unexpected SEARCH block start - previous block not completed", number
                )
            state = ParserState.SEARCH
            content = []
        elif is_divider(line):
            if state != ParserState.SEARCH:
                raise ParseError("Unexpected ======= without preceding SEARCH block", number)
            search_lines = content
            state = ParserState.REPLACE
            content = []
        elif is_replace_end(line):
            if state != ParserState.REPLACE:
                raise ParseError("Unexpected REPLACE block end without preceding content", number)
            blocks.append(
                SearchReplaceBlock(
                    search_text="\n".join(search_lines), replace_text="\n".join(content)
                )
            )
            state = ParserState.NONE
            content = []
        elif state != ParserState.NONE:
            content.append(line)

    if state != ParserState.NONE:
        raise ParseError("Incomplete SEARCH/REPLACE block - missing closing marker")

    logger.debug("Parsed %d SEARCH/REPLACE block(s)", len(blocks))
    return blocks
