"""SEARCH/REPLACE patch engine.

Applies the blocks of a diff document, in order, to a progressively mutated
buffer. Each block must be located by the match cascade; a block whose
search text occurs several times is only broadcast to every occurrence when
the caller asked for it or the similarity gate judges it safe.
"""

from __future__ import annotations

import logging
import os

from ..errors import AmbiguousMatchError, NotFoundError, ParseError
from ..types import PatchResult, SearchReplaceBlock
from .diagnostics import ambiguous_message, find_similar_lines, not_found_message
from .matching import locate
from .parser import parse_search_replace
from .similarity import broadcast_is_safe

logger = logging.getLogger(__name__)

# Undecodable bytes survive a read/write round trip unchanged
FILE_ERRORS = "surrogateescape"


def apply_block(
    content: str, block: SearchReplaceBlock, replace_all: bool = False
) -> tuple[str, str]:
    """Apply one block and return ``(new_content, strategy)``.

    Raises:
        NotFoundError: No strategy located the search text.
        AmbiguousMatchError: Several occurrences and no safe broadcast.
    """
    matches = locate(content, block)
    if not matches:
        similar = find_similar_lines(content, block.search_text)
        raise NotFoundError(
            not_found_message(content, block.search_text, similar),
            block.search_text,
            similar,
        )

    strategy = matches[0].strategy
    if len(matches) > 1:
        if not replace_all and not broadcast_is_safe(block.search_text, block.replace_text):
            raise AmbiguousMatchError(
                ambiguous_message(block.search_text, len(matches)),
                block.search_text,
                len(matches),
            )
        logger.info("Replacing all %d occurrences of the search text", len(matches))

    # Identical search and replace text never changes the buffer, whichever
    # strategy matched.
    if block.search_text == block.replace_text:
        return content, strategy

    pieces = []
    cursor = 0
    for match in matches:
        pieces.append(content[cursor : match.start])
        pieces.append(match.replace_text)
        cursor = match.end
    pieces.append(content[cursor:])
    return "".join(pieces), strategy


def apply_search_replace(content: str, diff: str, replace_all: bool = False) -> PatchResult:
    """Apply a diff document to a buffer.

    Raises:
        ParseError: The document is malformed or has no blocks.
        NotFoundError: A block's search text could not be located.
        AmbiguousMatchError: A block matched several times and may not be broadcast.
    """
    blocks = parse_search_replace(diff)
    if not blocks:
        raise ParseError("No SEARCH/REPLACE blocks found")

    strategies = []
    for block in blocks:
        content, strategy = apply_block(content, block, replace_all)
        strategies.append(strategy)
    return PatchResult(content=content, applied=len(blocks), strategies=strategies)


def resolve_path(path: str, workdir: str | None = None) -> str:
    if workdir and not os.path.isabs(path):
        return os.path.abspath(os.path.join(workdir, path))
    return os.path.abspath(path)


def read_file(path: str, workdir: str | None = None) -> str:
    """Read a text file.

    Bytes that are not valid UTF-8 decode to lone surrogates, which
    ``write_to_file`` turns back into the same bytes.

    Raises:
        FileNotFoundError: The file does not exist.
    """
    resolved = resolve_path(path, workdir)
    if not os.path.isfile(resolved):
        raise FileNotFoundError(f"File does not exist: {path}")
    with open(resolved, "rb") as f:
        data = f.read()
    return data.decode("utf-8", errors=FILE_ERRORS)


def write_to_file(path: str, content: str, workdir: str | None = None) -> str:
    """Write a text file, creating parent directories as needed."""
    resolved = resolve_path(path, workdir)
    parent = os.path.dirname(resolved)
    if parent:
        os.makedirs(parent, exist_ok=True)
    # newline="" keeps the buffer's own line endings on every platform
    with open(resolved, "w", encoding="utf-8", errors=FILE_ERRORS, newline="") as f:
        f.write(content)
    logger.debug("Wrote %d characters to %s", len(content), resolved)
    return f"Successfully wrote {len(content)} characters to {path}"


def apply_search_replace_file(
    path: str, diff: str, workdir: str | None = None, replace_all: bool = False
) -> str:
    """Apply a diff document to a file in place and return a success message.

    The file is only rewritten when every block applied.
    """
    original = read_file(path, workdir)
    result = apply_search_replace(original, diff, replace_all)
    write_to_file(path, result.content, workdir)
    logger.info("Applied %d search/replace operation(s) to %s", result.applied, path)
    return f"Successfully applied {result.applied} search/replace operation(s) to {path}"
