"""Conversion of ``*** Begin Patch`` documents into file operations.

Accepted format::

    *** Begin Patch
    *** Add File: path
    +line
    *** Delete File: path
    *** Update File: path
    @@ optional hunk header
     context line
    -removed line
    +added line
    *** End Patch

Every hunk of an Update section becomes one SEARCH/REPLACE block: context
and removed lines form the search text, context and added lines the
replacement.
"""

from __future__ import annotations

import logging

from ..errors import ParseError
from ..types import FileDelete, FileEdit, FileOperation, FileWrite

logger = logging.getLogger(__name__)

PATCH_BEGIN = "*** Begin Patch"
PATCH_END = "*** End Patch"
ADD_FILE_PREFIX = "*** Add File: "
DELETE_FILE_PREFIX = "*** Delete File: "
UPDATE_FILE_PREFIX = "*** Update File: "
END_OF_FILE_MARKER = "*** End of File"
HUNK_PREFIX = "@@"


def is_legacy_patch(text: str) -> bool:
    return text.lstrip().startswith(PATCH_BEGIN)


def format_block(search_lines: list[str], replace_lines: list[str]) -> str:
    """Render one SEARCH/REPLACE block."""
    return "\n".join(
        ["------- SEARCH", *search_lines, "=======", *replace_lines, "+++++++ REPLACE"]
    )


class _Update:
    def __init__(self, path: str):
        self.path = path
        self.hunks: list[tuple[list[str], list[str]]] = []
        self.new_hunk()

    def new_hunk(self) -> None:
        if not self.hunks or any(self.hunks[-1]):
            self.hunks.append(([], []))

    def to_operation(self) -> FileEdit:
        blocks = [format_block(old, new) for old, new in self.hunks if old or new]
        if not blocks:
            raise ParseError(f"Update of {self.path} has no changes")
        return FileEdit(path=self.path, diff="\n".join(blocks))


def convert_legacy_patch(text: str) -> list[FileOperation]:
    """Convert a ``*** Begin Patch`` document into file operations, in order.

    Raises:
        ParseError: The begin/end markers are missing or a section is malformed.
    """
    body = text.replace("\r\n", "\n").strip("\n")
    if not body.startswith(PATCH_BEGIN + "\n") or not body.endswith("\n" + PATCH_END):
        raise ParseError("Invalid patch format: Missing begin/end markers")
    lines = body[len(PATCH_BEGIN) + 1 : -len(PATCH_END) - 1].split("\n")

    operations: list[FileOperation] = []
    current: FileWrite | FileDelete | _Update | None = None
    added: list[str] = []

    def flush() -> None:
        if isinstance(current, FileWrite):
            current.content = "\n".join(added) + "\n" if added else ""
            operations.append(current)
        elif isinstance(current, _Update):
            operations.append(current.to_operation())
        elif isinstance(current, FileDelete):
            operations.append(current)

    for number, line in enumerate(lines, start=2):
        if line.startswith(END_OF_FILE_MARKER):
            continue
        if line.startswith((ADD_FILE_PREFIX, DELETE_FILE_PREFIX, UPDATE_FILE_PREFIX)):
            flush()
            added = []
            prefix, _, path = line.partition(": ")
            path = path.strip()
            if not path:
                raise ParseError("Missing file path", number)
            if prefix == ADD_FILE_PREFIX[:-2]:
                current = FileWrite(path=path, content="")
            elif prefix == DELETE_FILE_PREFIX[:-2]:
                current = FileDelete(path=path)
            else:
                current = _Update(path)
            continue

        if current is None:
            continue

        if isinstance(current, FileWrite):
            if line.startswith("+"):
                added.append(line[1:])
        elif isinstance(current, _Update):
            old, new = current.hunks[-1]
            if line.startswith(HUNK_PREFIX):
                current.new_hunk()
            elif line.startswith("-"):
                old.append(line[1:])
            elif line.startswith("+"):
                new.append(line[1:])
            else:
                context = line[1:] if line.startswith(" ") else line
                old.append(context)
                new.append(context)
        elif line:
            raise ParseError(f"Unexpected content after Delete File: {line!r}", number)

    flush()
    logger.debug("Converted legacy patch into %d operation(s)", len(operations))
    return operations
