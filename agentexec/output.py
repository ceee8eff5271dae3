"""Output utilities.

Truncates large command output, detects binary content, strips ANSI escape
codes, renders commands for display, and renders file diffs.
"""

from __future__ import annotations

import difflib
import re
import shlex

# Default maximum output characters
DEFAULT_MAX_CHARS = 100_000

# Head portion of truncated output (20% of max)
HEAD_RATIO = 0.2

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")

SHELLS = ("bash", "sh", "zsh")


def truncate_output(output: str, max_chars: int | None = None) -> tuple[str, bool]:
    """Truncate output that exceeds the maximum character limit.

    Keeps the first 20% (head) and the last 80% (tail) of the budget with a
    marker in between.

    Returns:
        A tuple of (text, truncated).
    """
    max_c = max_chars if max_chars is not None else DEFAULT_MAX_CHARS
    if len(output) <= max_c:
        return output, False

    head_size = int(max_c * HEAD_RATIO)
    tail_size = max_c - head_size
    omitted = len(output) - head_size - tail_size
    marker = f"\n\n--- truncated {omitted} characters ---\n\n"
    return output[:head_size] + marker + output[-tail_size:], True


def is_binary(data: bytes) -> bool:
    """Detect binary content by looking for a null byte in the first 8KB."""
    return b"\x00" in data[:8192]


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def format_command_for_display(argv: list[str]) -> str:
    """Render argv the way a user would type it.

    ``bash -lc "<script>"`` is shown as the script itself.
    """
    if len(argv) == 3 and argv[0] in SHELLS and argv[1] in ("-lc", "-c"):
        return argv[2]
    return shlex.join(argv)


def render_diff(before: str, after: str, path: str) -> str:
    """Unified diff between two versions of a file; empty when unchanged."""
    if before == after:
        return ""
    lines = difflib.unified_diff(
        before.splitlines(keepends=True),
        after.splitlines(keepends=True),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
    )
    return "".join(line if line.endswith("\n") else line + "\n" for line in lines)
