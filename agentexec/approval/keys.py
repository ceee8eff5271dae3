"""Command key derivation.

A command key names a class of commands for the "always approve" memo.
File actions are submitted as ``["apply_patch", <kind>, <path>]`` and all
share one key, since their payload is never reused across calls.
"""

from __future__ import annotations

import json

from ..output import SHELLS

# argv[0] of a file action submitted for approval
APPLY_PATCH = "apply_patch"

SHELL_FLAGS = ("-lc", "-c")


def is_shell_wrapped(argv: list[str]) -> bool:
    """Whether argv is ``<shell> -lc <script>``."""
    return len(argv) >= 3 and argv[0] in SHELLS and argv[1] in SHELL_FLAGS


def file_action_argv(kind: str, path: str) -> list[str]:
    """Approval argv for a file action."""
    return [APPLY_PATCH, kind, path]


def derive_command_key(argv: list[str]) -> str:
    """Derive the command key for argv. Never raises.

    ``bash -lc "npm test --watch"`` and ``["npm", "install"]`` both map to
    ``npm``; every file action maps to ``apply_patch``.
    """
    if argv and argv[0] == APPLY_PATCH:
        return APPLY_PATCH

    if is_shell_wrapped(argv):
        tokens = argv[2].split()
        return tokens[0] if tokens else argv[0]

    if argv and argv[0].strip():
        return argv[0].strip()

    return json.dumps(argv)
