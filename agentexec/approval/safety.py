"""Policy-driven command safety classification.

A classifier looks at a command and the session's approval policy and
returns exactly one decision. Known read-only commands are approved
everywhere. Anything else needs a human below full-auto, and runs sandboxed
under full-auto; an unknown or destructive command is never approved to run
unsandboxed.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
from typing import Protocol

from ..output import format_command_for_display
from ..types import (
    ApprovalDecision,
    ApprovalPolicy,
    AskUser,
    AutoApprove,
    Reject,
)
from .keys import APPLY_PATCH, is_shell_wrapped

logger = logging.getLogger(__name__)

# Commands that only read state
SAFE_VERBS = frozenset(
    {
        "basename",
        "cat",
        "cd",
        "cmp",
        "cut",
        "date",
        "df",
        "diff",
        "dirname",
        "du",
        "echo",
        "false",
        "file",
        "grep",
        "head",
        "hostname",
        "id",
        "less",
        "ls",
        "nl",
        "printenv",
        "pwd",
        "readlink",
        "realpath",
        "rg",
        "sort",
        "stat",
        "tail",
        "tree",
        "true",
        "uname",
        "uniq",
        "wc",
        "which",
        "whoami",
    }
)

# Commands that can destroy data or escalate privileges
DESTRUCTIVE_VERBS = frozenset(
    {
        "chmod",
        "chown",
        "dd",
        "del",
        "format",
        "kill",
        "killall",
        "mkfs",
        "mv",
        "reboot",
        "rm",
        "rmdir",
        "shred",
        "shutdown",
        "su",
        "sudo",
        "truncate",
    }
)

SAFE_GIT_SUBCOMMANDS = frozenset({"status", "log", "diff", "show", "blame", "branch", "rev-parse"})

# find options that execute or delete
UNSAFE_FIND_OPTIONS = frozenset(
    {"-exec", "-execdir", "-ok", "-okdir", "-delete", "-fprint", "-fls"}
)

# Operators that chain independent commands
SEGMENT_SEPARATORS = frozenset({"&&", "||", ";", "|"})


class SafetyClassifier(Protocol):
    """Decides how a command may run under a given policy."""

    def assess(
        self,
        argv: list[str],
        workdir: str | None,
        policy: ApprovalPolicy,
        writable_roots: list[str],
    ) -> ApprovalDecision: ...


def match_glob(text: str, pattern: str) -> bool:
    """Match text against a glob pattern where ``*`` matches anything."""
    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.fullmatch(regex, text, re.DOTALL) is not None


def evaluate_allowlist(command: str, patterns: list[str]) -> bool:
    """Whether the command string matches any allowlist pattern."""
    trimmed = command.strip()
    return any(match_glob(trimmed, pattern) for pattern in patterns)


def is_within_root(path: str, root: str) -> bool:
    """Whether a resolved path is ``root`` itself or below it."""
    base = os.path.realpath(root)
    return path == base or path.startswith(base.rstrip(os.sep) + os.sep)


def split_script(script: str) -> list[list[str]] | None:
    """Split a shell script into simple command segments.

    Returns ``None`` when the script uses redirection, subshells, or quoting
    that cannot be tokenized, since such scripts cannot be judged per segment.
    """
    lexer = shlex.shlex(script, posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    try:
        tokens = list(lexer)
    except ValueError:
        return None

    segments: list[list[str]] = [[]]
    for token in tokens:
        if token in SEGMENT_SEPARATORS:
            segments.append([])
        elif token and set(token) <= set("();<>|&"):
            return None
        else:
            segments[-1].append(token)
    return [segment for segment in segments if segment]


def is_known_safe(argv: list[str]) -> bool:
    """Whether a simple command is read-only."""
    verb = os.path.basename(argv[0])
    if verb == "git":
        return len(argv) > 1 and argv[1] in SAFE_GIT_SUBCOMMANDS
    if verb == "find":
        return not any(arg in UNSAFE_FIND_OPTIONS for arg in argv[1:])
    return verb in SAFE_VERBS


def is_destructive(argv: list[str]) -> bool:
    return os.path.basename(argv[0]) in DESTRUCTIVE_VERBS


class CommandSafetyClassifier:
    """Default classifier backed by verb tables and an optional glob allowlist."""

    def __init__(self, allowlist: list[str] | None = None):
        self.allowlist = list(allowlist or [])

    def assess(
        self,
        argv: list[str],
        workdir: str | None,
        policy: ApprovalPolicy,
        writable_roots: list[str],
    ) -> ApprovalDecision:
        if not argv or not argv[0].strip():
            return Reject(reason="Empty command")

        if argv[0] == APPLY_PATCH:
            return self._assess_file_action(argv, workdir, policy, writable_roots)

        if self.allowlist and evaluate_allowlist(format_command_for_display(argv), self.allowlist):
            return AutoApprove(sandboxed=False, reason="Matches allowlist")

        segments = self._segments(argv)
        if segments and all(is_known_safe(segment) for segment in segments):
            return AutoApprove(sandboxed=False, reason="Known-safe read-only command")

        destructive = segments is not None and any(is_destructive(s) for s in segments)
        reason = "Destructive command" if destructive else "Unrecognized command"

        if policy == ApprovalPolicy.FULL_AUTO:
            return AutoApprove(sandboxed=True, reason=reason)
        return AskUser(reason=reason)

    def _segments(self, argv: list[str]) -> list[list[str]] | None:
        if is_shell_wrapped(argv):
            return split_script(argv[2])
        if len(argv) == 1 and " " in argv[0].strip():
            return split_script(argv[0])
        return [argv]

    def _assess_file_action(
        self,
        argv: list[str],
        workdir: str | None,
        policy: ApprovalPolicy,
        writable_roots: list[str],
    ) -> ApprovalDecision:
        if policy == ApprovalPolicy.SUGGEST:
            return AskUser(reason="File changes require approval")
        if len(argv) < 3:
            return AskUser(reason="File action without a path")

        base = workdir or os.getcwd()
        target = os.path.realpath(os.path.join(base, argv[2]))
        roots = writable_roots or [base]
        if any(is_within_root(target, root) for root in roots):
            return AutoApprove(sandboxed=False, reason="Path inside writable roots")

        logger.debug("File action outside writable roots: %s", target)
        return AskUser(reason=f"{argv[2]} is outside the writable roots")
