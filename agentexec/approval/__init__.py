"""Approval: command keys, safety classification, and review decisions."""

from .engine import DENY_CONTINUE_NOTE, DENY_STOP_NOTE, ApprovalEngine
from .keys import APPLY_PATCH, derive_command_key, file_action_argv, is_shell_wrapped
from .safety import (
    CommandSafetyClassifier,
    SafetyClassifier,
    evaluate_allowlist,
    is_known_safe,
    match_glob,
    split_script,
)

__all__ = [
    "APPLY_PATCH",
    "ApprovalEngine",
    "CommandSafetyClassifier",
    "DENY_CONTINUE_NOTE",
    "DENY_STOP_NOTE",
    "SafetyClassifier",
    "derive_command_key",
    "evaluate_allowlist",
    "file_action_argv",
    "is_known_safe",
    "is_shell_wrapped",
    "match_glob",
    "split_script",
]
