"""Command execution: platform adaptation, sandboxing, recovery, and the repetition guard."""

from .executor import CommandExecutor
from .handler import ConfirmCallback, ask_user_permission, convert_result, handle_exec_command
from .local import SpawnOutcome, requires_shell, spawn_background, spawn_local
from .platform import COMMAND_MAP, OPTION_MAP, adapt_command_for_platform, is_windows
from .recovery import (
    RECOVERY_STRATEGIES,
    cmd_wrapper,
    direct_file_read,
    generate_windows_command_suggestion,
    is_not_found_failure,
    platform_adapted,
    powershell_listing,
    run_with_recovery,
)
from .repetition import RepetitionGuard
from .sandbox import (
    bubblewrap_command,
    default_writable_roots,
    seatbelt_command,
    select_sandbox,
)

__all__ = [
    "COMMAND_MAP",
    "CommandExecutor",
    "ConfirmCallback",
    "OPTION_MAP",
    "RECOVERY_STRATEGIES",
    "RepetitionGuard",
    "SpawnOutcome",
    "adapt_command_for_platform",
    "ask_user_permission",
    "bubblewrap_command",
    "cmd_wrapper",
    "convert_result",
    "default_writable_roots",
    "direct_file_read",
    "generate_windows_command_suggestion",
    "handle_exec_command",
    "is_not_found_failure",
    "is_windows",
    "platform_adapted",
    "powershell_listing",
    "requires_shell",
    "run_with_recovery",
    "seatbelt_command",
    "select_sandbox",
    "spawn_background",
    "spawn_local",
]
