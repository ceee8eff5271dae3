"""agentexec - approve, sandbox, run and patch on behalf of a coding agent."""

from .approval import ApprovalEngine, CommandSafetyClassifier, SafetyClassifier, derive_command_key
from .checkpoint import CheckpointManager
from .config import AgentExecConfig, configure_file_logging
from .dispatch import ActionDispatcher, parse_action
from .errors import (
    AgentExecError,
    AmbiguousMatchError,
    ExecutionError,
    NotFoundError,
    ParseError,
    RepetitionGuardTripped,
    RollbackPartialFailure,
    SandboxUnavailableError,
)
from .execution import (
    CommandExecutor,
    RepetitionGuard,
    adapt_command_for_platform,
    handle_exec_command,
    select_sandbox,
)
from .patch import (
    apply_search_replace,
    apply_search_replace_file,
    convert_legacy_patch,
    parse_search_replace,
)
from .session import Session
from .types import (
    ApprovalDecision,
    ApprovalPolicy,
    AskUser,
    AutoApprove,
    CommandConfirmation,
    ExecInput,
    ExecResult,
    FileDelete,
    FileEdit,
    FileWrite,
    FullAutoErrorMode,
    HandleExecCommandResult,
    ProposedAction,
    Reject,
    ReviewDecision,
    SandboxType,
    SearchReplaceBlock,
    ShellCommand,
)

__version__ = "0.1.0"

__all__ = [
    "ActionDispatcher",
    "AgentExecConfig",
    "AgentExecError",
    "AmbiguousMatchError",
    "ApprovalDecision",
    "ApprovalEngine",
    "ApprovalPolicy",
    "AskUser",
    "AutoApprove",
    "CheckpointManager",
    "CommandConfirmation",
    "CommandExecutor",
    "CommandSafetyClassifier",
    "ExecInput",
    "ExecResult",
    "ExecutionError",
    "FileDelete",
    "FileEdit",
    "FileWrite",
    "FullAutoErrorMode",
    "HandleExecCommandResult",
    "NotFoundError",
    "ParseError",
    "ProposedAction",
    "Reject",
    "RepetitionGuard",
    "RepetitionGuardTripped",
    "ReviewDecision",
    "RollbackPartialFailure",
    "SafetyClassifier",
    "SandboxType",
    "SandboxUnavailableError",
    "SearchReplaceBlock",
    "Session",
    "ShellCommand",
    "adapt_command_for_platform",
    "apply_search_replace",
    "apply_search_replace_file",
    "configure_file_logging",
    "convert_legacy_patch",
    "derive_command_key",
    "handle_exec_command",
    "parse_action",
    "parse_search_replace",
    "select_sandbox",
]
