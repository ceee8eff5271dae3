"""Shared types for the execution substrate.

Defines proposed actions, approval decisions, command execution inputs and
results, checkpoint records, and the structured results handed back to the
caller.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

# -- Proposed actions ---------------------------------------------------------


class ShellCommand(BaseModel):
    """An agent-proposed shell command."""

    type: Literal["shell"] = "shell"
    argv: list[str] = Field(description="Command tokens, argv style")
    workdir: str | None = Field(default=None, description="Working directory for the command")
    timeout_ms: int | None = Field(default=None, description="Timeout in milliseconds")
    writable_roots: list[str] = Field(
        default_factory=list, description="Additional directories the command may write to"
    )
    run_in_background: bool = Field(
        default=False, description="Start the process detached and return immediately"
    )


class FileEdit(BaseModel):
    """Edit an existing file with a SEARCH/REPLACE diff document."""

    type: Literal["edit"] = "edit"
    path: str = Field(description="Path to the file to edit")
    diff: str = Field(description="SEARCH/REPLACE diff document")
    replace_all: bool = Field(
        default=False, description="Replace every occurrence of each search text"
    )


class FileWrite(BaseModel):
    """Create or overwrite a file."""

    type: Literal["write"] = "write"
    path: str = Field(description="Path to the file to write")
    content: str = Field(description="Full file content")


class FileDelete(BaseModel):
    """Delete a file."""

    type: Literal["delete"] = "delete"
    path: str = Field(description="Path to the file to delete")


FileOperation = Annotated[Union[FileEdit, FileWrite, FileDelete], Field(discriminator="type")]

ProposedAction = Annotated[
    Union[ShellCommand, FileEdit, FileWrite, FileDelete], Field(discriminator="type")
]


# -- Approval -------------------------------------------------------------------


class ApprovalPolicy(str, Enum):
    """How much autonomy the agent has before a human must confirm."""

    SUGGEST = "suggest"
    AUTO_EDIT = "auto-edit"
    FULL_AUTO = "full-auto"

    @property
    def rank(self) -> int:
        return _POLICY_RANK[self]


_POLICY_RANK = {
    ApprovalPolicy.SUGGEST: 0,
    ApprovalPolicy.AUTO_EDIT: 1,
    ApprovalPolicy.FULL_AUTO: 2,
}


class FullAutoErrorMode(str, Enum):
    """What to do when a sandboxed, auto-approved command fails."""

    IGNORE_AND_CONTINUE = "ignore-and-continue"
    ASK_USER = "ask-user"


class AutoApprove(BaseModel):
    """Run without asking; ``sandboxed`` says whether confinement is required."""

    type: Literal["auto-approve"] = "auto-approve"
    sandboxed: bool
    reason: str | None = None


class AskUser(BaseModel):
    """Suspend until a human reviews the command."""

    type: Literal["ask-user"] = "ask-user"
    reason: str | None = None


class Reject(BaseModel):
    """Refuse the command outright."""

    type: Literal["reject"] = "reject"
    reason: str


ApprovalDecision = Annotated[Union[AutoApprove, AskUser, Reject], Field(discriminator="type")]


class ReviewDecision(str, Enum):
    """A human's answer to an approval prompt."""

    YES = "yes"
    ALWAYS = "always"
    NO_CONTINUE = "no-continue"
    NO_EXIT = "no-exit"
    EXPLAIN = "explain"


class CommandConfirmation(BaseModel):
    """What the confirmation callback returns for a prompted command."""

    review: ReviewDecision
    custom_deny_message: str | None = Field(
        default=None, description="Message relayed to the agent on no-continue"
    )
    explanation: str | None = Field(
        default=None, description="Explanation shown to the user when review is explain"
    )


class ReviewOutcome(BaseModel):
    """Result of mapping a ReviewDecision onto execution."""

    approved: bool
    decided: bool = True
    note: str | None = None


# -- Execution ------------------------------------------------------------------


class SandboxType(str, Enum):
    """OS confinement mechanism used to run a command."""

    NONE = "none"
    MACOS_SEATBELT = "macos.seatbelt"
    LINUX_BUBBLEWRAP = "linux.bubblewrap"


ErrorKind = Literal["not_found", "spawn", "timeout", "repetition"]


class ExecInput(BaseModel):
    """Input to the command executor."""

    argv: list[str] = Field(description="Command tokens, argv style")
    workdir: str | None = Field(default=None, description="Working directory for the command")
    timeout_ms: int | None = Field(default=None, description="Timeout in milliseconds")
    writable_roots: list[str] = Field(
        default_factory=list, description="Additional directories the sandbox may write to"
    )
    run_in_background: bool = False


class ExecResult(BaseModel):
    """Result of a command execution.

    A non-zero exit code is not an error at this layer; callers decide
    whether to escalate.
    """

    exit_code: int = Field(description="Process exit code (0 = success)")
    stdout: str = Field(default="", description="Standard output")
    stderr: str = Field(default="", description="Standard error")
    duration_ms: int = Field(default=0, description="Execution duration in milliseconds")
    truncated: bool = Field(
        default=False, description="Whether output was truncated due to size limits"
    )
    error_kind: ErrorKind | None = Field(
        default=None, description="Classification of an executor-level failure"
    )


class ConversationNote(BaseModel):
    """A synthetic user turn appended so the agent learns why its action did not run."""

    role: Literal["user"] = "user"
    text: str


class HandleExecCommandResult(BaseModel):
    """Structured result returned to the caller for any proposed action."""

    output_text: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    additional_items: list[ConversationNote] = Field(default_factory=list)


# -- Patching -------------------------------------------------------------------


class SearchReplaceBlock(BaseModel):
    """One SEARCH/REPLACE edit unit."""

    search_text: str
    replace_text: str


class PatchResult(BaseModel):
    """Outcome of applying a diff document to a buffer."""

    content: str
    applied: int = Field(description="Number of blocks applied")
    strategies: list[str] = Field(
        default_factory=list, description="Match strategy used for each block, in order"
    )


# -- Checkpoints ----------------------------------------------------------------

OperationKind = Literal["create", "update", "delete"]


class OperationRecord(BaseModel):
    """An operation logged against the active checkpoint."""

    kind: OperationKind
    path: str


class Checkpoint(BaseModel):
    """Snapshot of file contents taken before a batch of edits."""

    id: str
    created_at: datetime
    description: str
    file_snapshots: dict[str, bytes | None] = Field(
        default_factory=dict, description="Prior content per path; None when the file was absent"
    )
    applied_ops: list[OperationRecord] = Field(default_factory=list)
    absent_dirs: list[str] = Field(
        default_factory=list,
        description="Parent directories missing at snapshot time, deepest first",
    )


class CheckpointInfo(BaseModel):
    """Listing entry for a checkpoint."""

    id: str
    created_at: datetime
    description: str
    file_count: int


class RollbackReport(BaseModel):
    """Best-effort rollback outcome."""

    checkpoint_id: str
    restored: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    removed_dirs: list[str] = Field(default_factory=list)
    failures: dict[str, str] = Field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failures


class BatchResult(BaseModel):
    """Outcome of an all-or-nothing batch of file operations."""

    checkpoint_id: str
    applied: int
    messages: list[str] = Field(default_factory=list)
    diffs: dict[str, str] = Field(default_factory=dict)
