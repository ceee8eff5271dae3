"""Action dispatch.

Routes each proposed action to its path: shell commands through approval,
sandbox selection and the executor; file actions through approval and an
all-or-nothing checkpointed batch.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from pydantic import TypeAdapter

from .approval import ApprovalEngine, SafetyClassifier, file_action_argv
from .errors import AgentExecError, AmbiguousMatchError, NotFoundError, ParseError
from .execution import (
    CommandExecutor,
    ConfirmCallback,
    ask_user_permission,
    handle_exec_command,
)
from .patch import convert_legacy_patch
from .session import Session
from .types import (
    AskUser,
    AutoApprove,
    FileDelete,
    FileEdit,
    FileOperation,
    FileWrite,
    HandleExecCommandResult,
    ProposedAction,
    Reject,
    ShellCommand,
)

logger = logging.getLogger(__name__)

_action_adapter: TypeAdapter[ProposedAction] = TypeAdapter(ProposedAction)

NOT_FOUND_GUIDANCE = """Guidance: The search text was not found. Common fixes:
1. Read the file to check its exact content
2. Copy literal text (avoid regex patterns like [\\s\\S]*)
3. Check whitespace and indentation exactly
4. Use smaller, unique search strings"""

AMBIGUOUS_GUIDANCE = (
    "Guidance: Search text appears multiple times. Either provide more context "
    "in the search string or set replace_all."
)

MISSING_FILE_GUIDANCE = (
    "Guidance: File does not exist. Use a write action to create a new file or "
    "check the file path."
)

PARSE_GUIDANCE = (
    "Guidance: Each block needs a SEARCH line, the search text, a ======= line, "
    "the replacement text, and a REPLACE line, in that order."
)


def parse_action(data: dict[str, Any]) -> ProposedAction:
    """Validate raw action data into a ProposedAction.

    Raises:
        pydantic.ValidationError: Unknown ``type`` or invalid fields.
    """
    return _action_adapter.validate_python(data)


def edit_guidance(error: Exception) -> str:
    """Guidance for correcting a failed file action."""
    if isinstance(error, NotFoundError):
        return NOT_FOUND_GUIDANCE
    if isinstance(error, AmbiguousMatchError):
        return AMBIGUOUS_GUIDANCE
    if isinstance(error, FileNotFoundError):
        return MISSING_FILE_GUIDANCE
    if isinstance(error, ParseError):
        return PARSE_GUIDANCE
    return ""


def _error_result(exc: Exception) -> HandleExecCommandResult:
    guidance = edit_guidance(exc)
    output = f"Error: {exc}" + (f"\n\n{guidance}" if guidance else "")
    metadata = {"exit_code": 1, "error": "edit_failed"}
    return HandleExecCommandResult(
        output_text=json.dumps({"output": output, "metadata": metadata}),
        metadata=metadata,
    )


class ActionDispatcher:
    """Entry point for one session's proposed actions."""

    def __init__(
        self,
        session: Session,
        confirm: ConfirmCallback,
        classifier: SafetyClassifier | None = None,
        platform: str | None = None,
    ):
        self.session = session
        self.confirm = confirm
        self.approval = ApprovalEngine(session, classifier)
        self.executor = CommandExecutor(session, platform=platform)

    async def handle(
        self,
        action: ProposedAction,
        cancel_event: asyncio.Event | None = None,
        workdir: str | None = None,
    ) -> HandleExecCommandResult:
        """Process one proposed action and return its structured result.

        Raises:
            SandboxUnavailableError: A shell command requires a sandbox that is missing.
        """
        if isinstance(action, ShellCommand):
            return await handle_exec_command(
                action,
                approval=self.approval,
                executor=self.executor,
                confirm=self.confirm,
                cancel_event=cancel_event,
            )
        elif isinstance(action, (FileEdit, FileWrite, FileDelete)):
            return await self.handle_file_batch([action], workdir=workdir)
        else:
            raise ValueError(f"Unknown action type: {type(action).__name__}")

    async def handle_file_batch(
        self,
        actions: list[FileOperation],
        description: str | None = None,
        workdir: str | None = None,
    ) -> HandleExecCommandResult:
        """Approve a batch of file actions once and apply it all or nothing."""
        if not actions:
            return HandleExecCommandResult(
                output_text=json.dumps({"output": "No file operations", "metadata": {}}),
                metadata={},
            )

        needs_review: list[str] | None = None
        for action in actions:
            argv = file_action_argv(action.type, action.path)
            decision = self.approval.classify(argv, workdir)
            if isinstance(decision, Reject):
                return HandleExecCommandResult(
                    output_text="aborted",
                    metadata={"error": "command rejected", "reason": decision.reason},
                )
            elif isinstance(decision, AskUser):
                needs_review = needs_review or argv
            elif not isinstance(decision, AutoApprove):
                raise ValueError(f"Unknown approval decision: {decision!r}")

        if needs_review is not None:
            denied = await ask_user_permission(needs_review, self.approval, self.confirm)
            if denied is not None:
                return denied

        try:
            batch = self.session.checkpoints.apply_batch(actions, description, workdir)
        except (AgentExecError, OSError) as exc:
            return _error_result(exc)

        sections = list(batch.messages)
        sections.extend(batch.diffs.values())
        metadata = {
            "exit_code": 0,
            "checkpoint_id": batch.checkpoint_id,
            "applied": batch.applied,
        }
        return HandleExecCommandResult(
            output_text=json.dumps({"output": "\n".join(sections), "metadata": metadata}),
            metadata=metadata,
        )

    async def handle_legacy_patch(
        self, patch_text: str, workdir: str | None = None
    ) -> HandleExecCommandResult:
        """Apply a ``*** Begin Patch`` document as one file batch."""
        try:
            actions = convert_legacy_patch(patch_text)
        except ParseError as exc:
            return _error_result(exc)
        return await self.handle_file_batch(actions, "Legacy patch", workdir)
