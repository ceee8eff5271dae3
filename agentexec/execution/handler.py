"""Shell command handling.

Runs one proposed shell command through approval, sandbox selection and the
executor, and shapes the outcome into the structured result returned to the
agent loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable

from ..approval import ApprovalEngine
from ..types import (
    AskUser,
    AutoApprove,
    CommandConfirmation,
    ConversationNote,
    ExecInput,
    ExecResult,
    FullAutoErrorMode,
    HandleExecCommandResult,
    Reject,
    ShellCommand,
)
from .executor import CommandExecutor
from .recovery import generate_windows_command_suggestion, is_not_found_failure
from .sandbox import select_sandbox

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[list[str]], Awaitable[CommandConfirmation]]

NO_DECISION_TEXT = "No decision made; the command was not run."


def convert_result(
    result: ExecResult, argv: list[str], platform: str | None = None
) -> HandleExecCommandResult:
    """Shape an ExecResult as ``{"output", "metadata": {"exit_code", "duration_seconds"}}``."""
    output = result.stdout or result.stderr
    if result.exit_code != 0 and is_not_found_failure(result):
        output = generate_windows_command_suggestion(argv, output, platform)

    metadata: dict[str, object] = {
        "exit_code": result.exit_code,
        "duration_seconds": round(result.duration_ms / 1000, 1),
    }
    if result.error_kind == "repetition":
        metadata["warning"] = "command_repetition"
    elif result.error_kind == "timeout":
        metadata["error"] = "timeout"
    if result.truncated:
        metadata["truncated"] = True

    return HandleExecCommandResult(
        output_text=json.dumps({"output": output, "metadata": metadata}),
        metadata=metadata,
    )


async def ask_user_permission(
    argv: list[str],
    approval: ApprovalEngine,
    confirm: ConfirmCallback,
) -> HandleExecCommandResult | None:
    """Prompt for a decision.

    Returns ``None`` when the command was approved, otherwise the result to
    hand back in place of running it.
    """
    confirmation = await confirm(argv)
    outcome = approval.review(argv, confirmation)
    if outcome.approved:
        return None
    if not outcome.decided:
        return HandleExecCommandResult(
            output_text=confirmation.explanation or NO_DECISION_TEXT,
            metadata={"decision": "explain"},
        )
    return HandleExecCommandResult(
        output_text="aborted",
        metadata={},
        additional_items=[ConversationNote(text=outcome.note or "")],
    )


async def handle_exec_command(
    command: ShellCommand,
    *,
    approval: ApprovalEngine,
    executor: CommandExecutor,
    confirm: ConfirmCallback,
    cancel_event: asyncio.Event | None = None,
) -> HandleExecCommandResult:
    """Approve, sandbox and run a shell command.

    Raises:
        SandboxUnavailableError: A sandbox is required and none is available.
    """
    config = executor.config
    decision = approval.classify(
        command.argv, command.workdir, writable_roots=command.writable_roots
    )

    if isinstance(decision, Reject):
        return HandleExecCommandResult(
            output_text="aborted",
            metadata={"error": "command rejected", "reason": decision.reason},
        )
    elif isinstance(decision, AskUser):
        denied = await ask_user_permission(command.argv, approval, confirm)
        if denied is not None:
            return denied
        run_in_sandbox = False
    elif isinstance(decision, AutoApprove):
        run_in_sandbox = decision.sandboxed
    else:
        raise ValueError(f"Unknown approval decision: {decision!r}")

    sandbox = select_sandbox(
        run_in_sandbox,
        platform=executor.platform,
        unsafe_allow_no_sandbox=config.unsafe_allow_no_sandbox,
        seatbelt_executable=config.seatbelt_executable,
    )
    exec_input = ExecInput(
        argv=command.argv,
        workdir=command.workdir,
        timeout_ms=command.timeout_ms,
        writable_roots=command.writable_roots,
        run_in_background=command.run_in_background,
    )
    result = await executor.execute(exec_input, sandbox, cancel_event)

    if cancel_event is not None and cancel_event.is_set():
        return HandleExecCommandResult(output_text="", metadata={})

    if (
        result.exit_code != 0
        and run_in_sandbox
        and result.error_kind != "repetition"
        and config.full_auto_error_mode == FullAutoErrorMode.ASK_USER
    ):
        logger.info("Sandboxed command failed with exit %d, asking to retry", result.exit_code)
        denied = await ask_user_permission(command.argv, approval, confirm)
        if denied is not None:
            return denied
        result = await executor.execute(exec_input, cancel_event=cancel_event, guard=False)
        if cancel_event is not None and cancel_event.is_set():
            return HandleExecCommandResult(output_text="", metadata={})

    return convert_result(result, command.argv, executor.platform)
