"""Windows recovery cascade.

When a command fails on Windows because its executable could not be found,
the executor retries through an ordered list of strategies. Each strategy
is an independent coroutine ``(exec_input, run) -> ExecResult | None``:
``None`` means the strategy does not apply to the command, otherwise the
result of its attempt is returned. ``run`` executes a modified ExecInput.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable

from ..output import format_command_for_display, is_binary
from ..types import ExecInput, ExecResult
from .platform import WINDOWS, WINDOWS_SHELL, adapt_command_for_platform, is_windows

logger = logging.getLogger(__name__)

Runner = Callable[[ExecInput], Awaitable[ExecResult]]
RecoveryStrategy = Callable[[ExecInput, Runner], Awaitable["ExecResult | None"]]

READ_VERBS = frozenset({"cat", "type", "more"})
LIST_VERBS = frozenset({"ls", "dir"})

_NOT_RECOGNIZED = "is not recognized as an internal or external command"


def is_not_found_failure(result: ExecResult) -> bool:
    """Whether a failed result means the executable could not be found."""
    if result.exit_code == 0:
        return False
    return (
        result.error_kind == "not_found"
        or "ENOENT" in result.stderr
        or _NOT_RECOGNIZED in result.stderr
    )


async def cmd_wrapper(exec_input: ExecInput, run: Runner) -> ExecResult | None:
    """Run the command through ``cmd.exe /c`` so shell builtins resolve."""
    if exec_input.argv[0].lower().startswith("cmd.exe"):
        return None
    argv = [*WINDOWS_SHELL, *exec_input.argv]
    logger.info("Retry with cmd.exe wrapper: %s", format_command_for_display(argv))
    return await run(exec_input.model_copy(update={"argv": argv}))


async def platform_adapted(exec_input: ExecInput, run: Runner) -> ExecResult | None:
    """Run the Windows equivalent of a portable verb."""
    argv = adapt_command_for_platform(exec_input.argv, platform=WINDOWS)
    if argv == exec_input.argv:
        return None
    logger.info("Retry with platform-adapted command: %s", format_command_for_display(argv))
    return await run(exec_input.model_copy(update={"argv": argv}))


async def direct_file_read(exec_input: ExecInput, run: Runner) -> ExecResult | None:
    """Serve ``cat``/``type``/``more`` of a single file by reading it in-process."""
    argv = exec_input.argv
    if argv[0] not in READ_VERBS or len(argv) < 2 or argv[1].startswith("-"):
        return None

    path = argv[1]
    if exec_input.workdir and not os.path.isabs(path):
        path = os.path.join(exec_input.workdir, path)
    logger.info("Retry by reading file directly: %s", path)

    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as exc:
        logger.info("Direct file read failed: %s", exc)
        return None

    if is_binary(data):
        return ExecResult(exit_code=1, stderr=f"{argv[1]}: binary file, not displayed")
    return ExecResult(exit_code=0, stdout=data.decode("utf-8", errors="replace"))


async def powershell_listing(exec_input: ExecInput, run: Runner) -> ExecResult | None:
    """List a directory with PowerShell's ``Get-ChildItem``."""
    argv = exec_input.argv
    if argv[0] not in LIST_VERBS:
        return None
    target = " ".join(argv[1:]) or "."
    listing = ["powershell.exe", "-Command", f"Get-ChildItem {target} | Format-Table -AutoSize"]
    logger.info("Retry with PowerShell listing: %s", target)
    return await run(exec_input.model_copy(update={"argv": listing}))


RECOVERY_STRATEGIES: tuple[RecoveryStrategy, ...] = (
    cmd_wrapper,
    platform_adapted,
    direct_file_read,
    powershell_listing,
)


async def run_with_recovery(
    exec_input: ExecInput,
    run: Runner,
    *,
    platform: str | None = None,
    strategies: tuple[RecoveryStrategy, ...] = RECOVERY_STRATEGIES,
    cancel_event: asyncio.Event | None = None,
) -> ExecResult:
    """Run a command, falling back through the recovery strategies.

    The cascade only starts on Windows after a not-found failure, and stops
    at the first strategy that exits 0 or as soon as ``cancel_event`` is set.
    When every strategy fails, the last attempted result is returned.
    """
    result = await run(exec_input)
    if not is_windows(platform) or not exec_input.argv or not is_not_found_failure(result):
        return result

    logger.info(
        "Windows command not found, attempting recovery for: %s",
        format_command_for_display(exec_input.argv),
    )
    for strategy in strategies:
        if cancel_event is not None and cancel_event.is_set():
            logger.debug("Recovery abandoned, command was cancelled")
            break
        attempt = await strategy(exec_input, run)
        if attempt is None:
            continue
        result = attempt
        if result.exit_code == 0:
            logger.info("Recovery strategy %s succeeded", strategy.__name__)
            return result
    return result


def generate_windows_command_suggestion(
    argv: list[str], error: str, platform: str | None = None
) -> str:
    """Extend a not-found error with Windows alternatives to try."""
    if not is_windows(platform) or not argv or not argv[0]:
        return error
    if "ENOENT" not in error and _NOT_RECOGNIZED not in error:
        return error

    adapted = adapt_command_for_platform(argv, platform=WINDOWS)
    lines = [error, "", "Windows Command Recovery Suggestions:", ""]
    step = 1
    if adapted != argv:
        lines += [
            f"{step}. Windows Equivalent: Try using the adapted command",
            f"   Original: {' '.join(argv)}",
            f"   Windows:  {' '.join(adapted)}",
            "",
        ]
        step += 1
    lines += [
        f"{step}. PowerShell Alternative: Use PowerShell which supports many Unix-like commands",
        f'   powershell.exe -Command "{" ".join(argv)}"',
        "",
        f"{step + 1}. For file operations: Use the file edit actions for reliable file handling",
        "",
        "Note: The system attempted automatic recovery but all strategies failed.",
    ]
    return "\n".join(lines)
