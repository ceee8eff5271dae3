"""Local process spawning.

Runs argv-style commands on the host through asyncio subprocesses, with a
timeout, cooperative cancellation, and best-effort process group cleanup.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shlex
import signal
import subprocess
from dataclasses import dataclass

from ..config import DEFAULT_TIMEOUT_MS
from ..errors import ExecutionError

logger = logging.getLogger(__name__)

# Exit code reported when a process is killed on timeout
TIMEOUT_EXIT_CODE = 137

# Seconds to wait for output after killing a process
KILL_GRACE_SECONDS = 5

_OPERATOR_CHARS = frozenset("();<>|&")

_POSIX = os.name == "posix"


@dataclass
class SpawnOutcome:
    """Raw outcome of a spawned process."""

    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False
    cancelled: bool = False


def requires_shell(argv: list[str]) -> bool:
    """Whether a command must run through the shell.

    Only a single-string command containing shell operators qualifies; once
    split into separate arguments, an argument like ``|`` is passed literally.
    """
    if len(argv) != 1:
        return False
    lexer = shlex.shlex(argv[0], posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    try:
        tokens = list(lexer)
    except ValueError:
        # Unbalanced quoting; let the shell produce the error message.
        return True
    return any(token and set(token) <= _OPERATOR_CHARS for token in tokens)


def _decode(data: bytes | None) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill the process group on POSIX, the process itself elsewhere."""
    with contextlib.suppress(ProcessLookupError, PermissionError):
        if _POSIX:
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()


async def spawn_local(
    argv: list[str],
    cwd: str | None = None,
    timeout_ms: int | None = None,
    cancel_event: asyncio.Event | None = None,
    env: dict[str, str] | None = None,
    stdin: str | None = None,
) -> SpawnOutcome:
    """Execute a command and wait for it.

    Args:
        argv: Command tokens. A single token with shell operators is run by the shell.
        cwd: Working directory.
        timeout_ms: Timeout in milliseconds.
        cancel_event: Set to abandon the command; the process is killed.
        env: Additional environment variables.
        stdin: Optional data to pipe to stdin.

    Raises:
        ExecutionError: The process could not be spawned. ``kind`` is
            ``"not_found"`` when the executable does not exist.
    """
    if not argv or not argv[0]:
        raise ExecutionError("command[0] is not a string", kind="spawn")

    if cancel_event is not None and cancel_event.is_set():
        logger.debug("Command cancelled before start: %s", argv)
        return SpawnOutcome(1, "", "", cancelled=True)

    timeout_seconds = (timeout_ms if timeout_ms else DEFAULT_TIMEOUT_MS) / 1000
    proc_env = {**os.environ, **env} if env else None
    kwargs = {
        "cwd": cwd,
        "env": proc_env,
        "stdin": asyncio.subprocess.PIPE,
        "stdout": asyncio.subprocess.PIPE,
        "stderr": asyncio.subprocess.PIPE,
        "start_new_session": _POSIX,
    }

    try:
        if requires_shell(argv):
            proc = await asyncio.create_subprocess_shell(argv[0], **kwargs)
        else:
            proc = await asyncio.create_subprocess_exec(*argv, **kwargs)
    except FileNotFoundError as exc:
        raise ExecutionError(
            f"spawn {argv[0]} ENOENT: {exc.strerror or 'No such file or directory'}",
            kind="not_found",
        ) from exc
    except OSError as exc:
        raise ExecutionError(f"Failed to spawn {argv[0]}: {exc}", kind="spawn") from exc

    communicate = asyncio.ensure_future(proc.communicate(stdin.encode() if stdin else None))
    waiters: set[asyncio.Future] = {communicate}
    cancel_waiter = None
    if cancel_event is not None:
        cancel_waiter = asyncio.ensure_future(cancel_event.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout_seconds, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        if cancel_waiter is not None and not cancel_waiter.done():
            cancel_waiter.cancel()

    if communicate in done:
        stdout_bytes, stderr_bytes = communicate.result()
        exit_code = proc.returncode if proc.returncode is not None else 1
        return SpawnOutcome(exit_code, _decode(stdout_bytes), _decode(stderr_bytes))

    cancelled = cancel_waiter is not None and cancel_waiter in done
    _kill(proc)
    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(communicate, KILL_GRACE_SECONDS)
    except asyncio.TimeoutError:
        stdout_bytes, stderr_bytes = b"", b""

    if cancelled:
        logger.debug("Command cancelled: %s", argv)
        return SpawnOutcome(1, "", "", cancelled=True)

    return SpawnOutcome(
        TIMEOUT_EXIT_CODE,
        _decode(stdout_bytes),
        _decode(stderr_bytes) + "\n[Process killed: timeout exceeded]",
        timed_out=True,
    )


def spawn_background(argv: list[str], cwd: str | None = None) -> subprocess.Popen:
    """Start a detached process with all stdio discarded.

    Raises:
        ExecutionError: The process could not be spawned.
    """
    if not argv or not argv[0]:
        raise ExecutionError("command[0] is not a string", kind="spawn")
    try:
        return subprocess.Popen(
            argv,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=_POSIX,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )
    except FileNotFoundError as exc:
        raise ExecutionError(f"spawn {argv[0]} ENOENT", kind="not_found") from exc
    except OSError as exc:
        raise ExecutionError(f"Failed to start background process: {exc}") from exc
