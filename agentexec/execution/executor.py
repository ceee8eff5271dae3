"""Command executor.

Runs an ExecInput under the selected sandbox, enforcing the timeout,
cooperative cancellation and the session's repetition guard, and recovering
from Windows not-found failures through the recovery cascade.
"""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
import sys
import time
from typing import TYPE_CHECKING

from ..config import AgentExecConfig
from ..errors import ExecutionError, RepetitionGuardTripped
from ..output import format_command_for_display, strip_ansi, truncate_output
from ..types import ExecInput, ExecResult, SandboxType
from .local import spawn_background, spawn_local
from .recovery import run_with_recovery
from .sandbox import bubblewrap_command, default_writable_roots, seatbelt_command

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)

# Exit code reported when the executable does not exist
NOT_FOUND_EXIT_CODE = 127


class CommandExecutor:
    """Executes commands for one session."""

    def __init__(
        self,
        session: Session,
        config: AgentExecConfig | None = None,
        platform: str | None = None,
    ):
        self.session = session
        self.config = config or session.config
        self.platform = platform or sys.platform
        self._background: list[subprocess.Popen] = []

    async def execute(
        self,
        exec_input: ExecInput,
        sandbox: SandboxType = SandboxType.NONE,
        cancel_event: asyncio.Event | None = None,
        *,
        guard: bool = True,
    ) -> ExecResult:
        """Run a command and return its result.

        A non-zero exit code is returned as is. Spawn failures are folded into
        the result with ``error_kind`` set. When ``cancel_event`` fires, the
        process is killed and an empty result is returned.

        Args:
            exec_input: The command to run.
            sandbox: Confinement mechanism chosen by ``select_sandbox``.
            cancel_event: Cooperative cancellation signal.
            guard: Check the repetition guard first. Re-runs of an already
                submitted command pass ``False``.
        """
        if not exec_input.argv or not exec_input.argv[0].strip():
            return ExecResult(exit_code=1, stderr="command[0] is not a string", error_kind="spawn")

        if guard:
            try:
                self.session.repetition_guard.check(exec_input.argv)
            except RepetitionGuardTripped as exc:
                return ExecResult(exit_code=1, stderr=str(exc), error_kind="repetition")

        exec_input = exec_input.model_copy(
            update={"workdir": self._resolve_workdir(exec_input.workdir)}
        )

        if exec_input.run_in_background:
            return self._start_background(exec_input, sandbox)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "EXEC running %s in %s (sandbox=%s)",
                format_command_for_display(exec_input.argv),
                exec_input.workdir,
                sandbox.value,
            )

        start = time.monotonic()

        async def run(attempt: ExecInput) -> ExecResult:
            return await self._run_once(attempt, sandbox, cancel_event)

        result = await run_with_recovery(
            exec_input, run, platform=self.platform, cancel_event=cancel_event
        )
        duration_ms = int((time.monotonic() - start) * 1000)

        if cancel_event is not None and cancel_event.is_set():
            return ExecResult(exit_code=0, duration_ms=duration_ms)

        limit = self.config.max_output_chars
        stdout, stdout_truncated = truncate_output(strip_ansi(result.stdout), limit)
        stderr, stderr_truncated = truncate_output(strip_ansi(result.stderr), limit)
        result = result.model_copy(
            update={
                "stdout": stdout,
                "stderr": stderr,
                "duration_ms": duration_ms,
                "truncated": result.truncated or stdout_truncated or stderr_truncated,
            }
        )

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("EXEC exit=%d time=%dms", result.exit_code, duration_ms)
        return result

    def _resolve_workdir(self, workdir: str | None) -> str:
        cwd = os.getcwd()
        if not workdir:
            return cwd
        resolved = os.path.abspath(workdir)
        if os.path.isdir(resolved) and os.access(resolved, os.R_OK | os.X_OK):
            return resolved
        logger.info("EXEC workdir=%s not accessible, using %s instead", workdir, cwd)
        return cwd

    def _wrap(self, exec_input: ExecInput, sandbox: SandboxType) -> list[str]:
        if sandbox == SandboxType.NONE:
            return exec_input.argv
        roots = default_writable_roots(exec_input.workdir, exec_input.writable_roots)
        if sandbox == SandboxType.MACOS_SEATBELT:
            return seatbelt_command(exec_input.argv, roots, self.config.seatbelt_executable)
        return bubblewrap_command(
            exec_input.argv, roots, exec_input.workdir, self.config.linux_sandbox_executable
        )

    async def _run_once(
        self,
        exec_input: ExecInput,
        sandbox: SandboxType,
        cancel_event: asyncio.Event | None,
    ) -> ExecResult:
        argv = self._wrap(exec_input, sandbox)
        timeout_ms = exec_input.timeout_ms or self.config.default_timeout_ms
        try:
            outcome = await spawn_local(
                argv, cwd=exec_input.workdir, timeout_ms=timeout_ms, cancel_event=cancel_event
            )
        except ExecutionError as exc:
            logger.info("EXEC spawn failed: %s", exc)
            exit_code = NOT_FOUND_EXIT_CODE if exc.kind == "not_found" else 1
            return ExecResult(exit_code=exit_code, stderr=str(exc), error_kind=exc.kind)

        return ExecResult(
            exit_code=outcome.exit_code,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            error_kind="timeout" if outcome.timed_out else None,
        )

    def _start_background(self, exec_input: ExecInput, sandbox: SandboxType) -> ExecResult:
        if sandbox != SandboxType.NONE:
            return ExecResult(
                exit_code=1,
                stderr="Background execution is not supported inside a sandbox",
                error_kind="spawn",
            )
        try:
            proc = spawn_background(exec_input.argv, cwd=exec_input.workdir)
        except ExecutionError as exc:
            exit_code = NOT_FOUND_EXIT_CODE if exc.kind == "not_found" else 1
            return ExecResult(exit_code=exit_code, stderr=str(exc), error_kind=exc.kind)

        self._background.append(proc)
        logger.info("Started background process %d: %s", proc.pid, exec_input.argv)
        return ExecResult(
            exit_code=0,
            stdout=f"Started background process with PID {proc.pid}: "
            f"{format_command_for_display(exec_input.argv)}",
        )

    def background_processes(self) -> list[subprocess.Popen]:
        """Background processes that are still running."""
        self._background = [p for p in self._background if p.poll() is None]
        return list(self._background)
