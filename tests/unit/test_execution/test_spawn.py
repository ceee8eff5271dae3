"""Tests for local process spawning."""

import asyncio
import os
import sys
from unittest.mock import AsyncMock, patch

import pytest

from agentexec.errors import ExecutionError
from agentexec.execution.local import (
    TIMEOUT_EXIT_CODE,
    requires_shell,
    spawn_background,
    spawn_local,
)


class TestRequiresShell:
    """Tests for requires_shell."""

    def test_split_argv_never_uses_shell(self):
        """Separate tokens are passed literally, even operators."""
        assert requires_shell(["echo", "a", "|", "wc"]) is False

    def test_single_token_with_pipe(self):
        """A single command string with a pipe needs the shell."""
        assert requires_shell(["cat a.txt | wc -l"]) is True

    def test_single_token_with_chain(self):
        """&& chains need the shell."""
        assert requires_shell(["make && make test"]) is True

    def test_quoted_operator_is_literal(self):
        """Operators inside quotes do not count."""
        assert requires_shell(["echo 'a|b'"]) is False

    def test_plain_single_token(self):
        """A bare executable name runs directly."""
        assert requires_shell(["ls"]) is False

    def test_unbalanced_quote_defers_to_shell(self):
        """Bad quoting is left for the shell to report."""
        assert requires_shell(["echo 'oops"]) is True


class TestSpawnLocal:
    """Tests for spawn_local."""

    @pytest.mark.asyncio
    async def test_captures_stdout_and_exit_code(self, tmp_dir):
        """Output and exit status are returned."""
        result = await spawn_local(
            [sys.executable, "-c", "print('hello')"], cwd=tmp_dir, timeout_ms=10000
        )
        assert result.exit_code == 0
        assert result.stdout.strip() == "hello"
        assert result.timed_out is False

    @pytest.mark.asyncio
    async def test_captures_stderr_and_failure(self, tmp_dir):
        """A non-zero exit and stderr are reported, not raised."""
        script = "import sys; sys.stderr.write('boom'); sys.exit(3)"
        result = await spawn_local([sys.executable, "-c", script], cwd=tmp_dir, timeout_ms=10000)
        assert result.exit_code == 3
        assert "boom" in result.stderr

    @pytest.mark.asyncio
    async def test_runs_in_cwd(self, tmp_dir):
        """The working directory is honoured."""
        script = "import os; print(os.getcwd())"
        result = await spawn_local([sys.executable, "-c", script], cwd=tmp_dir, timeout_ms=10000)
        assert os.path.realpath(result.stdout.strip()) == os.path.realpath(tmp_dir)

    @pytest.mark.asyncio
    async def test_passes_extra_env(self, tmp_dir):
        """Extra variables are merged into the environment."""
        script = "import os; print(os.environ['AGENTEXEC_TEST_VAR'])"
        result = await spawn_local(
            [sys.executable, "-c", script],
            cwd=tmp_dir,
            timeout_ms=10000,
            env={"AGENTEXEC_TEST_VAR": "value"},
        )
        assert result.stdout.strip() == "value"

    @pytest.mark.asyncio
    async def test_pipes_stdin(self, tmp_dir):
        """stdin data reaches the process."""
        script = "import sys; print(sys.stdin.read().upper())"
        result = await spawn_local(
            [sys.executable, "-c", script], cwd=tmp_dir, timeout_ms=10000, stdin="abc"
        )
        assert result.stdout.strip() == "ABC"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, tmp_dir):
        """A process past its deadline is killed and reported as exit 137."""
        result = await spawn_local(
            [sys.executable, "-c", "import time; time.sleep(30)"], cwd=tmp_dir, timeout_ms=200
        )
        assert result.exit_code == TIMEOUT_EXIT_CODE
        assert result.timed_out is True
        assert "[Process killed: timeout exceeded]" in result.stderr

    @pytest.mark.asyncio
    async def test_cancel_event_abandons_command(self, tmp_dir):
        """Setting the cancel event kills the process and flags the outcome."""
        cancel = asyncio.Event()
        task = asyncio.ensure_future(
            spawn_local(
                [sys.executable, "-c", "import time; time.sleep(30)"],
                cwd=tmp_dir,
                timeout_ms=20000,
                cancel_event=cancel,
            )
        )
        await asyncio.sleep(0.2)
        cancel.set()
        result = await asyncio.wait_for(task, 10)
        assert result.cancelled is True
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_already_cancelled_does_not_spawn(self, tmp_dir):
        """A command whose cancel event is already set never starts."""
        cancel = asyncio.Event()
        cancel.set()
        with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as create:
            result = await spawn_local(["echo", "hi"], cwd=tmp_dir, cancel_event=cancel)
        create.assert_not_called()
        assert result.cancelled is True
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_missing_executable_is_not_found(self, tmp_dir):
        """A nonexistent program raises a not-found ExecutionError."""
        with pytest.raises(ExecutionError) as exc_info:
            await spawn_local(["definitely-not-a-real-binary-xyz"], cwd=tmp_dir)
        assert exc_info.value.kind == "not_found"
        assert "ENOENT" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_argv_raises(self):
        """An empty command is a spawn error."""
        with pytest.raises(ExecutionError, match="command\\[0\\] is not a string"):
            await spawn_local([])

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell syntax")
    async def test_single_string_runs_through_shell(self, tmp_dir):
        """A single command string with a pipe is interpreted by the shell."""
        result = await spawn_local(["echo hello | tr a-z A-Z"], cwd=tmp_dir, timeout_ms=10000)
        assert result.exit_code == 0
        assert result.stdout.strip() == "HELLO"


class TestSpawnBackground:
    """Tests for spawn_background."""

    def test_returns_running_process(self, tmp_dir):
        """A detached process is started and can be waited on."""
        proc = spawn_background([sys.executable, "-c", "pass"], cwd=tmp_dir)
        assert proc.pid > 0
        assert proc.wait(timeout=10) == 0

    def test_missing_executable_raises(self, tmp_dir):
        """A nonexistent program raises a not-found ExecutionError."""
        with pytest.raises(ExecutionError) as exc_info:
            spawn_background(["definitely-not-a-real-binary-xyz"], cwd=tmp_dir)
        assert exc_info.value.kind == "not_found"
