"""Exception taxonomy.

Patch errors carry user-facing diagnostic text as their message: a human or
the agent itself has to self-correct from it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import ErrorKind, RollbackReport


class AgentExecError(Exception):
    """Base class for all agentexec errors."""


class ParseError(AgentExecError):
    """Malformed SEARCH/REPLACE document."""

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"{message} (line {line_number})"
        super().__init__(message)


class NotFoundError(AgentExecError):
    """Search text could not be located after every match strategy."""

    def __init__(
        self,
        message: str,
        search_text: str,
        similar_lines: list[tuple[int, str]] | None = None,
    ):
        self.search_text = search_text
        self.similar_lines = similar_lines or []
        super().__init__(message)


class AmbiguousMatchError(AgentExecError):
    """Search text occurs more than once and no safe broadcast applies."""

    def __init__(self, message: str, search_text: str, occurrences: int):
        self.search_text = search_text
        self.occurrences = occurrences
        super().__init__(message)


class SandboxUnavailableError(AgentExecError):
    """A sandbox was mandated but no enforcement mechanism is available."""


class ExecutionError(AgentExecError):
    """The process could not be spawned or its IO failed."""

    def __init__(self, message: str, kind: ErrorKind = "spawn"):
        self.kind = kind
        super().__init__(message)


class RepetitionGuardTripped(AgentExecError):
    """The same command was submitted too often inside the guard window."""

    def __init__(self, message: str, argv: list[str], count: int):
        self.argv = argv
        self.count = count
        super().__init__(message)


class RollbackPartialFailure(AgentExecError):
    """Some files could not be restored while rolling back a checkpoint."""

    def __init__(self, report: RollbackReport):
        self.report = report
        failed = ", ".join(f"{path} ({reason})" for path, reason in report.failures.items())
        super().__init__(f"Rollback of {report.checkpoint_id} left files unrestored: {failed}")
