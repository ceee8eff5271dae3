"""Session-scoped state.

Holds what lives for one agent session and nothing longer: the commands the
user chose to always approve, the repetition guard window, and the
checkpoint history. State is single-writer; one action is processed at a
time.
"""

from __future__ import annotations

import logging
import uuid

from .checkpoint import CheckpointManager
from .config import AgentExecConfig, configure_file_logging
from .execution.repetition import RepetitionGuard

logger = logging.getLogger(__name__)


class Session:
    """State shared by the approval engine, executor and checkpoint manager."""

    def __init__(self, config: AgentExecConfig | None = None, session_id: str | None = None):
        self.id = session_id or str(uuid.uuid4())
        self.config = config or AgentExecConfig.from_env()
        self.always_approved: set[str] = set()
        self.repetition_guard = RepetitionGuard(
            window_size=self.config.repetition_window_size,
            window_seconds=self.config.repetition_window_seconds,
            threshold=self.config.repetition_threshold,
        )
        self.checkpoints = CheckpointManager(self.config.checkpoint_history_limit)
        self.closed = False

        if self.config.log_file:
            configure_file_logging(self.config.log_file)
        logger.debug("Session %s started (policy=%s)", self.id, self.config.approval_policy.value)

    def close(self) -> None:
        """Drop all session state."""
        self.always_approved.clear()
        self.repetition_guard.reset()
        self.checkpoints.clear()
        self.closed = True
        logger.debug("Session %s closed", self.id)

    def __enter__(self) -> Session:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
