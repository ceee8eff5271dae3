"""Checkpoints and all-or-nothing file batches.

A checkpoint snapshots the exact bytes of every path a batch will touch
before any of them is mutated. If an operation of the batch fails, the
checkpoint is rolled back: snapshotted files get their bytes back, files the
batch created are removed, and so are the directories made for them once empty.
"""

from __future__ import annotations

import logging
import os
import random
import string
import time
from collections import OrderedDict
from datetime import datetime, timezone

from .config import DEFAULT_CHECKPOINT_HISTORY
from .errors import RollbackPartialFailure
from .output import render_diff
from .patch import apply_search_replace, read_file, resolve_path, write_to_file
from .types import (
    BatchResult,
    Checkpoint,
    CheckpointInfo,
    FileDelete,
    FileEdit,
    FileOperation,
    FileWrite,
    OperationRecord,
    RollbackReport,
)

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_checkpoint_id() -> str:
    """``checkpoint-<epoch millis>-<9 random base36 chars>``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"checkpoint-{int(time.time() * 1000)}-{suffix}"


def _snapshot(path: str) -> bytes | None:
    if not os.path.lexists(path):
        return None
    with open(path, "rb") as f:
        return f.read()


def _absent_parents(path: str) -> list[str]:
    """Ancestor directories of ``path`` that do not exist yet, deepest first."""
    missing = []
    parent = os.path.dirname(path)
    while parent and not os.path.lexists(parent):
        missing.append(parent)
        grandparent = os.path.dirname(parent)
        if grandparent == parent:
            break
        parent = grandparent
    return missing


class CheckpointManager:
    """Bounded, in-memory checkpoint history for one session."""

    def __init__(self, history_limit: int = DEFAULT_CHECKPOINT_HISTORY):
        self.history_limit = history_limit
        self._checkpoints: OrderedDict[str, Checkpoint] = OrderedDict()
        self._active_id: str | None = None

    @property
    def active_id(self) -> str | None:
        return self._active_id

    def get(self, checkpoint_id: str) -> Checkpoint:
        """Raises ``KeyError`` for an unknown or evicted checkpoint."""
        try:
            return self._checkpoints[checkpoint_id]
        except KeyError:
            raise KeyError(f"Checkpoint {checkpoint_id} not found") from None

    def create(self, description: str, paths: list[str]) -> str:
        """Snapshot every path and make the new checkpoint the active one.

        A path that does not exist is recorded as absent. A path that exists
        but cannot be read is skipped with a warning.
        """
        snapshots: dict[str, bytes | None] = {}
        absent_dirs: set[str] = set()
        for path in paths:
            resolved = os.path.abspath(path)
            if resolved in snapshots:
                continue
            try:
                snapshots[resolved] = _snapshot(resolved)
                if snapshots[resolved] is None:
                    absent_dirs.update(_absent_parents(resolved))
            except OSError as exc:
                logger.warning("Could not back up %s: %s", resolved, exc)

        checkpoint = Checkpoint(
            id=new_checkpoint_id(),
            created_at=datetime.now(timezone.utc),
            description=description,
            file_snapshots=snapshots,
            absent_dirs=sorted(absent_dirs, key=lambda d: d.count(os.sep), reverse=True),
        )
        self._checkpoints[checkpoint.id] = checkpoint
        self._active_id = checkpoint.id
        logger.info("Created checkpoint %s - %s", checkpoint.id, description)

        self.cleanup(self.history_limit)
        return checkpoint.id

    def record(self, op: OperationRecord) -> None:
        """Log an operation against the active checkpoint, if there is one."""
        if self._active_id is None or self._active_id not in self._checkpoints:
            return
        op = op.model_copy(update={"path": os.path.abspath(op.path)})
        self._checkpoints[self._active_id].applied_ops.append(op)

    def rollback(self, checkpoint_id: str, strict: bool = False) -> RollbackReport:
        """Restore the files of a checkpoint.

        Every file is attempted; failures are collected in the report rather
        than raised.

        Raises:
            KeyError: The checkpoint is unknown or was evicted.
            RollbackPartialFailure: ``strict`` is set and some file failed.
        """
        checkpoint = self.get(checkpoint_id)
        report = RollbackReport(checkpoint_id=checkpoint_id)

        for path, content in checkpoint.file_snapshots.items():
            try:
                if content is None:
                    if os.path.lexists(path):
                        os.remove(path)
                        report.removed.append(path)
                else:
                    parent = os.path.dirname(path)
                    if parent:
                        os.makedirs(parent, exist_ok=True)
                    with open(path, "wb") as f:
                        f.write(content)
                    report.restored.append(path)
            except OSError as exc:
                logger.error("Could not restore %s: %s", path, exc)
                report.failures[path] = str(exc)

        for op in checkpoint.applied_ops:
            if op.kind != "create" or op.path in report.removed:
                continue
            try:
                if os.path.lexists(op.path):
                    os.remove(op.path)
                    report.removed.append(op.path)
            except OSError as exc:
                logger.error("Could not remove created file %s: %s", op.path, exc)
                report.failures[op.path] = str(exc)

        for directory in checkpoint.absent_dirs:
            if not os.path.isdir(directory) or os.listdir(directory):
                continue
            try:
                os.rmdir(directory)
                report.removed_dirs.append(directory)
            except OSError as exc:
                logger.error("Could not remove created directory %s: %s", directory, exc)
                report.failures[directory] = str(exc)

        if report.success:
            logger.info("Rolled back to checkpoint %s", checkpoint_id)
        elif strict:
            raise RollbackPartialFailure(report)
        return report

    def list_checkpoints(self) -> list[CheckpointInfo]:
        """Checkpoints, newest first."""
        return [
            CheckpointInfo(
                id=cp.id,
                created_at=cp.created_at,
                description=cp.description,
                file_count=sum(1 for content in cp.file_snapshots.values() if content is not None),
            )
            for cp in reversed(self._checkpoints.values())
        ]

    def cleanup(self, max_checkpoints: int = DEFAULT_CHECKPOINT_HISTORY) -> int:
        """Evict the oldest checkpoints beyond ``max_checkpoints``; returns how many."""
        removed = 0
        while len(self._checkpoints) > max_checkpoints:
            checkpoint_id, _ = self._checkpoints.popitem(last=False)
            if checkpoint_id == self._active_id:
                self._active_id = None
            logger.debug("Cleaned up old checkpoint %s", checkpoint_id)
            removed += 1
        return removed

    def clear(self) -> None:
        self._checkpoints.clear()
        self._active_id = None

    def __len__(self) -> int:
        return len(self._checkpoints)

    def apply_batch(
        self,
        operations: list[FileOperation],
        description: str | None = None,
        workdir: str | None = None,
    ) -> BatchResult:
        """Apply file operations in order, all or nothing.

        On the first failure the batch's checkpoint is rolled back and the
        original error is re-raised. A failed rollback is logged, not raised.
        """
        paths = [resolve_path(op.path, workdir) for op in operations]
        checkpoint_id = self.create(
            description or f"File operations at {datetime.now(timezone.utc).isoformat()}",
            paths,
        )

        result = BatchResult(checkpoint_id=checkpoint_id, applied=0)
        try:
            for op, path in zip(operations, paths):
                message, diff = self._apply_operation(op, path)
                result.messages.append(message)
                if diff:
                    result.diffs[op.path] = diff
                result.applied += 1
        except Exception:
            logger.warning("File operation failed, rolling back checkpoint %s", checkpoint_id)
            report = self.rollback(checkpoint_id)
            if not report.success:
                logger.error(
                    "Rollback of %s incomplete: %s", checkpoint_id, ", ".join(report.failures)
                )
            raise

        return result

    def _apply_operation(self, op: FileOperation, path: str) -> tuple[str, str]:
        if isinstance(op, FileWrite):
            before = read_file(path) if os.path.isfile(path) else None
            kind = "update" if before is not None else "create"
            self.record(OperationRecord(kind=kind, path=path))
            write_to_file(path, op.content)
            message = f"Successfully wrote {len(op.content)} characters to {op.path}"
            return message, render_diff(before or "", op.content, op.path)

        elif isinstance(op, FileEdit):
            before = read_file(path)
            patched = apply_search_replace(before, op.diff, op.replace_all)
            self.record(OperationRecord(kind="update", path=path))
            write_to_file(path, patched.content)
            message = (
                f"Successfully applied {patched.applied} search/replace operation(s) to {op.path}"
            )
            return message, render_diff(before, patched.content, op.path)

        elif isinstance(op, FileDelete):
            if not os.path.isfile(path):
                raise FileNotFoundError(f"File does not exist: {op.path}")
            before = read_file(path)
            self.record(OperationRecord(kind="delete", path=path))
            os.remove(path)
            return f"Deleted {op.path}", render_diff(before, "", op.path)

        else:
            raise ValueError(f"Unknown file operation: {op!r}")
