"""Repetition guard for command execution.

Keeps a bounded, time-limited window of recently submitted commands and
refuses a command once its identical argv has been seen too often, which
stops the agent from looping on the same failing command.
"""

from __future__ import annotations

import json
import logging
import time
from collections import deque
from collections.abc import Callable

from ..errors import RepetitionGuardTripped
from ..output import format_command_for_display

logger = logging.getLogger(__name__)

# Number of recent commands kept in the window
DEFAULT_WINDOW_SIZE = 10

# Age in seconds after which a command leaves the window
DEFAULT_WINDOW_SECONDS = 60.0

# Identical submissions inside the window that trip the guard
DEFAULT_THRESHOLD = 3


def repetition_message(argv: list[str], count: int) -> str:
    return f"""**Command Repetition Detected!**

The same command has been attempted {count} times in the last minute:
`{format_command_for_display(argv)}`

This suggests the command is failing repeatedly. Consider:
1. **Check the error message carefully** - the same error keeps occurring
2. **Modify your approach** - try a different command or strategy
3. **Verify the file or directory exists** before operating on it
4. **For file operations**: use the file edit actions instead of shell commands

**Stop retrying the same failing command!** Make changes to your approach first."""


class RepetitionGuard:
    """Sliding window of serialized argv with a repeat threshold."""

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        threshold: int = DEFAULT_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_size = window_size
        self.window_seconds = window_seconds
        self.threshold = threshold
        self._clock = clock
        self._recent: deque[tuple[str, float]] = deque()

    def check(self, argv: list[str]) -> int:
        """Record a submission and return how often it appears in the window.

        Raises:
            RepetitionGuardTripped: The argv reached the threshold.
        """
        key = json.dumps(argv)
        now = self._clock()

        while self._recent and now - self._recent[0][1] > self.window_seconds:
            self._recent.popleft()

        self._recent.append((key, now))
        while len(self._recent) > self.window_size:
            self._recent.popleft()

        count = sum(1 for entry, _ in self._recent if entry == key)
        if count >= self.threshold:
            logger.warning("Repetition guard tripped after %d attempts: %s", count, argv)
            raise RepetitionGuardTripped(repetition_message(argv, count), argv, count)
        return count

    def reset(self) -> None:
        self._recent.clear()

    def __len__(self) -> int:
        return len(self._recent)
