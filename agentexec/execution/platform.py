"""Platform command adapter.

Maps portable (Unix) command verbs to their Windows equivalents. Many of
the targets are ``cmd.exe`` builtins rather than executables, so those are
wrapped in ``cmd.exe /c``. On any other host the command is returned as is.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

logger = logging.getLogger(__name__)

WINDOWS = "win32"


@dataclass(frozen=True)
class CommandMapping:
    """Windows equivalent of a portable verb."""

    cmd: str
    use_shell: bool = True


COMMAND_MAP: dict[str, CommandMapping] = {
    "ls": CommandMapping("dir"),
    "grep": CommandMapping("findstr"),
    "cat": CommandMapping("type"),
    "rm": CommandMapping("del"),
    "cp": CommandMapping("copy"),
    "mv": CommandMapping("move"),
    "touch": CommandMapping("echo."),
    "mkdir": CommandMapping("md"),
    "pwd": CommandMapping("cd"),
    "clear": CommandMapping("cls"),
    "which": CommandMapping("where", use_shell=False),
    # echo is left alone: its quoting rules differ too much to translate
}

OPTION_MAP: dict[str, dict[str, str]] = {
    "ls": {"-l": "/p", "-a": "/a", "-R": "/s"},
    "grep": {"-i": "/i", "-r": "/s", "-n": "/n", "-v": "/v"},
    "rm": {"-f": "/q", "-r": "/s"},
}

# Leading tokens that are prompt characters pasted by accident, not commands
_PROMPT_TOKENS = frozenset({"$", ">", "#"})

WINDOWS_SHELL = ("cmd.exe", "/c")


def is_windows(platform: str | None = None) -> bool:
    return (platform or sys.platform) == WINDOWS


def adapt_command_for_platform(argv: list[str], platform: str | None = None) -> list[str]:
    """Adapt a command for the host platform.

    Args:
        argv: The command tokens.
        platform: Host platform identifier (``sys.platform`` by default).

    Returns:
        A new argv on Windows when the verb is mapped, otherwise ``argv``
        unchanged.
    """
    if not is_windows(platform) or not argv:
        return argv

    cmd = argv[0].strip()
    if not cmd or cmd in _PROMPT_TOKENS:
        return argv

    mapping = COMMAND_MAP.get(cmd)
    if mapping is None:
        return argv

    logger.debug("Adapting command '%s' for Windows platform", cmd)

    options = OPTION_MAP.get(cmd, {})
    adapted = [mapping.cmd] + [options.get(arg, arg) for arg in argv[1:]]
    if mapping.use_shell:
        adapted = [*WINDOWS_SHELL, *adapted]

    logger.debug("Adapted command: %s", " ".join(adapted))
    return adapted
