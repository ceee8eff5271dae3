"""Sandbox selection and command wrapping.

``select_sandbox`` never answers with a confining sandbox type unless the
mechanism is present on the host. The one deliberate downgrade is Windows,
which has no mechanism at all: it runs unconfined with a visible warning.
"""

from __future__ import annotations

import logging
import os
import sys
import tempfile
import warnings

from ..config import DEFAULT_LINUX_SANDBOX_EXECUTABLE, DEFAULT_SEATBELT_EXECUTABLE
from ..errors import SandboxUnavailableError
from ..types import SandboxType

logger = logging.getLogger(__name__)

WINDOWS_SANDBOX_WARNING = (
    "Sandbox requested on Windows, but no Windows sandbox is implemented. "
    "Running without sandbox."
)

# Seatbelt profile: read anywhere, write only below the writable roots, no network.
SEATBELT_BASE_POLICY = """(version 1)
(deny default)
(allow process-exec)
(allow process-fork)
(allow signal (target self))
(allow sysctl-read)
(allow file-read*)
(allow file-write-data
  (require-all (path "/dev/null") (vnode-type CHARACTER-DEVICE)))
"""


def is_executable(path: str) -> bool:
    """Whether ``path`` exists and is executable by this process."""
    try:
        return os.path.isfile(path) and os.access(path, os.X_OK)
    except OSError as exc:
        logger.warning("Unexpected error checking %s: %s", path, exc)
        return False


def select_sandbox(
    want_sandbox: bool,
    *,
    platform: str | None = None,
    unsafe_allow_no_sandbox: bool = False,
    seatbelt_executable: str = DEFAULT_SEATBELT_EXECUTABLE,
) -> SandboxType:
    """Choose the confinement mechanism for a command.

    Args:
        want_sandbox: Whether the approval decision requires confinement.
        platform: Host platform identifier (``sys.platform`` by default).
        unsafe_allow_no_sandbox: The environment is already hardened.
        seatbelt_executable: Path of the macOS ``sandbox-exec`` binary.

    Raises:
        SandboxUnavailableError: A sandbox was mandated and none is available.
    """
    if not want_sandbox or unsafe_allow_no_sandbox:
        return SandboxType.NONE

    host = platform or sys.platform
    if host == "darwin":
        if is_executable(seatbelt_executable):
            return SandboxType.MACOS_SEATBELT
        raise SandboxUnavailableError(
            f"Sandbox was mandated, but '{seatbelt_executable}' was not found or is not executable!"
        )
    if host.startswith("linux"):
        # No availability probe: namespaces may be unavailable inside some containers.
        return SandboxType.LINUX_BUBBLEWRAP
    if host == "win32":
        logger.warning(WINDOWS_SANDBOX_WARNING)
        warnings.warn(WINDOWS_SANDBOX_WARNING, RuntimeWarning, stacklevel=2)
        return SandboxType.NONE

    raise SandboxUnavailableError("Sandbox was mandated, but no sandbox is available!")


def default_writable_roots(workdir: str, additional: list[str] | None = None) -> list[str]:
    """Working directory, the temp dir, and any extra roots, deduplicated in order."""
    roots: list[str] = []
    for root in [workdir, tempfile.gettempdir(), *(additional or [])]:
        resolved = os.path.realpath(root)
        if resolved not in roots:
            roots.append(resolved)
    return roots


def seatbelt_command(
    argv: list[str],
    writable_roots: list[str],
    seatbelt_executable: str = DEFAULT_SEATBELT_EXECUTABLE,
) -> list[str]:
    """Wrap argv for ``sandbox-exec`` with one writable subpath per root."""
    params: list[str] = []
    rules: list[str] = []
    for index, root in enumerate(writable_roots):
        name = f"WRITABLE_ROOT_{index}"
        params.extend(["-D", f"{name}={root}"])
        rules.append(f'(subpath (param "{name}"))')

    policy = SEATBELT_BASE_POLICY
    if rules:
        policy += "(allow file-write*\n  " + "\n  ".join(rules) + ")\n"

    return [seatbelt_executable, "-p", policy, *params, "--", *argv]


def bubblewrap_command(
    argv: list[str],
    writable_roots: list[str],
    workdir: str,
    executable: str = DEFAULT_LINUX_SANDBOX_EXECUTABLE,
) -> list[str]:
    """Wrap argv for bubblewrap: read-only root, writable roots bound, no network."""
    command = [
        executable,
        "--ro-bind",
        "/",
        "/",
        "--dev",
        "/dev",
        "--proc",
        "/proc",
        "--unshare-net",
        "--die-with-parent",
    ]
    for root in writable_roots:
        command.extend(["--bind", root, root])
    command.extend(["--chdir", workdir, "--", *argv])
    return command
