"""Tests for sandbox selection and command wrapping."""

import os
import stat
import tempfile

import pytest

from agentexec.errors import SandboxUnavailableError
from agentexec.execution.sandbox import (
    WINDOWS_SANDBOX_WARNING,
    bubblewrap_command,
    default_writable_roots,
    seatbelt_command,
    select_sandbox,
)
from agentexec.types import SandboxType


@pytest.fixture
def fake_seatbelt(tmp_dir):
    """An executable file standing in for sandbox-exec."""
    path = os.path.join(tmp_dir, "sandbox-exec")
    with open(path, "w") as f:
        f.write("#!/bin/sh\n")
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR)
    return path


class TestSelectSandbox:
    """Tests for select_sandbox."""

    @pytest.mark.parametrize("platform", ["darwin", "linux", "win32", "freebsd"])
    def test_none_when_not_wanted(self, platform):
        """No sandbox is selected when none is wanted."""
        assert select_sandbox(False, platform=platform) == SandboxType.NONE

    @pytest.mark.parametrize("platform", ["darwin", "linux", "freebsd"])
    def test_escape_hatch_selects_none(self, platform):
        """A hardened environment never wraps commands."""
        assert select_sandbox(True, platform=platform, unsafe_allow_no_sandbox=True) == (
            SandboxType.NONE
        )

    def test_darwin_uses_seatbelt_when_present(self, fake_seatbelt):
        """macOS selects seatbelt when sandbox-exec is executable."""
        result = select_sandbox(True, platform="darwin", seatbelt_executable=fake_seatbelt)
        assert result == SandboxType.MACOS_SEATBELT

    def test_darwin_fails_when_seatbelt_missing(self, tmp_dir):
        """macOS never silently downgrades."""
        missing = os.path.join(tmp_dir, "missing")
        with pytest.raises(SandboxUnavailableError, match="was not found"):
            select_sandbox(True, platform="darwin", seatbelt_executable=missing)

    def test_darwin_fails_when_seatbelt_not_executable(self, tmp_dir):
        """A non-executable sandbox-exec counts as absent."""
        path = os.path.join(tmp_dir, "sandbox-exec")
        with open(path, "w") as f:
            f.write("")
        os.chmod(path, 0o644)
        with pytest.raises(SandboxUnavailableError):
            select_sandbox(True, platform="darwin", seatbelt_executable=path)

    def test_linux_selects_bubblewrap(self):
        """Linux selects the kernel-level sandbox."""
        assert select_sandbox(True, platform="linux") == SandboxType.LINUX_BUBBLEWRAP

    def test_windows_downgrades_with_warning(self):
        """Windows runs unconfined and says so."""
        with pytest.warns(RuntimeWarning, match="no Windows sandbox"):
            result = select_sandbox(True, platform="win32")
        assert result == SandboxType.NONE
        assert "Running without sandbox" in WINDOWS_SANDBOX_WARNING

    def test_unknown_platform_fails(self):
        """Other hosts have no mechanism."""
        with pytest.raises(SandboxUnavailableError, match="no sandbox is available"):
            select_sandbox(True, platform="freebsd")


class TestDefaultWritableRoots:
    """Tests for default_writable_roots."""

    def test_includes_workdir_and_tempdir(self, tmp_dir):
        """Workdir comes first, then the temp dir."""
        roots = default_writable_roots(tmp_dir)
        assert roots[0] == os.path.realpath(tmp_dir)
        assert os.path.realpath(tempfile.gettempdir()) in roots

    def test_deduplicates(self, tmp_dir):
        """Repeated roots appear once."""
        roots = default_writable_roots(tmp_dir, [tmp_dir, tmp_dir])
        assert roots.count(os.path.realpath(tmp_dir)) == 1


class TestSeatbeltCommand:
    """Tests for seatbelt_command."""

    def test_wraps_argv_with_policy_and_params(self):
        """Each root becomes a -D parameter referenced by the policy."""
        argv = seatbelt_command(["ls", "-la"], ["/work", "/tmp"], "/usr/bin/sandbox-exec")
        assert argv[0] == "/usr/bin/sandbox-exec"
        assert argv[1] == "-p"
        policy = argv[2]
        assert "(deny default)" in policy
        assert '(subpath (param "WRITABLE_ROOT_0"))' in policy
        assert '(subpath (param "WRITABLE_ROOT_1"))' in policy
        assert argv[3:7] == ["-D", "WRITABLE_ROOT_0=/work", "-D", "WRITABLE_ROOT_1=/tmp"]
        assert argv[-3:] == ["--", "ls", "-la"]

    def test_no_roots_means_no_write_rule(self):
        """Without roots nothing is writable."""
        argv = seatbelt_command(["true"], [])
        assert "file-write*" not in argv[2]


class TestBubblewrapCommand:
    """Tests for bubblewrap_command."""

    def test_binds_roots_and_isolates_network(self):
        """Root is read-only, writable roots are bound, network is unshared."""
        argv = bubblewrap_command(["make"], ["/work"], "/work", "bwrap")
        assert argv[:4] == ["bwrap", "--ro-bind", "/", "/"]
        assert "--unshare-net" in argv
        index = argv.index("--bind")
        assert argv[index : index + 3] == ["--bind", "/work", "/work"]
        assert argv[argv.index("--chdir") + 1] == "/work"
        assert argv[-2:] == ["--", "make"]
