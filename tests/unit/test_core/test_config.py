"""Tests for configuration loading."""

import logging
import os

import pytest
from pydantic import ValidationError

from agentexec.config import (
    DEFAULT_CHECKPOINT_HISTORY,
    DEFAULT_MAX_OUTPUT_CHARS,
    DEFAULT_TIMEOUT_MS,
    AgentExecConfig,
    configure_file_logging,
)
from agentexec.types import ApprovalPolicy, FullAutoErrorMode


class TestDefaults:
    """Tests for default configuration values."""

    def test_defaults(self):
        """The defaults are conservative."""
        config = AgentExecConfig()
        assert config.approval_policy == ApprovalPolicy.SUGGEST
        assert config.full_auto_error_mode == FullAutoErrorMode.IGNORE_AND_CONTINUE
        assert config.unsafe_allow_no_sandbox is False
        assert config.default_timeout_ms == DEFAULT_TIMEOUT_MS
        assert config.max_output_chars == DEFAULT_MAX_OUTPUT_CHARS
        assert config.checkpoint_history_limit == DEFAULT_CHECKPOINT_HISTORY
        assert config.repetition_threshold == 3
        assert config.allowlist == []

    def test_policy_rank(self):
        """Policies are ordered by autonomy."""
        assert ApprovalPolicy.SUGGEST.rank < ApprovalPolicy.AUTO_EDIT.rank
        assert ApprovalPolicy.AUTO_EDIT.rank < ApprovalPolicy.FULL_AUTO.rank


class TestFromEnv:
    """Tests for AgentExecConfig.from_env."""

    def test_empty_environment(self):
        """No variables means defaults."""
        assert AgentExecConfig.from_env({}) == AgentExecConfig()

    def test_reads_prefixed_variables(self):
        """AGENTEXEC_* variables populate the matching fields."""
        config = AgentExecConfig.from_env(
            {
                "AGENTEXEC_APPROVAL_POLICY": "full-auto",
                "AGENTEXEC_FULL_AUTO_ERROR_MODE": "ask-user",
                "AGENTEXEC_UNSAFE_ALLOW_NO_SANDBOX": "true",
                "AGENTEXEC_DEFAULT_TIMEOUT_MS": "5000",
                "AGENTEXEC_CHECKPOINT_HISTORY": "3",
                "AGENTEXEC_REPETITION_WINDOW_SECONDS": "30.5",
                "AGENTEXEC_SEATBELT_EXECUTABLE": "/opt/sandbox-exec",
            }
        )
        assert config.approval_policy == ApprovalPolicy.FULL_AUTO
        assert config.full_auto_error_mode == FullAutoErrorMode.ASK_USER
        assert config.unsafe_allow_no_sandbox is True
        assert config.default_timeout_ms == 5000
        assert config.checkpoint_history_limit == 3
        assert config.repetition_window_seconds == 30.5
        assert config.seatbelt_executable == "/opt/sandbox-exec"

    def test_allowlist_is_comma_separated(self):
        """The allowlist is split on commas and trimmed."""
        config = AgentExecConfig.from_env({"AGENTEXEC_ALLOWLIST": "npm run *, make test ,,"})
        assert config.allowlist == ["npm run *", "make test"]

    def test_blank_values_are_ignored(self):
        """Empty variables fall back to defaults."""
        config = AgentExecConfig.from_env({"AGENTEXEC_DEFAULT_TIMEOUT_MS": "  "})
        assert config.default_timeout_ms == DEFAULT_TIMEOUT_MS

    def test_unprefixed_variables_are_ignored(self):
        """Only prefixed variables count."""
        assert AgentExecConfig.from_env({"APPROVAL_POLICY": "full-auto"}) == AgentExecConfig()

    @pytest.mark.parametrize(
        "name,value",
        [
            ("AGENTEXEC_APPROVAL_POLICY", "yolo"),
            ("AGENTEXEC_DEFAULT_TIMEOUT_MS", "0"),
            ("AGENTEXEC_REPETITION_THRESHOLD", "1"),
        ],
    )
    def test_invalid_values(self, name, value):
        """Invalid values raise a validation error."""
        with pytest.raises(ValidationError):
            AgentExecConfig.from_env({name: value})

    def test_reads_process_environment(self, monkeypatch):
        """Without an explicit mapping the process environment is used."""
        monkeypatch.setenv("AGENTEXEC_MAX_OUTPUT_CHARS", "1234")
        assert AgentExecConfig.from_env().max_output_chars == 1234


class TestConfigureFileLogging:
    """Tests for configure_file_logging."""

    def test_logs_go_to_file(self, tmp_dir):
        """Package logs are written to the file and stop propagating."""
        log_file = os.path.join(tmp_dir, "agentexec.log")
        root = logging.getLogger("agentexec")
        saved = (list(root.handlers), root.level, root.propagate)
        try:
            configure_file_logging(log_file)
            logging.getLogger("agentexec.test").info("hello from the test")
            for handler in root.handlers:
                handler.flush()
            with open(log_file) as f:
                assert "hello from the test" in f.read()
            assert root.propagate is False
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])
            root.propagate = saved[2]
