"""Configuration loaded from the environment (and a ``.env`` file, if present)."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .types import ApprovalPolicy, FullAutoErrorMode

load_dotenv()

ENV_PREFIX = "AGENTEXEC_"

# Default command timeout in milliseconds
DEFAULT_TIMEOUT_MS = 30_000

# Default maximum output characters
DEFAULT_MAX_OUTPUT_CHARS = 100_000

# Default number of checkpoints kept per session
DEFAULT_CHECKPOINT_HISTORY = 10

DEFAULT_SEATBELT_EXECUTABLE = "/usr/bin/sandbox-exec"
DEFAULT_LINUX_SANDBOX_EXECUTABLE = "bwrap"

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class AgentExecConfig(BaseModel):
    """Session-wide settings for approval, sandboxing and execution."""

    approval_policy: ApprovalPolicy = Field(
        default=ApprovalPolicy.SUGGEST, description="Default trust level"
    )
    full_auto_error_mode: FullAutoErrorMode = Field(
        default=FullAutoErrorMode.IGNORE_AND_CONTINUE,
        description="Whether a failed sandboxed run may be retried unsandboxed after re-approval",
    )
    unsafe_allow_no_sandbox: bool = Field(
        default=False,
        description="The environment is already locked down; never wrap commands in a sandbox",
    )
    default_timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    max_output_chars: int = Field(default=DEFAULT_MAX_OUTPUT_CHARS, gt=0)
    checkpoint_history_limit: int = Field(default=DEFAULT_CHECKPOINT_HISTORY, ge=1)
    repetition_window_size: int = Field(default=10, ge=1)
    repetition_window_seconds: float = Field(default=60.0, gt=0)
    repetition_threshold: int = Field(default=3, ge=2)
    seatbelt_executable: str = DEFAULT_SEATBELT_EXECUTABLE
    linux_sandbox_executable: str = DEFAULT_LINUX_SANDBOX_EXECUTABLE
    allowlist: list[str] = Field(
        default_factory=list, description="Glob patterns of commands treated as known-safe"
    )
    log_file: str | None = None

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> AgentExecConfig:
        """Build a config from ``AGENTEXEC_*`` environment variables.

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        simple_fields = {
            "APPROVAL_POLICY": "approval_policy",
            "FULL_AUTO_ERROR_MODE": "full_auto_error_mode",
            "UNSAFE_ALLOW_NO_SANDBOX": "unsafe_allow_no_sandbox",
            "DEFAULT_TIMEOUT_MS": "default_timeout_ms",
            "MAX_OUTPUT_CHARS": "max_output_chars",
            "CHECKPOINT_HISTORY": "checkpoint_history_limit",
            "REPETITION_WINDOW_SIZE": "repetition_window_size",
            "REPETITION_WINDOW_SECONDS": "repetition_window_seconds",
            "REPETITION_THRESHOLD": "repetition_threshold",
            "SEATBELT_EXECUTABLE": "seatbelt_executable",
            "LINUX_SANDBOX_EXECUTABLE": "linux_sandbox_executable",
            "LOG_FILE": "log_file",
        }
        for suffix, field_name in simple_fields.items():
            raw = env.get(ENV_PREFIX + suffix)
            if raw is not None and raw.strip():
                values[field_name] = raw.strip()

        allowlist = env.get(ENV_PREFIX + "ALLOWLIST")
        if allowlist:
            values["allowlist"] = [p.strip() for p in allowlist.split(",") if p.strip()]

        return cls.model_validate(values)


def configure_file_logging(log_file: str) -> None:
    """Redirect all agentexec logs to a file instead of stdout/stderr."""
    handler = logging.FileHandler(log_file, mode="a")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("agentexec")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    root.propagate = False
