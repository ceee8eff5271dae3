"""Shared pytest configuration and fixtures."""

import tempfile
from unittest.mock import AsyncMock

import pytest

from agentexec.config import AgentExecConfig
from agentexec.session import Session
from agentexec.types import ApprovalPolicy, CommandConfirmation, ReviewDecision


@pytest.fixture
def tmp_dir():
    """Create and clean up a temporary directory."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def config():
    """Default configuration, independent of the environment."""
    return AgentExecConfig()


@pytest.fixture
def session(config):
    """A fresh session using the default configuration."""
    with Session(config=config, session_id="test-session") as s:
        yield s


@pytest.fixture
def full_auto_session():
    """A session in full-auto mode."""
    with Session(
        config=AgentExecConfig(approval_policy=ApprovalPolicy.FULL_AUTO),
        session_id="test-full-auto",
    ) as s:
        yield s


@pytest.fixture
def make_confirm():
    """Build a confirmation callback answering with the given decisions in order."""

    def factory(*decisions, custom_deny_message=None, explanation=None):
        confirmations = [
            CommandConfirmation(
                review=decision,
                custom_deny_message=custom_deny_message,
                explanation=explanation,
            )
            for decision in decisions
        ]
        return AsyncMock(side_effect=confirmations)

    return factory


@pytest.fixture
def approve_once(make_confirm):
    """Confirmation callback that approves a single prompt."""
    return make_confirm(ReviewDecision.YES)
