"""Tests for session-scoped state."""

from agentexec.config import AgentExecConfig
from agentexec.session import Session


class TestSession:
    """Tests for Session."""

    def test_fresh_session_is_empty(self, session):
        """A new session starts without approvals or checkpoints."""
        assert session.id == "test-session"
        assert session.always_approved == set()
        assert len(session.checkpoints) == 0
        assert len(session.repetition_guard) == 0
        assert session.closed is False

    def test_generates_id(self, config):
        """Sessions get a unique id when none is given."""
        with Session(config=config) as first, Session(config=config) as second:
            assert first.id != second.id

    def test_config_drives_components(self):
        """Guard and checkpoint limits come from the configuration."""
        config = AgentExecConfig(
            repetition_threshold=5, repetition_window_seconds=10, checkpoint_history_limit=2
        )
        with Session(config=config) as session:
            assert session.repetition_guard.threshold == 5
            assert session.repetition_guard.window_seconds == 10
            assert session.checkpoints.history_limit == 2

    def test_close_drops_state(self, config):
        """Closing clears approvals, the guard window and checkpoints."""
        session = Session(config=config)
        session.always_approved.add("npm")
        session.repetition_guard.check(["ls"])
        session.checkpoints.create("cp", [])
        session.close()
        assert session.always_approved == set()
        assert len(session.repetition_guard) == 0
        assert len(session.checkpoints) == 0
        assert session.closed is True

    def test_context_manager_closes(self, config):
        """Leaving the with block closes the session."""
        with Session(config=config) as session:
            pass
        assert session.closed is True

    def test_sessions_are_isolated(self, config):
        """Approvals in one session do not leak into another."""
        with Session(config=config) as first, Session(config=config) as second:
            first.always_approved.add("npm")
            assert "npm" not in second.always_approved
