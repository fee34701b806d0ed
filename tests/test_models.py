"""Tests for src/models.py dataclasses and src/errors.py messages."""

import pytest

from src.errors import AgentNotFound, ChannelError, MissingRoundData, TransientChannelError
from src.models import (
    Agent,
    CaptureSession,
    ConnectionState,
    DiscussionState,
    ReplyCaptured,
    RoundEntry,
    RoundType,
)


def test_agent_defaults():
    agent = Agent(agent_id="claude")
    assert agent.connection_state is ConnectionState.UNKNOWN
    assert agent.last_captured_reply is None


def test_capture_session_needs_threshold_unchanged_polls():
    session = CaptureSession(agent_id="claude", start_time=0.0)
    assert session.observe("Hello") is False
    assert session.observe("Hello") is False
    assert session.observe("Hello") is False
    assert session.observe("Hello") is False
    assert session.observe("Hello") is True
    assert session.polls == 5
    assert session.stable_count == 4


def test_capture_session_resets_on_change():
    session = CaptureSession(agent_id="claude", start_time=0.0, stable_threshold=2)
    session.observe("a")
    session.observe("a")
    assert session.stable_count == 1
    session.observe("ab")
    assert session.stable_count == 0


def test_capture_session_empty_text_is_never_stable():
    session = CaptureSession(agent_id="claude", start_time=0.0, stable_threshold=1)
    for _ in range(5):
        assert session.observe("") is False
    assert session.observe("", completion_hint=True) is False


def test_capture_session_hint_concludes_on_first_text():
    session = CaptureSession(agent_id="claude", start_time=0.0)
    assert session.observe("Done", completion_hint=True) is True


def test_discussion_state_lookup():
    state = DiscussionState(topic="t", participants=["claude", "gemini"])
    entry = RoundEntry(1, "claude", RoundType.INITIAL, "Hi")
    state.history.append(entry)

    assert state.entry_for(1, "claude") is entry
    assert state.entry_for(1, "gemini") is None
    assert state.entries_for_round(1) == [entry]
    assert state.entries_for_round(2) == []


def test_round_entry_is_immutable():
    entry = RoundEntry(1, "claude", RoundType.INITIAL, "Hi")
    with pytest.raises(AttributeError):
        entry.content = "changed"  # type: ignore[misc]


def test_messages_compare_by_value():
    assert ReplyCaptured("claude", "x") == ReplyCaptured(agent_id="claude", content="x")


def test_channel_error_messages():
    assert str(AgentNotFound("gemini")) == "[gemini] No gemini session found"
    err = TransientChannelError("claude", "Receiving end does not exist")
    assert isinstance(err, ChannelError)
    assert err.agent_id == "claude"


def test_missing_round_data_lists_agents():
    err = MissingRoundData(2, ["claude", "chatgpt"])
    assert "Round 2" in str(err)
    assert "claude, chatgpt" in str(err)
