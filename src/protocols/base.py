"""Shared pieces of the round-based protocols."""

from abc import ABC, abstractmethod


def tag_reply(agent_id: str, content: str) -> str:
    """Wrap a reply in <agent_response> tags so the receiver knows its source."""
    return f"<{agent_id}_response>\n{content}\n</{agent_id}_response>"


def display_name(agent_id: str) -> str:
    return agent_id[:1].upper() + agent_id[1:]


class ProtocolMachine(ABC):
    """A protocol run the orchestrator forwards captured replies to."""

    @abstractmethod
    def expects(self, agent_id: str) -> bool:
        """True while agent_id is in this run's pending set."""
        ...

    @abstractmethod
    def on_capture(self, agent_id: str, content: str) -> None:
        ...

    @property
    @abstractmethod
    def is_finished(self) -> bool:
        ...
