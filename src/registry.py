"""Registry of configured agents, their state, and their adapters."""

import logging

from src.adapters.base import AgentAdapter
from src.models import Agent, ConnectionState

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Holds one Agent per configured id for the lifetime of the process."""

    def __init__(self, agent_ids: list[str], seed: dict[str, str | None] | None = None) -> None:
        seed = seed or {}
        self._agents: dict[str, Agent] = {
            agent_id: Agent(agent_id=agent_id, last_captured_reply=seed.get(agent_id))
            for agent_id in agent_ids
        }
        self._adapters: dict[str, AgentAdapter] = {}

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def get(self, agent_id: str) -> Agent | None:
        return self._agents.get(agent_id)

    def agents(self) -> list[Agent]:
        return list(self._agents.values())

    def register_adapter(self, agent_id: str, adapter: AgentAdapter) -> None:
        if agent_id not in self._agents:
            raise KeyError(f"Unknown agent: {agent_id}")
        self._adapters[agent_id] = adapter
        logger.debug("Adapter registered for %s", agent_id)

    def adapter_for(self, agent_id: str) -> AgentAdapter | None:
        return self._adapters.get(agent_id)

    def resolve(self, agent_id: str) -> AgentAdapter | None:
        """Return the adapter of a live session, or None when there is none."""
        agent = self._agents.get(agent_id)
        if agent is None or agent.connection_state is ConnectionState.DISCONNECTED:
            return None
        return self._adapters.get(agent_id)
