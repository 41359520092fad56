"""
Mock agent directory.

In production, this would query the contact-centre presence system
(e.g. Genesys, Five9, Amazon Connect) for agents who can take callbacks.
"""

import logging
from typing import Optional, Protocol, TypedDict

logger = logging.getLogger(__name__)


class AgentDirectory(Protocol):
    def available_agent_count(self) -> int:
        """Number of agents currently free to take a callback."""

    def is_known_agent(self, agent_id: str, agent_name: str) -> bool:
        """Return True if the id exists and matches the given display name."""


class AgentRecord(TypedDict):
    """Agent record stored in the directory."""

    agent_id: str
    name: str
    available: bool


DEFAULT_AGENTS: list[AgentRecord] = [
    {"agent_id": "current-agent", "name": "John Smith", "available": True},
    {"agent_id": "agent-002", "name": "Priya Patel", "available": True},
    {"agent_id": "agent-003", "name": "Marcus Chen", "available": False},
]


class InMemoryAgentDirectory:
    """Agent roster held in memory."""

    def __init__(self, agents: Optional[list[AgentRecord]] = None) -> None:
        source = DEFAULT_AGENTS if agents is None else agents
        self._agents: dict[str, AgentRecord] = {a["agent_id"]: dict(a) for a in source}  # type: ignore[misc]

    def available_agent_count(self) -> int:
        return sum(1 for a in self._agents.values() if a["available"])

    def is_known_agent(self, agent_id: str, agent_name: str) -> bool:
        agent = self._agents.get(agent_id)
        return agent is not None and agent["name"] == agent_name

    def get_agent(self, agent_id: str) -> Optional[AgentRecord]:
        return self._agents.get(agent_id)

    def add_agent(self, agent_id: str, name: str, available: bool = True) -> AgentRecord:
        """Register a new agent, replacing any existing record with the same id."""
        agent: AgentRecord = {"agent_id": agent_id, "name": name, "available": available}
        self._agents[agent_id] = agent
        logger.info("Agent registered: %s (%s)", name, agent_id)
        return agent

    def set_availability(self, agent_id: str, available: bool) -> bool:
        """Mark an agent available or unavailable. Returns False if unknown."""
        agent = self._agents.get(agent_id)
        if agent is None:
            return False
        agent["available"] = available
        logger.debug("Agent %s availability -> %s", agent_id, available)
        return True
