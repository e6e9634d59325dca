"""Abstract base class for pipeline agents and stages."""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from loguru import logger


class BaseAgent(ABC):
    """
    Common identity and logging context for platform agents and analysis stages.

    Attributes:
        agent_id: Unique UUID identifier for this agent instance
        name: Human-readable agent name, also the stage label in results
        description: Brief description of agent purpose
        logger: Loguru logger bound with agent context
        created_at: UTC timestamp of agent instantiation
    """

    def __init__(self, name: str, description: str = ""):
        self.agent_id = str(uuid.uuid4())
        self.name = name
        self.description = description
        self.logger = logger.bind(component=name, agent_id=self.agent_id)
        self.created_at = datetime.now(timezone.utc)

        self.logger.debug(f"Agent {name} initialized with ID {self.agent_id}")

    @abstractmethod
    def get_capabilities(self) -> list[str]:
        """
        Return list of agent capabilities.

        Capabilities are concise strings identifying specific skills,
        reported by the CLI status command.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, id={self.agent_id[:8]})"
