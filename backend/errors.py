"""Exception hierarchy shared by the generation client and the agents."""


class AgentError(Exception):
    """Base class for every failure raised by the agent system."""


class ServiceError(AgentError):
    """The generation service could not produce a reply (network, quota, auth)."""


class ParseError(AgentError):
    """The service replied, but not in the structured shape the caller needs."""

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text

    @property
    def snippet(self) -> str:
        """First 200 characters of the offending reply, for logs and API errors."""
        return self.raw_text[:200]


class ClassificationError(AgentError):
    """Intent detection failed or returned something unusable."""


class UnregisteredAgentError(AgentError):
    """A request was routed to an agent id that has no registered agent."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"No agent registered under id {agent_id!r}")
        self.agent_id = agent_id
