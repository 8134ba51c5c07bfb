"""Base agent protocol and shared request context.

Defines the common interface all agents implement, the per-request context
every agent reads from, and the descriptor the coordinator reports for
each registered agent.
"""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from backend.llm_client import GenerationService, SamplingConfig

logger = logging.getLogger(__name__)

DIFFICULTIES = ("easy", "medium", "hard")

# camelCase keys accepted from outer layers
_CONTEXT_ALIASES = {
    "examType": "exam_type",
    "timeLimit": "time_limit",
}


@dataclass(frozen=True)
class RequestContext:
    """What the caller knows about the learner for one request.

    Frozen so an agent can never change the context seen by the next one.
    """

    grade: int
    subject: str | None = None
    chapter: str | None = None
    topic: str | None = None
    difficulty: str | None = None
    exam_type: str | None = None
    time_limit: int | None = None  # minutes

    def __post_init__(self) -> None:
        if isinstance(self.grade, bool) or not isinstance(self.grade, int):
            raise ValueError(f"grade must be an integer, got {self.grade!r}")
        if not 1 <= self.grade <= 12:
            raise ValueError(f"grade must be between 1 and 12, got {self.grade}")
        if self.difficulty is not None and self.difficulty not in DIFFICULTIES:
            raise ValueError(f"difficulty must be one of {DIFFICULTIES}, got {self.difficulty!r}")
        if self.time_limit is not None and self.time_limit <= 0:
            raise ValueError(f"time_limit must be positive, got {self.time_limit}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RequestContext:
        """Build a context from a loose mapping, accepting camelCase keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _CONTEXT_ALIASES.get(key, key)
            if name in known and value is not None:
                values[name] = value
        if "grade" not in values:
            raise ValueError("context must include a grade")
        try:
            values["grade"] = int(values["grade"])
            if "time_limit" in values:
                values["time_limit"] = int(values["time_limit"])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid numeric context value: {exc}") from exc
        return cls(**values)

    @property
    def focus(self) -> str:
        """The most specific subject matter the caller named."""
        return self.topic or self.chapter or self.subject or "General"


class AgentStatus(Enum):
    """Advisory telemetry; never used as a lock."""

    IDLE = "idle"
    ACTIVE = "active"
    PROCESSING = "processing"


@dataclass(frozen=True)
class AgentDescriptor:
    """Static identity plus current status of a registered agent."""

    id: str
    name: str
    role: str
    capabilities: frozenset[str]
    priority: int
    status: AgentStatus


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _wire_value(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {_camel(f.name): _wire_value(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, list | tuple):
        return [_wire_value(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    return value


class NormalizedResponse:
    """Mixin for agent results: every field populated, serializable on the wire."""

    def to_dict(self) -> dict[str, Any]:
        """Return the record with camelCase keys, as the outer layer expects."""
        return _wire_value(self)


class BaseAgent(ABC):
    """Abstract base class for all agents.

    Each agent shares one generation service, builds a task-specific prompt,
    calls the service with its own sampling profile, and normalizes the
    reply. Agents hold no per-request state.
    """

    capabilities: frozenset[str] = frozenset()
    priority: int = 100

    def __init__(self, llm: GenerationService) -> None:
        """Initialize the agent with the shared generation service."""
        self.llm = llm
        self.logger = logging.getLogger(f"agents.{self.agent_id}")
        self._in_flight = 0
        self._calls = 0

    @property
    @abstractmethod
    def agent_id(self) -> str:
        """Unique, stable agent identifier."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable agent name."""
        ...

    @property
    @abstractmethod
    def role(self) -> str:
        """What this agent does, for logging and debugging."""
        ...

    @abstractmethod
    async def handle(self, request: str, context: RequestContext) -> NormalizedResponse:
        """Turn a learner request into this agent's normalized response."""
        ...

    @property
    def status(self) -> AgentStatus:
        if self._in_flight:
            return AgentStatus.PROCESSING
        return AgentStatus.ACTIVE if self._calls else AgentStatus.IDLE

    @property
    def descriptor(self) -> AgentDescriptor:
        return AgentDescriptor(
            id=self.agent_id,
            name=self.name,
            role=self.role,
            capabilities=self.capabilities,
            priority=self.priority,
            status=self.status,
        )

    async def _generate(self, prompt: str, config: SamplingConfig) -> str:
        """Call the generation service, tracking in-flight calls for status."""
        self._calls += 1
        self._in_flight += 1
        self.logger.debug(
            "Generating (temperature=%.2f, max_tokens=%d)",
            config.temperature,
            config.max_output_tokens,
        )
        try:
            return await self.llm.generate(prompt, config)
        finally:
            self._in_flight -= 1
