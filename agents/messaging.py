"""In-process message passing between agents.

Each agent id gets an asyncio inbox. The coordinator delivers request
messages to the addressed agent and posts the normalized result back to the
sender's inbox as a response message.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from backend.config import utcnow

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    REQUEST = "request"
    RESPONSE = "response"
    NOTIFICATION = "notification"


@dataclass(frozen=True)
class AgentMessage:
    """Envelope for one message between two agent ids."""

    sender: str
    recipient: str
    type: MessageType
    payload: Any
    timestamp: datetime = field(default_factory=utcnow)

    def reply(self, payload: Any, type: MessageType = MessageType.RESPONSE) -> AgentMessage:
        """Build a message back to this message's sender."""
        return AgentMessage(sender=self.recipient, recipient=self.sender, type=type, payload=payload)


class MessageBus:
    """Per-agent FIFO inboxes."""

    def __init__(self) -> None:
        self._inboxes: dict[str, asyncio.Queue[AgentMessage]] = {}

    def inbox(self, agent_id: str) -> asyncio.Queue[AgentMessage]:
        if agent_id not in self._inboxes:
            self._inboxes[agent_id] = asyncio.Queue()
        return self._inboxes[agent_id]

    async def send(self, message: AgentMessage) -> None:
        logger.debug("%s -> %s (%s)", message.sender, message.recipient, message.type.value)
        await self.inbox(message.recipient).put(message)

    async def receive(self, agent_id: str) -> AgentMessage:
        """Wait for the next message addressed to ``agent_id``."""
        return await self.inbox(agent_id).get()

    def receive_nowait(self, agent_id: str) -> AgentMessage | None:
        try:
            return self.inbox(agent_id).get_nowait()
        except asyncio.QueueEmpty:
            return None

    def pending(self, agent_id: str) -> int:
        return self.inbox(agent_id).qsize()
