"""Conversation state for tutoring sessions.

A session owns the ordered turn history for one learner. Tutor agents stay
stateless: the coordinator hands them the session for each turn, and the
session's lock keeps concurrent turns from interleaving.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from agents.base import NormalizedResponse
from backend.config import settings, utcnow

logger = logging.getLogger(__name__)


class Role(str, Enum):
    USER = "user"
    TUTOR = "tutor"


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    content: str


@dataclass(frozen=True)
class ConversationSummary(NormalizedResponse):
    """Progress report for a session."""

    session_id: str
    messages: int
    exchanges: int
    started_at: datetime
    last_activity: datetime


@dataclass
class ConversationSession:
    """Append-only turn history for one learner session."""

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=utcnow)
    last_activity: datetime = field(default_factory=utcnow)
    _turns: list[ConversationTurn] = field(default_factory=list, repr=False)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def history(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def append(self, role: Role, content: str) -> None:
        self._turns.append(ConversationTurn(role=Role(role), content=content))
        self.last_activity = utcnow()

    def window(self, size: int | None = None) -> list[ConversationTurn]:
        """The most recent ``size`` turns, oldest first."""
        size = settings.conversation_window if size is None else size
        if size <= 0:
            return []
        return self._turns[-size:]

    def reset(self) -> None:
        """Forget every turn; the session itself stays open."""
        self._turns.clear()
        self.last_activity = utcnow()

    def summary(self) -> ConversationSummary:
        return ConversationSummary(
            session_id=self.session_id,
            messages=len(self._turns),
            exchanges=sum(1 for turn in self._turns if turn.role is Role.TUTOR),
            started_at=self.created_at,
            last_activity=self.last_activity,
        )


class SessionStore:
    """In-memory registry of conversation sessions with idle eviction."""

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self._sessions: dict[str, ConversationSession] = {}
        self._ttl = settings.session_ttl_seconds if ttl_seconds is None else ttl_seconds

    def get(self, session_id: str) -> ConversationSession | None:
        self._evict_expired_sessions()
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: str | None = None) -> ConversationSession:
        """Return the named session, creating it if needed.

        Without an id a fresh session is returned and tracked under a
        generated id.
        """
        self._evict_expired_sessions()
        if session_id is not None and session_id in self._sessions:
            return self._sessions[session_id]
        session = ConversationSession(session_id=session_id) if session_id else ConversationSession()
        self._sessions[session.session_id] = session
        logger.info("Opened conversation session %s", session.session_id)
        return session

    def discard(self, session_id: str) -> ConversationSession | None:
        return self._sessions.pop(session_id, None)

    def _evict_expired_sessions(self) -> None:
        """Remove sessions idle for longer than the TTL."""
        now = utcnow()
        expired = [
            sid
            for sid, s in self._sessions.items()
            if (now - s.last_activity).total_seconds() > self._ttl
        ]
        for sid in expired:
            logger.info("Evicting expired session %s", sid)
            self._sessions.pop(sid, None)

    @property
    def active_sessions(self) -> list[str]:
        """List active session IDs."""
        return list(self._sessions.keys())
