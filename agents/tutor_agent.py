"""Tutor Agent: one-on-one dialogue with short-term memory.

Responsibilities:
- Explain concepts conversationally at the learner's grade
- Keep continuity by embedding the recent turns of the session
- Record each exchange in the session it was given

The agent itself is stateless; conversation history lives in a
ConversationSession supplied per call.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from agents.base import BaseAgent, NormalizedResponse, RequestContext
from agents.conversation import ConversationSession, ConversationTurn, Role
from backend.llm_client import SamplingConfig

TUTOR_PROFILE = SamplingConfig(temperature=0.7, top_k=64, top_p=0.95, max_output_tokens=8192)

TUTOR_PROMPT = """\
You are a friendly, expert tutor helping a Class {grade} Tamil Nadu student.
Subject: {subject}

Previous conversation:
{history}

Student asks: "{request}"

Respond naturally as a helpful tutor would:

**YOUR EXPLANATION:**
[Explain the concept clearly in 2-3 paragraphs. Use simple language and everyday examples \
from Tamil Nadu. Make it friendly and encouraging.]

**TRY THIS:**
[Give 1-2 simple practice problems or activities they can try right now]

**THINK ABOUT:**
[Ask 1-2 questions to help them think deeper about this topic]

Write naturally and conversationally. Be warm and encouraging. Don't use JSON format."""

NO_HISTORY = "(This is the start of the conversation.)"


@dataclass(frozen=True)
class TutorReply(NormalizedResponse):
    response: str
    key_points: list[str] = field(default_factory=list)
    practice_exercise: str = 'See "Try This" section above'
    follow_up_questions: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)


def format_history(turns: list[ConversationTurn]) -> str:
    if not turns:
        return NO_HISTORY
    return "\n".join(f"{turn.role.value}: {turn.content}" for turn in turns)


class TutorAgent(BaseAgent):
    """Conversational tutor; memory is the session passed to each call."""

    capabilities = frozenset({"tutoring", "explanation", "dialogue"})
    priority = 40

    @property
    def agent_id(self) -> str:
        return "tutor"

    @property
    def name(self) -> str:
        return "Tutor"

    @property
    def role(self) -> str:
        return "Holds a one-on-one tutoring conversation"

    def build_prompt(self, request: str, context: RequestContext, session: ConversationSession) -> str:
        return TUTOR_PROMPT.format(
            grade=context.grade,
            subject=context.subject or "General",
            history=format_history(session.window()),
            request=request,
        )

    async def handle(
        self,
        request: str,
        context: RequestContext,
        session: ConversationSession | None = None,
    ) -> TutorReply:
        """Answer one turn of the conversation.

        Without a session the turn is answered with no memory. Turns on the
        same session run one at a time; history is only extended once the
        reply has been generated.
        """
        if session is None:
            session = ConversationSession()

        async with session.lock:
            prompt = self.build_prompt(request, context, session)
            reply = await self._generate(prompt, TUTOR_PROFILE)
            session.append(Role.USER, request)
            session.append(Role.TUTOR, reply)

        self.logger.debug("Session %s now has %d turns", session.session_id, len(session))
        return TutorReply(response=reply)
