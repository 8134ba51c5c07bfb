"""Coordinator: routes learner requests to the right agent.

The coordinator is the top-level controller that:
- Owns the registry of agent id -> agent
- Classifies each request and maps the intent to a fixed agent id
- Dispatches to exactly one agent and returns its normalized response
- Keeps tutoring sessions and the inter-agent message bus
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from agents.assessor_agent import AssessorAgent
from agents.base import AgentDescriptor, BaseAgent, NormalizedResponse, RequestContext
from agents.content_agent import ContentGeneratorAgent
from agents.conversation import ConversationSummary, SessionStore
from agents.gap_analyzer_agent import GapAnalyzerAgent
from agents.general_agent import GeneralAssistantAgent
from agents.intent import Intent, IntentClassification, IntentClassifier
from agents.messaging import AgentMessage, MessageBus, MessageType
from agents.motivator_agent import MotivatorAgent
from agents.tutor_agent import TutorAgent
from backend.errors import AgentError, ClassificationError, UnregisteredAgentError
from backend.llm_client import GenerationService, get_llm_client

logger = logging.getLogger(__name__)

CONTENT_GENERATOR = "content-generator"
GAP_ANALYZER = "gap-analyzer"
ASSESSOR = "assessor"
MOTIVATOR = "motivator"
TUTOR = "tutor"
GENERAL_ASSISTANT = "general-assistant"


def agent_for_intent(intent: Intent) -> str:
    """The fixed agent id that serves an intent."""
    match intent:
        case Intent.LEARNING_CONTENT:
            return CONTENT_GENERATOR
        case Intent.GAP_ANALYSIS:
            return GAP_ANALYZER
        case Intent.ASSESSMENT:
            return ASSESSOR
        case Intent.MOTIVATION:
            return MOTIVATOR
        case Intent.TUTORING:
            return TUTOR
        case _:
            return GENERAL_ASSISTANT


@dataclass(frozen=True)
class RoutingResult:
    """The routing decision together with the agent's response."""

    agent_id: str
    classification: IntentClassification
    result: NormalizedResponse
    session_id: str | None = None


class AgentCoordinator:
    """Classifies requests and dispatches each to a single agent.

    Flow for each request:
    1. Intent classifier labels the request (general on failure)
    2. The intent maps to one agent id
    3. The agent handles the request with one generation call
    4. Its normalized response goes back to the caller
    """

    def __init__(
        self,
        llm: GenerationService,
        classifier: IntentClassifier | None = None,
        sessions: SessionStore | None = None,
    ) -> None:
        self.llm = llm
        self.classifier = classifier or IntentClassifier(llm)
        self.sessions = sessions or SessionStore()
        self.bus = MessageBus()
        self._agents: dict[str, BaseAgent] = {}

    def register_agent(self, agent_id: str, agent: BaseAgent) -> None:
        """Register or replace the agent serving ``agent_id``."""
        replaced = agent_id in self._agents
        self._agents[agent_id] = agent
        logger.info("%s agent %s (%s)", "Replaced" if replaced else "Registered", agent_id, type(agent).__name__)

    def get_agent(self, agent_id: str) -> BaseAgent:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise UnregisteredAgentError(agent_id)
        return agent

    @property
    def agent_ids(self) -> list[str]:
        return list(self._agents.keys())

    def describe_agents(self) -> list[AgentDescriptor]:
        """Descriptors of every registered agent, highest priority first."""
        return sorted((agent.descriptor for agent in self._agents.values()), key=lambda d: d.priority)

    async def classify(self, request: str, context: RequestContext) -> IntentClassification:
        """Classify a request, falling back to the general intent on failure."""
        try:
            return await self.classifier.classify(request, context)
        except ClassificationError as exc:
            logger.warning("Classification failed, routing to %s: %s", GENERAL_ASSISTANT, exc)
            return IntentClassification(
                type=Intent.GENERAL,
                confidence=0.0,
                subject_area=context.subject or "general",
            )

    async def route(
        self,
        request: str,
        context: RequestContext,
        session_id: str | None = None,
    ) -> RoutingResult:
        """Classify and dispatch, returning the decision alongside the result.

        Raises:
            UnregisteredAgentError: The intent maps to an id with no agent.
            ServiceError: The agent's generation call failed.
            ParseError: The agent needed structured output and did not get it.
        """
        classification = await self.classify(request, context)
        agent_id = agent_for_intent(classification.type)
        logger.info(
            "Routing %s request to %s (confidence %.2f)",
            classification.type.value,
            agent_id,
            classification.confidence,
        )
        result, used_session = await self._dispatch(agent_id, request, context, session_id)
        return RoutingResult(
            agent_id=agent_id,
            classification=classification,
            result=result,
            session_id=used_session,
        )

    async def route_request(
        self,
        request: str,
        context: RequestContext,
        session_id: str | None = None,
    ) -> NormalizedResponse:
        """Route a request and return only the agent's normalized response."""
        return (await self.route(request, context, session_id)).result

    async def dispatch(
        self,
        agent_id: str,
        request: str,
        context: RequestContext,
        session_id: str | None = None,
    ) -> NormalizedResponse:
        """Send a request straight to one agent, skipping classification."""
        result, _ = await self._dispatch(agent_id, request, context, session_id)
        return result

    async def _dispatch(
        self,
        agent_id: str,
        request: str,
        context: RequestContext,
        session_id: str | None,
    ) -> tuple[NormalizedResponse, str | None]:
        agent = self.get_agent(agent_id)
        if isinstance(agent, TutorAgent):
            session = self.sessions.get_or_create(session_id)
            return await agent.handle(request, context, session=session), session.session_id
        return await agent.handle(request, context), None

    # --- Tutoring sessions ---

    def reset_conversation(self, session_id: str) -> bool:
        """Clear a session's history. Returns False if the session is unknown."""
        session = self.sessions.get(session_id)
        if session is None:
            return False
        session.reset()
        return True

    def conversation_summary(self, session_id: str) -> ConversationSummary | None:
        session = self.sessions.get(session_id)
        return session.summary() if session is not None else None

    def end_session(self, session_id: str) -> ConversationSummary | None:
        """Close a session and return its final summary."""
        summary = self.conversation_summary(session_id)
        self.sessions.discard(session_id)
        return summary

    @property
    def active_sessions(self) -> list[str]:
        return self.sessions.active_sessions

    # --- Message bus ---

    async def send(self, message: AgentMessage) -> None:
        await self.bus.send(message)

    async def deliver(self, agent_id: str) -> AgentMessage | None:
        """Process one message waiting in ``agent_id``'s inbox.

        A request is handled by the agent and answered with a response
        message to the sender; if the payload is malformed or the agent fails,
        the sender gets a notification describing the error instead. Other
        message types are consumed as-is. Returns the message posted back,
        the consumed message, or None if the inbox was empty.
        """
        message = self.bus.receive_nowait(agent_id)
        if message is None:
            return None
        if message.type is not MessageType.REQUEST:
            logger.info("Agent %s received %s from %s", agent_id, message.type.value, message.sender)
            return message

        try:
            request, context, session_id = _unpack_request(message.payload)
            result = await self.dispatch(agent_id, request, context, session_id)
        except (AgentError, ValueError) as exc:
            logger.warning("Agent %s failed message from %s: %s", agent_id, message.sender, exc)
            reply = message.reply(
                {"error": type(exc).__name__, "message": str(exc)},
                type=MessageType.NOTIFICATION,
            )
        else:
            reply = message.reply(result)
        await self.bus.send(reply)
        return reply


def _unpack_request(payload: Any) -> tuple[str, RequestContext, str | None]:
    if not isinstance(payload, Mapping) or "request" not in payload or "context" not in payload:
        raise ValueError("request messages need a payload with 'request' and 'context'")
    context = payload["context"]
    if not isinstance(context, RequestContext):
        context = RequestContext.from_mapping(context)
    return str(payload["request"]), context, payload.get("session_id")


def build_coordinator(llm: GenerationService | None = None) -> AgentCoordinator:
    """Create a coordinator with all six agents sharing one generation service."""
    llm = llm or get_llm_client()
    coordinator = AgentCoordinator(llm)
    for agent_id, agent_cls in (
        (CONTENT_GENERATOR, ContentGeneratorAgent),
        (GAP_ANALYZER, GapAnalyzerAgent),
        (ASSESSOR, AssessorAgent),
        (MOTIVATOR, MotivatorAgent),
        (TUTOR, TutorAgent),
        (GENERAL_ASSISTANT, GeneralAssistantAgent),
    ):
        coordinator.register_agent(agent_id, agent_cls(llm=llm))
    return coordinator
