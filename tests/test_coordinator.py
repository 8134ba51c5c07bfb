"""Tests for the coordinator: routing, fallback, registry, and message bus."""

import json

import pytest

from agents.base import AgentStatus, RequestContext
from agents.coordinator import (
    ASSESSOR,
    CONTENT_GENERATOR,
    GAP_ANALYZER,
    GENERAL_ASSISTANT,
    MOTIVATOR,
    TUTOR,
    AgentCoordinator,
    agent_for_intent,
)
from agents.gap_analyzer_agent import GapAnalysis
from agents.general_agent import GeneralAssistantAgent, GeneralHelp
from agents.intent import Intent
from agents.messaging import AgentMessage, MessageType
from backend.errors import ParseError, ServiceError, UnregisteredAgentError
from tests.conftest import FakeGenerationService, intent_reply

ASSESSMENT_JSON = json.dumps({"questions": [{"tier": "core", "type": "mcq", "question": "2+2?"}]})

ROUTES = [
    ("learning_content", CONTENT_GENERATOR, "**INTRODUCTION:** Hi\n**CORE CONCEPTS:** Parts"),
    ("gap_analysis", GAP_ANALYZER, "You may be missing equivalent fractions."),
    ("assessment", ASSESSOR, ASSESSMENT_JSON),
    ("motivation", MOTIVATOR, "You are doing great!"),
    ("tutoring", TUTOR, "Photosynthesis is how plants make food."),
    ("general", GENERAL_ASSISTANT, "Sure, here's a tip."),
]


class TestIntentTable:
    @pytest.mark.parametrize(
        ("intent", "agent_id"),
        [
            (Intent.LEARNING_CONTENT, CONTENT_GENERATOR),
            (Intent.GAP_ANALYSIS, GAP_ANALYZER),
            (Intent.ASSESSMENT, ASSESSOR),
            (Intent.MOTIVATION, MOTIVATOR),
            (Intent.TUTORING, TUTOR),
            (Intent.GENERAL, GENERAL_ASSISTANT),
        ],
    )
    def test_static_mapping(self, intent: Intent, agent_id: str) -> None:
        assert agent_for_intent(intent) == agent_id

    def test_every_intent_is_mapped(self) -> None:
        assert {agent_for_intent(intent) for intent in Intent} == {
            CONTENT_GENERATOR,
            GAP_ANALYZER,
            ASSESSOR,
            MOTIVATOR,
            TUTOR,
            GENERAL_ASSISTANT,
        }


class TestRouting:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(("intent", "agent_id", "reply"), ROUTES)
    async def test_dispatches_to_mapped_agent(
        self, coordinator: AgentCoordinator, fake_llm: FakeGenerationService, ctx: RequestContext,
        intent: str, agent_id: str, reply: str,
    ) -> None:
        fake_llm.queue(intent_reply(intent), reply)
        routed = await coordinator.route("some request", ctx)
        assert routed.agent_id == agent_id
        assert len(fake_llm.calls) == 2  # classify + one agent call
        assert coordinator.get_agent(agent_id).status is AgentStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_fractions_scenario(
        self, coordinator: AgentCoordinator, fake_llm: FakeGenerationService
    ) -> None:
        fake_llm.queue(
            intent_reply("gap_analysis", 0.92, "Mathematics"),
            "**GAPS IDENTIFIED:** Equivalent fractions...",
        )
        result = await coordinator.route_request("I don't understand fractions", RequestContext(grade=5))
        assert isinstance(result, GapAnalysis)
        assert result.analysis
        assert "I don't understand fractions" in fake_llm.prompts[1]

    @pytest.mark.asyncio
    async def test_classification_failure_falls_back_to_general(
        self, coordinator: AgentCoordinator, fake_llm: FakeGenerationService, ctx: RequestContext
    ) -> None:
        fake_llm.queue("not json at all", "Here is some help.")
        routed = await coordinator.route("???", ctx)
        assert routed.agent_id == GENERAL_ASSISTANT
        assert routed.classification.type is Intent.GENERAL
        assert routed.classification.confidence == 0.0
        assert isinstance(routed.result, GeneralHelp)

    @pytest.mark.asyncio
    async def test_classifier_service_failure_falls_back(
        self, coordinator: AgentCoordinator, fake_llm: FakeGenerationService, ctx: RequestContext
    ) -> None:
        fake_llm.queue(ServiceError("timeout"), "Fallback answer")
        result = await coordinator.route_request("help", ctx)
        assert result.response == "Fallback answer"

    @pytest.mark.asyncio
    async def test_unregistered_agent_raises(self, fake_llm: FakeGenerationService, ctx: RequestContext) -> None:
        coordinator = AgentCoordinator(fake_llm)
        fake_llm.queue(intent_reply("motivation"))
        with pytest.raises(UnregisteredAgentError) as excinfo:
            await coordinator.route_request("cheer me up", ctx)
        assert excinfo.value.agent_id == MOTIVATOR

    @pytest.mark.asyncio
    async def test_agent_service_error_propagates(
        self, coordinator: AgentCoordinator, fake_llm: FakeGenerationService, ctx: RequestContext
    ) -> None:
        fake_llm.queue(intent_reply("motivation"), ServiceError("quota"))
        with pytest.raises(ServiceError):
            await coordinator.route_request("cheer me up", ctx)
        assert coordinator.get_agent(MOTIVATOR).status is AgentStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_agent_parse_error_is_distinct(
        self, coordinator: AgentCoordinator, fake_llm: FakeGenerationService, ctx: RequestContext
    ) -> None:
        fake_llm.queue(intent_reply("assessment"), "Here are some questions: 1) 2+2")
        with pytest.raises(ParseError) as excinfo:
            await coordinator.route_request("test me", ctx)
        assert not isinstance(excinfo.value, ServiceError)

    @pytest.mark.asyncio
    async def test_tutor_route_opens_session(
        self, coordinator: AgentCoordinator, fake_llm: FakeGenerationService, ctx: RequestContext
    ) -> None:
        fake_llm.queue(intent_reply("tutoring"), "Answer one", intent_reply("tutoring"), "Answer two")
        first = await coordinator.route("What is a prime?", ctx)
        assert first.session_id in coordinator.active_sessions
        second = await coordinator.route("Is 9 prime?", ctx, session_id=first.session_id)
        assert second.session_id == first.session_id
        assert coordinator.conversation_summary(first.session_id).messages == 4


class TestRegistry:
    def test_register_is_upsert(self, fake_llm: FakeGenerationService) -> None:
        coordinator = AgentCoordinator(fake_llm)
        first = GeneralAssistantAgent(llm=fake_llm)
        second = GeneralAssistantAgent(llm=fake_llm)
        coordinator.register_agent(GENERAL_ASSISTANT, first)
        coordinator.register_agent(GENERAL_ASSISTANT, second)
        assert coordinator.agent_ids == [GENERAL_ASSISTANT]
        assert coordinator.get_agent(GENERAL_ASSISTANT) is second

    def test_describe_agents_sorted_by_priority(self, coordinator: AgentCoordinator) -> None:
        descriptors = coordinator.describe_agents()
        assert len(descriptors) == 6
        priorities = [d.priority for d in descriptors]
        assert priorities == sorted(priorities)
        assert all(d.status is AgentStatus.IDLE for d in descriptors)
        assert len({d.id for d in descriptors}) == 6


class TestMessageBus:
    @pytest.mark.asyncio
    async def test_request_is_answered_to_sender(
        self, coordinator: AgentCoordinator, fake_llm: FakeGenerationService
    ) -> None:
        fake_llm.queue("Keep going!")
        await coordinator.send(
            AgentMessage(
                sender="gap-analyzer",
                recipient=MOTIVATOR,
                type=MessageType.REQUEST,
                payload={"request": "Learner is frustrated", "context": {"grade": 4}},
            )
        )
        reply = await coordinator.deliver(MOTIVATOR)
        assert reply is not None
        assert reply.type is MessageType.RESPONSE
        assert reply.recipient == "gap-analyzer"
        assert coordinator.bus.pending("gap-analyzer") == 1
        received = await coordinator.bus.receive("gap-analyzer")
        assert received.payload.message == "Keep going!"

    @pytest.mark.asyncio
    async def test_failed_request_becomes_notification(
        self, coordinator: AgentCoordinator, fake_llm: FakeGenerationService
    ) -> None:
        fake_llm.queue(ServiceError("down"))
        await coordinator.send(
            AgentMessage(
                sender="tutor",
                recipient=GENERAL_ASSISTANT,
                type=MessageType.REQUEST,
                payload={"request": "hi", "context": RequestContext(grade=2)},
            )
        )
        reply = await coordinator.deliver(GENERAL_ASSISTANT)
        assert reply.type is MessageType.NOTIFICATION
        assert reply.payload["error"] == "ServiceError"

    @pytest.mark.asyncio
    async def test_notification_is_consumed(self, coordinator: AgentCoordinator) -> None:
        note = AgentMessage(sender="tutor", recipient=MOTIVATOR, type=MessageType.NOTIFICATION, payload="fyi")
        await coordinator.send(note)
        assert await coordinator.deliver(MOTIVATOR) is note
        assert coordinator.bus.pending(MOTIVATOR) == 0

    @pytest.mark.asyncio
    async def test_empty_inbox(self, coordinator: AgentCoordinator) -> None:
        assert await coordinator.deliver(TUTOR) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", ["hello", {"request": "hi", "context": {"grade": 0}}])
    async def test_malformed_request_becomes_notification(
        self, coordinator: AgentCoordinator, fake_llm: FakeGenerationService, payload
    ) -> None:
        await coordinator.send(
            AgentMessage(sender="tutor", recipient=MOTIVATOR, type=MessageType.REQUEST, payload=payload)
        )
        reply = await coordinator.deliver(MOTIVATOR)
        assert reply.type is MessageType.NOTIFICATION
        assert reply.payload["error"] == "ValueError"
        assert coordinator.bus.pending(MOTIVATOR) == 0
        assert coordinator.bus.pending("tutor") == 1
        assert fake_llm.calls == []
