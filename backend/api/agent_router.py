"""API routes for the agent system."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from agents.coordinator import ASSESSOR, GAP_ANALYZER, MOTIVATOR, AgentCoordinator, build_coordinator
from agents.flashcard_generator import FlashcardGenerator
from backend.api.schemas import (
    AgentInfo,
    ConceptMapRequest,
    DailyChallengeRequest,
    EvaluateRequest,
    FlashcardRequest,
    RouteRequest,
    RouteResponse,
    SessionSummaryResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agents", tags=["agents"])

_coordinator: AgentCoordinator | None = None


def get_coordinator() -> AgentCoordinator:
    """Return the process-wide coordinator, building it on first use."""
    global _coordinator
    if _coordinator is None:
        _coordinator = build_coordinator()
    return _coordinator


@router.get("", response_model=list[AgentInfo])
async def list_agents(coordinator: AgentCoordinator = Depends(get_coordinator)) -> list[AgentInfo]:
    """List registered agents, highest priority first."""
    return [
        AgentInfo(
            id=d.id,
            name=d.name,
            role=d.role,
            capabilities=sorted(d.capabilities),
            priority=d.priority,
            status=d.status.value,
        )
        for d in coordinator.describe_agents()
    ]


@router.post("/route", response_model=RouteResponse)
async def route_request(
    body: RouteRequest,
    coordinator: AgentCoordinator = Depends(get_coordinator),
) -> RouteResponse:
    """Classify a learner request and answer it with the matching agent."""
    routed = await coordinator.route(body.request, body.context.to_context(), body.session_id)
    return RouteResponse(
        agent_id=routed.agent_id,
        intent=routed.classification.type.value,
        confidence=routed.classification.confidence,
        subject_area=routed.classification.subject_area,
        session_id=routed.session_id,
        result=routed.result.to_dict(),
    )


@router.post("/concept-map")
async def concept_map(
    body: ConceptMapRequest,
    coordinator: AgentCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    """Map prerequisites and follow-on topics for a concept."""
    agent = coordinator.get_agent(GAP_ANALYZER)
    dependencies = await agent.analyze_concept_dependencies(body.topic, body.grade)  # type: ignore[attr-defined]
    return dependencies.to_dict()


@router.post("/evaluate")
async def evaluate_answer(
    body: EvaluateRequest,
    coordinator: AgentCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    """Score a learner's answer."""
    agent = coordinator.get_agent(ASSESSOR)
    evaluation = await agent.evaluate_answer(  # type: ignore[attr-defined]
        body.question,
        body.student_answer,
        body.correct_answer,
        body.context.to_context(),
    )
    return evaluation.to_dict()


@router.post("/daily-challenge")
async def daily_challenge(
    body: DailyChallengeRequest,
    coordinator: AgentCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    """Create a short daily challenge."""
    agent = coordinator.get_agent(MOTIVATOR)
    challenge = await agent.generate_daily_challenge(body.grade, body.subject)  # type: ignore[attr-defined]
    return challenge.to_dict()


@router.post("/flashcards")
async def flashcards(
    body: FlashcardRequest,
    coordinator: AgentCoordinator = Depends(get_coordinator),
) -> dict[str, Any]:
    """Generate flashcards for a chapter."""
    generator = FlashcardGenerator(coordinator.llm)
    cards = await generator.generate(
        subject=body.subject,
        grade=body.grade,
        chapter=body.chapter,
        chapter_title=body.chapter_title,
        count=body.count,
    )
    return {"flashcards": [card.to_dict() for card in cards], "count": len(cards)}


@router.get("/sessions/{session_id}", response_model=SessionSummaryResponse)
async def session_summary(
    session_id: str,
    coordinator: AgentCoordinator = Depends(get_coordinator),
) -> SessionSummaryResponse:
    """Get the turn counts of a tutoring session."""
    summary = coordinator.conversation_summary(session_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return SessionSummaryResponse(
        session_id=summary.session_id,
        messages=summary.messages,
        exchanges=summary.exchanges,
        started_at=summary.started_at,
        last_activity=summary.last_activity,
    )


@router.post("/sessions/{session_id}/reset")
async def session_reset(
    session_id: str,
    coordinator: AgentCoordinator = Depends(get_coordinator),
) -> dict:
    """Clear a tutoring session's history."""
    if not coordinator.reset_conversation(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "reset", "session_id": session_id}


@router.delete("/sessions/{session_id}")
async def session_end(
    session_id: str,
    coordinator: AgentCoordinator = Depends(get_coordinator),
) -> dict:
    """End a tutoring session and clean up."""
    summary = coordinator.end_session(session_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "ended", "session_id": session_id, "messages": summary.messages}
