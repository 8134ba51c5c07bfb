import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from agents.coordinator import AgentCoordinator
from backend.api.agent_router import get_coordinator
from backend.errors import ServiceError
from backend.main import app
from tests.conftest import FakeGenerationService, intent_reply


@pytest_asyncio.fixture
async def client(coordinator: AgentCoordinator):
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_health_check() -> None:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_list_agents(client: AsyncClient) -> None:
    response = await client.get("/api/agents")
    assert response.status_code == 200
    agents = response.json()
    assert len(agents) == 6
    assert agents[0]["id"] == "gap-analyzer"
    assert all(agent["status"] == "idle" for agent in agents)


@pytest.mark.asyncio
async def test_route(client: AsyncClient, fake_llm: FakeGenerationService) -> None:
    fake_llm.queue(intent_reply("gap_analysis", 0.92, "Mathematics"), "**GAPS IDENTIFIED:** Equivalent fractions")
    response = await client.post(
        "/api/agents/route",
        json={"request": "I don't understand fractions", "context": {"grade": 5}},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["agent_id"] == "gap-analyzer"
    assert body["intent"] == "gap_analysis"
    assert body["subject_area"] == "Mathematics"
    assert body["session_id"] is None
    assert body["result"]["analysis"] == "**GAPS IDENTIFIED:** Equivalent fractions"


@pytest.mark.asyncio
async def test_tutoring_session_lifecycle(client: AsyncClient, fake_llm: FakeGenerationService) -> None:
    fake_llm.queue(intent_reply("tutoring"), "Plants make food from light.")
    response = await client.post(
        "/api/agents/route",
        json={"request": "What is photosynthesis?", "context": {"grade": 7, "subject": "Science"}},
    )
    session_id = response.json()["session_id"]
    assert session_id

    summary = await client.get(f"/api/agents/sessions/{session_id}")
    assert summary.status_code == 200
    assert summary.json()["messages"] == 2
    assert summary.json()["exchanges"] == 1

    reset = await client.post(f"/api/agents/sessions/{session_id}/reset")
    assert reset.status_code == 200
    assert (await client.get(f"/api/agents/sessions/{session_id}")).json()["messages"] == 0

    ended = await client.delete(f"/api/agents/sessions/{session_id}")
    assert ended.json()["status"] == "ended"
    assert (await client.get(f"/api/agents/sessions/{session_id}")).status_code == 404


@pytest.mark.asyncio
async def test_service_failure_is_503(client: AsyncClient, fake_llm: FakeGenerationService) -> None:
    fake_llm.queue(intent_reply("motivation"), ServiceError("quota exceeded"))
    response = await client.post("/api/agents/route", json={"request": "I give up", "context": {"grade": 9}})
    assert response.status_code == 503
    assert response.json()["error"] == "service_unavailable"


@pytest.mark.asyncio
async def test_malformed_reply_is_502(client: AsyncClient, fake_llm: FakeGenerationService) -> None:
    fake_llm.queue("Here is your challenge: count to ten!")
    response = await client.post("/api/agents/daily-challenge", json={"grade": 3, "subject": "Maths"})
    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "malformed_model_reply"
    assert body["snippet"].startswith("Here is your challenge")


@pytest.mark.asyncio
async def test_invalid_context_is_rejected(client: AsyncClient, fake_llm: FakeGenerationService) -> None:
    response = await client.post("/api/agents/route", json={"request": "hi", "context": {"grade": 15}})
    assert response.status_code == 422
    assert fake_llm.calls == []


@pytest.mark.asyncio
async def test_concept_map(client: AsyncClient, fake_llm: FakeGenerationService) -> None:
    fake_llm.queue(json.dumps({"prerequisites": [{"concept": "Division", "importance": "essential"}]}))
    response = await client.post("/api/agents/concept-map", json={"topic": "Fractions", "grade": 5})
    assert response.status_code == 200
    assert response.json()["prerequisites"] == [{"concept": "Division", "importance": "essential"}]
    assert response.json()["coreComponents"] == []


@pytest.mark.asyncio
async def test_evaluate(client: AsyncClient, fake_llm: FakeGenerationService) -> None:
    fake_llm.queue('{"score": 90, "feedback": "Great"}')
    response = await client.post(
        "/api/agents/evaluate",
        json={"question": "2+2?", "student_answer": "4", "correct_answer": "4", "context": {"grade": 2}},
    )
    assert response.status_code == 200
    assert response.json()["isCorrect"] is True


@pytest.mark.asyncio
async def test_flashcards(client: AsyncClient, fake_llm: FakeGenerationService) -> None:
    fake_llm.queue(json.dumps([{"question": "Q1", "answer": "A1"}, {"question": "Q2", "answer": "A2"}]))
    response = await client.post(
        "/api/agents/flashcards",
        json={"subject": "Maths", "grade": 6, "chapter": "2", "chapter_title": "Whole Numbers", "count": 2},
    )
    assert response.status_code == 200
    assert response.json()["count"] == 2
