"""Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from agents.base import RequestContext

# --- Shared ---


class ContextModel(BaseModel):
    """Learner context sent with each request."""

    model_config = ConfigDict(populate_by_name=True)

    grade: int = Field(ge=1, le=12)
    subject: str | None = None
    chapter: str | None = None
    topic: str | None = None
    difficulty: Literal["easy", "medium", "hard"] | None = None
    exam_type: str | None = Field(default=None, alias="examType")
    time_limit: int | None = Field(default=None, alias="timeLimit", gt=0)

    def to_context(self) -> RequestContext:
        return RequestContext(**self.model_dump())


# --- Routing ---


class RouteRequest(BaseModel):
    """A learner request to classify and route."""

    model_config = ConfigDict(populate_by_name=True)

    request: str = Field(min_length=1)
    context: ContextModel
    session_id: str | None = Field(default=None, alias="sessionId")


class RouteResponse(BaseModel):
    """Which agent answered, why, and its normalized result."""

    agent_id: str
    intent: str
    confidence: float
    subject_area: str
    session_id: str | None = None
    result: dict[str, Any]


class AgentInfo(BaseModel):
    id: str
    name: str
    role: str
    capabilities: list[str]
    priority: int
    status: str


# --- Specialist operations ---


class ConceptMapRequest(BaseModel):
    topic: str = Field(min_length=1)
    grade: int = Field(ge=1, le=12)


class EvaluateRequest(BaseModel):
    question: str = Field(min_length=1)
    student_answer: str
    correct_answer: str
    context: ContextModel


class DailyChallengeRequest(BaseModel):
    grade: int = Field(ge=1, le=12)
    subject: str = "General"


class FlashcardRequest(BaseModel):
    subject: str = Field(min_length=1)
    grade: int = Field(ge=1, le=12)
    chapter: str
    chapter_title: str = Field(min_length=1)
    count: int = Field(default=10, ge=1, le=50)


# --- Sessions ---


class SessionSummaryResponse(BaseModel):
    session_id: str
    messages: int
    exchanges: int
    started_at: datetime
    last_activity: datetime
