"""Shared fixtures: a scripted generation service stands in for the model."""

import json
from collections import deque

import pytest

from agents.base import RequestContext
from agents.coordinator import build_coordinator
from backend.llm_client import SamplingConfig


class FakeGenerationService:
    """Replays queued replies in order and records every call.

    A queued exception instance is raised instead of returned.
    """

    def __init__(self, *replies: str | BaseException) -> None:
        self.replies: deque[str | BaseException] = deque(replies)
        self.calls: list[tuple[str, SamplingConfig]] = []

    def queue(self, *replies: str | BaseException) -> None:
        self.replies.extend(replies)

    @property
    def prompts(self) -> list[str]:
        return [prompt for prompt, _ in self.calls]

    async def generate(self, prompt: str, config: SamplingConfig) -> str:
        self.calls.append((prompt, config))
        if not self.replies:
            raise AssertionError("generate() called more times than replies were queued")
        reply = self.replies.popleft()
        if isinstance(reply, BaseException):
            raise reply
        return reply


def intent_reply(intent: str, confidence: float = 0.9, subject: str = "Maths") -> str:
    return json.dumps({"type": intent, "confidence": confidence, "subjectArea": subject})


@pytest.fixture
def fake_llm() -> FakeGenerationService:
    return FakeGenerationService()


@pytest.fixture
def coordinator(fake_llm: FakeGenerationService):
    return build_coordinator(fake_llm)


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(grade=5, subject="Maths")
