"""General Assistant Agent: fallback for anything the specialists don't cover."""

from __future__ import annotations

from dataclasses import dataclass

from agents.base import BaseAgent, NormalizedResponse, RequestContext
from backend.llm_client import SamplingConfig

GENERAL_PROFILE = SamplingConfig(temperature=0.7, top_k=64, top_p=0.95, max_output_tokens=4096)

GENERAL_PROMPT = """\
Help a Class {grade} Tamil Nadu student with their query.

Query: {request}
Subject: {subject}

Provide helpful, age-appropriate response that:
1. Directly answers their question
2. Keeps it relevant to their education
3. Encourages learning
4. Suggests related topics if applicable

Keep response friendly and under 150 words."""


@dataclass(frozen=True)
class GeneralHelp(NormalizedResponse):
    response: str
    type: str = "general_help"


class GeneralAssistantAgent(BaseAgent):
    """Answers miscellaneous questions briefly."""

    capabilities = frozenset({"general_help"})
    priority = 90

    @property
    def agent_id(self) -> str:
        return "general-assistant"

    @property
    def name(self) -> str:
        return "General Assistant"

    @property
    def role(self) -> str:
        return "Answers general questions when no specialist fits"

    async def handle(self, request: str, context: RequestContext) -> GeneralHelp:
        prompt = GENERAL_PROMPT.format(
            grade=context.grade,
            request=request,
            subject=context.subject or "any",
        )
        return GeneralHelp(response=await self._generate(prompt, GENERAL_PROFILE))
