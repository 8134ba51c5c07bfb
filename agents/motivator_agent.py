"""Motivator Agent: encouragement and daily challenges."""

from __future__ import annotations

from dataclasses import dataclass

from agents.base import BaseAgent, NormalizedResponse, RequestContext
from agents.extraction import as_text, clamp_int, extract_json_object
from backend.llm_client import SamplingConfig

MOTIVATION_PROFILE = SamplingConfig(temperature=0.9, top_k=64, top_p=0.95, max_output_tokens=4096)
CHALLENGE_PROFILE = SamplingConfig(temperature=0.8, top_k=64, top_p=0.95, max_output_tokens=4096)

DEFAULT_EMOJI = "✨"

MOTIVATION_PROMPT = """\
You are a warm, caring mentor for a Class {grade} student in Tamil Nadu.

Student says: "{request}"

Write an encouraging, motivational message that:
- Shows you understand how they feel
- Celebrates their effort and progress
- Gives them confidence to keep going
- Suggests 2-3 small, achievable next steps
- Uses simple, friendly language

Keep it warm, personal, and around 3-4 paragraphs. Be genuinely encouraging!

Add relevant emojis to make it friendly. Write naturally, don't use JSON format."""

CHALLENGE_PROMPT = """\
Create a fun daily challenge for Class {grade} {subject} students.

Requirements:
- Takes 5-10 minutes
- Interesting/fun element
- Educational value
- Can be done anywhere
- Shows results immediately

Return as JSON: {{
  "title": "",
  "description": "",
  "task": "",
  "estimatedTime": "",
  "points": 0-100,
  "funFact": "",
  "shareableResult": ""
}}"""


@dataclass(frozen=True)
class MotivationMessage(NormalizedResponse):
    message: str
    action_items: list[str]
    inspiration_story: str
    celebration_note: str
    emoji: str


@dataclass(frozen=True)
class DailyChallenge(NormalizedResponse):
    title: str
    description: str
    task: str
    estimated_time: str
    points: int
    fun_fact: str
    shareable_result: str


class MotivatorAgent(BaseAgent):
    """Keeps learners engaged with encouragement and short challenges."""

    capabilities = frozenset({"encouragement", "daily_challenge"})
    priority = 50

    @property
    def agent_id(self) -> str:
        return "motivator"

    @property
    def name(self) -> str:
        return "Motivator"

    @property
    def role(self) -> str:
        return "Encourages learners and keeps them engaged"

    async def handle(self, request: str, context: RequestContext) -> MotivationMessage:
        reply = await self._generate(MOTIVATION_PROMPT.format(grade=context.grade, request=request), MOTIVATION_PROFILE)
        # The message carries the suggestions; the other fields are fixed.
        return MotivationMessage(
            message=reply,
            action_items=["See the suggestions in the message above"],
            inspiration_story="",
            celebration_note="",
            emoji=DEFAULT_EMOJI,
        )

    async def generate_daily_challenge(self, grade: int, subject: str) -> DailyChallenge:
        """Create a 5-10 minute challenge.

        Raises:
            ParseError: The reply was not a JSON object.
        """
        reply = await self._generate(
            CHALLENGE_PROMPT.format(grade=grade, subject=subject or "General"),
            CHALLENGE_PROFILE,
        )
        data = extract_json_object(reply, "daily challenge")
        return DailyChallenge(
            title=as_text(data.get("title"), "Daily Challenge"),
            description=as_text(data.get("description")),
            task=as_text(data.get("task")),
            estimated_time=as_text(data.get("estimatedTime"), "5-10 minutes"),
            points=clamp_int(data.get("points"), 0, 100),
            fun_fact=as_text(data.get("funFact")),
            shareable_result=as_text(data.get("shareableResult")),
        )
