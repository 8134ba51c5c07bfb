"""Content Generator Agent: personalized lessons.

Responsibilities:
- Write a lesson pitched at the learner's grade and subject
- Ask for a fixed set of bolded sections so the reply can be split
- Map whatever sections came back onto the lesson record
"""

from __future__ import annotations

from dataclasses import dataclass

from agents.base import BaseAgent, NormalizedResponse, RequestContext
from agents.extraction import extract_sections
from backend.llm_client import SamplingConfig

CONTENT_PROFILE = SamplingConfig(temperature=0.8, top_k=64, top_p=0.95, max_output_tokens=8192)

LESSON_PROMPT = """\
You are a Tamil Nadu curriculum expert creating personalized learning content for Class {grade} students.

Student Request: {request}
Subject: {subject}
Grade: Class {grade}

Create an engaging, comprehensive lesson with the following sections. Write naturally and \
conversationally, as if teaching a student directly:

**INTRODUCTION:**
[Write a friendly, engaging 2-3 sentence introduction that hooks the student's interest]

**CORE CONCEPTS:**
[Explain the main concepts clearly with examples from daily life. Use simple language \
appropriate for Class {grade}. Break down complex ideas into easy steps.]

**PRACTICE ACTIVITIES:**
[Provide 3-4 hands-on activities or practice problems the student can try right now]

**REAL-WORLD APPLICATIONS:**
[Show how this connects to real life in Tamil Nadu - use local examples like markets, festivals, farming, etc.]

**QUICK QUIZ:**
[Ask 2-3 quick questions to check understanding]

**NEXT STEPS:**
[Suggest what the student should learn next to build on this topic]

Write everything clearly and naturally. Do NOT use JSON format. Write as plain text with clear section headers."""

# Header keyword -> lesson field, checked in order
SECTION_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("introduction",), "introduction"),
    (("concept",), "concepts"),
    (("practice", "activit"), "activities"),
    (("real", "application"), "applications"),
    (("quiz",), "quiz"),
    (("next",), "next_steps"),
]


@dataclass(frozen=True)
class LessonContent(NormalizedResponse):
    introduction: str = ""
    concepts: str = ""
    activities: str = ""
    applications: str = ""
    quiz: str = ""
    next_steps: str = ""


def _field_for_header(header: str) -> str | None:
    key = header.lower().replace(" ", "")
    for keywords, field_name in SECTION_KEYWORDS:
        if any(keyword in key for keyword in keywords):
            return field_name
    return None


def parse_lesson(text: str) -> LessonContent:
    """Attribute each recognized section to its lesson field.

    When no header is recognized the whole reply becomes ``concepts``.
    """
    fields: dict[str, str] = {}
    for header, content in extract_sections(text).items():
        field_name = _field_for_header(header)
        if field_name is not None:
            fields[field_name] = content
    if not fields:
        return LessonContent(concepts=text)
    return LessonContent(**fields)


class ContentGeneratorAgent(BaseAgent):
    """Creates personalized lessons split into named sections."""

    capabilities = frozenset({"lesson_generation", "explanation", "practice_activities"})
    priority = 20

    @property
    def agent_id(self) -> str:
        return "content-generator"

    @property
    def name(self) -> str:
        return "Content Generator"

    @property
    def role(self) -> str:
        return "Creates personalized lessons pitched at the learner's grade"

    async def handle(self, request: str, context: RequestContext) -> LessonContent:
        prompt = LESSON_PROMPT.format(
            grade=context.grade,
            request=request,
            subject=context.subject or "General",
        )
        reply = await self._generate(prompt, CONTENT_PROFILE)
        lesson = parse_lesson(reply)
        if not lesson.introduction and lesson.concepts == reply:
            self.logger.info("No lesson sections recognized; returning reply as concepts")
        return lesson
