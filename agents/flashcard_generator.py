"""Flashcard generation for a curriculum chapter."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from agents.base import DIFFICULTIES, NormalizedResponse
from agents.extraction import as_text, iter_json
from backend.config import settings
from backend.errors import ParseError
from backend.llm_client import GenerationService, SamplingConfig

logger = logging.getLogger(__name__)

FLASHCARD_PROFILE = SamplingConfig(temperature=0.8, top_k=64, top_p=0.95, max_output_tokens=8192)

FLASHCARD_PROMPT = """\
Create {count} smart flashcards for Tamil Nadu Class {grade} students.

Subject: {subject}
Chapter {chapter}: {chapter_title}

CRITICAL: Return ONLY valid JSON array. No markdown, no code blocks, no extra text.

[
  {{
    "question": "Clear, specific question testing one concept",
    "answer": "Complete answer with explanation and examples",
    "hint": "Helpful hint that guides thinking",
    "difficulty": "easy",
    "topic": "Specific sub-topic from the chapter"
  }}
]

FLASHCARD REQUIREMENTS:
1. Questions must be clear and test ONE concept at a time
2. Cover key concepts from "{chapter_title}" chapter
3. Mix difficulties: {easy} easy, {medium} medium, {hard} hard
4. Answers should explain the concept, not just state facts
5. Hints should guide thinking without revealing the answer
6. Use Tamil Nadu context and TNSCERT curriculum
7. Questions should prompt recall and understanding, not just yes/no

DIFFICULTY LEVELS:
- easy: Direct recall of key facts/definitions from {chapter_title}
- medium: Application of concepts from {chapter_title} to simple problems
- hard: Analysis, synthesis, or connecting multiple concepts from {chapter_title}

Return ONLY the JSON array. Start directly with ["""


@dataclass(frozen=True)
class Flashcard(NormalizedResponse):
    question: str
    answer: str
    hint: str
    difficulty: str
    topic: str


def difficulty_mix(count: int) -> dict[str, int]:
    """Target easy/medium/hard split: 40% / 40% / the rest, rounded up."""
    return {
        "easy": math.floor(count * 0.4),
        "medium": math.floor(count * 0.4),
        "hard": math.ceil(count * 0.2),
    }


def _parse_cards(items: list, chapter_title: str) -> list[Flashcard]:
    """Normalize card objects, skipping any without a question."""
    cards = []
    for item in items:
        if not isinstance(item, dict) or not as_text(item.get("question")):
            continue
        difficulty = as_text(item.get("difficulty"), "medium").lower()
        cards.append(
            Flashcard(
                question=as_text(item.get("question")),
                answer=as_text(item.get("answer")),
                hint=as_text(item.get("hint")),
                difficulty=difficulty if difficulty in DIFFICULTIES else "medium",
                topic=as_text(item.get("topic"), chapter_title),
            )
        )
    return cards


class FlashcardGenerator:
    """Single-shot flashcard generator for one chapter."""

    def __init__(self, llm: GenerationService) -> None:
        self.llm = llm

    async def generate(
        self,
        subject: str,
        grade: int,
        chapter: str | int,
        chapter_title: str,
        count: int = 10,
    ) -> list[Flashcard]:
        """Generate ``count`` flashcards for a chapter.

        Raises:
            ValueError: count is outside 1..max_flashcards.
            ParseError: The reply held no JSON array with usable cards.
        """
        if not 1 <= count <= settings.max_flashcards:
            raise ValueError(f"count must be between 1 and {settings.max_flashcards}, got {count}")

        mix = difficulty_mix(count)
        prompt = FLASHCARD_PROMPT.format(
            count=count,
            grade=grade,
            subject=subject,
            chapter=chapter,
            chapter_title=chapter_title,
            **mix,
        )
        reply = await self.llm.generate(prompt, FLASHCARD_PROFILE)

        # A bracketed aside like "[3]" can precede the array; take the first array with cards.
        for data in iter_json(reply):
            if isinstance(data, list):
                cards = _parse_cards(data, chapter_title)
                if cards:
                    break
        else:
            raise ParseError("Flashcard reply contained no JSON array of cards", raw_text=reply)

        logger.info("Generated %d/%d flashcards for %s chapter %s", len(cards), count, subject, chapter)
        return cards
