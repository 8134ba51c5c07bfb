"""Intent classification: decides which agent should answer a request."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from agents.base import NormalizedResponse, RequestContext
from agents.extraction import extract_json_object
from backend.errors import ClassificationError, ParseError, ServiceError
from backend.llm_client import GenerationService, SamplingConfig

logger = logging.getLogger(__name__)

# Favors determinism over creativity
CLASSIFIER_PROFILE = SamplingConfig(temperature=0.3, top_k=40, top_p=0.9, max_output_tokens=256)


class Intent(str, Enum):
    """Closed set of request categories."""

    LEARNING_CONTENT = "learning_content"
    GAP_ANALYSIS = "gap_analysis"
    ASSESSMENT = "assessment"
    MOTIVATION = "motivation"
    TUTORING = "tutoring"
    GENERAL = "general"


INTENT_DEFINITIONS = {
    Intent.LEARNING_CONTENT: "Student wants to learn something new",
    Intent.GAP_ANALYSIS: "Identify what student doesn't understand",
    Intent.ASSESSMENT: "Student wants to take a test or be evaluated",
    Intent.MOTIVATION: "Student needs encouragement or motivation",
    Intent.TUTORING: "Student has a specific question or needs help",
}

CLASSIFY_PROMPT = """\
Classify the following student request into one of these intents:
{definitions}

Student Request: "{request}"
Context: Grade {grade}, Subject: {subject}

Return ONLY a JSON object: {{ "type": "<intent>", "confidence": <0-1>, "subjectArea": "<subject>" }}"""


@dataclass(frozen=True)
class IntentClassification(NormalizedResponse):
    """The routing decision for one request."""

    type: Intent
    confidence: float
    subject_area: str


def _parse_confidence(value: object) -> float:
    try:
        confidence = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if confidence != confidence:  # NaN
        return 0.0
    return max(0.0, min(1.0, confidence))


class IntentClassifier:
    """Maps a request to an intent with a constrained model call."""

    def __init__(self, llm: GenerationService) -> None:
        self.llm = llm

    def build_prompt(self, request: str, context: RequestContext) -> str:
        definitions = "\n".join(f"- {intent.value}: {text}" for intent, text in INTENT_DEFINITIONS.items())
        return CLASSIFY_PROMPT.format(
            definitions=definitions,
            request=request,
            grade=context.grade,
            subject=context.subject or "any",
        )

    async def classify(self, request: str, context: RequestContext) -> IntentClassification:
        """Classify a request.

        Raises:
            ValueError: The request is blank.
            ClassificationError: The service failed or the reply was unusable.
        """
        if not request.strip():
            raise ValueError("request must not be empty")

        prompt = self.build_prompt(request, context)
        try:
            reply = await self.llm.generate(prompt, CLASSIFIER_PROFILE)
            data = extract_json_object(reply, "intent classification")
        except (ServiceError, ParseError) as exc:
            raise ClassificationError(f"Intent detection failed: {exc}") from exc

        try:
            intent = Intent(str(data.get("type", "")).strip().lower())
        except ValueError:
            logger.info("Unrecognized intent %r, using general", data.get("type"))
            intent = Intent.GENERAL

        subject_area = str(data.get("subjectArea") or context.subject or "general")
        classification = IntentClassification(
            type=intent,
            confidence=_parse_confidence(data.get("confidence")),
            subject_area=subject_area,
        )
        logger.debug(
            "Classified %r as %s (%.2f)",
            request[:80],
            classification.type.value,
            classification.confidence,
        )
        return classification
