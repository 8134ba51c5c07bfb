"""Assessor Agent: adaptive assessments and answer evaluation.

Responsibilities:
- Generate tiered assessments that follow a fixed blueprint
- Evaluate a learner's answer with partial credit and feedback
- Fail loudly (ParseError) when the model does not return JSON
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from agents.base import BaseAgent, NormalizedResponse, RequestContext
from agents.extraction import as_str_list, as_text, clamp_int, extract_json_object, iter_json
from backend.errors import ParseError
from backend.llm_client import SamplingConfig

ASSESSMENT_PROFILE = SamplingConfig(temperature=0.6, top_k=64, top_p=0.95, max_output_tokens=8192)
EVALUATION_PROFILE = SamplingConfig(temperature=0.3, top_k=40, top_p=0.9, max_output_tokens=4096)

DEFAULT_DIFFICULTY = "medium"
DEFAULT_EXAM_TYPE = "TNSCERT"
DEFAULT_TIME_LIMIT = 30  # minutes
PASS_SCORE = 80  # used only when the model omits isCorrect


@dataclass(frozen=True)
class TierSpec:
    """How many questions of one tier an assessment should contain."""

    name: str
    min_count: int
    max_count: int
    purpose: str

    def accepts(self, count: int) -> bool:
        return self.min_count <= count <= self.max_count


QUESTION_TIERS: tuple[TierSpec, ...] = (
    TierSpec("warm_up", 2, 2, "Easy confidence builders"),
    TierSpec("core", 5, 7, "Match student level"),
    TierSpec("challenge", 2, 3, "Slightly harder"),
    TierSpec("bonus", 1, 1, "Optional advanced"),
)

# Percent of questions per type; sums to 100
QUESTION_TYPE_MIX: dict[str, int] = {
    "multiple_choice": 40,
    "short_answer": 30,
    "problem_solving": 20,
    "application": 10,
}

_TIER_ALIASES = {
    "warmup": "warm_up",
    "warm": "warm_up",
    "core": "core",
    "challenge": "challenge",
    "bonus": "bonus",
}

_TYPE_ALIASES = {
    "mcq": "multiple_choice",
    "multiplechoice": "multiple_choice",
    "shortanswer": "short_answer",
    "short": "short_answer",
    "problemsolving": "problem_solving",
    "problem": "problem_solving",
    "application": "application",
    "applicationanalysis": "application",
    "analysis": "application",
}

ASSESSMENT_PROMPT = """\
Create an adaptive assessment for Class {grade} Tamil Nadu student.

Subject: {subject}
Topic: {request}
Focus Area: {focus}
Current Difficulty: {difficulty}
Board Exam Pattern: {exam_type}
Time Available: {time_limit} minutes

Generate assessment with:
{tiers}

For each question include:
- Question text
- Options (if MCQ)
- Correct answer
- Explanation
- Marks allocation
- Skills tested
- Board exam relevance

Mix question types:
{type_mix}

Return as JSON: {{
  "questions": [{{
    "tier": "warm_up|core|challenge|bonus",
    "type": "multiple_choice|short_answer|problem_solving|application",
    "question": "",
    "options": [],
    "correctAnswer": "",
    "explanation": "",
    "marks": 1,
    "skillsTested": [],
    "boardExamRelevance": ""
  }}],
  "metadata": {{}}
}}"""

EVALUATION_PROMPT = """\
Evaluate student answer:

Question: {question}
Student Answer: {student_answer}
Correct Answer: {correct_answer}
Grade Level: {grade}

Provide detailed evaluation:
1. **Correctness** (0-100%)
2. **Partial Credit** - What they got right
3. **Mistakes** - Specific errors made
4. **Feedback** - Constructive, encouraging
5. **Improvement Tips** - How to do better next time

Return as JSON: {{
  "score": 0-100,
  "isCorrect": boolean,
  "partialCredit": [],
  "mistakes": [],
  "feedback": "",
  "improvementTips": [],
  "nextPractice": ""
}}"""


def _describe_tiers() -> str:
    lines = []
    for i, tier in enumerate(QUESTION_TIERS, 1):
        label = tier.name.replace("_", "-").title()
        count = str(tier.min_count) if tier.min_count == tier.max_count else f"{tier.min_count}-{tier.max_count}"
        lines.append(f"{i}. **{label} Questions** ({count}) - {tier.purpose}")
    return "\n".join(lines)


def _describe_type_mix() -> str:
    return "\n".join(f"- {percent}% {kind.replace('_', ' ').title()}" for kind, percent in QUESTION_TYPE_MIX.items())


def _alias_key(value: Any) -> str:
    key = re.sub(r"[^a-z]", "", str(value).lower())
    return key.removesuffix("questions").removesuffix("question")


def normalize_tier(value: Any) -> str:
    return _TIER_ALIASES.get(_alias_key(value), "core")


def normalize_question_type(value: Any) -> str:
    return _TYPE_ALIASES.get(_alias_key(value), "short_answer")


@dataclass(frozen=True)
class AssessmentBlueprint:
    """The shape every generated assessment is asked to follow."""

    difficulty: str
    exam_type: str
    time_limit: int
    tiers: tuple[TierSpec, ...] = QUESTION_TIERS
    type_mix: dict[str, int] = field(default_factory=lambda: dict(QUESTION_TYPE_MIX))

    @classmethod
    def for_context(cls, context: RequestContext) -> AssessmentBlueprint:
        return cls(
            difficulty=context.difficulty or DEFAULT_DIFFICULTY,
            exam_type=context.exam_type or DEFAULT_EXAM_TYPE,
            time_limit=context.time_limit or DEFAULT_TIME_LIMIT,
        )


@dataclass(frozen=True)
class AssessmentQuestion:
    tier: str
    type: str
    question: str
    options: list[str]
    correct_answer: str
    explanation: str
    marks: int
    skills_tested: list[str]
    board_exam_relevance: str

    @classmethod
    def from_dict(cls, data: dict[str, Any], tier: str | None = None) -> AssessmentQuestion:
        return cls(
            tier=normalize_tier(tier or data.get("tier") or data.get("level") or "core"),
            type=normalize_question_type(data.get("type") or data.get("questionType") or ""),
            question=as_text(data.get("question") or data.get("questionText") or data.get("text")),
            options=as_str_list(data.get("options")),
            correct_answer=as_text(data.get("correctAnswer") or data.get("answer")),
            explanation=as_text(data.get("explanation")),
            marks=clamp_int(data.get("marks"), 0, 100, default=1),
            skills_tested=as_str_list(data.get("skillsTested") or data.get("skills")),
            board_exam_relevance=as_text(data.get("boardExamRelevance") or data.get("boardRelevance")),
        )


@dataclass(frozen=True)
class GeneratedAssessment(NormalizedResponse):
    questions: list[AssessmentQuestion]
    metadata: dict[str, Any]
    blueprint: AssessmentBlueprint

    def tier_counts(self) -> dict[str, int]:
        counts = {tier.name: 0 for tier in self.blueprint.tiers}
        for question in self.questions:
            counts[question.tier] = counts.get(question.tier, 0) + 1
        return counts

    def off_blueprint_tiers(self) -> list[str]:
        """Tiers whose question count falls outside the blueprint range."""
        counts = self.tier_counts()
        return [tier.name for tier in self.blueprint.tiers if not tier.accepts(counts[tier.name])]


@dataclass(frozen=True)
class AnswerEvaluation(NormalizedResponse):
    score: int
    is_correct: bool
    partial_credit: list[str]
    mistakes: list[str]
    feedback: str
    improvement_tips: list[str]
    next_practice: str


def _collect_questions(data: Any, raw: str) -> list[AssessmentQuestion]:
    """Accept a bare array, ``{"questions": [...]}``, or lists keyed by tier.

    Raises:
        ParseError: No question object was found, whatever the container.
    """
    questions: list[AssessmentQuestion] = []
    if isinstance(data, list):
        questions = [AssessmentQuestion.from_dict(item) for item in data if isinstance(item, dict)]
    elif isinstance(data, dict) and isinstance(data.get("questions"), list):
        questions = [AssessmentQuestion.from_dict(item) for item in data["questions"] if isinstance(item, dict)]
    elif isinstance(data, dict):
        for key, value in data.items():
            tier = _TIER_ALIASES.get(_alias_key(key))
            if tier is not None and isinstance(value, list):
                questions.extend(AssessmentQuestion.from_dict(item, tier) for item in value if isinstance(item, dict))
    if not questions:
        raise ParseError("Assessment reply contained no questions", raw_text=raw)
    return questions


def _parse_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


class AssessorAgent(BaseAgent):
    """Generates tiered assessments and grades answers."""

    capabilities = frozenset({"assessment_generation", "answer_evaluation", "feedback"})
    priority = 30

    @property
    def agent_id(self) -> str:
        return "assessor"

    @property
    def name(self) -> str:
        return "Assessor"

    @property
    def role(self) -> str:
        return "Creates adaptive assessments and evaluates answers"

    async def handle(self, request: str, context: RequestContext) -> GeneratedAssessment:
        """Generate an assessment for the requested topic.

        Raises:
            ParseError: The reply did not contain assessment JSON.
        """
        blueprint = AssessmentBlueprint.for_context(context)
        prompt = ASSESSMENT_PROMPT.format(
            grade=context.grade,
            subject=context.subject or "General",
            request=request,
            focus=context.focus,
            difficulty=blueprint.difficulty,
            exam_type=blueprint.exam_type,
            time_limit=blueprint.time_limit,
            tiers=_describe_tiers(),
            type_mix=_describe_type_mix(),
        )
        reply = await self._generate(prompt, ASSESSMENT_PROFILE)
        # Bracketed prose like "[5]" can precede the payload; take the first value with questions.
        for data in iter_json(reply):
            try:
                questions = _collect_questions(data, reply)
            except ParseError:
                continue
            break
        else:
            self.logger.error("Assessment reply had no question JSON: %s", reply[:200])
            raise ParseError("Could not parse assessment questions from the reply", raw_text=reply)

        metadata = data.get("metadata") if isinstance(data, dict) else None
        assessment = GeneratedAssessment(
            questions=questions,
            metadata=metadata if isinstance(metadata, dict) else {},
            blueprint=blueprint,
        )

        off = assessment.off_blueprint_tiers()
        if off:
            self.logger.warning("Assessment tiers outside blueprint: %s (counts %s)", off, assessment.tier_counts())
        return assessment

    async def evaluate_answer(
        self,
        question: str,
        student_answer: str,
        correct_answer: str,
        context: RequestContext,
    ) -> AnswerEvaluation:
        """Score a learner's answer against the expected one.

        Raises:
            ParseError: The reply was not a JSON object.
        """
        prompt = EVALUATION_PROMPT.format(
            question=question,
            student_answer=student_answer,
            correct_answer=correct_answer,
            grade=context.grade,
        )
        reply = await self._generate(prompt, EVALUATION_PROFILE)
        data = extract_json_object(reply, "answer evaluation")

        score = clamp_int(data.get("score"), 0, 100)
        is_correct = _parse_bool(data.get("isCorrect"))
        return AnswerEvaluation(
            score=score,
            is_correct=score >= PASS_SCORE if is_correct is None else is_correct,
            partial_credit=as_str_list(data.get("partialCredit")),
            mistakes=as_str_list(data.get("mistakes")),
            feedback=as_text(data.get("feedback"), "No feedback provided."),
            improvement_tips=as_str_list(data.get("improvementTips")),
            next_practice=as_text(data.get("nextPractice")),
        )
