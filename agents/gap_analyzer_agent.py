"""Gap Analyzer Agent: diagnoses what a learner is missing.

``handle`` returns the model's narrative inside a fixed envelope: one
placeholder gap entry and a placeholder remediation plan point the reader at
the narrative. ``analyze_concept_dependencies`` is the structured
counterpart and requires strict JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from agents.base import BaseAgent, NormalizedResponse, RequestContext
from agents.extraction import as_str_list, as_text, extract_json_object
from backend.errors import ParseError
from backend.llm_client import SamplingConfig

GAP_PROFILE = SamplingConfig(temperature=0.4, top_k=40, top_p=0.9, max_output_tokens=8192)
DEPENDENCY_PROFILE = SamplingConfig(temperature=0.5, top_k=40, top_p=0.9, max_output_tokens=8192)

IMPORTANCE_TIERS = ("essential", "recommended", "optional")

GAP_PROMPT = """\
You are analyzing learning gaps for a Class {grade} Tamil Nadu student.

Topic/Question: {request}
Focus Area: {focus}
Subject: {subject}
Current Grade: Class {grade}

Analyze what gaps might exist and provide a helpful, encouraging response in this format:

**GAPS IDENTIFIED:**
List 2-3 specific areas where the student might be struggling. For each gap, mention:
- What concept they're missing
- Why it's important
- How severe it is (critical/high/medium/low)

**ROOT CAUSE:**
Explain in 1-2 sentences what the underlying issue might be.

**WHAT TO LEARN FIRST:**
List the prerequisite topics they should understand before tackling this.

**STEP-BY-STEP RECOVERY PLAN:**
Give 4-5 clear, actionable steps to close these gaps, starting from basics.

**ESTIMATED TIME:**
How long will this take to master?

Be encouraging and specific. Write naturally, don't use JSON format."""

DEPENDENCY_PROMPT = """\
For Tamil Nadu Class {grade} curriculum, map the concept dependencies for: "{topic}"

Create a dependency tree showing:
1. Prerequisites (what must be learned first)
2. Core concept breakdown
3. Advanced concepts that build on this
4. Related topics in other subjects

Return as JSON: {{
  "prerequisites": [{{ "concept": "", "importance": "essential|recommended|optional" }}],
  "coreComponents": [],
  "advancedTopics": [],
  "crossSubjectLinks": []
}}"""


@dataclass(frozen=True)
class LearningGap:
    gap: str
    severity: str  # "critical", "high", "medium", "low"
    topic: str


@dataclass(frozen=True)
class RemediationPlan:
    steps: list[str]
    estimated_time: str
    resources: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class GapAnalysis(NormalizedResponse):
    gaps_identified: list[LearningGap]
    analysis: str
    remediation_plan: RemediationPlan


@dataclass(frozen=True)
class Prerequisite:
    concept: str
    importance: str  # one of IMPORTANCE_TIERS


@dataclass(frozen=True)
class ConceptDependencies(NormalizedResponse):
    prerequisites: list[Prerequisite]
    core_components: list[str]
    advanced_topics: list[str]
    cross_subject_links: list[str]


def _parse_prerequisites(raw: object) -> list[Prerequisite]:
    if not isinstance(raw, list):
        return []
    prerequisites = []
    for item in raw:
        if isinstance(item, dict):
            concept = as_text(item.get("concept"))
            importance = as_text(item.get("importance"), "recommended").lower()
        else:
            concept = as_text(item)
            importance = "recommended"
        if not concept:
            continue
        if importance not in IMPORTANCE_TIERS:
            importance = "recommended"
        prerequisites.append(Prerequisite(concept=concept, importance=importance))
    return prerequisites


class GapAnalyzerAgent(BaseAgent):
    """Identifies learning gaps and maps concept prerequisites."""

    capabilities = frozenset({"gap_analysis", "concept_mapping", "remediation"})
    priority = 10

    @property
    def agent_id(self) -> str:
        return "gap-analyzer"

    @property
    def name(self) -> str:
        return "Gap Analyzer"

    @property
    def role(self) -> str:
        return "Diagnoses learning gaps and plans remediation"

    async def handle(self, request: str, context: RequestContext) -> GapAnalysis:
        prompt = GAP_PROMPT.format(
            grade=context.grade,
            request=request,
            focus=context.focus,
            subject=context.subject or "General",
        )
        reply = await self._generate(prompt, GAP_PROFILE)
        return GapAnalysis(
            gaps_identified=[LearningGap(gap="Analysis complete", severity="medium", topic=request)],
            analysis=reply,
            remediation_plan=RemediationPlan(
                steps=["See detailed plan above"],
                estimated_time="Check the response",
            ),
        )

    async def analyze_concept_dependencies(self, topic: str, grade: int) -> ConceptDependencies:
        """Map prerequisites and follow-on topics for a concept.

        Raises:
            ParseError: The reply was not a JSON object.
        """
        if not topic.strip():
            raise ValueError("topic must not be empty")
        reply = await self._generate(DEPENDENCY_PROMPT.format(grade=grade, topic=topic), DEPENDENCY_PROFILE)
        try:
            data = extract_json_object(reply, "concept dependencies")
        except ParseError:
            self.logger.error("Concept dependency reply for %r was not JSON", topic)
            raise
        return ConceptDependencies(
            prerequisites=_parse_prerequisites(data.get("prerequisites")),
            core_components=as_str_list(data.get("coreComponents")),
            advanced_topics=as_str_list(data.get("advancedTopics")),
            cross_subject_links=as_str_list(data.get("crossSubjectLinks")),
        )
