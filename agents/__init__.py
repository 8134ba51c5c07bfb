"""Agent system for routing learner requests.

Provides six specialized agents coordinated by an intent-driven coordinator:
- ContentGeneratorAgent: Personalized lessons split into sections
- GapAnalyzerAgent: Learning gap diagnosis and concept dependency maps
- AssessorAgent: Tiered assessments and answer evaluation
- MotivatorAgent: Encouragement and daily challenges
- TutorAgent: Conversational tutoring with per-session memory
- GeneralAssistantAgent: Short answers for everything else
"""

from agents.assessor_agent import AssessorAgent
from agents.base import AgentDescriptor, AgentStatus, BaseAgent, RequestContext
from agents.content_agent import ContentGeneratorAgent
from agents.conversation import ConversationSession, SessionStore
from agents.coordinator import AgentCoordinator, RoutingResult, agent_for_intent, build_coordinator
from agents.flashcard_generator import FlashcardGenerator
from agents.gap_analyzer_agent import GapAnalyzerAgent
from agents.general_agent import GeneralAssistantAgent
from agents.intent import Intent, IntentClassification, IntentClassifier
from agents.messaging import AgentMessage, MessageBus, MessageType
from agents.motivator_agent import MotivatorAgent
from agents.tutor_agent import TutorAgent

__all__ = [
    "AgentCoordinator",
    "AgentDescriptor",
    "AgentMessage",
    "AgentStatus",
    "AssessorAgent",
    "BaseAgent",
    "ContentGeneratorAgent",
    "ConversationSession",
    "FlashcardGenerator",
    "GapAnalyzerAgent",
    "GeneralAssistantAgent",
    "Intent",
    "IntentClassification",
    "IntentClassifier",
    "MessageBus",
    "MessageType",
    "MotivatorAgent",
    "RequestContext",
    "RoutingResult",
    "SessionStore",
    "TutorAgent",
    "agent_for_intent",
    "build_coordinator",
]
