"""
Orchestrator: name capture, intent rules, follow-ups, retrieval and answer flow.
"""

from .agent import AgentResponse, EventAgent, UserIdentity
from .config import AssistantConfig
from .evaluator import AnswerEvaluator, EvalResult
from .followup import ConversationContextResolver
from .intents import Intent, IntentClassifier, IntentKind, IntentResult, IntentRule, ListSort
from .memory import ConversationMemory, ConversationTurn
from .query_analyzer import QueryAnalysis, QueryAnalyzer

__all__ = [
    "AgentResponse",
    "AnswerEvaluator",
    "AssistantConfig",
    "ConversationContextResolver",
    "ConversationMemory",
    "ConversationTurn",
    "EvalResult",
    "EventAgent",
    "Intent",
    "IntentClassifier",
    "IntentKind",
    "IntentResult",
    "IntentRule",
    "ListSort",
    "QueryAnalysis",
    "QueryAnalyzer",
    "UserIdentity",
]
