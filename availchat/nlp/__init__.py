"""Local language pipeline: entities, intents, clarifications and tool arguments."""

from availchat.nlp.clarify import Clarification, ClarificationKind, ConversationalChecker
from availchat.nlp.entities import ExtractedEntities, extract, infer_duration
from availchat.nlp.intents import IntentResult, IntentRule, detect_intent, score_rule
from availchat.nlp.params import ParameterBuilder

__all__ = [
    "Clarification",
    "ClarificationKind",
    "ConversationalChecker",
    "ExtractedEntities",
    "IntentResult",
    "IntentRule",
    "ParameterBuilder",
    "detect_intent",
    "extract",
    "infer_duration",
    "score_rule",
]
