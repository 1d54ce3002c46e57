"""Orchestrator module for query routing, parameter resolution and tool execution."""

from .errors import MalformedClassifierOutput, ParameterResolutionError, ToolExecutionError
from .schemas import (
    AnalysisResult,
    ClassificationResult,
    ClassificationSource,
    ExecutionAttempt,
    ExecutionOutcome,
    clamp_confidence,
)
from .entity_resolver import EntityResolver
from .fallback_rules import FallbackClassifier, FallbackRule
from .intent_classifier import IntentClassifier
from .executor import FallbackCategory, ToolExecutor, fallback_chain, fallback_category, embedded_error
from .widgets import presentation_category
from .suggestions import QuerySuggester, DEFAULT_SUGGESTIONS
from .query_flow import QueryEngine

__all__ = [
    "MalformedClassifierOutput",
    "ParameterResolutionError",
    "ToolExecutionError",
    "AnalysisResult",
    "ClassificationResult",
    "ClassificationSource",
    "ExecutionAttempt",
    "ExecutionOutcome",
    "clamp_confidence",
    "EntityResolver",
    "FallbackClassifier",
    "FallbackRule",
    "IntentClassifier",
    "FallbackCategory",
    "ToolExecutor",
    "fallback_chain",
    "fallback_category",
    "embedded_error",
    "presentation_category",
    "QuerySuggester",
    "DEFAULT_SUGGESTIONS",
    "QueryEngine",
]
