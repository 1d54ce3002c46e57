"""Intent classifier that asks the model to pick a tool for a user query."""

import json
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from config import settings
from llm import LLMProvider, LLMUnavailableError
from mcp_client import ToolRegistry
from utils.helpers import repair_json_object, truncate_text

from .errors import MalformedClassifierOutput
from .fallback_rules import FallbackClassifier
from .schemas import ClassificationResult, ClassificationSource, ToolSelection


CLASSIFICATION_EXAMPLES = [
    ('Apple stock', '{"tool": "get_quote", "parameters": {"symbol": "AAPL"}, "reasoning": "Single stock", "confidence": 0.95}'),
    ('Compare Apple Microsoft', '{"tool": "get_quote", "parameters": {"symbol": "AAPL"}, "reasoning": "Comparison", "confidence": 0.9}'),
    ('Trending stocks', '{"tool": "get_trending_stocks", "parameters": {"count": 10}, "reasoning": "Multiple stocks", "confidence": 0.9}'),
]

RESPONSE_FORMAT = '{"tool": "tool_name", "parameters": {"symbol": "AAPL"}, "reasoning": "reason", "confidence": 0.95}'


class IntentClassifier:
    """
    Model-backed tool selection with rule-based fallback.
    
    The model is best effort: an unreachable endpoint, a timeout, output
    that does not parse, or a tool name the server does not offer all
    hand the query to the rule table. classify() never raises.
    """
    
    def __init__(
        self,
        llm: Optional[LLMProvider],
        registry: ToolRegistry,
        fallback: Optional[FallbackClassifier] = None,
    ):
        self.llm = llm
        self.registry = registry
        self.fallback = fallback or FallbackClassifier(registry, settings.DEFAULT_COUNT)
    
    def build_prompt(self, query: str, tool_names: Optional[List[str]] = None) -> str:
        """
        Build the selection prompt.
        
        Only tool identifiers are listed, never full schemas, so the prompt
        stays small however many tools the server exposes.
        """
        names = tool_names if tool_names is not None else self.registry.names()
        examples = "\n".join(f'"{text}" → {answer}' for text, answer in CLASSIFICATION_EXAMPLES)
        return (
            f'Select tool for: "{query}"\n\n'
            f"Tools: {', '.join(names)}\n\n"
            f"Respond with JSON only:\n{RESPONSE_FORMAT}\n\n"
            f"Examples:\n{examples}"
        )
    
    def parse_response(self, text: str) -> ClassificationResult:
        """
        Parse and validate raw model output.
        
        Raises:
            MalformedClassifierOutput: no JSON object, bad shape, or unknown tool
        """
        candidate = repair_json_object(text or "")
        if candidate is None:
            raise MalformedClassifierOutput("No JSON object in model response")
        
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as e:
            raise MalformedClassifierOutput(f"Invalid JSON: {e}") from e
        
        if not isinstance(payload, dict):
            raise MalformedClassifierOutput("Model response is not a JSON object")
        
        try:
            selection = ToolSelection(**payload)
        except (ValidationError, TypeError) as e:
            raise MalformedClassifierOutput(f"Unexpected response shape: {e}") from e
        
        if not self.registry.has(selection.tool):
            raise MalformedClassifierOutput(f"Model selected unknown tool: {selection.tool}")
        
        return ClassificationResult(
            tool=selection.tool,
            parameters=selection.parameters,
            reasoning=selection.reasoning,
            confidence=selection.confidence,
            source=ClassificationSource.LLM,
        )
    
    async def classify_with_llm(self, query: str) -> Optional[ClassificationResult]:
        """
        Ask the model for a selection.
        
        Returns:
            ClassificationResult, or None when the model is unavailable or
            its answer was unusable
        """
        if self.llm is None:
            return None
        
        try:
            response = await self.llm.generate(
                self.build_prompt(query),
                temperature=settings.LLM_TEMPERATURE,
                top_p=settings.LLM_TOP_P,
                max_tokens=settings.LLM_MAX_TOKENS,
                timeout=settings.LLM_TIMEOUT,
            )
        except LLMUnavailableError as e:
            logger.info(f"Model unavailable, using rule-based classification: {e}")
            return None
        
        logger.debug(f"Model response: {truncate_text(response, 300)}")
        
        try:
            result = self.parse_response(response)
        except MalformedClassifierOutput as e:
            logger.warning(f"Discarding model selection: {e}")
            return None
        
        logger.info(f"Model selected {result.tool} with parameters {result.parameters}")
        return result
    
    async def classify(self, query: str) -> ClassificationResult:
        """
        Classify a query into a registered tool and parameters.
        
        Args:
            query: Raw user query
            
        Returns:
            ClassificationResult from the model, or from the rule table
        """
        try:
            result = await self.classify_with_llm(query)
        except Exception as e:
            logger.error(f"Model classification failed unexpectedly: {e}")
            result = None
        
        if result is None:
            result = self.fallback.classify(query)
            logger.info(f"Rule-based selection: {result.tool} ({result.reasoning})")
        
        return result
