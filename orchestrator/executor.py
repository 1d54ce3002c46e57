"""Tool execution with an ordered fallback chain over alternate tools."""

import json
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from mcp_client import (
    ToolCallOutcome,
    ToolCategory,
    ToolDescriptor,
    ToolRegistry,
    ToolTransport,
    TransportError,
)
from utils.helpers import parse_tool_payload, truncate_text
from utils.validators import extract_count

from .constants import ERROR_MARKER, ERROR_WIDGET, HISTORICAL_TOOL, QUOTE_TOOL, SEARCH_TOOL, TRENDING_TOOL
from .errors import ParameterResolutionError, ToolExecutionError
from .schemas import AnalysisResult, ExecutionAttempt, ExecutionOutcome
from .widgets import presentation_category


class FallbackCategory(str, Enum):
    """Tool families that share a list of alternates."""
    SCREENING = "screening"
    TRENDING = "trending"
    QUOTE = "quote"
    SEARCH = "search"
    ETF = "etf"
    HISTORICAL = "historical"
    CHART = "chart"
    INSIGHTS = "insights"


# Ordered: "get_trending_etfs" is an ETF tool, "get_quote_summary" a quote tool
FALLBACK_CATEGORY_MARKERS = [
    (("screener",), FallbackCategory.SCREENING),
    (("etf",), FallbackCategory.ETF),
    (("trending",), FallbackCategory.TRENDING),
    (("quote", "price"), FallbackCategory.QUOTE),
    (("historical",), FallbackCategory.HISTORICAL),
    (("chart",), FallbackCategory.CHART),
    (("insights",), FallbackCategory.INSIGHTS),
    (("search",), FallbackCategory.SEARCH),
]

FALLBACK_CHAINS: Dict[FallbackCategory, List[str]] = {
    FallbackCategory.SCREENING: [TRENDING_TOOL, SEARCH_TOOL],
    FallbackCategory.TRENDING: [SEARCH_TOOL],
    FallbackCategory.QUOTE: [QUOTE_TOOL, SEARCH_TOOL],
    FallbackCategory.SEARCH: [TRENDING_TOOL],
    FallbackCategory.ETF: [TRENDING_TOOL, SEARCH_TOOL],
    FallbackCategory.HISTORICAL: [QUOTE_TOOL, SEARCH_TOOL],
    FallbackCategory.CHART: [HISTORICAL_TOOL, QUOTE_TOOL],
    FallbackCategory.INSIGHTS: [QUOTE_TOOL, SEARCH_TOOL],
}

SYMBOL_NOT_FOUND_MESSAGE = (
    "I couldn't identify a stock symbol in your message: \"{query}\". "
    "Please specify a stock symbol (like AAPL, MSFT) or company name (like Apple, Microsoft)."
)


def fallback_category(tool_name: str) -> Optional[FallbackCategory]:
    """Fallback family of a tool, from substrings of its name."""
    lowered = tool_name.lower()
    for markers, category in FALLBACK_CATEGORY_MARKERS:
        if any(marker in lowered for marker in markers):
            return category
    return None


def fallback_chain(primary: str, registry: Optional[ToolRegistry] = None) -> List[str]:
    """
    Alternates to try after the primary tool fails, in declared order.
    
    Only registered tools are kept and the primary itself never appears.
    """
    category = fallback_category(primary)
    if category is None:
        return []
    
    chain = []
    for name in FALLBACK_CHAINS[category]:
        if name == primary or name in chain:
            continue
        if registry is not None and not registry.has(name):
            continue
        chain.append(name)
    return chain


def embedded_error(outcome: ToolCallOutcome) -> Optional[str]:
    """
    Error reported inside a response whose transport call succeeded.
    
    The server signals tool failures with the isError flag, a text payload
    starting with "Error:", or a JSON envelope with "success": false.
    """
    text = outcome.first_text or ""
    if outcome.is_error:
        return text or "Tool reported an error"
    
    stripped = text.lstrip()
    if stripped.startswith(ERROR_MARKER):
        return stripped
    
    if stripped.startswith("{"):
        try:
            payload = json.loads(stripped)
        except json.JSONDecodeError:
            return None
        if isinstance(payload, dict) and payload.get("success") is False:
            return str(payload.get("error") or payload.get("message") or "Tool reported failure")
    return None


class ToolExecutor:
    """Invokes tools through the transport and walks fallback chains on failure."""
    
    def __init__(self, registry: ToolRegistry, transport: ToolTransport, default_count: int = 5):
        self.registry = registry
        self.transport = transport
        self.default_count = default_count
    
    def missing_parameters(self, descriptor: ToolDescriptor, arguments: Dict[str, Any]) -> List[str]:
        """Required parameters with no usable value."""
        return [param for param in descriptor.required if arguments.get(param) in (None, "")]
    
    def validate(self, tool: str, arguments: Dict[str, Any], query: str) -> None:
        """
        Check arguments against the tool's required parameters.
        
        Raises:
            ToolExecutionError: tool is not registered
            ParameterResolutionError: a required parameter is still missing
        """
        descriptor = self.registry.get(tool)
        if descriptor is None:
            available = ", ".join(self.registry.names())
            raise ToolExecutionError(tool, f'Tool "{tool}" not found. Available tools: {available}')
        
        missing = self.missing_parameters(descriptor, arguments)
        if not missing:
            return
        
        parameter = missing[0]
        if parameter == "symbol":
            raise ParameterResolutionError("symbol", SYMBOL_NOT_FOUND_MESSAGE.format(query=query))
        raise ParameterResolutionError(parameter)
    
    async def invoke(
        self,
        tool: str,
        arguments: Dict[str, Any],
    ) -> Tuple[ExecutionAttempt, Optional[ToolCallOutcome]]:
        """
        Make one tool call.
        
        Returns:
            The attempt record, and the outcome when the call succeeded
        """
        logger.info(f"Calling tool {tool} with {arguments}")
        try:
            outcome = await self.transport.call_tool(tool, arguments)
        except TransportError as e:
            logger.warning(f"Tool {tool} failed at transport: {e}")
            attempt = ExecutionAttempt(
                tool=tool, arguments=arguments,
                outcome=ExecutionOutcome.TRANSPORT_ERROR, error=str(e),
            )
            return attempt, None
        
        error = embedded_error(outcome)
        if error:
            logger.warning(f"Tool {tool} returned error: {truncate_text(error, 200)}")
            attempt = ExecutionAttempt(
                tool=tool, arguments=arguments,
                outcome=ExecutionOutcome.TOOL_ERROR, error=error,
            )
            return attempt, None
        
        attempt = ExecutionAttempt(tool=tool, arguments=arguments, outcome=ExecutionOutcome.SUCCESS)
        return attempt, outcome
    
    def adapt_arguments(
        self,
        alternate: str,
        primary_arguments: Dict[str, Any],
        query: str,
    ) -> Optional[Dict[str, Any]]:
        """
        Reshape the primary's arguments for an alternate tool.
        
        Returns:
            Arguments for the alternate, or None when it needs a symbol
            that nobody has resolved
        """
        descriptor = self.registry.get(alternate)
        if descriptor is None:
            return None
        capabilities = descriptor.capabilities
        
        if capabilities.category == ToolCategory.SEARCH or "query" in descriptor.required:
            return {"query": query.strip()}
        
        arguments: Dict[str, Any] = {}
        if capabilities.requires_symbol or "symbol" in descriptor.required:
            symbol = primary_arguments.get("symbol")
            if not symbol:
                return None
            arguments["symbol"] = symbol
        if capabilities.requires_count or "count" in descriptor.required:
            count = primary_arguments.get("count")
            arguments["count"] = count if isinstance(count, int) else extract_count(query, self.default_count)
        return arguments
    
    async def run_fallbacks(
        self,
        primary: str,
        arguments: Dict[str, Any],
        query: str,
        attempts: List[ExecutionAttempt],
    ) -> Tuple[Optional[str], Optional[ToolCallOutcome]]:
        """
        Try the primary's alternates in order until one succeeds.
        
        Every attempt is appended to ``attempts``.
        
        Returns:
            Name and outcome of the tool that succeeded, or (None, None)
        """
        for alternate in fallback_chain(primary, self.registry):
            alternate_arguments = self.adapt_arguments(alternate, arguments, query)
            if alternate_arguments is None:
                logger.debug(f"Skipping fallback {alternate}: no symbol to pass")
                continue
            
            logger.info(f"Trying fallback tool: {alternate}")
            attempt, outcome = await self.invoke(alternate, alternate_arguments)
            attempts.append(attempt)
            if outcome is not None:
                logger.info(f"Fallback tool {alternate} succeeded")
                return alternate, outcome
        
        return None, None
    
    def success_result(
        self,
        tool_used: str,
        outcome: ToolCallOutcome,
        query: str,
        attempts: Optional[List[ExecutionAttempt]] = None,
    ) -> AnalysisResult:
        """Normalized result for a successful call, tagged by the tool that produced it."""
        content = f"Analysis completed for: {query}" if query else f"Tool {tool_used} executed successfully"
        return AnalysisResult(
            content=content,
            data=parse_tool_payload(outcome.first_text),
            widget_type=presentation_category(tool_used, self.registry),
            tool_used=tool_used,
            query=query,
            attempts=attempts or [],
        )
    
    @staticmethod
    def error_result(
        message: str,
        query: str,
        tool: Optional[str] = None,
        attempts: Optional[List[ExecutionAttempt]] = None,
    ) -> AnalysisResult:
        """Structured error result; the dashboard renders it with the error widget."""
        return AnalysisResult(
            content=message,
            data={"error": message},
            widget_type=ERROR_WIDGET,
            tool_used=tool,
            query=query,
            attempts=attempts or [],
            error=message,
        )
    
    async def execute(
        self,
        tool: str,
        arguments: Dict[str, Any],
        query: str = "",
        use_fallbacks: bool = True,
    ) -> AnalysisResult:
        """
        Execute a tool and normalize its result.
        
        Args:
            tool: Primary tool name
            arguments: Resolved arguments
            query: Original user query, used to adapt fallback arguments
            use_fallbacks: Walk the fallback chain when the primary fails
            
        Returns:
            AnalysisResult; failures come back as an error result, never raised
        """
        try:
            self.validate(tool, arguments, query)
        except (ParameterResolutionError, ToolExecutionError) as e:
            return self.error_result(str(e), query, tool)
        
        attempt, outcome = await self.invoke(tool, arguments)
        attempts = [attempt]
        tool_used: Optional[str] = tool
        
        if outcome is None and use_fallbacks:
            logger.warning(f"Primary tool {tool} failed, walking fallback chain")
            tool_used, outcome = await self.run_fallbacks(tool, arguments, query, attempts)
        
        if outcome is None:
            last = attempts[-1]
            message = str(ToolExecutionError(last.tool, last.error or "Tool call failed"))
            return self.error_result(message, query, last.tool, attempts)
        
        return self.success_result(tool_used, outcome, query, attempts)
