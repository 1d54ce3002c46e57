"""LangGraph pipeline that routes a free-text query to a tool and runs it."""

from typing import Any, Dict, List, Optional, TypedDict

from langgraph.graph import StateGraph, END
from loguru import logger

from config import settings
from llm import LLMProvider
from mcp_client import (
    MCPStdioTransport,
    RegistryEmptyError,
    ToolCallOutcome,
    ToolRegistry,
    ToolTransport,
    TransportError,
)

from .entity_resolver import EntityResolver
from .errors import ParameterResolutionError, ToolExecutionError
from .executor import ToolExecutor
from .fallback_rules import FallbackClassifier
from .intent_classifier import IntentClassifier
from .schemas import AnalysisResult, ClassificationResult, ExecutionAttempt
from .suggestions import QuerySuggester


class QueryState(TypedDict):
    """State carried through the query graph."""
    # Input
    query: str
    
    # Routing
    classification: Optional[ClassificationResult]
    tool: Optional[str]
    arguments: Dict[str, Any]
    
    # Execution
    outcome: Optional[ToolCallOutcome]
    tool_used: Optional[str]
    attempts: List[ExecutionAttempt]
    
    # Output
    error: Optional[str]
    widget_type: Optional[str]
    result: Optional[AnalysisResult]


class QueryEngine:
    """
    Query routing and tool-resolution engine.
    
    One engine owns the registry, the transport and the model client.
    Queries may run concurrently; each walks the graph
    classify -> resolve_parameters -> execute_primary -> execute_fallbacks
    -> tag_result strictly in sequence.
    """
    
    def __init__(
        self,
        transport: ToolTransport,
        llm: Optional[LLMProvider] = None,
        registry: Optional[ToolRegistry] = None,
        default_count: Optional[int] = None,
        discovery_attempts: Optional[int] = None,
    ):
        self.transport = transport
        self.llm = llm
        self.registry = registry or ToolRegistry()
        self.default_count = default_count or settings.DEFAULT_COUNT
        self.discovery_attempts = discovery_attempts or settings.DISCOVERY_ATTEMPTS
        
        self.fallback = FallbackClassifier(self.registry, self.default_count)
        self.classifier = IntentClassifier(llm, self.registry, self.fallback)
        self.resolver = EntityResolver(self.registry, transport, self.default_count)
        self.executor = ToolExecutor(self.registry, transport, self.default_count)
        self.suggester = QuerySuggester(llm)
        
        self.graph = self._build_graph()
    
    @classmethod
    def from_settings(cls) -> "QueryEngine":
        """Engine wired to the configured MCP server and model endpoint."""
        transport = MCPStdioTransport(
            command=settings.MCP_SERVER_COMMAND,
            args=settings.MCP_SERVER_ARGS,
            cwd=settings.MCP_SERVER_CWD,
            call_timeout=settings.TOOL_CALL_TIMEOUT,
        )
        return cls(transport=transport, llm=LLMProvider())
    
    def _build_graph(self):
        """Build the query graph."""
        graph = StateGraph(QueryState)
        
        graph.add_node("classify", self._classify)
        graph.add_node("resolve_parameters", self._resolve_parameters)
        graph.add_node("execute_primary", self._execute_primary)
        graph.add_node("execute_fallbacks", self._execute_fallbacks)
        graph.add_node("tag_result", self._tag_result)
        graph.add_node("finalize_error", self._finalize_error)
        
        graph.set_entry_point("classify")
        graph.add_edge("classify", "resolve_parameters")
        graph.add_conditional_edges(
            "resolve_parameters",
            self._route_after_resolution,
            {"execute": "execute_primary", "error": "finalize_error"},
        )
        graph.add_conditional_edges(
            "execute_primary",
            self._route_after_primary,
            {"tag": "tag_result", "fallback": "execute_fallbacks"},
        )
        graph.add_conditional_edges(
            "execute_fallbacks",
            self._route_after_fallbacks,
            {"tag": "tag_result", "error": "finalize_error"},
        )
        graph.add_edge("tag_result", END)
        graph.add_edge("finalize_error", END)
        
        return graph.compile()
    
    # Node implementations
    async def _classify(self, state: QueryState) -> QueryState:
        classification = await self.classifier.classify(state["query"])
        state["classification"] = classification
        state["tool"] = classification.tool
        state["arguments"] = dict(classification.parameters)
        logger.info(
            f"Selected tool: {classification.tool} "
            f"(confidence: {classification.confidence}, source: {classification.source.value})"
        )
        return state
    
    async def _resolve_parameters(self, state: QueryState) -> QueryState:
        tool = state["tool"]
        descriptor = self.registry.get(tool)
        if descriptor is not None:
            state["arguments"] = await self.resolver.fill_missing(
                descriptor, state["arguments"], state["query"]
            )
        
        try:
            self.executor.validate(tool, state["arguments"], state["query"])
        except ParameterResolutionError as e:
            logger.warning(f"Unresolved parameter '{e.parameter}' for {tool}")
            state["error"] = str(e)
        except ToolExecutionError as e:
            logger.error(f"Selected tool is not available: {e}")
            state["error"] = str(e)
        return state
    
    async def _execute_primary(self, state: QueryState) -> QueryState:
        attempt, outcome = await self.executor.invoke(state["tool"], state["arguments"])
        state["attempts"].append(attempt)
        if outcome is not None:
            state["outcome"] = outcome
            state["tool_used"] = state["tool"]
        else:
            logger.warning(f"Primary tool {state['tool']} failed: {attempt.error}")
        return state
    
    async def _execute_fallbacks(self, state: QueryState) -> QueryState:
        tool_used, outcome = await self.executor.run_fallbacks(
            state["tool"], state["arguments"], state["query"], state["attempts"]
        )
        if outcome is not None:
            state["outcome"] = outcome
            state["tool_used"] = tool_used
            return state
        
        last = state["attempts"][-1]
        state["tool_used"] = last.tool
        state["error"] = str(ToolExecutionError(last.tool, last.error or "Tool call failed"))
        logger.error(f"All tools failed for query '{state['query']}': {state['error']}")
        return state
    
    async def _tag_result(self, state: QueryState) -> QueryState:
        result = self.executor.success_result(
            state["tool_used"], state["outcome"], state["query"], state["attempts"]
        )
        state["result"] = self._with_classification(result, state)
        state["widget_type"] = result.widget_type
        return state
    
    async def _finalize_error(self, state: QueryState) -> QueryState:
        result = self.executor.error_result(
            state["error"] or "Failed to analyze message",
            state["query"],
            state.get("tool_used") or state.get("tool"),
            state["attempts"],
        )
        state["result"] = self._with_classification(result, state)
        state["widget_type"] = result.widget_type
        return state
    
    @staticmethod
    def _with_classification(result: AnalysisResult, state: QueryState) -> AnalysisResult:
        classification = state.get("classification")
        if classification is None:
            return result
        return result.model_copy(update={
            "source": classification.source,
            "confidence": classification.confidence,
            "reasoning": classification.reasoning,
        })
    
    # Routing
    @staticmethod
    def _route_after_resolution(state: QueryState) -> str:
        return "error" if state.get("error") else "execute"
    
    @staticmethod
    def _route_after_primary(state: QueryState) -> str:
        return "tag" if state.get("outcome") is not None else "fallback"
    
    @staticmethod
    def _route_after_fallbacks(state: QueryState) -> str:
        return "tag" if state.get("outcome") is not None else "error"
    
    # Public interface
    async def initialize(self) -> int:
        """
        Connect to the tool server and discover its tools.
        
        Returns:
            Number of tools discovered (0 when the server is unavailable)
        """
        if not self.transport.is_connected:
            try:
                await self.transport.connect()
            except TransportError as e:
                logger.error(f"Could not connect to MCP server: {e}")
                return 0
        
        await self.registry.ensure_loaded(self.transport, attempts=self.discovery_attempts)
        return len(self.registry)
    
    async def _require_tools(self) -> None:
        if self.registry.is_empty and not self.transport.is_connected:
            try:
                await self.transport.connect()
            except TransportError as e:
                logger.error(f"Could not connect to MCP server: {e}")
                raise RegistryEmptyError("MCP server is not running") from e

        if not await self.registry.ensure_loaded(self.transport):
            raise RegistryEmptyError("No tools discovered from the MCP server")
    
    async def analyze(self, query: str) -> Dict[str, Any]:
        """
        Answer a free-text query.
        
        Args:
            query: User's question
            
        Returns:
            {content, data, widgetType, toolUsed, query, ...}; failures come
            back with widgetType "error"
            
        Raises:
            RegistryEmptyError: no tools are available at all
        """
        await self._require_tools()
        logger.info(f"Analyzing message: {query}")
        
        initial_state: QueryState = {
            "query": query,
            "classification": None,
            "tool": None,
            "arguments": {},
            "outcome": None,
            "tool_used": None,
            "attempts": [],
            "error": None,
            "widget_type": None,
            "result": None,
        }
        
        try:
            final_state = await self.graph.ainvoke(initial_state)
            result = final_state["result"]
        except Exception as e:
            logger.error(f"Error analyzing message: {e}")
            result = ToolExecutor.error_result(f"Failed to analyze message: {e}", query)
        
        return result.to_response()
    
    async def execute_tool(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
        query: str = "",
    ) -> Dict[str, Any]:
        """Run one tool directly, without classification or fallbacks."""
        await self._require_tools()
        result = await self.executor.execute(name, arguments or {}, query, use_fallbacks=False)
        return result.to_response()
    
    def list_tools(self) -> List[Dict[str, Any]]:
        """Registry snapshot with derived capabilities."""
        return self.registry.snapshot()
    
    async def suggest(self, seed: str) -> List[str]:
        """Example queries related to a seed query."""
        return await self.suggester.suggest(seed)
    
    async def llm_status(self) -> bool:
        """Whether the configured model is reachable."""
        if self.llm is None:
            return False
        return await self.llm.check_status()
    
    async def close(self) -> None:
        """Release the transport and model clients."""
        await self.transport.close()
        if self.llm is not None:
            await self.llm.close()
