"""Test configuration and fixtures."""

import json
import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from llm import LLMUnavailableError
from mcp_client import ToolCallOutcome, ToolContent, ToolRegistry, TransportError
from orchestrator import QueryEngine


def _schema(*required, **properties):
    return {
        "type": "object",
        "properties": {name: {"type": kind} for name, kind in properties.items()},
        "required": list(required),
    }


# Tool listing as returned by the finance MCP server
SAMPLE_TOOLS = [
    {"name": "get_quote", "description": "Get current stock quote", "inputSchema": _schema("symbol", symbol="string")},
    {"name": "get_quote_summary", "description": "Detailed quote summary modules", "inputSchema": _schema("symbol", symbol="string")},
    {"name": "get_historical_data", "description": "Historical OHLCV prices", "inputSchema": _schema("symbol", symbol="string", period="string")},
    {"name": "search_symbols", "description": "Search for stock symbols", "inputSchema": _schema("query", query="string")},
    {"name": "get_market_summary", "description": "Major market indices", "inputSchema": _schema()},
    {"name": "get_news", "description": "Latest financial news", "inputSchema": _schema(symbol="string", count="number")},
    {"name": "get_recommendations", "description": "Analyst recommendations", "inputSchema": _schema("symbol", symbol="string")},
    {"name": "get_trending_stocks", "description": "Trending stocks", "inputSchema": _schema(count="number")},
    {"name": "get_trending_etfs", "description": "Trending ETFs", "inputSchema": _schema(count="number")},
    {"name": "get_insights", "description": "Technical insights for a symbol", "inputSchema": _schema("symbol", symbol="string")},
    {"name": "get_chart", "description": "Chart data for a symbol", "inputSchema": _schema("symbol", symbol="string", range="string")},
    {"name": "get_screener", "description": "Predefined stock screeners", "inputSchema": _schema(criteria="string", count="number", sort="string")},
    {"name": "get_daily_gainers", "description": "Top daily gainers", "inputSchema": _schema(count="number")},
]


def text_outcome(payload, is_error=False) -> ToolCallOutcome:
    """Tool response carrying one text item; non-strings are JSON-encoded."""
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return ToolCallOutcome(content=[ToolContent(type="text", text=text)], is_error=is_error)


class FakeTransport:
    """
    In-memory stand-in for the MCP server.
    
    ``responses`` maps a tool name to a ToolCallOutcome, an exception to
    raise, or a callable taking the arguments. Unscripted tools succeed
    with a JSON echo of their call.
    """
    
    def __init__(self, tools=None, responses=None, connect_error=None, connected=False):
        self.tools = SAMPLE_TOOLS if tools is None else tools
        self.responses = responses or {}
        self.connect_error = connect_error
        self.calls = []
        self.list_calls = 0
        self.connected = connected
    
    @property
    def is_connected(self) -> bool:
        return self.connected
    
    async def connect(self) -> None:
        if self.connect_error:
            raise self.connect_error
        self.connected = True
    
    async def close(self) -> None:
        self.connected = False
    
    async def list_tools(self):
        self.list_calls += 1
        if not self.connected:
            raise TransportError("MCP server not running")
        if isinstance(self.tools, Exception):
            raise self.tools
        return list(self.tools)
    
    async def call_tool(self, name, arguments):
        self.calls.append((name, dict(arguments)))
        response = self.responses.get(name)
        if response is None:
            return text_outcome({"tool": name, "arguments": arguments})
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(arguments)
        return response
    
    def called(self, name):
        return [args for tool, args in self.calls if tool == name]


class FakeLLM:
    """Model client returning a fixed text, or raising."""
    
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.prompts = []
        self.options = []
        self.closed = False
    
    async def generate(self, prompt, **options):
        self.prompts.append(prompt)
        self.options.append(options)
        if self.error is not None:
            raise self.error
        return self.response
    
    async def check_status(self):
        return self.error is None
    
    async def close(self):
        self.closed = True


@pytest.fixture
def registry():
    """Registry loaded with the sample tool listing."""
    tool_registry = ToolRegistry()
    tool_registry.load(SAMPLE_TOOLS)
    return tool_registry


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def offline_llm():
    """Model endpoint that is down."""
    return FakeLLM(error=LLMUnavailableError("connection refused"))


@pytest.fixture
def engine(transport, offline_llm):
    """Engine over the fake server with the model unavailable."""
    return QueryEngine(transport=transport, llm=offline_llm, discovery_attempts=1)


@pytest.fixture
def transport_error():
    return TransportError("MCP server timeout calling tool")
