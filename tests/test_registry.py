"""Tests for the tool registry and capability derivation."""

import pytest

from mcp_client import ToolCategory, ToolRegistry, TransportError, derive_capabilities, build_descriptor

from conftest import SAMPLE_TOOLS, FakeTransport


class TestCapabilities:
    """Test capability tags derived from tool names."""
    
    @pytest.mark.parametrize("name,category", [
        ("get_trending_stocks", ToolCategory.TRENDING),
        ("get_trending_etfs", ToolCategory.TRENDING),
        ("get_quote", ToolCategory.QUOTES),
        ("get_price_targets", ToolCategory.QUOTES),
        ("get_historical_data", ToolCategory.HISTORICAL_CHART),
        ("get_chart", ToolCategory.CHART_DATA),
        ("get_insights", ToolCategory.INSIGHTS),
        ("search_symbols", ToolCategory.SEARCH),
        ("list_etf_holdings", ToolCategory.ETFS),
        ("get_daily_gainers", ToolCategory.GAINERS),
        ("get_market_summary", ToolCategory.GENERAL),
    ])
    def test_category_from_name(self, name, category):
        assert derive_capabilities(name).category == category
    
    def test_trending_name_wins_over_description(self):
        caps = derive_capabilities("get_trending_quotes", "Search historical chart quotes and ETF prices")
        assert caps.category == ToolCategory.TRENDING
    
    def test_requirement_flags(self):
        quote = derive_capabilities("get_quote")
        assert quote.requires_symbol and not quote.requires_count and not quote.requires_query
        
        trending = derive_capabilities("get_trending_stocks")
        assert trending.requires_count and not trending.requires_symbol
        
        search = derive_capabilities("search_symbols")
        assert search.requires_query and not search.requires_symbol
    
    def test_keywords(self):
        caps = derive_capabilities("get_quote", "Get current stock quote")
        assert "quote" in caps.keywords
        assert "current" in caps.keywords
        assert "get" in caps.keywords
    
    def test_build_descriptor(self):
        descriptor = build_descriptor(SAMPLE_TOOLS[0])
        assert descriptor.name == "get_quote"
        assert descriptor.required == ["symbol"]
        assert descriptor.parameters == ["symbol"]
        assert descriptor.capabilities.category == ToolCategory.QUOTES


class TestToolRegistry:
    """Test registry loading and lookups."""
    
    def test_load(self, registry):
        assert len(registry) == len(SAMPLE_TOOLS)
        assert "get_quote" in registry
        assert registry.has("search_symbols")
        assert not registry.has("get_stock_price")
        assert not registry.has(None)
    
    def test_frozen_after_load(self, registry):
        with pytest.raises(RuntimeError):
            registry.load(SAMPLE_TOOLS)
    
    def test_empty_load_does_not_freeze(self):
        tool_registry = ToolRegistry()
        assert tool_registry.load([]) == 0
        assert tool_registry.is_empty
        assert tool_registry.load(SAMPLE_TOOLS[:2]) == 2
    
    def test_skips_nameless_tools(self):
        tool_registry = ToolRegistry()
        tool_registry.load([{"description": "broken"}, SAMPLE_TOOLS[0]])
        assert tool_registry.names() == ["get_quote"]
    
    def test_capabilities_lookup(self, registry):
        assert registry.capabilities("get_chart").category == ToolCategory.CHART_DATA
        assert registry.capabilities("missing") is None
    
    def test_find_search_tool(self, registry):
        assert registry.find_search_tool() == "search_symbols"
        
        without_search = ToolRegistry()
        without_search.load([SAMPLE_TOOLS[0]])
        assert without_search.find_search_tool() is None
    
    def test_snapshot(self, registry):
        snapshot = registry.snapshot()
        entry = next(tool for tool in snapshot if tool["name"] == "get_trending_stocks")
        assert entry["capabilities"]["category"] == "trending"
        assert entry["capabilities"]["requires_count"] is True
        assert entry["required"] == []


class TestDiscovery:
    """Test discovery through a transport."""
    
    async def test_discover(self):
        tool_registry = ToolRegistry()
        count = await tool_registry.discover(FakeTransport(connected=True), attempts=1)
        assert count == len(SAMPLE_TOOLS)
        assert tool_registry.has("get_quote")
    
    async def test_discover_failure_leaves_registry_empty(self):
        tool_registry = ToolRegistry()
        transport = FakeTransport(tools=TransportError("tools/list failed"), connected=True)
        assert await tool_registry.discover(transport, attempts=1) == 0
        assert tool_registry.is_empty
        assert transport.list_calls == 1
    
    async def test_ensure_loaded_discovers_once(self):
        tool_registry = ToolRegistry()
        transport = FakeTransport(connected=True)
        assert await tool_registry.ensure_loaded(transport)
        assert await tool_registry.ensure_loaded(transport)
        assert transport.list_calls == 1
    
    async def test_ensure_loaded_retries_lazily_while_empty(self):
        tool_registry = ToolRegistry()
        transport = FakeTransport(tools=[], connected=True)
        assert not await tool_registry.ensure_loaded(transport)
        transport.tools = SAMPLE_TOOLS
        assert await tool_registry.ensure_loaded(transport)
        assert transport.list_calls == 2
