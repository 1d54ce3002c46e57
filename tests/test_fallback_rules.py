"""Tests for the rule-based fallback classifier."""

import pytest

from mcp_client import ToolRegistry
from orchestrator.fallback_rules import FallbackClassifier, RULES
from orchestrator.schemas import ClassificationSource

from conftest import SAMPLE_TOOLS


@pytest.fixture
def classifier(registry):
    return FallbackClassifier(registry)


def _registry_with(*names):
    tool_registry = ToolRegistry()
    tool_registry.load([tool for tool in SAMPLE_TOOLS if tool["name"] in names])
    return tool_registry


class TestScenarios:
    """End-to-end classifications with the model unavailable."""
    
    def test_apple_stock(self, classifier):
        result = classifier.classify("Apple stock")
        assert result.tool == "get_quote"
        assert result.parameters == {"symbol": "AAPL"}
        assert result.confidence >= 0.8
        assert result.source == ClassificationSource.FALLBACK
    
    def test_top_dividend_stocks(self, classifier):
        result = classifier.classify("top 5 dividend stocks")
        assert result.tool == "get_screener"
        assert result.parameters["criteria"] == "dividend_yield"
        assert result.parameters["count"] == 5
        assert result.confidence == 0.9
        assert result.source == ClassificationSource.FALLBACK
    
    def test_compare_uses_first_symbol(self, classifier):
        result = classifier.classify("compare Apple and Microsoft")
        assert result.tool == "get_quote"
        assert result.parameters == {"symbol": "AAPL"}
        assert result.confidence == 0.85
        assert "AAPL" in result.reasoning and "MSFT" in result.reasoning


class TestRules:
    """Each rule in precedence order."""
    
    def test_comparison_with_tickers(self, classifier):
        result = classifier.classify("TSLA vs ford")
        assert result.parameters == {"symbol": "TSLA"}
    
    def test_comparison_without_symbols_leaves_symbol_unset(self, classifier):
        result = classifier.classify("compare these two")
        assert result.tool == "get_quote"
        assert "symbol" not in result.parameters
    
    def test_listing_by_market_cap(self, classifier):
        result = classifier.classify("top 10 companies by market cap")
        assert (result.tool, result.parameters, result.confidence) == ("get_trending_stocks", {"count": 10}, 0.8)

    def test_listing_by_market_capitalization(self, classifier):
        result = classifier.classify("top companies by market capitalization")
        assert (result.tool, result.parameters, result.confidence) == ("get_trending_stocks", {"count": 5}, 0.8)

    def test_listing_by_performance(self, classifier):
        result = classifier.classify("best performing stocks")
        assert (result.tool, result.parameters, result.confidence) == ("get_trending_stocks", {"count": 5}, 0.8)
    
    def test_generic_listing(self, classifier):
        result = classifier.classify("list some names")
        assert (result.tool, result.confidence) == ("get_trending_stocks", 0.7)
    
    def test_quote(self, classifier):
        result = classifier.classify("current price of NVDA")
        assert (result.tool, result.parameters) == ("get_quote", {"symbol": "NVDA"})
    
    def test_historical(self, classifier):
        result = classifier.classify("NVDA historical data")
        assert (result.tool, result.parameters, result.confidence) == ("get_historical_data", {"symbol": "NVDA"}, 0.8)
    
    def test_trending(self, classifier):
        result = classifier.classify("what's hot today")
        assert (result.tool, result.confidence) == ("get_trending_stocks", 0.8)
    
    @pytest.mark.parametrize("query,search_text", [
        ("REIT ETFs for income", "REIT ETF real estate"),
        ("good bond funds", "bond ETF treasury fixed income"),
        ("technology ETF ideas", "technology ETF sector"),
    ])
    def test_etf_subcategories_search(self, classifier, query, search_text):
        result = classifier.classify(query)
        assert result.tool == "search_symbols"
        assert result.parameters == {"query": search_text}
        assert result.confidence == 0.95
    
    def test_generic_etf(self, classifier):
        result = classifier.classify("ETFs for diversified investing")
        assert (result.tool, result.parameters, result.confidence) == ("get_trending_etfs", {"count": 5}, 0.9)
    
    def test_search_uses_raw_query(self, classifier):
        result = classifier.classify("search for Palantir")
        assert (result.tool, result.parameters) == ("search_symbols", {"query": "search for Palantir"})
    
    def test_news(self, classifier):
        result = classifier.classify("Tesla news headlines")
        assert (result.tool, result.parameters) == ("get_news", {"symbol": "TSLA", "count": 5})
    
    def test_insights(self, classifier):
        result = classifier.classify("technical analysis for AMD")
        assert (result.tool, result.parameters) == ("get_insights", {"symbol": "AMD"})
    
    def test_market_summary(self, classifier):
        result = classifier.classify("market overview")
        assert (result.tool, result.parameters) == ("get_market_summary", {})
    
    def test_recommendations(self, classifier):
        result = classifier.classify("analyst recommendations for Nike")
        assert (result.tool, result.parameters) == ("get_recommendations", {"symbol": "NKE"})
    
    def test_default(self, classifier):
        result = classifier.classify("hello there")
        assert (result.tool, result.parameters, result.confidence) == ("get_trending_stocks", {"count": 5}, 0.6)
    
    def test_keywords_match_whole_words(self, classifier):
        # "stocks" is not the quote keyword "stock"
        assert classifier.classify("stocks").tool == "get_trending_stocks"
        assert classifier.classify("stocks").confidence == 0.6
        assert classifier.classify("trending stocks").tool == "get_trending_stocks"
        assert classifier.classify("trending stocks").confidence == 0.8
    
    def test_first_match_wins(self, classifier):
        # "top" (listing) outranks "price" (quote)
        assert classifier.classify("top price movers").tool == "get_trending_stocks"
    
    def test_rules_are_individually_addressable(self, classifier):
        assert classifier.rule("quote").matches("apple price")
        assert not classifier.rule("quote").matches("apple pricing model")
        with pytest.raises(KeyError):
            classifier.rule("nope")
    
    def test_rule_names_unique(self):
        names = [rule.name for rule in RULES]
        assert len(names) == len(set(names))


class TestRegistryAwareness:
    """Rules never hand back a tool the server does not offer."""
    
    def test_skips_rule_with_missing_tool(self):
        classifier = FallbackClassifier(_registry_with("get_quote", "get_trending_stocks", "search_symbols"))
        result = classifier.classify("top 5 dividend stocks")
        assert result.tool == "get_trending_stocks"
    
    def test_default_prefers_search_when_no_trending(self):
        classifier = FallbackClassifier(_registry_with("get_quote", "search_symbols"))
        result = classifier.classify("hello there")
        assert (result.tool, result.parameters) == ("search_symbols", {"query": "hello there"})
    
    def test_default_falls_back_to_first_tool(self):
        classifier = FallbackClassifier(_registry_with("get_news"))
        assert classifier.classify("hello there").tool == "get_news"
    
    @pytest.mark.parametrize("query", [
        "Apple stock", "top 5 dividend stocks", "compare Apple and Microsoft",
        "REIT ETFs", "market overview", "", "12345", "VS VS VS",
    ])
    def test_results_are_registered_and_bounded(self, classifier, registry, query):
        result = classifier.classify(query)
        assert registry.has(result.tool)
        assert 0.0 <= result.confidence <= 1.0
        assert result.source == ClassificationSource.FALLBACK
