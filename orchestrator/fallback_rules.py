"""
Rule-based tool selection used whenever the model gives no valid answer.

Rules are evaluated in order and the first match wins; several keyword sets
overlap ("top", "stock", "etf"), so the order below is the precedence.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from mcp_client import ToolRegistry
from utils.validators import extract_count, extract_mentioned_symbols

from .constants import (
    HISTORICAL_TOOL,
    INSIGHTS_TOOL,
    MARKET_SUMMARY_TOOL,
    NEWS_TOOL,
    QUOTE_TOOL,
    RECOMMENDATIONS_TOOL,
    SCREENER_TOOL,
    SEARCH_TOOL,
    TRENDING_ETF_TOOL,
    TRENDING_TOOL,
)
from .entity_resolver import resolve_symbol_locally
from .schemas import ClassificationResult, ClassificationSource


def _keywords(*words: str) -> re.Pattern:
    return re.compile(r"\b(?:" + "|".join(words) + r")\b", re.IGNORECASE)


def _selection(
    tool: str,
    parameters: Dict[str, Any],
    reasoning: str,
    confidence: float,
) -> ClassificationResult:
    return ClassificationResult(
        tool=tool,
        parameters={key: value for key, value in parameters.items() if value is not None},
        reasoning=reasoning,
        confidence=confidence,
        source=ClassificationSource.FALLBACK,
    )


@dataclass(frozen=True)
class FallbackRule:
    """A keyword predicate paired with the selection it produces."""
    name: str
    pattern: re.Pattern
    build: Callable[[str, int], ClassificationResult]
    
    def matches(self, query: str) -> bool:
        return bool(self.pattern.search(query))


DIVIDEND = _keywords("dividends?")
MARKET_CAP = _keywords("market cap(?:italization)?s?", "marketcap", "largest")
PERFORMANCE = _keywords("performing", "gaining", "winning")


def _comparison(query: str, count: int) -> ClassificationResult:
    symbols = extract_mentioned_symbols(query)
    if symbols:
        reasoning = (
            f"Comparison query detected with symbols: {', '.join(symbols)}. "
            f"Using first symbol for fallback."
        )
    else:
        reasoning = "Comparison query detected but no symbols were found"
    return _selection(QUOTE_TOOL, {"symbol": symbols[0] if symbols else None}, reasoning, 0.85)


def _listing(query: str, count: int) -> ClassificationResult:
    if DIVIDEND.search(query):
        return _selection(
            SCREENER_TOOL,
            {"criteria": "dividend_yield", "count": count, "sort": "dividend_yield_desc"},
            "Query appears to be asking for high dividend stocks",
            0.9,
        )
    if MARKET_CAP.search(query):
        return _selection(
            TRENDING_TOOL, {"count": count},
            "Query appears to be asking for top stocks by market cap", 0.8,
        )
    if PERFORMANCE.search(query):
        return _selection(
            TRENDING_TOOL, {"count": count},
            "Query appears to be asking for top performing stocks", 0.8,
        )
    return _selection(
        TRENDING_TOOL, {"count": count},
        "Query appears to be asking for top/trending stocks", 0.7,
    )


def _quote(query: str, count: int) -> ClassificationResult:
    return _selection(
        QUOTE_TOOL, {"symbol": resolve_symbol_locally(query)},
        "Query appears to be asking for current stock quote/price", 0.8,
    )


def _historical(query: str, count: int) -> ClassificationResult:
    return _selection(
        HISTORICAL_TOOL, {"symbol": resolve_symbol_locally(query)},
        "Query appears to be asking for historical data or charts", 0.8,
    )


def _trending(query: str, count: int) -> ClassificationResult:
    return _selection(
        TRENDING_TOOL, {"count": count},
        "Query appears to be asking for trending or popular stocks", 0.8,
    )


def _etf_search(search_text: str, label: str) -> Callable[[str, int], ClassificationResult]:
    def build(query: str, count: int) -> ClassificationResult:
        return _selection(
            SEARCH_TOOL, {"query": search_text},
            f"Query specifically mentions {label} ETFs - using search to find them", 0.95,
        )
    return build


def _etf(query: str, count: int) -> ClassificationResult:
    return _selection(
        TRENDING_ETF_TOOL, {"count": count},
        "Query appears to be asking for general/popular ETFs", 0.9,
    )


def _search(query: str, count: int) -> ClassificationResult:
    return _selection(
        SEARCH_TOOL, {"query": query},
        "Query appears to be a search request for symbols or companies", 0.8,
    )


def _news(query: str, count: int) -> ClassificationResult:
    return _selection(
        NEWS_TOOL, {"symbol": resolve_symbol_locally(query), "count": count},
        "Query appears to be asking for news", 0.8,
    )


def _insights(query: str, count: int) -> ClassificationResult:
    return _selection(
        INSIGHTS_TOOL, {"symbol": resolve_symbol_locally(query)},
        "Query appears to be asking for technical analysis or insights", 0.8,
    )


def _market_summary(query: str, count: int) -> ClassificationResult:
    return _selection(
        MARKET_SUMMARY_TOOL, {},
        "Query appears to be asking for market summary or overview", 0.8,
    )


def _recommendations(query: str, count: int) -> ClassificationResult:
    return _selection(
        RECOMMENDATIONS_TOOL, {"symbol": resolve_symbol_locally(query)},
        "Query appears to be asking for analyst recommendations", 0.8,
    )


RULES: List[FallbackRule] = [
    FallbackRule("comparison", _keywords("compare", "comparison", "vs", "versus", "side by side"), _comparison),
    FallbackRule("listing", _keywords("top", "best", "highest", "most", "list"), _listing),
    FallbackRule("quote", _keywords("quotes?", "prices?", "stock", "current", "latest"), _quote),
    FallbackRule("historical", _keywords("historical", "charts?", "history", "past", "performance"), _historical),
    FallbackRule("trending", _keywords("trending", "popular", "most active", "hot"), _trending),
    FallbackRule(
        "reit_etf",
        _keywords("reit etfs?", "real estate etfs?", "real estate investment trusts?", "reit funds?"),
        _etf_search("REIT ETF real estate", "REIT"),
    ),
    FallbackRule(
        "bond_etf",
        _keywords("bond etfs?", "bond funds?", "fixed income etfs?", "treasury etfs?"),
        _etf_search("bond ETF treasury fixed income", "bond"),
    ),
    FallbackRule(
        "sector_etf",
        _keywords("tech etfs?", "technology etfs?", "sector etfs?", "sector funds?"),
        _etf_search("technology ETF sector", "sector"),
    ),
    FallbackRule("etf", _keywords("etfs?", "exchange traded funds?", "diversified investing"), _etf),
    FallbackRule("search", _keywords("search", "find", "company", "symbols?", "tickers?"), _search),
    FallbackRule("news", _keywords("news", "headlines?"), _news),
    FallbackRule("insights", _keywords("insights?", "analysis", "technical"), _insights),
    FallbackRule("market_summary", _keywords("market", "summary", "overview"), _market_summary),
    FallbackRule("recommendations", _keywords("recommendations?", "analysts?"), _recommendations),
]


class FallbackClassifier:
    """Deterministic keyword classifier. Always returns a registered tool."""
    
    RULES = RULES
    
    def __init__(self, registry: Optional[ToolRegistry] = None, default_count: int = 5):
        self.registry = registry
        self.default_count = default_count
    
    def _available(self, tool: str) -> bool:
        if self.registry is None or self.registry.is_empty:
            return True
        return self.registry.has(tool)
    
    def classify(self, query: str) -> ClassificationResult:
        """
        Classify a query by the first matching rule.
        
        A matching rule whose tool the server does not offer is passed over
        so an unknown tool name never leaves this classifier.
        """
        lowered = query.lower()
        count = extract_count(lowered, self.default_count)
        
        for rule in self.RULES:
            if not rule.matches(lowered):
                continue
            result = rule.build(query, count)
            if self._available(result.tool):
                return result
        
        return self._default(query, count)
    
    def _default(self, query: str, count: int) -> ClassificationResult:
        if self._available(TRENDING_TOOL):
            return _selection(TRENDING_TOOL, {"count": count}, "Default fallback to trending stocks", 0.6)
        if self._available(SEARCH_TOOL):
            return _selection(SEARCH_TOOL, {"query": query}, "Default fallback to symbol search", 0.6)
        tool = self.registry.names()[0]
        return _selection(tool, {}, f"Default fallback to {tool}", 0.6)
    
    def rule(self, name: str) -> FallbackRule:
        """Look up a rule by name."""
        for rule in self.RULES:
            if rule.name == name:
                return rule
        raise KeyError(name)
