"""
Entity resolver for tool parameters.

Symbols resolve through three tiers: an explicit uppercase ticker in the
text, the static company-name table, and finally a single lookup through
the server's search tool. A symbol that no tier finds stays unresolved;
nothing here guesses.
"""

import json
from typing import Any, Dict, List, Optional

from loguru import logger

from mcp_client import ToolCategory, ToolDescriptor, ToolRegistry, ToolTransport, TransportError
from utils.validators import (
    extract_company_candidates,
    extract_count,
    find_symbol_token,
    lookup_company_ticker,
    strip_search_triggers,
)


EQUITY_QUOTE_TYPES = ("EQUITY", "STOCK")


def resolve_symbol_locally(text: str) -> Optional[str]:
    """Resolve a symbol from the text alone (explicit ticker, then company name)."""
    return find_symbol_token(text) or lookup_company_ticker(text)


def pick_search_result(results: List[Dict[str, Any]]) -> Optional[str]:
    """Choose a symbol from search results, preferring equities over other instruments."""
    candidates = [item for item in results if isinstance(item, dict) and item.get("symbol")]
    if not candidates:
        return None
    for item in candidates:
        if str(item.get("quoteType", "")).upper() in EQUITY_QUOTE_TYPES:
            return item["symbol"]
    return candidates[0]["symbol"]


class EntityResolver:
    """Fills in missing symbol, count and query parameters from the raw query."""
    
    def __init__(
        self,
        registry: ToolRegistry,
        transport: Optional[ToolTransport] = None,
        default_count: int = 5,
    ):
        self.registry = registry
        self.transport = transport
        self.default_count = default_count
    
    async def resolve_symbol(self, text: str) -> Optional[str]:
        """
        Resolve a stock symbol from free text.
        
        Args:
            text: Original user query (case preserved)
            
        Returns:
            Ticker symbol, or None when every tier failed
        """
        symbol = find_symbol_token(text)
        if symbol:
            logger.debug(f"Symbol {symbol} taken from explicit ticker")
            return symbol
        
        symbol = lookup_company_ticker(text)
        if symbol:
            logger.debug(f"Symbol {symbol} found in company table")
            return symbol
        
        return await self._search_symbol(text)
    
    async def _search_symbol(self, text: str) -> Optional[str]:
        """Look the company up through the search tool. Makes at most one call."""
        search_tool = self.registry.find_search_tool()
        if self.transport is None or search_tool is None:
            return None
        
        candidates = extract_company_candidates(text)
        if not candidates:
            return None
        company = candidates[0]
        
        try:
            outcome = await self.transport.call_tool(search_tool, {"query": company})
        except TransportError as e:
            logger.warning(f"Failed to search for symbol: {e}")
            return None
        
        if outcome.is_error or not outcome.first_text:
            logger.warning(f"Symbol search for '{company}' returned no usable payload")
            return None
        
        try:
            payload = json.loads(outcome.first_text)
        except json.JSONDecodeError:
            logger.warning(f"Symbol search for '{company}' returned non-JSON text")
            return None
        
        if isinstance(payload, dict):
            payload = payload.get("quotes") or payload.get("results") or []
        if not isinstance(payload, list):
            return None
        
        symbol = pick_search_result(payload)
        if symbol:
            logger.info(f"Found symbol {symbol} for company '{company}' from search")
        return symbol
    
    def resolve_count(self, text: str, default: Optional[int] = None) -> int:
        """First integer in the text, else the default."""
        return extract_count(text, self.default_count if default is None else default)
    
    def resolve_query(self, text: str) -> str:
        """Search text with leading trigger phrases removed."""
        return strip_search_triggers(text)
    
    async def fill_missing(
        self,
        descriptor: ToolDescriptor,
        arguments: Dict[str, Any],
        query: str,
    ) -> Dict[str, Any]:
        """
        Fill required parameters that the classifier left empty.
        
        Parameters this resolver cannot produce, and symbols no tier found,
        are left absent for the executor to report.
        """
        filled = dict(arguments)
        for param in descriptor.required:
            if filled.get(param) not in (None, ""):
                continue
            
            if param == "symbol":
                symbol = await self.resolve_symbol(query)
                if symbol:
                    filled["symbol"] = symbol
            elif param == "count":
                filled["count"] = self.resolve_count(query)
            elif param == "query":
                if descriptor.capabilities.category == ToolCategory.SEARCH:
                    filled["query"] = self.resolve_query(query)
                else:
                    filled["query"] = query.strip()
        
        return filled
