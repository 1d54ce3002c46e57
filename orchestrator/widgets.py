"""Presentation category tagging for tool results."""

from typing import Optional

from mcp_client import ToolRegistry


GENERAL_WIDGET = "general"

# Used only for tools the registry has no descriptor for
STATIC_WIDGET_TYPES = {
    "get_insights": "insights",
    "get_chart": "chart_data",
    "get_quote_summary": "quote_summary",
    "get_fundamentals_timeseries": "fundamentals",
    "fundamentals_analysis": "fundamentals",
    "get_trending_symbols": "trending_symbols",
    "get_daily_gainers": "gainers",
    "get_screener": "screener",
    "get_autoc": "autoc",
    "get_trending_etfs": "etfs",
    "get_trending_stocks": "trending",
    "get_quote": "quotes",
    "get_historical_data": "historical_chart",
    "search_symbols": "search",
}


def presentation_category(tool_name: Optional[str], registry: Optional[ToolRegistry] = None) -> str:
    """
    Presentation category for the tool that produced a result.
    
    The registry's derived category wins; the static table only covers
    names discovery did not return.
    """
    if not tool_name:
        return GENERAL_WIDGET
    if registry is not None:
        capabilities = registry.capabilities(tool_name)
        if capabilities is not None:
            return capabilities.category.value
    return STATIC_WIDGET_TYPES.get(tool_name, GENERAL_WIDGET)
