"""Tool names exposed by the finance MCP server."""

QUOTE_TOOL = "get_quote"
QUOTE_SUMMARY_TOOL = "get_quote_summary"
HISTORICAL_TOOL = "get_historical_data"
CHART_TOOL = "get_chart"
TRENDING_TOOL = "get_trending_stocks"
TRENDING_ETF_TOOL = "get_trending_etfs"
SEARCH_TOOL = "search_symbols"
SCREENER_TOOL = "get_screener"
NEWS_TOOL = "get_news"
INSIGHTS_TOOL = "get_insights"
MARKET_SUMMARY_TOOL = "get_market_summary"
RECOMMENDATIONS_TOOL = "get_recommendations"

# Marker the server puts at the start of a text payload when a tool fails
ERROR_MARKER = "Error:"

# Presentation category for failed requests
ERROR_WIDGET = "error"
