"""Example query suggestions for the dashboard."""

import json
from typing import Any, List, Optional

from loguru import logger

from config import settings
from llm import LLMProvider, LLMUnavailableError
from utils.helpers import repair_json_array


DEFAULT_SUGGESTIONS = [
    "Show me top 10 trending stocks by volume and price movement",
    "Get Apple Inc. current stock price with P/E ratio and market cap",
    "Display Microsoft Corporation historical chart for past 6 months",
    "Show me comprehensive market summary with major indices performance",
    "Get Tesla Inc. latest financial news and analyst recommendations",
    "Display top 5 high dividend yield stocks for income investors",
    "Show me NVIDIA technical analysis with RSI and moving averages",
    "Get Amazon stock quote with 52-week range and trading volume",
    "Display trending technology sector ETFs with holdings breakdown",
    "Show me Google Alphabet chart analysis with support and resistance levels",
]

SUGGESTION_PROMPT = """Based on this financial query: "{query}"

Generate 3-5 detailed, comprehensive financial queries that would be valuable for a professional financial dashboard. Each query should be:
- 15-30 words long with specific details
- Include company names, sectors, or specific metrics
- Cover different aspects: quotes, charts, analysis, news, comparisons
- Use professional financial terminology
- Include time periods, sectors, or specific data requirements

Examples of good detailed queries:
- "Show me Apple Inc. current stock price with P/E ratio, market cap, and 52-week range"
- "Display Microsoft Corporation historical chart for past 6 months with volume analysis"
- "Get top 5 high dividend yield stocks in technology sector with yield percentages"
- "Show me Tesla technical analysis with RSI, moving averages, and support levels"

Respond with a JSON array of detailed query strings."""


def parse_suggestions(text: str) -> Optional[List[str]]:
    """Extract a list of non-empty strings from model output, or None if there is none."""
    candidate = repair_json_array(text or "")
    if candidate is None:
        return None
    try:
        items: Any = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    if not isinstance(items, list):
        return None
    return [item for item in items if isinstance(item, str) and item.strip()]


class QuerySuggester:
    """Generates sample dashboard queries with the model, or returns a canned list."""
    
    def __init__(self, llm: Optional[LLMProvider]):
        self.llm = llm
    
    async def suggest(self, seed: str) -> List[str]:
        """
        Suggest follow-up queries for a seed query.
        
        Args:
            seed: Query the user just typed
            
        Returns:
            Suggested queries; the default list whenever the model fails
        """
        if not seed or not seed.strip():
            return []
        if self.llm is None:
            return list(DEFAULT_SUGGESTIONS)
        
        try:
            response = await self.llm.generate(
                SUGGESTION_PROMPT.format(query=seed.strip()),
                temperature=settings.SUGGESTION_TEMPERATURE,
                top_p=settings.SUGGESTION_TOP_P,
                max_tokens=settings.SUGGESTION_MAX_TOKENS,
                timeout=settings.SUGGESTION_TIMEOUT,
            )
        except LLMUnavailableError as e:
            logger.info(f"Suggestions unavailable from model: {e}")
            return list(DEFAULT_SUGGESTIONS)
        except Exception as e:
            logger.error(f"Suggestion generation failed: {e}")
            return list(DEFAULT_SUGGESTIONS)
        
        suggestions = parse_suggestions(response)
        if not suggestions:
            logger.warning("Could not parse suggestions from model response")
            return list(DEFAULT_SUGGESTIONS)
        return suggestions
