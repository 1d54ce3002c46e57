"""Tests for query suggestions."""

import json
import pytest

from config import settings
from llm import LLMUnavailableError
from orchestrator.suggestions import DEFAULT_SUGGESTIONS, QuerySuggester, parse_suggestions

from conftest import FakeLLM


class TestParseSuggestions:
    
    def test_fenced_array(self):
        raw = '```json\n["Show me Apple Inc. price with P/E ratio", "Tesla news",]\n```'
        assert parse_suggestions(raw) == ["Show me Apple Inc. price with P/E ratio", "Tesla news"]
    
    def test_filters_non_strings(self):
        assert parse_suggestions('["ok", 3, "", null, "  ", "fine"]') == ["ok", "fine"]
    
    def test_no_array(self):
        assert parse_suggestions("I can't help with that") is None
        assert parse_suggestions("[not, json") is None


class TestQuerySuggester:
    
    async def test_model_suggestions(self):
        llm = FakeLLM(response=json.dumps(["Apple 6 month chart", "Apple analyst ratings"]))
        suggestions = await QuerySuggester(llm).suggest("Apple stock")
        
        assert suggestions == ["Apple 6 month chart", "Apple analyst ratings"]
        assert 'Based on this financial query: "Apple stock"' in llm.prompts[0]
        assert llm.options[0]["temperature"] == settings.SUGGESTION_TEMPERATURE
        assert llm.options[0]["top_p"] == settings.SUGGESTION_TOP_P
        assert llm.options[0]["max_tokens"] == settings.SUGGESTION_MAX_TOKENS
        assert llm.options[0]["timeout"] == settings.SUGGESTION_TIMEOUT
    
    async def test_empty_seed(self):
        llm = FakeLLM(response="[]")
        assert await QuerySuggester(llm).suggest("   ") == []
        assert llm.prompts == []
    
    @pytest.mark.parametrize("llm", [
        FakeLLM(error=LLMUnavailableError("timeout")),
        FakeLLM(error=RuntimeError("boom")),
        FakeLLM(response="no idea"),
        FakeLLM(response="[1, 2, 3]"),
    ])
    async def test_defaults_on_failure(self, llm):
        assert await QuerySuggester(llm).suggest("Apple stock") == DEFAULT_SUGGESTIONS
    
    async def test_without_model(self):
        assert len(await QuerySuggester(None).suggest("Apple stock")) == 10
