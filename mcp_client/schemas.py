"""Tool descriptors and protocol payloads using Pydantic."""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ToolCategory(str, Enum):
    """Capability category derived from a tool's name."""
    TRENDING = "trending"
    QUOTES = "quotes"
    HISTORICAL_CHART = "historical_chart"
    CHART_DATA = "chart_data"
    INSIGHTS = "insights"
    SEARCH = "search"
    ETFS = "etfs"
    GAINERS = "gainers"
    GENERAL = "general"


class ToolCapabilities(BaseModel):
    """Capability tags derived from tool metadata."""
    requires_symbol: bool = False
    requires_count: bool = False
    requires_query: bool = False
    category: ToolCategory = ToolCategory.GENERAL
    keywords: List[str] = []
    
    class Config:
        frozen = True


class ToolDescriptor(BaseModel):
    """A discovered tool with its schema and derived capabilities."""
    name: str
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=dict)
    required: List[str] = []
    capabilities: ToolCapabilities = Field(default_factory=ToolCapabilities)
    
    class Config:
        frozen = True
    
    @property
    def parameters(self) -> List[str]:
        """Names of all declared input parameters."""
        return list((self.input_schema.get("properties") or {}).keys())


class ToolContent(BaseModel):
    """One content item of a tool response."""
    type: str = "text"
    text: Optional[str] = None


class ToolCallOutcome(BaseModel):
    """Transport-level result of a tools/call request."""
    content: List[ToolContent] = []
    is_error: bool = False
    
    @property
    def first_text(self) -> Optional[str]:
        """Text of the first text content item, if any."""
        for item in self.content:
            if item.type == "text" and item.text is not None:
                return item.text
        return None
