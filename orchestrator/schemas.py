"""Classification and execution schemas using Pydantic."""

import math
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


DEFAULT_CONFIDENCE = 0.8


def clamp_confidence(value: Any) -> float:
    """Coerce a confidence value into [0, 1]; absent or unreadable values become 0.8."""
    if value is None or isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(number):
        return DEFAULT_CONFIDENCE
    return min(max(number, 0.0), 1.0)


class ClassificationSource(str, Enum):
    """Which classifier produced a tool selection."""
    LLM = "llm"
    FALLBACK = "fallback"


class ToolSelection(BaseModel):
    """Tool selection as returned by the model, before registry validation."""
    tool: str
    parameters: Dict[str, Any] = {}
    reasoning: str = ""
    confidence: Optional[Any] = None
    
    @field_validator("parameters", mode="before")
    @classmethod
    def _parameters_or_empty(cls, value: Any) -> Any:
        return {} if value is None else value
    
    @field_validator("reasoning", mode="before")
    @classmethod
    def _reasoning_as_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ClassificationResult(BaseModel):
    """Tool choice for one query."""
    tool: str = Field(description="Registered tool name")
    parameters: Dict[str, Any] = Field(default_factory=dict)
    reasoning: str = ""
    confidence: float = Field(default=DEFAULT_CONFIDENCE, ge=0.0, le=1.0)
    source: ClassificationSource
    
    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_confidence(value)


class ExecutionOutcome(str, Enum):
    """Result of one tool invocation."""
    SUCCESS = "success"
    TOOL_ERROR = "tool_error"
    TRANSPORT_ERROR = "transport_error"


class ExecutionAttempt(BaseModel):
    """One tool invocation within a request."""
    tool: str
    arguments: Dict[str, Any] = {}
    outcome: ExecutionOutcome
    error: Optional[str] = None


class AnalysisResult(BaseModel):
    """Normalized answer handed to the rendering layer."""
    content: str
    data: Any = Field(default_factory=dict)
    widget_type: str = Field(alias="widgetType")
    tool_used: Optional[str] = Field(default=None, alias="toolUsed")
    query: str = ""
    source: Optional[ClassificationSource] = None
    confidence: Optional[float] = None
    reasoning: Optional[str] = None
    attempts: List[ExecutionAttempt] = []
    error: Optional[str] = None
    
    class Config:
        populate_by_name = True
    
    def to_response(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys the dashboard expects."""
        return self.model_dump(by_alias=True, mode="json")
