"""Errors raised while routing and executing a query."""

from typing import Optional


class MalformedClassifierOutput(ValueError):
    """Model output could not be parsed or named a tool that does not exist."""


class ParameterResolutionError(Exception):
    """A required tool parameter could not be resolved from the query."""
    
    def __init__(self, parameter: str, message: Optional[str] = None):
        self.parameter = parameter
        super().__init__(message or f"Missing required parameter: {parameter}")


class ToolExecutionError(Exception):
    """A tool call failed at the transport or reported an error itself."""
    
    def __init__(self, tool: str, message: str):
        self.tool = tool
        super().__init__(f"{tool}: {message}")
