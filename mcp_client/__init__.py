"""Client side of the MCP tool-execution boundary."""

from .errors import TransportError, RegistryEmptyError
from .schemas import (
    ToolCategory,
    ToolCapabilities,
    ToolDescriptor,
    ToolContent,
    ToolCallOutcome,
)
from .protocol import ToolTransport, MCPStdioTransport
from .registry import ToolRegistry, derive_capabilities, build_descriptor

__all__ = [
    "TransportError",
    "RegistryEmptyError",
    "ToolCategory",
    "ToolCapabilities",
    "ToolDescriptor",
    "ToolContent",
    "ToolCallOutcome",
    "ToolTransport",
    "MCPStdioTransport",
    "ToolRegistry",
    "derive_capabilities",
    "build_descriptor",
]
