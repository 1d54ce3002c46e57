"""Errors raised at the tool-execution boundary."""


class TransportError(Exception):
    """The MCP server could not be reached, timed out, or broke the protocol."""


class RegistryEmptyError(Exception):
    """Tool discovery produced no tools; the engine cannot route anything."""
