"""
MCP stdio transport for the finance tool server.

The server is spawned as a child process and spoken to with line-delimited
JSON-RPC through the MCP SDK. One session is opened at startup and shared
by all requests; every request is bounded by a timeout.
"""

import asyncio
from contextlib import AsyncExitStack
from typing import Any, Dict, List, Optional, Protocol

from loguru import logger
from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from .errors import TransportError
from .schemas import ToolCallOutcome, ToolContent


class ToolTransport(Protocol):
    """What the engine needs from the tool-execution boundary."""

    @property
    def is_connected(self) -> bool:
        ...

    async def connect(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def list_tools(self) -> List[Dict[str, Any]]:
        ...
    
    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> ToolCallOutcome:
        ...


class MCPStdioTransport:
    """Persistent MCP session over the stdio of a spawned server process."""
    
    def __init__(
        self,
        command: str,
        args: Optional[List[str]] = None,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        call_timeout: float = 30.0,
    ):
        self.command = command
        self.args = args or []
        self.cwd = cwd
        self.env = env
        self.call_timeout = call_timeout
        
        self._stack: Optional[AsyncExitStack] = None
        self._session: Optional[ClientSession] = None
    
    @property
    def is_connected(self) -> bool:
        return self._session is not None
    
    async def connect(self) -> None:
        """Spawn the server and run the MCP handshake."""
        if self._session is not None:
            return
        
        params = StdioServerParameters(
            command=self.command,
            args=self.args,
            cwd=self.cwd,
            env=self.env,
        )
        stack = AsyncExitStack()
        try:
            read_stream, write_stream = await stack.enter_async_context(stdio_client(params))
            session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
            await asyncio.wait_for(session.initialize(), timeout=self.call_timeout)
        except Exception as e:
            await stack.aclose()
            raise TransportError(f"Failed to start MCP server '{self.command}': {e}") from e
        
        self._stack = stack
        self._session = session
        logger.info(f"MCP server started: {self.command} {' '.join(self.args)}")
    
    async def close(self) -> None:
        """Terminate the session and the server process."""
        if self._stack is None:
            return
        try:
            await self._stack.aclose()
        except Exception as e:
            logger.warning(f"Error while stopping MCP server: {e}")
        finally:
            self._stack = None
            self._session = None
        logger.info("MCP server stopped")
    
    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise TransportError("MCP server not running")
        return self._session
    
    async def list_tools(self) -> List[Dict[str, Any]]:
        """Run tools/list and return plain tool dicts."""
        session = self._require_session()
        try:
            result = await asyncio.wait_for(session.list_tools(), timeout=self.call_timeout)
        except asyncio.TimeoutError as e:
            raise TransportError("MCP server timeout during tools/list") from e
        except Exception as e:
            raise TransportError(f"tools/list failed: {e}") from e
        
        return [
            {
                "name": tool.name,
                "description": tool.description or "",
                "inputSchema": tool.inputSchema or {},
            }
            for tool in result.tools
        ]
    
    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> ToolCallOutcome:
        """Run tools/call for one tool."""
        session = self._require_session()
        logger.debug(f"MCP call -> {name} {arguments}")
        try:
            result = await asyncio.wait_for(
                session.call_tool(name, arguments=arguments),
                timeout=self.call_timeout,
            )
        except asyncio.TimeoutError as e:
            raise TransportError(f"MCP server timeout calling {name}") from e
        except Exception as e:
            raise TransportError(f"tools/call {name} failed: {e}") from e
        
        content = [
            ToolContent(type=item.type, text=getattr(item, "text", None))
            for item in result.content
        ]
        return ToolCallOutcome(content=content, is_error=bool(result.isError))
