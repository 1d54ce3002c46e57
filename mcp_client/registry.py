"""Tool registry and capability cache."""

import asyncio
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from .errors import TransportError
from .protocol import ToolTransport
from .schemas import ToolCapabilities, ToolCategory, ToolDescriptor


# Ordered: the first matching substring decides the category
CATEGORY_PRECEDENCE = [
    (("trending",), ToolCategory.TRENDING),
    (("quote", "price"), ToolCategory.QUOTES),
    (("historical",), ToolCategory.HISTORICAL_CHART),
    (("chart",), ToolCategory.CHART_DATA),
    (("insights",), ToolCategory.INSIGHTS),
    (("search",), ToolCategory.SEARCH),
    (("etf",), ToolCategory.ETFS),
    (("gainer",), ToolCategory.GAINERS),
]

SYMBOL_MARKERS = ("quote", "historical", "chart", "insights")
COUNT_MARKERS = ("trending", "gainers", "screener")
QUERY_MARKERS = ("search", "symbols")


def derive_capabilities(name: str, description: str = "") -> ToolCapabilities:
    """
    Derive capability tags from a tool's name and description.
    
    Requirements and category come from name substrings only, so a tool
    named get_trending_x is always 'trending' whatever it says about itself.
    """
    lowered = name.lower()
    words = lowered.split("_") + (description or "").lower().split()
    
    category = ToolCategory.GENERAL
    for markers, candidate in CATEGORY_PRECEDENCE:
        if any(marker in lowered for marker in markers):
            category = candidate
            break
    
    return ToolCapabilities(
        requires_symbol=any(marker in lowered for marker in SYMBOL_MARKERS),
        requires_count=any(marker in lowered for marker in COUNT_MARKERS),
        requires_query=any(marker in lowered for marker in QUERY_MARKERS),
        category=category,
        keywords=[word for word in words if len(word) > 2],
    )


def build_descriptor(tool: Dict[str, Any]) -> ToolDescriptor:
    """Build a descriptor from one tools/list entry."""
    schema = tool.get("inputSchema") or tool.get("input_schema") or {}
    return ToolDescriptor(
        name=tool["name"],
        description=tool.get("description") or "",
        input_schema=schema,
        required=list(schema.get("required") or []),
        capabilities=derive_capabilities(tool["name"], tool.get("description") or ""),
    )


class ToolRegistry:
    """
    Read-mostly cache of the live tool set.
    
    Populated once by discovery and frozen afterwards; it is shared by every
    concurrent request and is only invalidated by a process restart.
    """
    
    def __init__(self):
        self._tools: Dict[str, ToolDescriptor] = {}
        self._frozen = False
        self._lock = asyncio.Lock()
    
    def load(self, tools: Iterable[Dict[str, Any]]) -> int:
        """Populate the registry from tools/list entries and freeze it."""
        if self._frozen:
            raise RuntimeError("Tool registry is already initialized")
        
        descriptors = {}
        for tool in tools:
            if not tool.get("name"):
                logger.warning(f"Skipping tool without a name: {tool}")
                continue
            descriptor = build_descriptor(tool)
            descriptors[descriptor.name] = descriptor
        
        self._tools = descriptors
        self._frozen = bool(descriptors)
        logger.info(f"Discovered {len(descriptors)} available tools: {sorted(descriptors)}")
        return len(descriptors)
    
    async def discover(self, transport: ToolTransport, attempts: int = 3) -> int:
        """
        Fetch the tool list from the server and load it.
        
        Retries only while the server is still coming up. Returns the number
        of tools loaded; 0 when discovery failed.
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max(attempts, 1)),
                wait=wait_exponential(multiplier=1, min=1, max=10),
                retry=retry_if_exception_type(TransportError),
                reraise=True,
            ):
                with attempt:
                    tools = await transport.list_tools()
        except TransportError as e:
            logger.error(f"Failed to discover tools: {e}")
            return 0
        
        return self.load(tools)
    
    async def ensure_loaded(self, transport: ToolTransport, attempts: int = 1) -> bool:
        """Discover lazily if the registry is still empty. Returns True when tools exist."""
        if self._frozen:
            return True
        async with self._lock:
            if not self._frozen:
                await self.discover(transport, attempts=attempts)
        return self._frozen
    
    @property
    def is_empty(self) -> bool:
        return not self._tools
    
    def __contains__(self, name: object) -> bool:
        return name in self._tools
    
    def __len__(self) -> int:
        return len(self._tools)
    
    def has(self, name: Optional[str]) -> bool:
        return name is not None and name in self._tools
    
    def get(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)
    
    def names(self) -> List[str]:
        return list(self._tools)
    
    def descriptors(self) -> List[ToolDescriptor]:
        return list(self._tools.values())
    
    def capabilities(self, name: str) -> Optional[ToolCapabilities]:
        descriptor = self._tools.get(name)
        return descriptor.capabilities if descriptor else None
    
    def find_search_tool(self) -> Optional[str]:
        """Name of a tool able to look up symbols, preferring the 'search' category."""
        for descriptor in self._tools.values():
            if descriptor.capabilities.category == ToolCategory.SEARCH:
                return descriptor.name
        for descriptor in self._tools.values():
            if descriptor.capabilities.requires_query:
                return descriptor.name
        return None
    
    def snapshot(self) -> List[Dict[str, Any]]:
        """Registry contents with derived capabilities, for UI suggestion building."""
        return [
            {
                "name": descriptor.name,
                "description": descriptor.description,
                "required": list(descriptor.required),
                "capabilities": descriptor.capabilities.model_dump(mode="json"),
            }
            for descriptor in self._tools.values()
        ]
