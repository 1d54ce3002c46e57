"""FastAPI application exposing the query engine to the dashboard."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from mcp_client import RegistryEmptyError
from orchestrator import QueryEngine
from utils.helpers import utc_timestamp


APP_NAME = "Financial Query Router"
APP_VERSION = "1.0.0"


class AnalyzeRequest(BaseModel):
    """Body of POST /analyze."""
    message: str = Field(min_length=1)


class SuggestionRequest(BaseModel):
    """Body of POST /suggestions."""
    query: Optional[str] = None


class ToolRequest(BaseModel):
    """Body of POST /tool."""
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)
    message: Optional[str] = None


class ToolsResponse(BaseModel):
    tools: List[Dict[str, Any]]
    count: int
    timestamp: str


class SuggestionResponse(BaseModel):
    suggestions: List[str]


class HealthResponse(BaseModel):
    status: str
    mcpServer: str
    llm: str
    timestamp: str


def create_app(engine: Optional[QueryEngine] = None) -> FastAPI:
    """
    Build the HTTP application.
    
    Args:
        engine: Preconfigured engine; one is built from settings when omitted
        
    Returns:
        FastAPI app whose lifespan initializes and closes the engine
    """
    
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        query_engine = engine or QueryEngine.from_settings()
        app.state.engine = query_engine
        
        count = await query_engine.initialize()
        if count:
            logger.info(f"{APP_NAME} ready with {count} tools")
        else:
            logger.warning("No tools discovered at startup; will retry on first request")
        
        yield
        
        logger.info(f"{APP_NAME} shutting down")
        await query_engine.close()
    
    app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    def get_engine(request: Request) -> QueryEngine:
        return request.app.state.engine
    
    @app.post("/analyze")
    async def analyze(body: AnalyzeRequest, request: Request) -> Dict[str, Any]:
        try:
            return await get_engine(request).analyze(body.message)
        except RegistryEmptyError as e:
            logger.error(f"Cannot analyze, no tools available: {e}")
            raise HTTPException(status_code=503, detail=str(e))
    
    @app.get("/tools", response_model=ToolsResponse)
    async def tools(request: Request) -> ToolsResponse:
        snapshot = get_engine(request).list_tools()
        return ToolsResponse(tools=snapshot, count=len(snapshot), timestamp=utc_timestamp())
    
    @app.post("/suggestions", response_model=SuggestionResponse)
    async def suggestions(body: SuggestionRequest, request: Request) -> SuggestionResponse:
        if not body.query:
            return SuggestionResponse(suggestions=[])
        return SuggestionResponse(suggestions=await get_engine(request).suggest(body.query))
    
    @app.post("/tool")
    async def tool(body: ToolRequest, request: Request) -> Dict[str, Any]:
        logger.info(f"Executing tool: {body.name} with args: {body.args}")
        try:
            return await get_engine(request).execute_tool(body.name, body.args, body.message or "")
        except RegistryEmptyError as e:
            raise HTTPException(status_code=503, detail=str(e))
    
    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        query_engine = get_engine(request)
        llm_ready = await query_engine.llm_status()
        return HealthResponse(
            status="ok",
            mcpServer="running" if query_engine.transport.is_connected else "stopped",
            llm="available" if llm_ready else "unavailable",
            timestamp=utc_timestamp(),
        )
    
    return app
