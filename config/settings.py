"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # LLM endpoint
    LLM_BACKEND: str = Field(default="ollama", description="ollama or openai")
    OLLAMA_URL: str = "http://localhost:11434"
    LLM_MODEL: str = "phi3:mini"
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_API_KEY: Optional[str] = None
    
    # Classification sampling
    LLM_TEMPERATURE: float = 0.01
    LLM_TOP_P: float = 0.7
    LLM_MAX_TOKENS: int = 600
    
    # Suggestion sampling
    SUGGESTION_TEMPERATURE: float = 0.7
    SUGGESTION_TOP_P: float = 0.9
    SUGGESTION_MAX_TOKENS: int = 500
    
    # MCP server process
    MCP_SERVER_COMMAND: str = "node"
    MCP_SERVER_ARGS: List[str] = Field(default_factory=lambda: ["dist/index.js"])
    MCP_SERVER_CWD: Optional[str] = "yahoo-finance-mcp"
    DISCOVERY_ATTEMPTS: int = 3
    
    # Query defaults
    DEFAULT_COUNT: int = 5
    
    # HTTP server
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    
    # App Settings
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_JSON: bool = False
    
    # Timeouts (seconds)
    LLM_TIMEOUT: float = 5.0
    LLM_STATUS_TIMEOUT: float = 3.0
    SUGGESTION_TIMEOUT: float = 8.0
    TOOL_CALL_TIMEOUT: float = 30.0
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
