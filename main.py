#!/usr/bin/env python3
"""
Financial Query Router - Entry Point

Starts the HTTP bridge that routes dashboard queries to the finance MCP
server. Run this file to start the service.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

import uvicorn

from api import create_app
from config.settings import settings
from utils.logger import setup_logger, logger


def check_configuration():
    """Verify required configuration is present and consistent."""
    errors = []
    
    if settings.LLM_BACKEND.lower() not in ("ollama", "openai"):
        errors.append(f"LLM_BACKEND must be 'ollama' or 'openai', got '{settings.LLM_BACKEND}'")
    
    if settings.LLM_BACKEND.lower() == "openai" and not settings.OPENAI_BASE_URL:
        errors.append("OPENAI_BASE_URL is required when LLM_BACKEND is 'openai'")
    
    if not settings.MCP_SERVER_COMMAND:
        errors.append("MCP_SERVER_COMMAND is required")
    
    if settings.MCP_SERVER_CWD and not Path(settings.MCP_SERVER_CWD).is_dir():
        logger.warning(f"MCP_SERVER_CWD does not exist: {settings.MCP_SERVER_CWD}")
    
    if errors:
        for error in errors:
            logger.error(f"Configuration Error: {error}")
        logger.error("Please check your .env file or environment variables")
        return False
    
    return True


def main():
    """Main entry point."""
    setup_logger(settings.LOG_LEVEL, settings.LOG_DIR, settings.LOG_JSON)
    
    logger.info("=" * 50)
    logger.info("Financial Query Router Starting...")
    logger.info("=" * 50)
    
    if not check_configuration():
        logger.error("Configuration check failed. Exiting.")
        sys.exit(1)
    
    logger.info(f"LLM: {settings.LLM_BACKEND} / {settings.LLM_MODEL}")
    logger.info(f"MCP server: {settings.MCP_SERVER_COMMAND} {' '.join(settings.MCP_SERVER_ARGS)}")
    logger.info(f"Debug Mode: {settings.DEBUG}")
    logger.info(f"Health check: http://localhost:{settings.PORT}/health")
    
    try:
        uvicorn.run(
            create_app(),
            host=settings.HOST,
            port=settings.PORT,
            log_config=None,
        )
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)
    finally:
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
