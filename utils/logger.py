"""Logging configuration using loguru."""

import inspect
import logging
import sys
from pathlib import Path
from typing import Iterable

from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"

# Standard-library loggers of the server stack, re-routed into loguru
STDLIB_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "mcp", "httpx")


class InterceptHandler(logging.Handler):
    """Forward standard logging records to loguru."""
    
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        
        # Find the caller outside the logging module so loguru reports the real origin
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1
        
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def intercept_stdlib_logging(names: Iterable[str] = STDLIB_LOGGERS, level: str = "INFO") -> None:
    """Send the named standard loggers through loguru instead of their own handlers."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in names:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False
        std_logger.setLevel(level)


def setup_logger(log_level: str = "INFO", log_dir: str = "logs", json_logs: bool = False) -> None:
    """
    Configure loguru sinks.
    
    Args:
        log_level: Minimum level for the console and app.log
        log_dir: Directory for the rotating log files
        json_logs: Emit one JSON object per line on stderr instead of coloured text
    """
    logger.remove()
    
    if json_logs:
        logger.add(sys.stderr, level=log_level, serialize=True)
    else:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=log_level, colorize=True)
    
    log_path = Path(log_dir)
    
    # Errors are kept longer than the general log
    logger.add(
        log_path / "error.log",
        format=FILE_FORMAT,
        level="ERROR",
        rotation="10 MB",
        retention="7 days",
        compression="zip",
    )
    logger.add(
        log_path / "app.log",
        format=FILE_FORMAT,
        level=log_level,
        rotation="50 MB",
        retention="3 days",
        compression="zip",
    )
    
    intercept_stdlib_logging(level=log_level)
    logger.info(f"Logger initialized with level: {log_level}")


__all__ = ["setup_logger", "intercept_stdlib_logging", "InterceptHandler", "logger"]
