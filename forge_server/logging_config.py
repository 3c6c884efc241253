"""
Centralized logging configuration for the forge server package.

Format: LEVEL: timestamp : package.file.function.lineno : log-line
Example: INFO: 2024-02-17 13:01:23 : forge.routers.projects.dependencies.add_dependency.42 : Adding dependency

Usage:
    from forge_server.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Something happened")
"""

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional


class ForgeFormatter(logging.Formatter):
    """
    Custom formatter producing:
    LEVEL: timestamp : package.file.function.lineno : message

    The package prefix is shortened to 'forge.X' for server modules.
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        # forge_server.graph.cycles -> forge.graph.cycles
        module = record.name
        if module.startswith("forge_server."):
            module = "forge." + module[len("forge_server."):]
        elif module == "forge_server":
            module = "forge"

        filename = record.filename
        if filename.endswith(".py"):
            filename = filename[:-3]

        # If module already ends with filename, don't duplicate
        if module.endswith(f".{filename}"):
            location = f"{module}.{record.funcName}.{record.lineno}"
        else:
            location = f"{module}.{filename}.{record.funcName}.{record.lineno}"

        line = f"{record.levelname}: {timestamp} : {location} : {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: Optional[int] = None, stream: Optional[object] = None) -> None:
    """
    Configure root logging for the server and CLI.

    Call this once at startup (FastAPI lifespan, CLI callback).

    Args:
        level: Logging level (default: from LOG_LEVEL env var, fallback INFO)
        stream: Output stream (default: sys.stdout)
    """
    if level is None:
        env_level = os.getenv("LOG_LEVEL", "INFO").upper()
        level = getattr(logging, env_level, logging.INFO)
    if stream is None:
        stream = sys.stdout

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ForgeFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    app_logger = logging.getLogger("forge_server")
    app_logger.setLevel(level)
    app_logger.propagate = True

    # Suppress noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Typically __name__ from the calling module

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
