"""
Logging configuration for AgentDesk.

One ``agentdesk`` logger with a stdout handler; module loggers hang off it
via ``get_logger``. ``LOG_LEVEL`` in the environment wins over the config.
"""
import logging
import os
import sys

ROOT_LOGGER = "agentdesk"

logger = logging.getLogger(ROOT_LOGGER)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Install the console handler once and set the level."""
    level = os.getenv("LOG_LEVEL", level).upper()
    logger.setLevel(level)

    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # Avoid duplicate lines through uvicorn's root handler
    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    if name:
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")
    return logger
