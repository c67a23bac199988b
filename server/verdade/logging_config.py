"""
Logging configuration for the fact-check server.

Log lines carry user-submitted text, so rich markup is off (a claim like
"[red]" must print as typed) and tracebacks omit locals, which would dump
image bytes and the API key held by the upstream client.
"""
import logging
from rich.logging import RichHandler


def setup_logging(level: str = "INFO"):
    """
    Set up logging with rich formatting.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    # Remove any existing handlers
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    # markup and locals off: see module docstring
    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
    )

    logging.getLogger("verdade").setLevel(level)

    # Reduce noise from other libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module."""
    return logging.getLogger(f"verdade.{name}")
