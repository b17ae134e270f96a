"""
Structured logging for the synchronization engine

Every module logs through ``logging.getLogger(__name__)``; this package only
decides where records go and how they are rendered.

Usage:
    from utils.logging import setup_logging, ContextLogger

    setup_logging(level="INFO", json_format=True)

    log = ContextLogger(__name__, run_id="2024-10-31T05:00", table_name="tenants")
    log.info("Diff computed", inserts=3, updates=1)
"""

from .config import configure_from_env, setup_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
