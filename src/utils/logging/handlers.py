"""
Context-carrying logger wrapper.
"""

import logging
from typing import Any


class ContextLogger:
    """
    Logger wrapper that attaches bound context to every record

    Usage:
        log = ContextLogger(__name__, run_id="r-1")
        table_log = log.bind(table_name="tenants")
        table_log.info("Inserted batch", rows=500)
    """

    def __init__(self, name: str, **context):
        self.logger = logging.getLogger(name)
        self.context = context

    def bind(self, **context) -> "ContextLogger":
        """Return a new logger with ``context`` merged over the current one."""
        return ContextLogger(self.logger.name, **{**self.context, **context})

    def _log(self, level: int, msg: str, *args, exc_info=None, **kwargs) -> None:
        if not self.logger.isEnabledFor(level):
            return
        self.logger.log(
            level,
            msg,
            *args,
            exc_info=exc_info,
            extra={**self.context, **kwargs},
            stacklevel=3,
        )

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, exc_info=None, **kwargs) -> None:
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def update_context(self, **context) -> None:
        """Merge ``context`` into this logger's bound context in place."""
        self.context.update(context)

    def get_context(self) -> dict[str, Any]:
        return self.context.copy()
