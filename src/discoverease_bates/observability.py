"""Logging helpers for discoverease-bates.

Every module creates a logger with ``get_logger(__name__)`` and logs an event
message followed by keyword fields:

    logger.info("Allocated Bates range", case_id=str(case.id), count=3)

Keyword fields are rendered as ``key=value`` pairs after the message.
"""

import logging
from collections.abc import MutableMapping
from typing import Any

_LOGGING_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})


class KeyValueLogger(logging.LoggerAdapter):
    """Logger adapter that accepts structured keyword fields."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        fields = {key: kwargs.pop(key) for key in list(kwargs) if key not in _LOGGING_KWARGS}
        if fields:
            rendered = " ".join(f"{key}={value}" for key, value in fields.items())
            msg = f"{msg} {rendered}"
        return msg, kwargs


def get_logger(name: str) -> KeyValueLogger:
    """Return a structured logger for a module.

    Args:
        name: Logger name, normally the module ``__name__``.

    Returns:
        KeyValueLogger wrapping the stdlib logger of that name.
    """
    return KeyValueLogger(logging.getLogger(name), {})


def configure_logging(level: str = "INFO") -> None:
    """Configure the root handler once at service startup.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...).
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
