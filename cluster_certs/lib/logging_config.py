"""JSON logging configuration for cluster certificate operations."""

import logging
import os

from pythonjsonlogger import jsonlogger

LOG_LEVEL_ENV = "CLUSTER_CERTS_LOG_LEVEL"

LOGGED_FIELDS = frozenset(
    {
        "timestamp",
        "level",
        "message",
        "exc_info",
        "funcName",
        "lineno",
    }
)

# Passed through `extra=` by the setup flow
CONTEXT_FIELDS = frozenset({"cluster", "node"})


class CertsJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter emitting LOGGED_FIELDS plus any cluster/node context.

    Everything else python-json-logger adds (module, process, thread, name...)
    is dropped.
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        for key in [key for key in log_record if key not in LOGGED_FIELDS | CONTEXT_FIELDS]:
            log_record.pop(key)


def resolve_level(value: str | None = None) -> int:
    """Return the level named by value (or CLUSTER_CERTS_LOG_LEVEL), INFO when unset or unknown."""
    name = (value if value is not None else os.environ.get(LOG_LEVEL_ENV, "INFO")).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _setup_logger() -> logging.Logger:
    """Initialize and configure singleton logger.

    Returns:
        Configured logger with CertsJsonFormatter
    """
    logger = logging.getLogger("cluster_certs")

    # Prevent duplicate handlers if module reloaded
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(
        CertsJsonFormatter(
            fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
            timestamp=True,
        )
    )

    logger.setLevel(resolve_level())
    logger.addHandler(handler)
    logger.propagate = False

    return logger


# Singleton logger instance - import this in other modules
LOGGER = _setup_logger()
