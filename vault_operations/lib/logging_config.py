"""JSON logging configuration for vault operations."""

import logging
import os

from pythonjsonlogger import jsonlogger

LOG_LEVEL_ENV = "VAULT_OPERATIONS_LOG_LEVEL"


class VaultJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter emitting timestamp, level, logger, message, exc_info, funcName, lineno.

    The logger field is the module path below vault_operations, so poller and
    paging records can be told apart.
    """

    allowed_fields = frozenset(
        {"timestamp", "level", "logger", "message", "exc_info", "funcName", "lineno"}
    )

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")
        log_record["logger"] = record.name.removeprefix("vault_operations.")

        for key in [key for key in log_record if key not in self.allowed_fields]:
            log_record.pop(key)


def _setup_logger() -> logging.Logger:
    """Initialize the package logger; child module loggers propagate into it.

    Returns:
        Configured logger with VaultJsonFormatter
    """
    logger = logging.getLogger("vault_operations")

    # Module reloads must not stack handlers
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(
        VaultJsonFormatter(
            fmt="%(timestamp)s %(levelname)s %(name)s %(funcName)s %(lineno)d %(message)s",
            timestamp=True,
        )
    )

    logger.setLevel(os.environ.get(LOG_LEVEL_ENV, "INFO").upper())
    logger.addHandler(handler)
    logger.propagate = False

    return logger


LOGGER = _setup_logger()
