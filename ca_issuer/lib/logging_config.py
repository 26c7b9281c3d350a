"""JSON logging for the CA issuer library and scripts."""

import logging
import os

from pythonjsonlogger import jsonlogger

LOG_LEVEL_ENV = "CA_ISSUER_LOG_LEVEL"

BASE_FIELDS = frozenset({"timestamp", "level", "message", "exc_info", "funcName", "lineno"})

# Issuance context accepted through `extra=`; anything else is dropped
CONTEXT_FIELDS = frozenset({"subject", "issuer", "serial", "client_id", "path"})


class CaJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter emitting the base record fields plus CA issuance context.

    Context keys outside CONTEXT_FIELDS are removed, so a stray `extra`
    carrying key material or passwords never reaches the output.
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        for key in [k for k in log_record if k not in BASE_FIELDS | CONTEXT_FIELDS]:
            log_record.pop(key)


def _resolve_level(value: str | None) -> int:
    level = logging.getLevelName((value or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _setup_logger() -> logging.Logger:
    """Create the `ca_issuer` logger, level taken from $CA_ISSUER_LOG_LEVEL (default INFO)."""
    logger = logging.getLogger("ca_issuer")

    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(
        CaJsonFormatter(
            fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
            timestamp=True,
        )
    )

    logger.setLevel(_resolve_level(os.environ.get(LOG_LEVEL_ENV)))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


LOGGER = _setup_logger()
