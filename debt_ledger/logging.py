"""Structured logging configuration for debt-ledger."""

import json
import logging
import sys
from datetime import datetime, timezone, tzinfo
from typing import Any

# Identifiers lifted from ``extra=`` to the top level of JSON records
LEDGER_FIELDS = (
    "contract_id",
    "payment_id",
    "customer_id",
    "manager_id",
    "debtor_id",
    "record_id",
)


def setup_logging(
    level: str = "INFO",
    format_type: str = "standard",
    zone: tzinfo | None = None,
) -> None:
    """Configure logging for debt-ledger.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    format_type : str
        Format type: "standard" or "json".
    zone : tzinfo | None
        Ledger time zone for JSON timestamps. Defaults to UTC.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter(zone=zone)
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger("debt_ledger").setLevel(log_level)

    # Reduce noise from external libraries
    logging.getLogger("psycopg").setLevel(logging.WARNING)
    logging.getLogger("faker").setLevel(logging.WARNING)


class JsonFormatter(logging.Formatter):
    """JSON log formatter for ledger events.

    Ledger identifiers passed as ``extra={"contract_id": ...}`` become
    top-level keys, as does every key of an ``extra={"extra": {...}}``
    mapping. Money amounts are written as exact decimal strings.
    """

    def __init__(self, zone: tzinfo | None = None) -> None:
        super().__init__()
        self.zone = zone or timezone.utc

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, self.zone).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in LEDGER_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra"):
            log_data.update(record.extra)

        # Decimal and date values fall back to str()
        return json.dumps(log_data, default=str)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Parameters
    ----------
    name : str
        Logger name (usually __name__).

    Returns
    -------
    logging.Logger
        Configured logger.
    """
    return logging.getLogger(name)
