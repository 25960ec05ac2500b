"""Structured logging configuration using structlog.

Log events never carry card data. Call sites only log secret names and ids,
and ``mask_card_fields`` scrubs card fields that reach a log event anyway
(for example through bound request context).
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

CARD_NUMBER_KEYS = frozenset({"card_number", "new_card_number", "cardNumber"})
REDACTED_KEYS = frozenset({"expiry_date", "expiryDate", "payload", "secret_string", "password"})


def _mask_card_number(value: Any) -> str:
    digits = str(value)
    return f"****{digits[-4:]}" if len(digits) > 4 else "****"


def mask_card_fields(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace card numbers with their last four digits and drop other card fields."""
    for key in event_dict.keys() & CARD_NUMBER_KEYS:
        event_dict[key] = _mask_card_number(event_dict[key])
    for key in event_dict.keys() & REDACTED_KEYS:
        event_dict[key] = "[REDACTED]"
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    format_as_json: bool = True,
    service_name: Optional[str] = None,
    environment: Optional[str] = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_as_json: If True, output logs as JSON; otherwise use console format
        service_name: Bound to every event as ``service`` when given
        environment: Bound to every event as ``environment`` when given
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        mask_card_fields,
    ]

    if format_as_json:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    context = {"service": service_name, "environment": environment}
    structlog.contextvars.bind_contextvars(**{k: v for k, v in context.items() if v is not None})


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance for the module ``name``."""
    return structlog.get_logger(name)
