"""
Structured JSON logging shared by the ledger services.

Usage:
    from common.logging import configure_logging, get_logger

    # Once at startup
    configure_logging("ledger-api", log_level="INFO")

    # In any module
    logger = get_logger(__name__)
    logger.warning("price_resolution_gap", location_id=3, days=4)
"""

import json
import logging
import sys
from datetime import date
from decimal import Decimal
from typing import Any, cast

import structlog
from structlog.types import EventDict, Processor

_configured = False


def _service_name_processor(service_name: str) -> Processor:
    def add_service_name(_logger: Any, _method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["service"] = service_name
        return event_dict

    return add_service_name


def _ledger_default(value: Any) -> Any:
    # Money stays exact in the log line; dates and timestamps read as ISO.
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return repr(value)


def _dumps(event_dict: EventDict, **kwargs: Any) -> str:
    return json.dumps(event_dict, default=_ledger_default, **kwargs)


def configure_logging(service_name: str, log_level: str = "INFO", *, force: bool = False) -> None:
    """
    Route structlog and stdlib logging through one JSON handler on stdout.

    Idempotent: later calls are ignored unless ``force`` is set (tests
    reconfigure between cases).

    Args:
        service_name: Added to every entry as ``service``.
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        force: Replace an existing configuration.
    """
    global _configured
    if _configured and not force:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _service_name_processor(service_name),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.dict_tracebacks,
        structlog.processors.JSONRenderer(serializer=_dumps),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=not force,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        log = logging.getLogger(logger_name)
        log.handlers = [handler]
        log.propagate = False

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Return a structured logger, typically ``get_logger(__name__)``.
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
