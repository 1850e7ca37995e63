"""
structlog setup for the KPI service.

Every entry carries `service`; entries emitted while a KPI query is in
progress also carry its `technology` and `kpi` list.
"""
import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from .config import settings


_HANDLER_NAME = "kpiscope"

# Chatty libraries whose lines duplicate our own kpi_client.* and api.request events
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")


def _add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", settings.service_name)
    return event_dict


def _renderer() -> Processor:
    if settings.app_env == "development":
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def configure_logging() -> None:
    """
    Route structlog and stdlib logging through one stdout handler.

    Console rendering in development, JSON lines elsewhere. Safe to call
    more than once; the previous handler is replaced.
    """
    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(),
            ],
            foreign_pre_chain=pre_chain,
        )
    )

    root_logger = logging.getLogger()
    for existing in [h for h in root_logger.handlers if h.get_name() == _HANDLER_NAME]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Usage:
        logger = get_logger(__name__)
        logger.info("kpi_client.request", site="CAI")
    """
    return structlog.get_logger(name)


def query_log_context(technology: Any, kpi: Any) -> dict[str, Any]:
    """
    Log fields describing a KPI query.

    Accepts raw candidate values as well as validated ones; fields that
    are missing or not loggable as given are left out.
    """
    context: dict[str, Any] = {}
    technology = getattr(technology, "value", technology)
    if isinstance(technology, str) and technology:
        context["technology"] = technology
    if isinstance(kpi, (list, tuple)):
        context["kpi"] = [str(key) for key in kpi]
    return context


@contextmanager
def bound_query_context(technology: Any, kpi: Optional[Any] = None) -> Iterator[dict[str, Any]]:
    """Bind query fields to every log entry emitted inside the block."""
    context = query_log_context(technology, kpi)
    with structlog.contextvars.bound_contextvars(**context):
        yield context
