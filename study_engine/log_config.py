"""Structured logging for the API process and the Celery worker.

Every event carries the service name and, when bound, the request or job it
belongs to, so one generation can be followed from the HTTP call through the
cache and the worker.
"""

import logging
import logging.config
import uuid
from typing import Optional

import structlog

SERVICE_NAME = "study_engine"

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "openai", "celery.app.trace")


def add_service_name(logger, method, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def bind_request_context(request_id: Optional[str], owner_id: Optional[str] = None) -> str:
    """Start a fresh log context for an HTTP request. Returns the request id used."""
    request_id = request_id or str(uuid.uuid4())
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    if owner_id:
        structlog.contextvars.bind_contextvars(owner_id=owner_id)
    return request_id


def bind_job_context(job_id: Optional[str], kind: str, document_id: str) -> None:
    """Start a fresh log context for a background generation job."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(job_id=job_id, kind=kind, document_id=document_id)


def _stdlib_config(log_level: str, renderer, pre_chain) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "study": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
                "foreign_pre_chain": pre_chain,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "study",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": log_level.upper()},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    }


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structlog with a stdlib bridge.

    Must run before the first ``structlog.get_logger`` call is used,
    since loggers cache their processor chain on first use.
    """
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
        pre_chain.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    logging.config.dictConfig(_stdlib_config(log_level, renderer, pre_chain))

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
