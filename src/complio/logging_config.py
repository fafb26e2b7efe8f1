"""Structured logging configuration using structlog.

Application modules keep using ``logging.getLogger(__name__)``; structlog's
``ProcessorFormatter`` renders those stdlib records together with any
context bound through ``structlog.contextvars`` (trace id, user, org, job).
"""

import logging
import sys

import structlog

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "botocore", "boto3", "urllib3", "httpx")


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Install one stdout handler on the root logger.

    Args:
        log_level: Logging level name (debug/info/warning/error).
        json_output: JSON lines for production, coloured console output otherwise.
    """
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(trace_id: str, user_id: str | None = None, org_id: str | None = None) -> None:
    """Bind request identifiers to the current async context."""
    ctx = {"trace_id": trace_id}
    if user_id:
        ctx["user_id"] = user_id
    if org_id:
        ctx["org_id"] = org_id
    structlog.contextvars.bind_contextvars(**ctx)


def bind_job_context(job_id: str, connection_id: str, org_id: str) -> None:
    structlog.contextvars.bind_contextvars(job_id=job_id, connection_id=connection_id, org_id=org_id)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
