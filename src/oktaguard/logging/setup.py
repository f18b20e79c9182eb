import contextvars
import logging
import sys

import structlog
from pythonjsonlogger import jsonlogger
from structlog.stdlib import LoggerFactory

_correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("correlation_id", default=None)


def setup_logging(
    component_name: str = "oktaguard",
    level: str = "INFO",
    format_type: str = "json",  # "json" or "console"
) -> None:
    """
    Set up structured logging for applications embedding the verifier

    Args:
        component_name: Value of the "component" field on every entry
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format_type: "json" for production, "console" for development
    """

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        add_component_context(component_name),
        add_correlation_context(),
    ]

    if format_type == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    # JSON formatting for loggers that bypass structlog (httpx, httpcore)
    if format_type == "json":
        root_logger = logging.getLogger()
        handler = logging.StreamHandler(sys.stdout)
        formatter = jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
        handler.setFormatter(formatter)
        root_logger.handlers = [handler]


def add_component_context(component_name: str):
    """Add component name to all log entries"""

    def processor(logger, method_name, event_dict):
        event_dict["component"] = component_name
        return event_dict

    return processor


def add_correlation_context():
    """Add the correlation ID from context, when one is set"""

    def processor(logger, method_name, event_dict):
        correlation_id = _correlation_id_var.get()
        if correlation_id:
            event_dict["correlation_id"] = correlation_id
        return event_dict

    return processor


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID in context"""
    _correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get correlation ID from context"""
    return _correlation_id_var.get()


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)
