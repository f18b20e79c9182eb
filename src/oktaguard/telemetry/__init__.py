"""OpenTelemetry tracing helpers."""

from .tracing import get_tracer, record_failure

__all__ = [
    "get_tracer",
    "record_failure",
]
