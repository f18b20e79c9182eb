from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

from ..auth.errors import VerifierError

TRACER_NAME = "oktaguard"


def get_tracer(name: str = TRACER_NAME) -> trace.Tracer:
    """Tracer from the globally installed provider (no-op if none)"""
    return trace.get_tracer(name)


def record_failure(span: Span, error: VerifierError) -> None:
    """Mark a verification span as failed with the error's code"""
    if error.error_code is not None:
        span.set_attribute("oktaguard.error_code", error.error_code.value)
    span.set_attribute("oktaguard.error_type", type(error).__name__)
    span.set_status(Status(StatusCode.ERROR, error.message))
