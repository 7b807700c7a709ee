"""Distributed tracing helpers for backend calls.

Wraps OpenTelemetry so document store and embedding calls show up as spans
(``vector.upsert``, ``vector.search`` and so on). Without a configured tracer
provider the API falls back to no-op spans, so the helpers are always safe to
call.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Status, StatusCode
import structlog

logger = structlog.get_logger("tracing")

TRACER_NAME = "kbsearch"


def configure_tracing(
    service_name: str,
    console_export: bool = False,
    environment: str = "local"
) -> Optional[trace.Tracer]:
    """Install an SDK tracer provider for the process.

    Parameters
    - service_name: Logical service identifier used in trace resources
    - console_export: Print finished spans to stdout (local debugging)
    - environment: Deployment environment recorded on the resource

    Returns
    - A tracer instance, or ``None`` when setup fails
    """
    try:
        tracer_provider = TracerProvider(
            resource=Resource.create({
                "service.name": service_name,
                "deployment.environment": environment,
            })
        )
        if console_export:
            tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(tracer_provider)
        logger.info("Tracing configured", service_name=service_name, console_export=console_export)
        return trace.get_tracer(TRACER_NAME)

    except Exception as e:
        logger.error("Failed to configure tracing", error=str(e))
        return None


@contextmanager
def trace_operation(operation: str, **attributes: Any) -> Iterator[trace.Span]:
    """Run a block inside a span named after the backend operation.

    Attribute values are stringified; ``None`` values are skipped. Exceptions
    are recorded on the span and re-raised unchanged.
    """
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(operation, record_exception=False) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(f"kb.{key}", str(value))
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise
