"""OpenTelemetry spans around reconciliations and New Relic mutations."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, Tracer

from . import __version__
from .constants import CONTROLLER_NAME
from .utils.errors import NewRelicAPIError

logger = logging.getLogger(__name__)

_tracer: Tracer | None = None


def initialize_tracing() -> None:
    """Export spans over OTLP unless OTEL_TRACES_ENABLED is "false".

    The exporter target comes from OTEL_EXPORTER_OTLP_ENDPOINT
    (default http://localhost:4317), the service name from OTEL_SERVICE_NAME.
    """
    global _tracer

    if os.getenv("OTEL_TRACES_ENABLED", "true").lower() == "false":
        logger.info("Tracing disabled")
        return

    service_name = os.getenv("OTEL_SERVICE_NAME", CONTROLLER_NAME)
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
    try:
        provider = TracerProvider(resource=Resource.create({
            "service.name": service_name,
            "service.version": __version__,
        }))
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        trace.set_tracer_provider(provider)
    except Exception as e:
        # Reconciliation runs without spans
        logger.warning(f"Failed to initialize tracing: {e}")
        return

    _tracer = trace.get_tracer(service_name, __version__)
    logger.info(f"Exporting traces to {endpoint} as {service_name}")


def get_tracer() -> Tracer | None:
    """The operator's tracer, None until initialize_tracing() succeeded."""
    return _tracer


@contextmanager
def trace_span(
    name: str,
    kind: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span | None]:
    """Run the block inside a span tagged with the resource kind.

    A failing New Relic call also records the HTTP status and the API operation
    on the span.
    """
    tracer = get_tracer()
    if tracer is None:
        yield None
        return

    attrs = dict(attributes or {})
    if kind:
        attrs["resource.kind"] = kind

    with tracer.start_as_current_span(name, attributes=attrs) as span:
        try:
            yield span
        except Exception as e:
            if span.is_recording():
                if isinstance(e, NewRelicAPIError):
                    span.set_attribute("newrelic.status_code", e.status_code)
                    span.set_attribute("newrelic.operation", e.operation or "")
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise
