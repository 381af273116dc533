"""OpenTelemetry tracing for compile calls.

The compilers only depend on the OpenTelemetry *API*; without a configured SDK
every span is a no-op. Each ``compile()`` runs inside one ``chatwire.compile``
span::

    with compile_span(_tracer, "claude", request.model) as span:
        span.set_attribute(ATTR_MESSAGES, len(request.messages))

Call :func:`configure_telemetry` once at startup to export spans (requires the
``otel`` extra: ``pip install chatwire[otel]``).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace

ATTR_DIALECT = "chatwire.dialect"
ATTR_MODEL = "chatwire.model"
ATTR_MESSAGES = "chatwire.messages"
ATTR_COMPILED_MESSAGES = "chatwire.compiled_messages"
ATTR_POST_PROCESSING = "chatwire.post_processing"
ATTR_REASONING_EFFORT = "chatwire.reasoning_effort"

COMPILE_SPAN = "chatwire.compile"

_INSTRUMENTATION_NAME = "chatwire"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a tracer for *name*; a no-op tracer until an SDK is configured."""
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


@contextmanager
def compile_span(tracer: trace.Tracer, dialect: str, model: str) -> Iterator[trace.Span]:
    """Open the ``chatwire.compile`` span tagged with *dialect* and *model*."""
    with tracer.start_as_current_span(COMPILE_SPAN) as span:
        span.set_attribute(ATTR_DIALECT, dialect)
        span.set_attribute(ATTR_MODEL, model)
        yield span


def configure_telemetry(
    *,
    service_name: str = "chatwire",
    export_to_console: bool = True,
    otlp_endpoint: str | None = None,
) -> None:
    """Install an SDK tracer provider that exports compile spans.

    Console export is synchronous so spans print before a CLI command exits;
    OTLP export is batched.

    Raises:
        ImportError: If ``opentelemetry-sdk`` (or, with *otlp_endpoint*, the
            OTLP exporter) is not installed.
    """
    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace.export import (  # pyright: ignore[reportMissingImports]
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
    except ImportError as exc:
        raise ImportError(
            "opentelemetry-sdk is required to export compile spans. Install it with: pip install chatwire[otel]"
        ) from exc

    processors: list[Any] = []
    if export_to_console:
        processors.append(SimpleSpanProcessor(ConsoleSpanExporter()))
    if otlp_endpoint:
        processors.append(BatchSpanProcessor(_otlp_exporter(otlp_endpoint)))

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    for processor in processors:
        provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)


def _otlp_exporter(endpoint: str) -> Any:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (  # pyright: ignore[reportMissingImports]
            OTLPSpanExporter,
        )
    except ImportError as exc:
        raise ImportError(
            "opentelemetry-exporter-otlp is required for OTLP export. Install it with: pip install chatwire[otel]"
        ) from exc
    return OTLPSpanExporter(endpoint=endpoint)
