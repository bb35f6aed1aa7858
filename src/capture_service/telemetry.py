"""OpenTelemetry setup for the capture service."""

from __future__ import annotations

import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

DEFAULT_OTLP_ENDPOINT = "http://localhost:4318/v1/traces"
DEFAULT_SERVICE_NAME = "capture-service"


def is_enabled() -> bool:
    return os.getenv("OTEL_ENABLED", "").lower() in {"true", "1", "yes"} or bool(
        os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "").strip()
    )


def parse_headers(raw: str | None) -> dict[str, str] | None:
    """Parse OTLP headers given as "key=value,key2=value2"."""
    if not raw:
        return None
    headers: dict[str, str] = {}
    for entry in raw.split(","):
        if "=" not in entry:
            continue
        key, value = entry.split("=", 1)
        key = key.strip()
        value = value.strip()
        if key and value:
            headers[key] = value
    return headers or None


def _resource() -> Resource:
    return Resource.create(
        {
            "service.name": os.getenv("OTEL_SERVICE_NAME", DEFAULT_SERVICE_NAME),
            "service.version": os.getenv("APP_VERSION") or os.getenv("GIT_SHA", "unknown"),
            "deployment.environment": (
                os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "development"
            ),
        }
    )


def configure_telemetry() -> TracerProvider | None:
    if not is_enabled():
        return None

    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", DEFAULT_OTLP_ENDPOINT)
    exporter = OTLPSpanExporter(
        endpoint=endpoint,
        headers=parse_headers(os.getenv("OTEL_EXPORTER_OTLP_HEADERS")),
    )
    provider = TracerProvider(resource=_resource())
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    return provider


def instrument_app(app) -> None:
    provider = configure_telemetry()
    if not provider:
        return

    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)


def get_tracer(name: str) -> trace.Tracer:
    """Tracer for analysis spans; a no-op tracer when telemetry is disabled."""
    return trace.get_tracer(name)
