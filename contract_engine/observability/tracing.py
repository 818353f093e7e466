# ==== OPENTELEMETRY TRACING CONFIGURATION ==== #

"""
OpenTelemetry tracing for the smart contract engine.

Services always open spans through ``get_tracer``. Spans leave the process
only after ``init_tracing`` has installed an OTLP exporter, which happens
when an endpoint is configured; otherwise the global no-op provider is kept.
"""

from typing import Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

from contract_engine.settings import Settings, get_settings


# ==== TRACING INITIALIZATION ==== #


def init_tracing(service_name: Optional[str] = None, settings: Optional[Settings] = None) -> bool:
    """
    Install a tracer provider exporting to the configured OTLP endpoint.

    Args:
        service_name (Optional[str]): Fallback service name when
            ``OTEL_SERVICE_NAME`` is unset
        settings (Optional[Settings]): Settings to read; global settings by default

    Returns:
        bool: True if a provider was installed, False without an endpoint
    """
    settings = settings or get_settings()
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        return False

    # --► RESOURCE
    attributes = parse_key_value_pairs(settings.OTEL_RESOURCE_ATTRIBUTES)
    attributes["service.name"] = settings.OTEL_SERVICE_NAME or service_name or settings.SERVICE_NAME
    attributes.setdefault("deployment.environment", settings.APP_ENV)

    # --► EXPORT PIPELINE
    provider = TracerProvider(resource=Resource.create(attributes))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(
        endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
        headers=parse_key_value_pairs(settings.OTEL_EXPORTER_OTLP_HEADERS),
    )))
    trace.set_tracer_provider(provider)
    return True


def parse_key_value_pairs(raw: Optional[str]) -> Dict[str, str]:
    """
    Parse ``k1=v1,k2=v2`` as used by OTLP headers and resource attributes.

    Entries without ``=`` are skipped; keys and values are stripped.
    """
    pairs: Dict[str, str] = {}
    for entry in (raw or "").split(","):
        key, sep, value = entry.partition("=")
        if sep and key.strip():
            pairs[key.strip()] = value.strip()
    return pairs


def get_tracer(name: str) -> trace.Tracer:
    """Tracer for a module, usually called with ``__name__``."""
    return trace.get_tracer(name)
