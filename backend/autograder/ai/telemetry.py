"""
Exam Autograder - Telemetry Module
OpenTelemetry tracing for answer evaluation
"""
import logging
from typing import Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from autograder.core.config import settings

logger = logging.getLogger(__name__)

TRACER_NAME = "autograder.grading"

# Set once init_telemetry() has installed a provider
_tracer: Optional[trace.Tracer] = None


def init_telemetry() -> trace.Tracer:
    """
    Initialize OpenTelemetry with an OTLP exporter.
    Call this once at application startup when OTEL_ENABLED is set.
    """
    global _tracer
    
    if _tracer is not None:
        return _tracer
    
    resource = Resource.create({
        "service.name": settings.OTEL_SERVICE_NAME,
        "service.version": settings.APP_VERSION,
        "deployment.environment": settings.ENVIRONMENT,
    })
    provider = TracerProvider(resource=resource)
    
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        
        otlp_exporter = OTLPSpanExporter(
            endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
    except Exception as e:
        logger.warning("OTLP exporter unavailable (%s); using console exporter", e)
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    
    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(TRACER_NAME, settings.APP_VERSION)
    
    logger.info(
        "Telemetry initialized with service %s, endpoint %s",
        settings.OTEL_SERVICE_NAME, settings.OTEL_EXPORTER_OTLP_ENDPOINT,
    )
    return _tracer


def get_tracer() -> trace.Tracer:
    """Get the tracer; a no-op tracer until init_telemetry() has run."""
    if _tracer is None:
        return trace.get_tracer(TRACER_NAME)
    return _tracer


def trace_llm_call(
    model: str,
    prompt_tokens: int,
    completion_tokens: int,
    total_tokens: int,
) -> None:
    """Record token usage on the current span."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute("llm.model", model)
        span.set_attribute("llm.tokens.prompt", prompt_tokens)
        span.set_attribute("llm.tokens.completion", completion_tokens)
        span.set_attribute("llm.tokens.total", total_tokens)
