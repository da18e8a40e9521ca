"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

from opentelemetry import trace, metrics
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import Counter, Gauge, generate_latest, CollectorRegistry
import structlog

from .config import settings

SERVICE_NAME = "device-availability-service"
SERVICE_VERSION = "1.0.0"

# Prometheus metrics
REGISTRY = CollectorRegistry()

RECONCILIATIONS = Counter(
    'availability_reconciliations_total',
    'Reconciliation attempts by outcome',
    ['outcome'],
    registry=REGISTRY
)

AVAILABILITY_EVENTS_ENQUEUED = Counter(
    'availability_events_enqueued_total',
    'Availability.Changed events written to the outbox',
    ['new_status'],
    registry=REGISTRY
)

INBOUND_EVENTS = Counter(
    'availability_inbound_events_total',
    'Inbound lifecycle events by source and outcome',
    ['source', 'outcome'],
    registry=REGISTRY
)

OUTBOX_PUBLISHED = Counter(
    'outbox_messages_published_total',
    'Outbox messages delivered to the event bus',
    registry=REGISTRY
)

OUTBOX_FAILED = Counter(
    'outbox_messages_failed_total',
    'Failed outbox delivery attempts',
    registry=REGISTRY
)

OUTBOX_DEAD_LETTERED = Counter(
    'outbox_messages_dead_lettered_total',
    'Outbox messages that exhausted their retries',
    registry=REGISTRY
)

OUTBOX_PENDING = Gauge(
    'outbox_messages_pending',
    'Outbox messages still eligible for delivery',
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "environment": settings.environment,
    })


def setup_tracing():
    """Setup OpenTelemetry tracing."""
    provider = TracerProvider(resource=_resource())

    if settings.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))

    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics():
    """Setup OpenTelemetry metrics."""
    if settings.otlp_endpoint:
        otlp_exporter = OTLPMetricExporter(endpoint=settings.otlp_endpoint)
        reader = PeriodicExportingMetricReader(exporter=otlp_exporter, export_interval_millis=60000)
        metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))

    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine):
    """Instrument a SQLAlchemy async engine with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for business metrics."""

    @staticmethod
    def record_reconciliation(outcome: str):
        """Record a reconciliation outcome (applied, unchanged, or an error code)."""
        RECONCILIATIONS.labels(outcome=outcome).inc()

    @staticmethod
    def record_event_enqueued(new_status: str):
        AVAILABILITY_EVENTS_ENQUEUED.labels(new_status=new_status).inc()

    @staticmethod
    def record_inbound_event(source: str, outcome: str):
        INBOUND_EVENTS.labels(source=source, outcome=outcome).inc()

    @staticmethod
    def record_outbox_published():
        OUTBOX_PUBLISHED.inc()

    @staticmethod
    def record_outbox_failed():
        OUTBOX_FAILED.inc()

    @staticmethod
    def record_outbox_dead_lettered():
        OUTBOX_DEAD_LETTERED.inc()

    @staticmethod
    def set_outbox_pending(count: int):
        OUTBOX_PENDING.set(count)


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()


class StructuredLogger:
    """Structured logger with business context."""

    def __init__(self, logger):
        self.logger = logger

    def info(self, message: str, **kwargs):
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        self.logger.error(message, **kwargs)

    def debug(self, message: str, **kwargs):
        self.logger.debug(message, **kwargs)

    def with_context(self, **kwargs) -> "StructuredLogger":
        """Return a logger with extra bound context."""
        return StructuredLogger(self.logger.bind(**kwargs))


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(structlog.get_logger(name))
