"""
Observability infrastructure for Kohonen SOM
Provides structured logging, metrics, tracing and health status
"""

import logging
import os
import time
import uuid
import psutil
import structlog
from typing import Dict, Any, Optional
from contextlib import contextmanager
from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    generate_latest,
    CONTENT_TYPE_LATEST,
)


# Prometheus Metrics
REQUESTS_TOTAL = Counter(
    "kohonen_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "kohonen_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)

TRAINING_DURATION = Histogram(
    "kohonen_training_duration_seconds",
    "SOM training duration in seconds",
    ["width", "height"],
)

TRAINING_ITERATIONS = Counter(
    "kohonen_training_iterations_total", "Total training iterations completed"
)

OBSERVATIONS_ASSIGNED = Counter(
    "kohonen_observations_assigned_total",
    "Observations assigned to a map node after training",
)

EARLY_STOPS = Counter(
    "kohonen_early_stops_total",
    "Training runs ended by a decayed learning rate or radius",
)

DEGENERATE_DATASETS = Counter(
    "kohonen_degenerate_datasets_total",
    "Training runs on data with a zero-variance column",
)

SYSTEM_MEMORY_USAGE = Gauge(
    "kohonen_system_memory_usage_bytes", "System memory usage in bytes"
)

SYSTEM_CPU_USAGE = Gauge(
    "kohonen_system_cpu_usage_percent", "System CPU usage percentage"
)


class CorrelationIDProcessor:
    """Make sure every log entry carries a correlation_id key"""

    def __call__(self, logger, method_name, event_dict):
        event_dict.setdefault("correlation_id", "unknown")
        return event_dict


def setup_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """
    Configure structlog on top of the standard library logger

    Values bound with structlog.contextvars (the request and operation
    correlation IDs) are merged into every event.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            CorrelationIDProcessor(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )


def get_correlation_id() -> str:
    """Generate a new correlation ID"""
    return str(uuid.uuid4())


def current_correlation_id() -> Optional[str]:
    """Correlation ID bound to the running context, if any"""
    return structlog.contextvars.get_contextvars().get("correlation_id")


@contextmanager
def trace_operation(operation_name: str, **extra_context):
    """
    Time an operation and log its start, completion or failure

    Inside an HTTP request the request's correlation ID is reused, otherwise
    a fresh one is generated. The ID is yielded and bound for all log events
    emitted within the block. Exceptions are logged and re-raised.
    """
    logger = structlog.get_logger()
    correlation_id = current_correlation_id() or get_correlation_id()
    start_time = time.time()

    with structlog.contextvars.bound_contextvars(
        correlation_id=correlation_id, operation=operation_name
    ):
        logger.info("Operation started", **extra_context)
        try:
            yield correlation_id
        except Exception as e:
            logger.error(
                "Operation failed",
                duration_seconds=time.time() - start_time,
                error=str(e),
                error_type=type(e).__name__,
                **extra_context,
            )
            raise
        logger.info(
            "Operation completed",
            duration_seconds=time.time() - start_time,
            **extra_context,
        )


def update_system_metrics():
    """Update system-level gauges"""
    try:
        SYSTEM_MEMORY_USAGE.set(psutil.virtual_memory().used)
        SYSTEM_CPU_USAGE.set(psutil.cpu_percent(interval=None))
    except (psutil.Error, OSError) as e:
        structlog.get_logger().error("Failed to update system metrics", error=str(e))


def get_metrics() -> bytes:
    """Get Prometheus metrics in text format"""
    update_system_metrics()
    return generate_latest()


def log_request_metrics(method: str, endpoint: str, status_code: int, duration: float):
    """Record one HTTP request"""
    REQUESTS_TOTAL.labels(
        method=method, endpoint=endpoint, status_code=status_code
    ).inc()
    REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)


def log_training_metrics(som, duration: float) -> None:
    """Record a finished training run of a SomTrainer"""
    width, height = som.config.width, som.config.height
    TRAINING_DURATION.labels(width=str(width), height=str(height)).observe(duration)
    TRAINING_ITERATIONS.inc(som.metadata["iterations_completed"])
    OBSERVATIONS_ASSIGNED.inc(som.grid.row_count)
    if som.metadata["early_stopped"]:
        EARLY_STOPS.inc()
    if not som.metadata["standardized"]:
        DEGENERATE_DATASETS.inc()


class RequestTracingMiddleware:
    """ASGI middleware adding a correlation ID to every HTTP request"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        correlation_id = get_correlation_id()
        scope["correlation_id"] = correlation_id

        async def send_with_correlation_id(message):
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((b"x-correlation-id", correlation_id.encode()))
                message["headers"] = headers
            await send(message)

        with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
            await self.app(scope, receive, send_with_correlation_id)


def get_health_status() -> Dict[str, Any]:
    """Get detailed health status"""
    try:
        memory_info = psutil.virtual_memory()
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "system": {
                "memory": {
                    "total": memory_info.total,
                    "available": memory_info.available,
                    "percentage": memory_info.percent,
                },
                "cpu": {"usage_percent": psutil.cpu_percent(interval=None)},
            },
            "application": {
                "version": os.getenv("APP_VERSION", "unknown"),
                "environment": os.getenv("ENVIRONMENT", "development"),
            },
        }
    except (psutil.Error, OSError) as e:
        return {"status": "unhealthy", "timestamp": time.time(), "error": str(e)}
