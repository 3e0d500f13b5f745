"""
Observability utilities for tankersync.

Tracing is composition based: components take an optional ``Tracer`` and
fall back to ``create_tracer(__name__, enable_tracing)``. OpenTelemetry is
an optional dependency; without it every tracer is a ``NullTracer``.
"""

from tankersync.observability.attributes import (
    ATTR_CREATE_AUTH_ACCOUNTS,
    ATTR_DB_NAME,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_DRY_RUN,
    ATTR_ENTITY_TYPE,
    ATTR_ERROR_COUNT,
    ATTR_ISSUE_COUNT,
    ATTR_MAX_CONCURRENCY,
    ATTR_MIGRATED_COUNT,
    ATTR_RECORD_COUNT,
    ATTR_RECORD_ID,
    ATTR_SKIP_EXISTING,
    ATTR_WARNING_COUNT,
)
from tankersync.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)
from tankersync.observability.tracing import OTEL_AVAILABLE

__all__ = [
    "OTEL_AVAILABLE",
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    "ATTR_DB_SYSTEM",
    "ATTR_DB_NAME",
    "ATTR_DB_OPERATION",
    "ATTR_ENTITY_TYPE",
    "ATTR_RECORD_ID",
    "ATTR_RECORD_COUNT",
    "ATTR_DRY_RUN",
    "ATTR_SKIP_EXISTING",
    "ATTR_CREATE_AUTH_ACCOUNTS",
    "ATTR_MIGRATED_COUNT",
    "ATTR_ERROR_COUNT",
    "ATTR_WARNING_COUNT",
    "ATTR_MAX_CONCURRENCY",
    "ATTR_ISSUE_COUNT",
]
