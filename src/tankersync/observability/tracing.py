"""
OpenTelemetry availability detection for tankersync.

OpenTelemetry is an optional extra. This module is the single place that
tries to import it; everything else asks ``OTEL_AVAILABLE`` or goes through
``create_tracer``.
"""

from __future__ import annotations

try:
    from opentelemetry import trace  # noqa: F401

    OTEL_AVAILABLE = True
except ImportError:
    OTEL_AVAILABLE = False


__all__ = [
    "OTEL_AVAILABLE",
]
