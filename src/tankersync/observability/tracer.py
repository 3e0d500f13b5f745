"""
Tracer protocol and implementations.

Components receive a ``Tracer`` through their constructor instead of
talking to OpenTelemetry directly, so tests can swap in ``MockTracer`` and
production can run without the OpenTelemetry SDK installed.

Example:
    >>> from tankersync.observability import create_tracer
    >>>
    >>> class VehicleMigrator:
    ...     def __init__(self, tracer: Tracer | None = None):
    ...         self._tracer = tracer or create_tracer(__name__)
    ...
    ...     async def run(self) -> None:
    ...         with self._tracer.span("tankersync.migrator.vehicle", {"record.count": 3}):
    ...             ...
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from tankersync.observability.tracing import OTEL_AVAILABLE

if TYPE_CHECKING:
    from opentelemetry.trace import Span


@runtime_checkable
class Tracer(Protocol):
    """
    Protocol for objects that open tracing spans.

    Implementations:
    - NullTracer: no-op, used when tracing is disabled or unavailable
    - OpenTelemetryTracer: real spans through the OpenTelemetry API
    - MockTracer: records span names and attributes for assertions
    """

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        """
        Open a span as a context manager.

        Args:
            name: Span name (e.g. "tankersync.remote_store.create")
            attributes: Optional span attributes

        Returns:
            Context manager yielding the span, or None for no-op tracers
        """
        ...


class NullTracer:
    """No-op tracer. Creates no spans and costs next to nothing."""

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        yield None


class OpenTelemetryTracer:
    """
    Tracer backed by the OpenTelemetry API.

    Args:
        tracer_name: Name for the underlying tracer (typically __name__)

    Raises:
        ImportError: If OpenTelemetry is not installed
    """

    def __init__(self, tracer_name: str) -> None:
        from opentelemetry import trace

        self._tracer = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        return self._tracer.start_as_current_span(
            name,
            attributes=attributes or {},
        )


class MockTracer:
    """
    Tracer that records every span it is asked to open.

    Example:
        >>> tracer = MockTracer()
        >>> with tracer.span("tankersync.validator.validate", {"entity.type": "user"}):
        ...     pass
        >>> tracer.span_names
        ['tankersync.validator.validate']
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, dict[str, Any] | None]] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        self.spans.append((name, attributes))
        yield None

    @property
    def span_names(self) -> list[str]:
        """Span names in the order they were opened."""
        return [name for name, _ in self.spans]

    def clear(self) -> None:
        self.spans.clear()


def create_tracer(
    name: str,
    enable_tracing: bool = True,
) -> Tracer:
    """
    Build the tracer a component should use.

    Args:
        name: Tracer name (typically __name__)
        enable_tracing: Whether the component wants tracing

    Returns:
        OpenTelemetryTracer when enabled and OpenTelemetry is importable,
        NullTracer otherwise
    """
    if enable_tracing and OTEL_AVAILABLE:
        return OpenTelemetryTracer(name)
    return NullTracer()


__all__ = [
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
]
