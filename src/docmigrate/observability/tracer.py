"""
Tracers injected into docmigrate components.

Stores, the bulk writer and the migration engine accept a ``Tracer`` and open
spans through it. Production code gets an OpenTelemetry-backed tracer when the
``telemetry`` extra is installed; tests pass a ``MockTracer`` and assert on the
recorded span names and attributes.

Example:
    >>> from docmigrate.observability import ATTR_BATCH_SIZE, MockTracer
    >>>
    >>> tracer = MockTracer()
    >>> writer = BulkWriter(store, tracer=tracer)
    >>> await writer.submit(operations)
    >>> tracer.attributes_of("docmigrate.bulk_writer.write_batch")[0][ATTR_BATCH_SIZE]
    100
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, NamedTuple, Protocol, runtime_checkable

if TYPE_CHECKING:
    from opentelemetry.trace import Span

try:
    import opentelemetry.trace  # noqa: F401

    OTEL_AVAILABLE = True
except ImportError:
    OTEL_AVAILABLE = False

SpanAttributes = dict[str, Any]


@runtime_checkable
class Tracer(Protocol):
    """Opens named spans around store calls, batches and migration phases."""

    def span(
        self,
        name: str,
        attributes: SpanAttributes | None = None,
    ) -> AbstractContextManager[Span | None]:
        """
        Open a span for the duration of the ``with`` block.

        Args:
            name: Dotted span name, e.g. "docmigrate.bulk_writer.submit"
            attributes: Attribute names from ``docmigrate.observability.attributes``

        Returns:
            Context manager yielding the live span, or None when not recording
        """
        ...

    @property
    def enabled(self) -> bool:
        """Whether spans are actually recorded."""
        ...


class NullTracer:
    """Tracer used when tracing is switched off or OpenTelemetry is missing."""

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: SpanAttributes | None = None,
    ) -> Generator[None, None, None]:
        yield None

    @property
    def enabled(self) -> bool:
        return False


class OpenTelemetryTracer:
    """
    Tracer backed by ``opentelemetry.trace``.

    Attributes whose value is None are dropped before the span starts, since
    OpenTelemetry only accepts primitive attribute values. This matters for
    partition keys and container names, which may be unset.

    Raises:
        ImportError: If the ``telemetry`` extra is not installed
    """

    def __init__(self, tracer_name: str) -> None:
        from opentelemetry import trace

        self._tracer = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: SpanAttributes | None = None,
    ) -> AbstractContextManager[Span | None]:
        return self._tracer.start_as_current_span(
            name,
            attributes=_recordable(attributes),
        )

    @property
    def enabled(self) -> bool:
        return True


class RecordedSpan(NamedTuple):
    """A span captured by ``MockTracer``."""

    name: str
    attributes: SpanAttributes | None


class MockTracer:
    """
    Tracer that records every span it opens, in opening order.

    Example:
        >>> tracer = MockTracer()
        >>> with tracer.span("docmigrate.bulk_writer.retry", {"docmigrate.retry.attempt": 1}):
        ...     pass
        >>> tracer.span_names
        ['docmigrate.bulk_writer.retry']
        >>> tracer.attributes_of("docmigrate.bulk_writer.retry")
        [{'docmigrate.retry.attempt': 1}]
    """

    def __init__(self) -> None:
        self.spans: list[RecordedSpan] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: SpanAttributes | None = None,
    ) -> Generator[None, None, None]:
        self.spans.append(RecordedSpan(name, attributes))
        yield None

    @property
    def enabled(self) -> bool:
        return True

    @property
    def span_names(self) -> list[str]:
        return [recorded.name for recorded in self.spans]

    def attributes_of(self, name: str) -> list[SpanAttributes]:
        """Attributes of every span called ``name``; spans without attributes give {}."""
        return [recorded.attributes or {} for recorded in self.spans if recorded.name == name]

    def clear(self) -> None:
        self.spans.clear()


def create_tracer(name: str, enable_tracing: bool = True) -> Tracer:
    """
    Pick the tracer a component should use.

    Args:
        name: Instrumentation scope, normally the module's ``__name__``
        enable_tracing: False forces a ``NullTracer``

    Returns:
        OpenTelemetryTracer when enabled and installed, NullTracer otherwise
    """
    if enable_tracing and OTEL_AVAILABLE:
        return OpenTelemetryTracer(name)
    return NullTracer()


def _recordable(attributes: SpanAttributes | None) -> SpanAttributes:
    if not attributes:
        return {}
    return {key: value for key, value in attributes.items() if value is not None}


__all__ = [
    "OTEL_AVAILABLE",
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "RecordedSpan",
    "MockTracer",
    "create_tracer",
]
