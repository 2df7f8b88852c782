"""
Observability utilities for docmigrate.

Provides composition-based tracing and standard attribute definitions.

Example:
    >>> from docmigrate.observability import create_tracer, ATTR_BATCH_SIZE
    >>>
    >>> class MyWriter:
    ...     def __init__(self, enable_tracing: bool = True):
    ...         self._tracer = create_tracer(__name__, enable_tracing)
    ...
    ...     async def write(self, batch: list) -> None:
    ...         with self._tracer.span("my_writer.write", {ATTR_BATCH_SIZE: len(batch)}):
    ...             pass

Note:
    OpenTelemetry is an optional dependency. All utilities in this module
    gracefully handle the case where OpenTelemetry is not installed.
"""

from docmigrate.observability.attributes import (
    ATTR_BATCH_COUNT,
    ATTR_BATCH_INDEX,
    ATTR_BATCH_SIZE,
    ATTR_DB_CONTAINER,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_FAILED_COUNT,
    ATTR_MIGRATION_DOCUMENT_COUNT,
    ATTR_MIGRATION_OPERATION_TYPE,
    ATTR_OPERATION_COUNT,
    ATTR_QUERY,
    ATTR_RETRY_ATTEMPT,
)
from docmigrate.observability.tracer import (
    OTEL_AVAILABLE,
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    RecordedSpan,
    Tracer,
    create_tracer,
)

__all__ = [
    # Availability
    "OTEL_AVAILABLE",
    # Tracer
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "RecordedSpan",
    "create_tracer",
    # Attributes
    "ATTR_BATCH_COUNT",
    "ATTR_BATCH_INDEX",
    "ATTR_BATCH_SIZE",
    "ATTR_DB_CONTAINER",
    "ATTR_DB_OPERATION",
    "ATTR_DB_SYSTEM",
    "ATTR_FAILED_COUNT",
    "ATTR_MIGRATION_DOCUMENT_COUNT",
    "ATTR_MIGRATION_OPERATION_TYPE",
    "ATTR_OPERATION_COUNT",
    "ATTR_QUERY",
    "ATTR_RETRY_ATTEMPT",
]
