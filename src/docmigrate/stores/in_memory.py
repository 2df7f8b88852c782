"""
In-memory document store implementation.

Useful for testing and for rehearsing a migration locally. Not suitable for
production as all documents are lost when the process terminates.

Status codes mirror the hosted store: 201 for create, 200/201 for upsert of
an existing/new document, 204 for delete, 400 for a malformed operation,
404 for a missing document and 409 for an id conflict.
"""

from __future__ import annotations

import asyncio
import copy
import re
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from docmigrate.exceptions import DocumentStoreError
from docmigrate.observability import (
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_OPERATION_COUNT,
    ATTR_QUERY,
    Tracer,
    create_tracer,
)
from docmigrate.operations import (
    CreateOperation,
    DeleteOperation,
    Operation,
    OperationResult,
    UpsertOperation,
)
from docmigrate.sanitizer import sanitize
from docmigrate.stores.interface import DocumentStore, QuerySpec
from docmigrate.types import Document, PartitionKeyValue

_SELECT_RE = re.compile(
    r"^\s*SELECT\s+\*\s+FROM\s+(?P<alias>\w+)(?:\s+WHERE\s+(?P<where>.+?))?\s*$",
    re.IGNORECASE | re.DOTALL,
)
_CONDITION_RE = re.compile(
    r"^\s*(?P<alias>\w+)\.(?P<path>[\w.]+)\s*=\s*(?P<value>.+?)\s*$",
    re.DOTALL,
)
_AND_RE = re.compile(r"\s+AND\s+", re.IGNORECASE)

_MISSING = object()


@dataclass
class _ScheduledFailure:
    status_code: int
    retry_after_ms: float | None
    remaining: int


class InMemoryDocumentStore(DocumentStore):
    """
    In-memory implementation of the document store.

    Documents are keyed by ``(partition key value, id)``. Every write stamps
    the store metadata fields the hosted store would add, so that the
    sanitization path is exercised exactly as in production.

    Queries support the subset ``SELECT * FROM c`` with an optional ``WHERE``
    clause made of equality conditions joined by ``AND``. Values may be
    ``@parameters``, quoted strings, numbers, ``true``, ``false`` or ``null``.

    Failure injection:
        ``schedule_failure`` makes the next bulk operations on a document id
        report a failure status (429 by default) without being applied.

    Example:
        >>> store = InMemoryDocumentStore(partition_key_path="/tenantId")
        >>> await store.create({"id": "1", "tenantId": "t1"})
        >>> await store.query("SELECT * FROM c WHERE c.tenantId = 't1'")
        [{'id': '1', 'tenantId': 't1'}]

    Attributes:
        bulk_calls: Every batch passed to ``bulk``, in call order.
    """

    def __init__(
        self,
        *,
        partition_key_path: str | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize an empty in-memory document store.

        Args:
            partition_key_path: Partition key path such as ``/tenantId``.
                None stores every document in a single logical partition.
            tracer: Optional custom Tracer instance.
            enable_tracing: If True and OpenTelemetry is available, emit traces.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._partition_key_fields = _parse_path(partition_key_path)
        self._documents: dict[tuple[Any, str], Document] = {}
        self._failures: dict[str, _ScheduledFailure] = {}
        self._lock = asyncio.Lock()
        self.bulk_calls: list[list[Operation]] = []

    # ------------------------------------------------------------------
    # DocumentStore API
    # ------------------------------------------------------------------

    async def query(self, query: QuerySpec | str) -> list[Document]:
        spec = QuerySpec.of(query)
        with self._tracer.span(
            "docmigrate.memory_store.query",
            {ATTR_DB_SYSTEM: "memory", ATTR_DB_OPERATION: "query", ATTR_QUERY: spec.query},
        ):
            predicate = _compile_query(spec)
            async with self._lock:
                return [
                    sanitize(copy.deepcopy(document))
                    for document in self._documents.values()
                    if predicate(document)
                ]

    async def create(self, document: Document) -> Document:
        async with self._lock:
            result = self._apply(CreateOperation(document))
        return self._resource_or_raise(result, "create")

    async def upsert(self, document: Document) -> Document:
        async with self._lock:
            result = self._apply(UpsertOperation(document))
        return self._resource_or_raise(result, "upsert")

    async def delete(self, document_id: str, partition_key: PartitionKeyValue = None) -> None:
        async with self._lock:
            result = self._apply(DeleteOperation(document_id, partition_key))
        if not result.succeeded:
            raise DocumentStoreError(result.error_message or f"Delete failed: {result.status_code}")

    async def bulk(self, operations: Sequence[Operation]) -> list[OperationResult]:
        with self._tracer.span(
            "docmigrate.memory_store.bulk",
            {
                ATTR_DB_SYSTEM: "memory",
                ATTR_DB_OPERATION: "bulk",
                ATTR_OPERATION_COUNT: len(operations),
            },
        ):
            async with self._lock:
                self.bulk_calls.append(list(operations))
                results: list[OperationResult] = []
                for operation in operations:
                    failure = self._take_failure(operation.document_id)
                    results.append(failure if failure is not None else self._apply(operation))
                return results

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def schedule_failure(
        self,
        document_id: str,
        *,
        status_code: int = 429,
        retry_after_ms: float | None = None,
        times: int = 1,
    ) -> None:
        """
        Fail the next ``times`` bulk operations addressing ``document_id``.

        Args:
            document_id: Document id to fail.
            status_code: Status code to report.
            retry_after_ms: Retry-after hint to report.
            times: Number of consecutive failures.
        """
        self._failures[document_id] = _ScheduledFailure(status_code, retry_after_ms, times)

    def get(self, document_id: str, partition_key: PartitionKeyValue = None) -> Document | None:
        """Return the raw stored document, including store metadata."""
        return self._documents.get((partition_key, document_id))

    @property
    def documents(self) -> list[Document]:
        """Sanitized copies of all stored documents, in insertion order."""
        return [sanitize(copy.deepcopy(document)) for document in self._documents.values()]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _take_failure(self, document_id: str | None) -> OperationResult | None:
        if document_id is None:
            return None
        scheduled = self._failures.get(document_id)
        if scheduled is None:
            return None
        scheduled.remaining -= 1
        if scheduled.remaining <= 0:
            del self._failures[document_id]
        return OperationResult(
            status_code=scheduled.status_code,
            retry_after_ms=scheduled.retry_after_ms,
            error_message="Injected failure",
        )

    def _apply(self, operation: Operation) -> OperationResult:
        if isinstance(operation, DeleteOperation):
            key = (operation.partition_key, operation.id)
            if key not in self._documents:
                return OperationResult(404, error_message=f"Document {operation.id!r} not found")
            del self._documents[key]
            return OperationResult(204)

        body = operation.resource_body
        document_id = body.get("id")
        if not isinstance(document_id, str) or not document_id:
            return OperationResult(400, error_message="Document must have a non-empty string id")
        key = (self._partition_key_of(body), document_id)

        if isinstance(operation, CreateOperation) and key in self._documents:
            return OperationResult(409, error_message=f"Document {document_id!r} already exists")

        status_code = 200 if key in self._documents else 201
        stored = self._stamp(copy.deepcopy(body))
        self._documents[key] = stored
        return OperationResult(status_code, resource=sanitize(copy.deepcopy(stored)))

    def _partition_key_of(self, document: Document) -> PartitionKeyValue:
        if not self._partition_key_fields:
            return None
        value = _lookup(document, self._partition_key_fields)
        return None if value is _MISSING else value

    @staticmethod
    def _stamp(document: Document) -> Document:
        rid = uuid.uuid4().hex[:16]
        document["_rid"] = rid
        document["_self"] = f"dbs/memory/colls/memory/docs/{rid}/"
        document["_etag"] = f'"{uuid.uuid4()}"'
        document["_attachments"] = "attachments/"
        document["_ts"] = int(time.time())
        return document

    @staticmethod
    def _resource_or_raise(result: OperationResult, action: str) -> Document:
        if not result.succeeded:
            raise DocumentStoreError(
                f"Failed to {action} document: {result.error_message} ({result.status_code})"
            )
        assert result.resource is not None
        return result.resource


def _parse_path(path: str | None) -> tuple[str, ...]:
    if not path:
        return ()
    return tuple(part for part in path.strip("/").split("/") if part)


def _lookup(document: Any, fields: Sequence[str]) -> Any:
    value = document
    for field in fields:
        if not isinstance(value, dict) or field not in value:
            return _MISSING
        value = value[field]
    return value


def _compile_query(spec: QuerySpec) -> Callable[[Document], bool]:
    match = _SELECT_RE.match(spec.query)
    if match is None:
        raise DocumentStoreError(f"Unsupported query for in-memory store: {spec.query!r}")

    alias = match.group("alias")
    where = match.group("where")
    if not where:
        return lambda document: True

    parameters = {parameter.name: parameter.value for parameter in spec.parameters}
    conditions: list[tuple[tuple[str, ...], Any]] = []
    for clause in _AND_RE.split(where):
        condition = _CONDITION_RE.match(clause)
        if condition is None or condition.group("alias") != alias:
            raise DocumentStoreError(f"Unsupported condition for in-memory store: {clause!r}")
        fields = tuple(condition.group("path").split("."))
        conditions.append((fields, _parse_value(condition.group("value"), parameters)))

    def predicate(document: Document) -> bool:
        return all(_lookup(document, fields) == expected for fields, expected in conditions)

    return predicate


def _parse_value(raw: str, parameters: dict[str, Any]) -> Any:
    if raw.startswith("@"):
        if raw not in parameters:
            raise DocumentStoreError(f"Missing value for query parameter {raw}")
        return parameters[raw]
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ("'", '"'):
        return raw[1:-1]
    lowered = raw.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered == "null":
        return None
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        raise DocumentStoreError(f"Unsupported literal in query: {raw!r}") from None


__all__ = ["InMemoryDocumentStore"]
