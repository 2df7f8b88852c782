"""
Bulk operations and their per-operation outcomes.

This module provides:
- BulkOperationType: Kind of item-level write inside a bulk request
- CreateOperation, UpsertOperation, DeleteOperation: The closed set of operations
- OperationStatus: Classification of a per-operation outcome
- OperationResult: Outcome of one operation, positionally aligned with its batch
- classify_status: Map a store status code to an OperationStatus
- chunk: Stable partition of an operation sequence into bounded batches
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from docmigrate.types import Document, PartitionKeyValue

T = TypeVar("T")

DEFAULT_CHUNK_SIZE = 100
"""Maximum number of operations the store accepts in one bulk request."""

SUCCESS_STATUS_CODES: frozenset[int] = frozenset({200, 201, 204})

# Throttling (429), timeouts (408), gone/split (410), retry-with (449),
# and server-side transient errors.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 410, 429, 449, 500, 503})


class BulkOperationType(Enum):
    """Kind of item-level write inside a bulk request."""

    CREATE = "Create"
    UPSERT = "Upsert"
    DELETE = "Delete"


class OperationStatus(Enum):
    """
    Classification of a per-operation outcome.

    Attributes:
        SUCCESS: The operation was applied.
        RETRYABLE: Transient failure (throttling, timeout); resubmit after a wait.
        PERMANENT: The operation will fail again unchanged (bad request, conflict).
    """

    SUCCESS = "success"
    RETRYABLE = "retryable"
    PERMANENT = "permanent"


@dataclass(frozen=True)
class CreateOperation:
    """Insert a new document; fails with a conflict if the id exists."""

    resource_body: Document

    @property
    def operation_type(self) -> BulkOperationType:
        return BulkOperationType.CREATE

    @property
    def document_id(self) -> str | None:
        value = self.resource_body.get("id")
        return None if value is None else str(value)


@dataclass(frozen=True)
class UpsertOperation:
    """Create the document if absent, otherwise replace it."""

    resource_body: Document

    @property
    def operation_type(self) -> BulkOperationType:
        return BulkOperationType.UPSERT

    @property
    def document_id(self) -> str | None:
        value = self.resource_body.get("id")
        return None if value is None else str(value)


@dataclass(frozen=True)
class DeleteOperation:
    """Delete the document addressed by id and partition key."""

    id: str
    partition_key: PartitionKeyValue = None

    @property
    def operation_type(self) -> BulkOperationType:
        return BulkOperationType.DELETE

    @property
    def document_id(self) -> str | None:
        return self.id


Operation = CreateOperation | UpsertOperation | DeleteOperation


def classify_status(status_code: int) -> OperationStatus:
    """
    Classify a store status code.

    Args:
        status_code: HTTP-style status code reported for one operation.

    Returns:
        SUCCESS for 200/201/204, RETRYABLE for throttling and transient
        codes, PERMANENT for everything else.
    """
    if status_code in SUCCESS_STATUS_CODES:
        return OperationStatus.SUCCESS
    if status_code in RETRYABLE_STATUS_CODES:
        return OperationStatus.RETRYABLE
    return OperationStatus.PERMANENT


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a single operation inside a bulk request.

    Results are produced one per submitted operation, in submission order.

    Attributes:
        status_code: Status code reported by the store.
        retry_after_ms: Store-supplied backoff hint, if any.
        resource: Sanitized resulting document for create/upsert, if returned.
        error_message: Store error text for failed operations.
    """

    status_code: int
    retry_after_ms: float | None = None
    resource: Document | None = None
    error_message: str | None = None

    @property
    def status(self) -> OperationStatus:
        return classify_status(self.status_code)

    @property
    def succeeded(self) -> bool:
        return self.status is OperationStatus.SUCCESS


def chunk(items: Sequence[T], size: int = DEFAULT_CHUNK_SIZE) -> list[list[T]]:
    """
    Split ``items`` into consecutive batches of at most ``size`` elements.

    The partition is stable: concatenating the batches reproduces ``items``.

    Args:
        items: Sequence to split.
        size: Maximum batch length (must be > 0).

    Returns:
        List of ``ceil(len(items) / size)`` batches.

    Raises:
        ValueError: If size is not positive.
    """
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "SUCCESS_STATUS_CODES",
    "RETRYABLE_STATUS_CODES",
    "BulkOperationType",
    "OperationStatus",
    "CreateOperation",
    "UpsertOperation",
    "DeleteOperation",
    "Operation",
    "OperationResult",
    "classify_status",
    "chunk",
]
