"""
Library exceptions for the docmigrate package.

Exception Hierarchy:
    DocMigrateError (base)
    +-- ConfigurationError
    +-- DocumentSourceError
    +-- DocumentStoreError
    |   +-- MissingResourceError
    +-- MigrationError
        +-- SelectionError
        +-- RollbackValidationError
        +-- InvalidDocumentError
        +-- BulkWriteError
        +-- MigrationCancelledError

Declining the operator confirmation is not an error; the engine reports it
as ``MigrationStatus.DECLINED``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from docmigrate.operations import Operation, OperationResult


class DocMigrateError(Exception):
    """Base exception for docmigrate library."""

    pass


class ConfigurationError(DocMigrateError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        self.missing = missing or []
        super().__init__(message)


class DocumentSourceError(DocMigrateError):
    """Raised when an input source cannot be read."""

    pass


class DocumentStoreError(DocMigrateError):
    """Raised when there's an error talking to the document store."""

    pass


class MissingResourceError(DocumentStoreError):
    """Raised when a single-item write returns no resulting resource."""

    def __init__(self, action: str, document: dict[str, Any]) -> None:
        self.action = action
        self.document = document
        super().__init__(f"Failed to {action} document {document.get('id', '<no id>')!r}")


class MigrationError(DocMigrateError):
    """
    Base exception for failures that abort a migration run.

    Attributes:
        message: Human-readable error description.
        operation_type: The migration variant that failed, if known.
    """

    def __init__(self, message: str, *, operation_type: str | None = None) -> None:
        self.message = message
        self.operation_type = operation_type
        super().__init__(message)

    def __str__(self) -> str:
        """Return formatted error string with context."""
        if self.operation_type:
            return f"{self.message} (operation_type={self.operation_type})"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for structured logging.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error_type": type(self).__name__,
            "error_message": self.message,
            "operation_type": self.operation_type,
        }


class SelectionError(MigrationError):
    """
    Raised when the selection query fails.

    No writes are attempted when this is raised.

    Attributes:
        query: The query text that failed.
    """

    def __init__(self, query: str, error: str, *, operation_type: str | None = None) -> None:
        self.query = query
        self.original_error = error
        super().__init__(
            f"Selection query failed: {error}",
            operation_type=operation_type,
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["query"] = self.query
        return result


class RollbackValidationError(MigrationError):
    """
    Raised when the rollback transform does not restore the sample document.

    The Update run is aborted before any write is submitted.

    Attributes:
        document_id: ID of the sample document.
        expected: The original sample document.
        actual: The document produced by transform followed by rollback.
    """

    def __init__(
        self,
        document_id: str | None,
        expected: dict[str, Any],
        actual: Any,
    ) -> None:
        self.document_id = document_id
        self.expected = expected
        self.actual = actual
        differing = _differing_keys(expected, actual)
        detail = f"; differing fields: {', '.join(differing)}" if differing else ""
        super().__init__(
            f"Rollback validation failed for document {document_id!r}{detail}",
            operation_type="UPDATE",
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["document_id"] = self.document_id
        return result


class InvalidDocumentError(MigrationError):
    """Raised when a document cannot be turned into a write operation."""

    def __init__(self, message: str, document: Any, *, operation_type: str | None = None) -> None:
        self.document = document
        super().__init__(message, operation_type=operation_type)


class BulkWriteError(MigrationError):
    """
    Raised when a batch cannot be committed.

    Either an operation failed permanently or the retry budget ran out.
    Batches committed before ``batch_index`` remain committed.

    Attributes:
        batch_index: Zero-based index of the failing batch.
        failures: Pairs of operation and its last result.
        attempts: Number of submissions made for the failing batch.
        operations_written: Operations committed before the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        batch_index: int,
        failures: list[tuple[Operation, OperationResult]],
        attempts: int,
        operations_written: int,
    ) -> None:
        self.batch_index = batch_index
        self.failures = failures
        self.attempts = attempts
        self.operations_written = operations_written
        super().__init__(message)

    @property
    def status_codes(self) -> list[int]:
        """Status codes of the failed operations, in submission order."""
        return [result.status_code for _, result in self.failures]

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result.update(
            {
                "batch_index": self.batch_index,
                "attempts": self.attempts,
                "operations_written": self.operations_written,
                "failures": [
                    {
                        "document_id": operation.document_id,
                        "status_code": op_result.status_code,
                        "error": op_result.error_message,
                    }
                    for operation, op_result in self.failures
                ],
            }
        )
        return result


class MigrationCancelledError(MigrationError):
    """
    Raised when a run is cancelled before or between batches, or while a
    batch waits to retry.

    Attributes:
        batches_committed: Number of batches fully committed before cancel.
        operations_written: Number of operations committed before cancel.
    """

    def __init__(
        self,
        *,
        batches_committed: int,
        operations_written: int,
        reason: str | None = None,
    ) -> None:
        self.batches_committed = batches_committed
        self.operations_written = operations_written
        self.reason = reason
        suffix = f": {reason}" if reason else ""
        super().__init__(
            f"Migration cancelled after {batches_committed} batches "
            f"({operations_written} operations written){suffix}"
        )


def _differing_keys(expected: dict[str, Any], actual: Any) -> list[str]:
    if not isinstance(actual, dict):
        return []
    keys = set(expected) | set(actual)
    return sorted(key for key in keys if expected.get(key) != actual.get(key))


__all__ = [
    "DocMigrateError",
    "ConfigurationError",
    "DocumentSourceError",
    "DocumentStoreError",
    "MissingResourceError",
    "MigrationError",
    "SelectionError",
    "RollbackValidationError",
    "InvalidDocumentError",
    "BulkWriteError",
    "MigrationCancelledError",
]
