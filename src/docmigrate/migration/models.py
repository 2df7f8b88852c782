"""
Data models for migration runs.

A MigrationSpec is the operator-supplied description of one run. It is
built once (usually in a ``migration.py`` file) and never mutated. The
closed set of variants mirrors the three pipelines of the engine.

This module provides:
- OperationType: CREATE, UPDATE or DELETE
- CreateMigration, UpdateMigration, DeleteMigration: The spec variants
- MigrationSpec: Union of the variants
- MigrationStatus: How a run ended
- MigrationOutcome: Summary returned by MigrationEngine.run
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from docmigrate.sources import DocumentSource
from docmigrate.stores.interface import QuerySpec
from docmigrate.types import DocumentTransform, PartitionKeyExtractor

if TYPE_CHECKING:
    from docmigrate.bulk.writer import BulkWriteResult


class OperationType(Enum):
    """Migration variant, selected once per run."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    @property
    def label(self) -> str:
        """Human-readable name used in operator prompts."""
        return self.value.capitalize()


@dataclass(frozen=True)
class CreateMigration:
    """
    Create one document per record of ``source``.

    Attributes:
        source: Where the documents come from.

    Example:
        >>> migration = CreateMigration(source=CsvFileSource("products.csv"))
    """

    source: DocumentSource

    @property
    def operation_type(self) -> OperationType:
        return OperationType.CREATE


@dataclass(frozen=True)
class UpdateMigration:
    """
    Replace every selected document by its transformed version.

    Attributes:
        query: Selection query for the candidate documents.
        transform: Returns the new version of a document.
        rollback: Optional inverse of ``transform``. When given, the run is
            aborted before any write unless
            ``rollback(transform(doc)) == doc`` holds for the first candidate.

    Example:
        >>> def archive(document):
        ...     return {**document, "status": "archived", "previousStatus": document["status"]}
        >>> def unarchive(document):
        ...     restored = {**document, "status": document["previousStatus"]}
        ...     del restored["previousStatus"]
        ...     return restored
        >>> migration = UpdateMigration(
        ...     query="SELECT * FROM c WHERE c.type = 'order'",
        ...     transform=archive,
        ...     rollback=unarchive,
        ... )
    """

    query: QuerySpec | str
    transform: DocumentTransform
    rollback: DocumentTransform | None = None

    @property
    def operation_type(self) -> OperationType:
        return OperationType.UPDATE


@dataclass(frozen=True)
class DeleteMigration:
    """
    Delete every selected document.

    Attributes:
        query: Selection query for the documents to delete.
        partition_key: Extracts the partition key value of a document.

    Example:
        >>> migration = DeleteMigration(
        ...     query="SELECT c.id, c.tenantId FROM c WHERE c.type = 'appProductsByDay'",
        ...     partition_key=lambda document: document.get("tenantId", ""),
        ... )
    """

    query: QuerySpec | str
    partition_key: PartitionKeyExtractor

    @property
    def operation_type(self) -> OperationType:
        return OperationType.DELETE


MigrationSpec = CreateMigration | UpdateMigration | DeleteMigration


class MigrationStatus(Enum):
    """
    How a run ended without error.

    Attributes:
        COMPLETED: The pipeline ran to completion and all writes committed.
        DECLINED: The operator declined; nothing was written.
        NO_DOCUMENTS: An Update selected nothing; nothing was written.
    """

    COMPLETED = "completed"
    DECLINED = "declined"
    NO_DOCUMENTS = "no_documents"


@dataclass(frozen=True)
class MigrationOutcome:
    """
    Summary of a finished run.

    Attributes:
        operation_type: Variant that ran.
        status: How the run ended.
        documents_selected: Documents read (Create) or selected (Update/Delete).
        operations_submitted: Operations handed to the bulk writer.
        write_result: Bulk writer result, when the writer was invoked.
    """

    operation_type: OperationType
    status: MigrationStatus
    documents_selected: int
    operations_submitted: int = 0
    write_result: BulkWriteResult | None = None

    @property
    def wrote_documents(self) -> bool:
        """True when at least one operation was committed."""
        return self.write_result is not None and self.write_result.operations_written > 0

    @property
    def exit_code(self) -> int:
        """Process exit code for this outcome (declined runs succeed)."""
        return 0

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary for logging.

        Returns:
            Dictionary representation of the outcome.
        """
        result: dict[str, Any] = {
            "operation_type": self.operation_type.value,
            "status": self.status.value,
            "documents_selected": self.documents_selected,
            "operations_submitted": self.operations_submitted,
        }
        if self.write_result is not None:
            result["operations_written"] = self.write_result.operations_written
            result["retries"] = self.write_result.retries
        return result


__all__ = [
    "OperationType",
    "CreateMigration",
    "UpdateMigration",
    "DeleteMigration",
    "MigrationSpec",
    "MigrationStatus",
    "MigrationOutcome",
]
