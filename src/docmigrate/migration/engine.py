"""
MigrationEngine - Runs one migration spec to completion.

Each spec variant is a straight-line pipeline:

    Create:  read source -> confirm -> build Create operations -> write
    Update:  select -> confirm -> [validate rollback] -> transform -> write
    Delete:  select -> confirm -> build Delete operations -> write

Declining the confirmation ends the run successfully with nothing written.
Selection and rollback-validation failures abort before any write. Once
writing has started there is no compensation: batches committed before a
failure stay committed.

Usage:
    >>> engine = MigrationEngine(store, ConsoleConfirmation())
    >>> outcome = await engine.run(
    ...     DeleteMigration(
    ...         query="SELECT * FROM c WHERE c.type = 'appProductsByDay'",
    ...         partition_key=lambda document: document["tenantId"],
    ...     )
    ... )
    >>> outcome.status
    <MigrationStatus.COMPLETED: 'completed'>
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import copy
import logging
import threading
from collections.abc import Callable, Sequence
from typing import assert_never

from docmigrate.bulk.writer import BulkWriteProgress, BulkWriter
from docmigrate.cancellation import CancellationToken
from docmigrate.confirmation import ConfirmationGate
from docmigrate.exceptions import (
    DocumentStoreError,
    InvalidDocumentError,
    MigrationCancelledError,
    RollbackValidationError,
    SelectionError,
)
from docmigrate.migration.models import (
    CreateMigration,
    DeleteMigration,
    MigrationOutcome,
    MigrationSpec,
    MigrationStatus,
    OperationType,
    UpdateMigration,
)
from docmigrate.observability import (
    ATTR_MIGRATION_DOCUMENT_COUNT,
    ATTR_MIGRATION_OPERATION_TYPE,
    ATTR_QUERY,
    Tracer,
    create_tracer,
)
from docmigrate.operations import CreateOperation, DeleteOperation, Operation, UpsertOperation
from docmigrate.stores.interface import DocumentStore, QuerySpec
from docmigrate.types import Document, DocumentTransform

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BulkWriteProgress], None]


def confirmation_message(operation_type: OperationType, count: int) -> str:
    """
    Build the prompt shown to the operator.

    Args:
        operation_type: Variant about to run.
        count: Documents read (Create) or found (Update/Delete).

    Returns:
        Prompt text.
    """
    if operation_type is OperationType.CREATE:
        return f"Operation type: Create. Documents count: {count}. Proceed?"
    return f"Operation type: {operation_type.label}. Found: {count} documents. Proceed?"


class MigrationEngine:
    """
    Drives one MigrationSpec through its pipeline.

    Example:
        >>> engine = MigrationEngine(
        ...     store,
        ...     AutoConfirmation(),
        ...     writer=BulkWriter(store, retry_policy=RetryPolicy(max_retries=3)),
        ... )
        >>> outcome = await engine.run(spec, cancellation=token)

    Attributes:
        _store: Store used for selection (and, by default, for writes).
        _confirmation: Gate consulted before any write.
        _writer: Bulk writer the operations are handed to.
    """

    def __init__(
        self,
        store: DocumentStore,
        confirmation: ConfirmationGate,
        *,
        writer: BulkWriter | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the engine.

        Args:
            store: DocumentStore to select from.
            confirmation: Gate asked to approve each run.
            writer: BulkWriter for the resulting operations. Defaults to a
                writer over ``store`` with default settings.
            tracer: Optional custom Tracer instance.
            enable_tracing: Whether to enable OpenTelemetry tracing.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._store = store
        self._confirmation = confirmation
        self._writer = writer or BulkWriter(store, tracer=self._tracer)

    async def run(
        self,
        spec: MigrationSpec,
        *,
        cancellation: CancellationToken | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> MigrationOutcome:
        """
        Run ``spec`` to completion.

        Args:
            spec: Migration to run.
            cancellation: Token checked between stages and between batches.
            progress_callback: Receives bulk write progress.

        Returns:
            MigrationOutcome describing how the run ended.

        Raises:
            SelectionError: If the selection query fails.
            RollbackValidationError: If the rollback check fails.
            InvalidDocumentError: If a document cannot become an operation.
            BulkWriteError: If a batch cannot be committed.
            MigrationCancelledError: If cancelled before completion.
            DocumentSourceError: If the Create source cannot be read.
        """
        operation_type = spec.operation_type
        with self._tracer.span(
            "docmigrate.migration_engine.run",
            {ATTR_MIGRATION_OPERATION_TYPE: operation_type.value},
        ):
            logger.info(
                "Starting %s migration",
                operation_type.value,
                extra={"operation_type": operation_type.value},
            )

            if isinstance(spec, CreateMigration):
                outcome = await self._run_create(spec, cancellation, progress_callback)
            elif isinstance(spec, UpdateMigration):
                outcome = await self._run_update(spec, cancellation, progress_callback)
            elif isinstance(spec, DeleteMigration):
                outcome = await self._run_delete(spec, cancellation, progress_callback)
            else:
                assert_never(spec)

            logger.info(
                "%s migration finished: %s",
                operation_type.value,
                outcome.status.value,
                extra=outcome.to_dict(),
            )
            return outcome

    # ------------------------------------------------------------------
    # Pipelines
    # ------------------------------------------------------------------

    async def _run_create(
        self,
        spec: CreateMigration,
        cancellation: CancellationToken | None,
        progress_callback: ProgressCallback | None,
    ) -> MigrationOutcome:
        documents = await spec.source.read()

        if not await self._confirm(OperationType.CREATE, len(documents), cancellation):
            return self._declined(OperationType.CREATE, len(documents))

        operations: list[Operation] = [CreateOperation(document) for document in documents]
        return await self._execute(
            OperationType.CREATE, len(documents), operations, cancellation, progress_callback
        )

    async def _run_update(
        self,
        spec: UpdateMigration,
        cancellation: CancellationToken | None,
        progress_callback: ProgressCallback | None,
    ) -> MigrationOutcome:
        documents = await self._select(OperationType.UPDATE, spec.query)

        if not await self._confirm(OperationType.UPDATE, len(documents), cancellation):
            return self._declined(OperationType.UPDATE, len(documents))

        if not documents:
            logger.info("No documents selected, nothing to update")
            return MigrationOutcome(
                operation_type=OperationType.UPDATE,
                status=MigrationStatus.NO_DOCUMENTS,
                documents_selected=0,
            )

        if spec.rollback is not None:
            self._validate_rollback(documents[0], spec.transform, spec.rollback)

        operations: list[Operation] = [
            UpsertOperation(self._transform(spec.transform, document)) for document in documents
        ]
        return await self._execute(
            OperationType.UPDATE, len(documents), operations, cancellation, progress_callback
        )

    async def _run_delete(
        self,
        spec: DeleteMigration,
        cancellation: CancellationToken | None,
        progress_callback: ProgressCallback | None,
    ) -> MigrationOutcome:
        documents = await self._select(OperationType.DELETE, spec.query)

        if not await self._confirm(OperationType.DELETE, len(documents), cancellation):
            return self._declined(OperationType.DELETE, len(documents))

        operations: list[Operation] = []
        for document in documents:
            document_id = document.get("id")
            if not isinstance(document_id, str) or not document_id:
                raise InvalidDocumentError(
                    "Selected document has no id; include c.id in the selection query",
                    document,
                    operation_type=OperationType.DELETE.value,
                )
            operations.append(DeleteOperation(document_id, spec.partition_key(document)))

        return await self._execute(
            OperationType.DELETE, len(documents), operations, cancellation, progress_callback
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _select(self, operation_type: OperationType, query: QuerySpec | str) -> list[Document]:
        spec = QuerySpec.of(query)
        with self._tracer.span(
            "docmigrate.migration_engine.select",
            {ATTR_QUERY: spec.query},
        ):
            try:
                documents = await self._store.query(spec)
            except DocumentStoreError as e:
                logger.error(
                    "Selection query failed: %s",
                    e,
                    extra={"query": spec.query, "operation_type": operation_type.value},
                )
                raise SelectionError(spec.query, str(e), operation_type=operation_type.value) from e

            logger.info(
                "Selected %d documents",
                len(documents),
                extra={"query": spec.query, "document_count": len(documents)},
            )
            return documents

    async def _confirm(
        self,
        operation_type: OperationType,
        count: int,
        cancellation: CancellationToken | None,
    ) -> bool:
        message = confirmation_message(operation_type, count)
        with self._tracer.span(
            "docmigrate.migration_engine.confirm",
            {ATTR_MIGRATION_DOCUMENT_COUNT: count},
        ):
            answer = _ask_in_background(self._confirmation, message)
            if cancellation is not None:
                waiter = asyncio.ensure_future(cancellation.wait())
                try:
                    await asyncio.wait({answer, waiter}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    waiter.cancel()
                if not answer.done():
                    answer.cancel()
                    logger.warning(
                        "Cancelled while waiting for confirmation",
                        extra={"operation_type": operation_type.value, "document_count": count},
                    )
                    raise MigrationCancelledError(
                        batches_committed=0,
                        operations_written=0,
                        reason=cancellation.reason,
                    )
            confirmed = await answer
        logger.info(
            "Operator %s %s of %d documents",
            "confirmed" if confirmed else "declined",
            operation_type.value,
            count,
            extra={"operation_type": operation_type.value, "document_count": count},
        )
        return confirmed

    def _validate_rollback(
        self,
        sample: Document,
        transform: DocumentTransform,
        rollback: DocumentTransform,
    ) -> None:
        original = copy.deepcopy(sample)
        document_id = sample.get("id")
        try:
            transformed = transform(copy.deepcopy(sample))
            restored = rollback(copy.deepcopy(transformed))
        except Exception as e:
            raise RollbackValidationError(document_id, original, None) from e

        if restored != original:
            logger.error(
                "Rollback validation failed for document %s",
                document_id,
                extra={"document_id": document_id},
            )
            raise RollbackValidationError(document_id, original, restored)

        logger.info(
            "Rollback validated on document %s",
            document_id,
            extra={"document_id": document_id},
        )

    @staticmethod
    def _transform(transform: DocumentTransform, document: Document) -> Document:
        result = transform(copy.deepcopy(document))
        if not isinstance(result, dict):
            raise InvalidDocumentError(
                f"Transform returned {type(result).__name__} for document "
                f"{document.get('id')!r}, expected a document",
                result,
                operation_type=OperationType.UPDATE.value,
            )
        return result

    async def _execute(
        self,
        operation_type: OperationType,
        documents_selected: int,
        operations: Sequence[Operation],
        cancellation: CancellationToken | None,
        progress_callback: ProgressCallback | None,
    ) -> MigrationOutcome:
        if cancellation is not None and cancellation.is_cancelled:
            raise MigrationCancelledError(
                batches_committed=0,
                operations_written=0,
                reason=cancellation.reason,
            )

        write_result = await self._writer.submit(
            operations,
            cancellation=cancellation,
            progress_callback=progress_callback,
        )
        return MigrationOutcome(
            operation_type=operation_type,
            status=MigrationStatus.COMPLETED,
            documents_selected=documents_selected,
            operations_submitted=len(operations),
            write_result=write_result,
        )

    @staticmethod
    def _declined(operation_type: OperationType, count: int) -> MigrationOutcome:
        return MigrationOutcome(
            operation_type=operation_type,
            status=MigrationStatus.DECLINED,
            documents_selected=count,
        )


def _ask_in_background(gate: ConfirmationGate, message: str) -> asyncio.Future[bool]:
    # Daemon thread: a prompt still blocked on input after cancellation must
    # not keep the process alive.
    answer: concurrent.futures.Future[bool] = concurrent.futures.Future()

    def prompt() -> None:
        if not answer.set_running_or_notify_cancel():
            return
        try:
            answer.set_result(gate.confirm(message))
        except Exception as e:
            answer.set_exception(e)

    threading.Thread(target=prompt, name="docmigrate-confirmation", daemon=True).start()
    return asyncio.wrap_future(answer)


__all__ = [
    "MigrationEngine",
    "confirmation_message",
]
