"""
BulkWriter - Commits operation lists to the document store in batches.

The BulkWriter is the write half of every migration. It splits an ordered
list of operations into batches the store accepts, submits them one at a
time, and when a batch partially fails it resubmits exactly the failed
operations after the wait the store asked for.

Responsibilities:
    - Stable chunking into batches of at most ``chunk_size`` operations
    - Strictly sequential submission (one outstanding batch at any time)
    - Narrowing retries to the failed subset, in original relative order
    - Honouring retry-after hints, bounded by a RetryPolicy
    - Failing fast on permanent per-operation errors
    - Stopping between batches when cancellation is requested

Batches are independent: a failure never rolls back earlier batches.

Usage:
    >>> from docmigrate.bulk import BulkWriter
    >>>
    >>> writer = BulkWriter(store)
    >>> result = await writer.submit(operations)
    >>> print(f"Wrote {result.operations_written} operations")
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from docmigrate.bulk.retry import RetryPolicy
from docmigrate.cancellation import CancellationToken
from docmigrate.exceptions import BulkWriteError, DocumentStoreError, MigrationCancelledError
from docmigrate.observability import (
    ATTR_BATCH_COUNT,
    ATTR_BATCH_INDEX,
    ATTR_BATCH_SIZE,
    ATTR_FAILED_COUNT,
    ATTR_OPERATION_COUNT,
    ATTR_RETRY_ATTEMPT,
    Tracer,
    create_tracer,
)
from docmigrate.operations import DEFAULT_CHUNK_SIZE, Operation, OperationResult, chunk
from docmigrate.stores.interface import DocumentStore

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class BulkWriteProgress:
    """
    Progress information reported after each committed batch.

    Attributes:
        batch_index: Zero-based index of the batch just committed.
        batches_total: Number of batches in the submission.
        operations_written: Operations committed so far.
        operations_total: Operations in the submission.
        retries: Resubmissions made so far across all batches.
    """

    batch_index: int
    batches_total: int
    operations_written: int
    operations_total: int
    retries: int

    @property
    def progress_percent(self) -> float:
        """
        Calculate progress as percentage (0-100).

        Returns:
            Progress percentage, or 100.0 for an empty submission.
        """
        if self.operations_total == 0:
            return 100.0
        return min(100.0, (self.operations_written / self.operations_total) * 100)

    @property
    def is_complete(self) -> bool:
        return self.batch_index + 1 >= self.batches_total


@dataclass(frozen=True)
class BulkWriteResult:
    """
    Result of a completed submission.

    Attributes:
        operations_total: Operations submitted.
        batches_total: Batches the operations were split into.
        operations_written: Operations committed (equals total on success).
        retries: Resubmissions of failed subsets.
        waited_seconds: Total time spent backing off.
        duration_seconds: Wall-clock time of the submission.
    """

    operations_total: int
    batches_total: int
    operations_written: int
    retries: int
    waited_seconds: float
    duration_seconds: float


class BulkWriter:
    """
    Writes operation lists to a document store in sequential batches.

    Example:
        >>> writer = BulkWriter(
        ...     store,
        ...     retry_policy=RetryPolicy(max_retries=5, max_delay_ms=10_000),
        ... )
        >>> result = await writer.submit(operations, cancellation=token)

    Attributes:
        _store: Store the batches are submitted to.
        _chunk_size: Maximum operations per batch.
        _retry_policy: Policy bounding resubmissions and waits.
        _sleep: Awaitable used for backoff waits.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        retry_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the bulk writer.

        Args:
            store: DocumentStore to write to.
            chunk_size: Maximum operations per batch (1-100).
            retry_policy: Retry bounds; defaults to RetryPolicy().
            sleep: Coroutine function used to wait between attempts.
            tracer: Optional custom Tracer instance.
            enable_tracing: Whether to enable OpenTelemetry tracing.
                Ignored if tracer is explicitly provided.

        Raises:
            ValueError: If chunk_size is outside 1-100.
        """
        if not 1 <= chunk_size <= DEFAULT_CHUNK_SIZE:
            raise ValueError(f"chunk_size must be between 1 and {DEFAULT_CHUNK_SIZE}, got {chunk_size}")
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._store = store
        self._chunk_size = chunk_size
        self._retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    async def submit(
        self,
        operations: Sequence[Operation],
        *,
        cancellation: CancellationToken | None = None,
        progress_callback: Callable[[BulkWriteProgress], None] | None = None,
    ) -> BulkWriteResult:
        """
        Commit ``operations`` to the store.

        Args:
            operations: Operations to apply, in order.
            cancellation: Token checked before each batch and during backoff waits.
            progress_callback: Called after each committed batch.

        Returns:
            BulkWriteResult describing the submission.

        Raises:
            BulkWriteError: If an operation fails permanently or a batch
                exhausts its retries.
            MigrationCancelledError: If cancellation is requested between batches
                or while a batch waits to retry.
            DocumentStoreError: If the store violates the bulk contract or
                the transport fails.
        """
        start_time = time.monotonic()
        batches = chunk(operations, self._chunk_size)
        total = len(operations)

        if not batches:
            logger.info("No operations to write")
            return BulkWriteResult(
                operations_total=0,
                batches_total=0,
                operations_written=0,
                retries=0,
                waited_seconds=0.0,
                duration_seconds=0.0,
            )

        with self._tracer.span(
            "docmigrate.bulk_writer.submit",
            {ATTR_OPERATION_COUNT: total, ATTR_BATCH_COUNT: len(batches)},
        ):
            logger.info(
                "Writing %d operations in %d batches",
                total,
                len(batches),
                extra={"operations_total": total, "batches_total": len(batches)},
            )

            written = 0
            retries = 0
            waited = 0.0

            for batch_index, batch in enumerate(batches):
                if cancellation is not None and cancellation.is_cancelled:
                    logger.warning(
                        "Bulk write cancelled before batch %d",
                        batch_index,
                        extra={"batch_index": batch_index, "operations_written": written},
                    )
                    raise MigrationCancelledError(
                        batches_committed=batch_index,
                        operations_written=written,
                        reason=cancellation.reason,
                    )

                batch_retries, batch_waited = await self._write_batch(
                    batch_index, batch, operations_written=written, cancellation=cancellation
                )
                written += len(batch)
                retries += batch_retries
                waited += batch_waited

                if progress_callback:
                    progress_callback(
                        BulkWriteProgress(
                            batch_index=batch_index,
                            batches_total=len(batches),
                            operations_written=written,
                            operations_total=total,
                            retries=retries,
                        )
                    )

            duration = time.monotonic() - start_time
            logger.info(
                "Bulk write completed: %d operations in %.1fs",
                written,
                duration,
                extra={"operations_written": written, "retries": retries},
            )
            return BulkWriteResult(
                operations_total=total,
                batches_total=len(batches),
                operations_written=written,
                retries=retries,
                waited_seconds=waited,
                duration_seconds=duration,
            )

    async def _write_batch(
        self,
        batch_index: int,
        batch: list[Operation],
        *,
        operations_written: int,
        cancellation: CancellationToken | None = None,
    ) -> tuple[int, float]:
        """
        Submit one batch until every operation in it has succeeded.

        Args:
            batch_index: Zero-based index of the batch.
            batch: Operations of the batch.
            operations_written: Operations committed by earlier batches.
            cancellation: Token that ends a backoff wait early.

        Returns:
            Tuple of (resubmissions made, seconds waited).

        Raises:
            MigrationCancelledError: If cancelled while failed operations
                are waiting to be resubmitted.
        """
        with self._tracer.span(
            "docmigrate.bulk_writer.write_batch",
            {ATTR_BATCH_INDEX: batch_index, ATTR_BATCH_SIZE: len(batch)},
        ):
            pending = batch
            attempt = 0
            waited = 0.0

            while True:
                results = await self._store.bulk(pending)
                if len(results) != len(pending):
                    raise DocumentStoreError(
                        f"Bulk response has {len(results)} results for {len(pending)} operations"
                    )

                failures = [
                    (operation, result)
                    for operation, result in zip(pending, results, strict=True)
                    if not result.succeeded
                ]

                logger.debug(
                    "Submitted batch %d: %d operations, %d failed",
                    batch_index,
                    len(pending),
                    len(failures),
                    extra={
                        "batch_index": batch_index,
                        "batch_size": len(pending),
                        "failed_count": len(failures),
                        "attempt": attempt,
                    },
                )

                if not failures:
                    return attempt, waited

                committed = operations_written + len(batch) - len(failures)
                permanent = [
                    (operation, result)
                    for operation, result in failures
                    if not self._retry_policy.should_retry(result.status)
                ]
                if permanent:
                    logger.error(
                        "Batch %d has %d permanently failed operations",
                        batch_index,
                        len(permanent),
                        extra={
                            "batch_index": batch_index,
                            "status_codes": [result.status_code for _, result in permanent],
                        },
                    )
                    raise BulkWriteError(
                        f"Batch {batch_index} has {len(permanent)} operations that failed "
                        f"permanently (status {_describe_codes(permanent)})",
                        batch_index=batch_index,
                        failures=permanent,
                        attempts=attempt + 1,
                        operations_written=committed,
                    )

                if attempt >= self._retry_policy.max_retries:
                    logger.error(
                        "Batch %d still has %d failed operations after %d retries",
                        batch_index,
                        len(failures),
                        attempt,
                        extra={"batch_index": batch_index, "failed_count": len(failures)},
                    )
                    raise BulkWriteError(
                        f"Batch {batch_index} did not converge after {attempt} retries: "
                        f"{len(failures)} operations still failing "
                        f"(status {_describe_codes(failures)})",
                        batch_index=batch_index,
                        failures=failures,
                        attempts=attempt + 1,
                        operations_written=committed,
                    )

                hint_ms = max((result.retry_after_ms or 0.0 for _, result in failures), default=0.0)
                delay = self._retry_policy.delay_seconds(attempt, hint_ms)

                logger.warning(
                    "Batch %d: %d of %d operations failed, retrying in %.3fs",
                    batch_index,
                    len(failures),
                    len(pending),
                    delay,
                    extra={
                        "batch_index": batch_index,
                        "failed_count": len(failures),
                        "attempt": attempt + 1,
                        "max_retries": self._retry_policy.max_retries,
                        "delay_seconds": delay,
                    },
                )

                with self._tracer.span(
                    "docmigrate.bulk_writer.retry",
                    {ATTR_RETRY_ATTEMPT: attempt + 1, ATTR_FAILED_COUNT: len(failures)},
                ):
                    await self._backoff(delay, cancellation)
                if cancellation is not None and cancellation.is_cancelled:
                    logger.warning(
                        "Bulk write cancelled while batch %d waited to retry",
                        batch_index,
                        extra={
                            "batch_index": batch_index,
                            "failed_count": len(failures),
                            "operations_written": committed,
                        },
                    )
                    raise MigrationCancelledError(
                        batches_committed=batch_index,
                        operations_written=committed,
                        reason=cancellation.reason,
                    )
                waited += delay
                attempt += 1
                pending = [operation for operation, _ in failures]

    async def _backoff(self, delay: float, cancellation: CancellationToken | None) -> None:
        if cancellation is None:
            await self._sleep(delay)
            return
        if cancellation.is_cancelled:
            return

        sleeper = asyncio.ensure_future(self._sleep(delay))
        waiter = asyncio.ensure_future(cancellation.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waiter):
                task.cancel()
            await asyncio.gather(sleeper, waiter, return_exceptions=True)


def _describe_codes(failures: list[tuple[Operation, OperationResult]]) -> str:
    return ", ".join(str(code) for code in sorted({result.status_code for _, result in failures}))


__all__ = [
    "BulkWriter",
    "BulkWriteProgress",
    "BulkWriteResult",
]
