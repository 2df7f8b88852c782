"""Batched writes with narrowed retries."""

from docmigrate.bulk.retry import RetryPolicy
from docmigrate.bulk.writer import BulkWriteProgress, BulkWriter, BulkWriteResult

__all__ = [
    "BulkWriter",
    "BulkWriteProgress",
    "BulkWriteResult",
    "RetryPolicy",
]
