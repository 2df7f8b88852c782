"""
Standard span attributes for docmigrate.

Attribute constants shared by all components so that spans from the store,
the bulk writer and the migration engine can be correlated. Database
attributes follow OpenTelemetry semantic conventions.
"""

# =============================================================================
# Database Attributes (OTEL semantic conventions)
# =============================================================================

ATTR_DB_SYSTEM = "db.system"
"""Database system identifier (e.g., 'cosmosdb', 'memory')."""

ATTR_DB_OPERATION = "db.operation"
"""Operation being performed (e.g., 'query', 'bulk')."""

ATTR_DB_CONTAINER = "db.cosmosdb.container"
"""Container (collection) the operation targets."""

# =============================================================================
# Bulk Write Attributes
# =============================================================================

ATTR_OPERATION_COUNT = "docmigrate.operation.count"
"""Number of operations in a request (integer)."""

ATTR_BATCH_COUNT = "docmigrate.batch.count"
"""Number of batches a submission was split into (integer)."""

ATTR_BATCH_INDEX = "docmigrate.batch.index"
"""Zero-based index of the batch being written (integer)."""

ATTR_BATCH_SIZE = "docmigrate.batch.size"
"""Number of operations in the batch (integer)."""

ATTR_FAILED_COUNT = "docmigrate.batch.failed_count"
"""Number of operations that failed in one submission (integer)."""

ATTR_RETRY_ATTEMPT = "docmigrate.retry.attempt"
"""Retry attempt number for a batch (integer, 1-based)."""

# =============================================================================
# Migration Attributes
# =============================================================================

ATTR_MIGRATION_OPERATION_TYPE = "docmigrate.migration.operation_type"
"""Migration variant (CREATE, UPDATE, DELETE)."""

ATTR_MIGRATION_DOCUMENT_COUNT = "docmigrate.migration.document_count"
"""Number of documents selected or read for the run (integer)."""

ATTR_QUERY = "docmigrate.query"
"""Selection query text."""


__all__ = [
    "ATTR_DB_SYSTEM",
    "ATTR_DB_OPERATION",
    "ATTR_DB_CONTAINER",
    "ATTR_OPERATION_COUNT",
    "ATTR_BATCH_COUNT",
    "ATTR_BATCH_INDEX",
    "ATTR_BATCH_SIZE",
    "ATTR_FAILED_COUNT",
    "ATTR_RETRY_ATTEMPT",
    "ATTR_MIGRATION_OPERATION_TYPE",
    "ATTR_MIGRATION_DOCUMENT_COUNT",
    "ATTR_QUERY",
]
