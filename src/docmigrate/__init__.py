"""
docmigrate - Bulk document migrations for Cosmos DB containers.

This library provides:
- Bulk Writer that commits operations in batches of at most 100 and
  resubmits only the failed operations after the store's retry hint
- Migration Engine running Create, Update and Delete migrations behind an
  operator confirmation, with rollback validation for updates
- Document stores for Cosmos DB (azure-cosmos) and an in-memory double
- Document sources for literal lists, CSV files and JSON/JSON Lines files
- Command line ``docmigrate init`` / ``docmigrate run``
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("docmigrate-py")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

# Bulk writes
from docmigrate.bulk import BulkWriteProgress, BulkWriter, BulkWriteResult, RetryPolicy
from docmigrate.cancellation import CancellationToken

# Configuration
from docmigrate.config import CosmosSettings, RunSettings

# Confirmation
from docmigrate.confirmation import AutoConfirmation, ConfirmationGate, ConsoleConfirmation

# Exceptions
from docmigrate.exceptions import (
    BulkWriteError,
    ConfigurationError,
    DocMigrateError,
    DocumentSourceError,
    DocumentStoreError,
    InvalidDocumentError,
    MigrationCancelledError,
    MigrationError,
    MissingResourceError,
    RollbackValidationError,
    SelectionError,
)

# Migrations
from docmigrate.migration import (
    CreateMigration,
    DeleteMigration,
    MigrationEngine,
    MigrationOutcome,
    MigrationSpec,
    MigrationStatus,
    OperationType,
    UpdateMigration,
)

# Bulk operations
from docmigrate.operations import (
    DEFAULT_CHUNK_SIZE,
    BulkOperationType,
    CreateOperation,
    DeleteOperation,
    Operation,
    OperationResult,
    OperationStatus,
    UpsertOperation,
    chunk,
)
from docmigrate.sanitizer import STORE_METADATA_FIELDS, sanitize

# Sources
from docmigrate.sources import (
    CsvFileSource,
    DocumentSource,
    InputType,
    JsonFileSource,
    LiteralSource,
)

# Stores
from docmigrate.stores import (
    CosmosDocumentStore,
    DocumentStore,
    InMemoryDocumentStore,
    QueryParameter,
    QuerySpec,
)

# Types
from docmigrate.types import Document, PartitionKeyValue

__all__ = [
    "__version__",
    # Types
    "Document",
    "PartitionKeyValue",
    # Exceptions
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
    # Bulk operations
    "DEFAULT_CHUNK_SIZE",
    "BulkOperationType",
    "CreateOperation",
    "UpsertOperation",
    "DeleteOperation",
    "Operation",
    "OperationResult",
    "OperationStatus",
    "chunk",
    # Sanitizer
    "STORE_METADATA_FIELDS",
    "sanitize",
    # Stores
    "DocumentStore",
    "InMemoryDocumentStore",
    "CosmosDocumentStore",
    "QueryParameter",
    "QuerySpec",
    # Bulk writes
    "BulkWriter",
    "BulkWriteProgress",
    "BulkWriteResult",
    "RetryPolicy",
    "CancellationToken",
    # Confirmation
    "ConfirmationGate",
    "ConsoleConfirmation",
    "AutoConfirmation",
    # Sources
    "DocumentSource",
    "InputType",
    "LiteralSource",
    "CsvFileSource",
    "JsonFileSource",
    # Migrations
    "MigrationEngine",
    "OperationType",
    "CreateMigration",
    "UpdateMigration",
    "DeleteMigration",
    "MigrationSpec",
    "MigrationStatus",
    "MigrationOutcome",
    # Configuration
    "CosmosSettings",
    "RunSettings",
]
