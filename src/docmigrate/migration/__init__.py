"""
Migration specs and the engine that runs them.

Example:
    >>> from docmigrate.migration import MigrationEngine, UpdateMigration
    >>>
    >>> def bump(document):
    ...     return {**document, "count": document["count"] + 1}
    >>>
    >>> engine = MigrationEngine(store, AutoConfirmation())
    >>> outcome = await engine.run(UpdateMigration(query="SELECT * FROM c", transform=bump))
"""

from docmigrate.migration.engine import MigrationEngine, confirmation_message
from docmigrate.migration.models import (
    CreateMigration,
    DeleteMigration,
    MigrationOutcome,
    MigrationSpec,
    MigrationStatus,
    OperationType,
    UpdateMigration,
)

__all__ = [
    "MigrationEngine",
    "confirmation_message",
    "OperationType",
    "CreateMigration",
    "UpdateMigration",
    "DeleteMigration",
    "MigrationSpec",
    "MigrationStatus",
    "MigrationOutcome",
]
