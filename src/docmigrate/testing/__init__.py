"""
Test utilities for docmigrate.

Components:
    ScriptedConfirmation: Confirmation gate with predetermined answers
    RecordingSleep: Backoff sleep replacement that records waits

Combine them with ``InMemoryDocumentStore`` (and its ``schedule_failure``)
to exercise whole migrations without a terminal or a live store.

Example:
    >>> from docmigrate.stores import InMemoryDocumentStore
    >>> from docmigrate.testing import RecordingSleep, ScriptedConfirmation
    >>>
    >>> store = InMemoryDocumentStore()
    >>> sleep = RecordingSleep()
    >>> engine = MigrationEngine(
    ...     store,
    ...     ScriptedConfirmation(True),
    ...     writer=BulkWriter(store, sleep=sleep),
    ... )

Note:
    This module is intended for test code only. It should not be imported
    in production code paths.
"""

from docmigrate.testing.doubles import RecordingSleep, ScriptedConfirmation

__all__ = [
    "RecordingSleep",
    "ScriptedConfirmation",
]
