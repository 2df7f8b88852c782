"""
Shared pytest fixtures for the docmigrate library tests.

This module provides:
- Store fixtures (store, tenant_store, populated_store)
- Collaborator doubles (confirmation, declining_confirmation, sleep)
- Wired components (writer, engine)
- Document factories (make_documents)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
import pytest_asyncio

from docmigrate.bulk import BulkWriter
from docmigrate.migration import MigrationEngine
from docmigrate.observability import MockTracer
from docmigrate.stores import InMemoryDocumentStore
from docmigrate.testing import RecordingSleep, ScriptedConfirmation


def make_documents(
    count: int,
    *,
    tenant: str = "t1",
    doc_type: str = "appProductsByDay",
    start: int = 0,
) -> list[dict[str, Any]]:
    """Build ``count`` documents with sequential ids."""
    return [
        {"id": str(index), "tenantId": tenant, "type": doc_type, "count": index}
        for index in range(start, start + count)
    ]


@pytest.fixture
def document_factory() -> Callable[..., list[dict[str, Any]]]:
    """Factory for sequential test documents."""
    return make_documents


# ============================================================================
# Stores
# ============================================================================


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Empty in-memory store without a partition key path."""
    return InMemoryDocumentStore(enable_tracing=False)


@pytest.fixture
def tenant_store() -> InMemoryDocumentStore:
    """Empty in-memory store partitioned by ``/tenantId``."""
    return InMemoryDocumentStore(partition_key_path="/tenantId", enable_tracing=False)


@pytest_asyncio.fixture
async def populated_store(tenant_store: InMemoryDocumentStore) -> InMemoryDocumentStore:
    """Tenant store holding five documents of type appProductsByDay and two orders."""
    for document in make_documents(5):
        await tenant_store.create(document)
    for document in make_documents(2, doc_type="order", start=100):
        await tenant_store.create(document)
    tenant_store.bulk_calls.clear()
    return tenant_store


# ============================================================================
# Collaborator doubles
# ============================================================================


@pytest.fixture
def confirmation() -> ScriptedConfirmation:
    """Gate that always confirms."""
    return ScriptedConfirmation(True)


@pytest.fixture
def declining_confirmation() -> ScriptedConfirmation:
    """Gate that always declines."""
    return ScriptedConfirmation(False)


@pytest.fixture
def sleep() -> RecordingSleep:
    """Backoff sleep that records delays without waiting."""
    return RecordingSleep()


@pytest.fixture
def tracer() -> MockTracer:
    """Tracer recording span names."""
    return MockTracer()


# ============================================================================
# Wired components
# ============================================================================


@pytest.fixture
def writer(tenant_store: InMemoryDocumentStore, sleep: RecordingSleep) -> BulkWriter:
    """Bulk writer over the tenant store with recorded sleeps."""
    return BulkWriter(tenant_store, sleep=sleep, enable_tracing=False)


@pytest.fixture
def engine(
    tenant_store: InMemoryDocumentStore,
    confirmation: ScriptedConfirmation,
    writer: BulkWriter,
) -> MigrationEngine:
    """Engine over the tenant store that confirms every run."""
    return MigrationEngine(tenant_store, confirmation, writer=writer, enable_tracing=False)
