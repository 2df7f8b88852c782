"""
Unit tests for InMemoryDocumentStore.
"""

import pytest

from docmigrate.exceptions import DocumentStoreError
from docmigrate.observability import MockTracer
from docmigrate.operations import CreateOperation, DeleteOperation, UpsertOperation
from docmigrate.sanitizer import has_store_metadata
from docmigrate.stores import InMemoryDocumentStore, QueryParameter, QuerySpec


class TestSingleItemWrites:
    @pytest.mark.asyncio
    async def test_create_returns_sanitized_resource(
        self, tenant_store: InMemoryDocumentStore
    ) -> None:
        """Stored documents carry metadata, returned ones do not."""
        resource = await tenant_store.create({"id": "1", "tenantId": "t1"})

        assert resource == {"id": "1", "tenantId": "t1"}
        assert has_store_metadata(tenant_store.get("1", "t1"))

    @pytest.mark.asyncio
    async def test_create_conflict(self, tenant_store: InMemoryDocumentStore) -> None:
        await tenant_store.create({"id": "1", "tenantId": "t1"})
        with pytest.raises(DocumentStoreError, match="Failed to create document"):
            await tenant_store.create({"id": "1", "tenantId": "t1"})

    @pytest.mark.asyncio
    async def test_same_id_in_other_partition(self, tenant_store: InMemoryDocumentStore) -> None:
        """Ids are unique per partition only."""
        await tenant_store.create({"id": "1", "tenantId": "t1"})
        await tenant_store.create({"id": "1", "tenantId": "t2"})
        assert len(tenant_store.documents) == 2

    @pytest.mark.asyncio
    async def test_upsert_replaces(self, tenant_store: InMemoryDocumentStore) -> None:
        await tenant_store.create({"id": "1", "tenantId": "t1", "v": 1})
        resource = await tenant_store.upsert({"id": "1", "tenantId": "t1", "v": 2})
        assert resource["v"] == 2
        assert tenant_store.documents == [{"id": "1", "tenantId": "t1", "v": 2}]

    @pytest.mark.asyncio
    async def test_upsert_drops_written_back_metadata(
        self, tenant_store: InMemoryDocumentStore
    ) -> None:
        """Writing back a document never keeps stale metadata as data."""
        await tenant_store.create({"id": "1", "tenantId": "t1"})
        resource = await tenant_store.upsert({"id": "1", "tenantId": "t1", "_etag": "stale"})
        assert "_etag" not in resource

    @pytest.mark.asyncio
    async def test_delete(self, tenant_store: InMemoryDocumentStore) -> None:
        await tenant_store.create({"id": "1", "tenantId": "t1"})
        await tenant_store.delete("1", "t1")
        assert tenant_store.documents == []

    @pytest.mark.asyncio
    async def test_delete_missing(self, tenant_store: InMemoryDocumentStore) -> None:
        with pytest.raises(DocumentStoreError, match="not found"):
            await tenant_store.delete("missing", "t1")

    @pytest.mark.asyncio
    async def test_missing_id_rejected(self, store: InMemoryDocumentStore) -> None:
        with pytest.raises(DocumentStoreError, match="non-empty string id"):
            await store.create({"name": "no id"})


class TestQuery:
    @pytest.mark.asyncio
    async def test_select_all(self, populated_store: InMemoryDocumentStore) -> None:
        documents = await populated_store.query("SELECT * FROM c")
        assert len(documents) == 7
        assert not any(has_store_metadata(document) for document in documents)

    @pytest.mark.asyncio
    async def test_where_literal(self, populated_store: InMemoryDocumentStore) -> None:
        documents = await populated_store.query("SELECT * FROM c WHERE c.type = 'order'")
        assert sorted(document["id"] for document in documents) == ["100", "101"]

    @pytest.mark.asyncio
    async def test_where_parameter_and_number(self, populated_store: InMemoryDocumentStore) -> None:
        spec = QuerySpec(
            "SELECT * FROM c WHERE c.type = @type AND c.count = 3",
            (QueryParameter("@type", "appProductsByDay"),),
        )
        documents = await populated_store.query(spec)
        assert [document["id"] for document in documents] == ["3"]

    @pytest.mark.asyncio
    async def test_nested_path(self, store: InMemoryDocumentStore) -> None:
        await store.create({"id": "1", "meta": {"active": True}})
        await store.create({"id": "2", "meta": {"active": False}})
        documents = await store.query("SELECT * FROM c WHERE c.meta.active = true")
        assert [document["id"] for document in documents] == ["1"]

    @pytest.mark.asyncio
    async def test_unsupported_query(self, store: InMemoryDocumentStore) -> None:
        with pytest.raises(DocumentStoreError, match="Unsupported query"):
            await store.query("SELECT VALUE COUNT(1) FROM c")

    @pytest.mark.asyncio
    async def test_missing_parameter(self, store: InMemoryDocumentStore) -> None:
        with pytest.raises(DocumentStoreError, match="@type"):
            await store.query("SELECT * FROM c WHERE c.type = @type")

    @pytest.mark.asyncio
    async def test_results_are_copies(self, populated_store: InMemoryDocumentStore) -> None:
        documents = await populated_store.query("SELECT * FROM c WHERE c.type = 'order'")
        documents[0]["type"] = "changed"
        again = await populated_store.query("SELECT * FROM c WHERE c.type = 'order'")
        assert len(again) == 2


class TestBulk:
    @pytest.mark.asyncio
    async def test_one_result_per_operation(self, tenant_store: InMemoryDocumentStore) -> None:
        await tenant_store.create({"id": "a", "tenantId": "t1"})

        results = await tenant_store.bulk(
            [
                CreateOperation({"id": "b", "tenantId": "t1"}),
                CreateOperation({"id": "a", "tenantId": "t1"}),
                UpsertOperation({"id": "a", "tenantId": "t1", "v": 1}),
                DeleteOperation("missing", "t1"),
                DeleteOperation("b", "t1"),
            ]
        )

        assert [result.status_code for result in results] == [201, 409, 200, 404, 204]
        assert results[0].resource == {"id": "b", "tenantId": "t1"}

    @pytest.mark.asyncio
    async def test_scheduled_failure(self, tenant_store: InMemoryDocumentStore) -> None:
        """Injected failures are reported and the operation is not applied."""
        tenant_store.schedule_failure("a", status_code=429, retry_after_ms=250)

        first = await tenant_store.bulk([CreateOperation({"id": "a", "tenantId": "t1"})])
        second = await tenant_store.bulk([CreateOperation({"id": "a", "tenantId": "t1"})])

        assert first[0].status_code == 429
        assert first[0].retry_after_ms == 250
        assert second[0].status_code == 201
        assert len(tenant_store.bulk_calls) == 2

    @pytest.mark.asyncio
    async def test_tracing(self) -> None:
        tracer = MockTracer()
        store = InMemoryDocumentStore(tracer=tracer)

        await store.bulk([CreateOperation({"id": "a"})])
        await store.query("SELECT * FROM c")

        assert tracer.span_names == ["docmigrate.memory_store.bulk", "docmigrate.memory_store.query"]


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_async_context_manager(self) -> None:
        async with InMemoryDocumentStore() as store:
            await store.create({"id": "1"})
        assert store.documents == [{"id": "1"}]
