"""
Unit tests for CosmosDocumentStore.

The container client is mocked; these tests cover the mapping between the
SDK and the store contract, not the service itself.
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from azure.core.exceptions import ServiceRequestError
from azure.cosmos.exceptions import CosmosHttpResponseError

from docmigrate.config import CosmosSettings
from docmigrate.exceptions import DocumentStoreError, MissingResourceError
from docmigrate.observability import MockTracer
from docmigrate.operations import CreateOperation, DeleteOperation, UpsertOperation
from docmigrate.stores import CosmosDocumentStore, QueryParameter, QuerySpec
from docmigrate.stores.cosmos import RETRY_AFTER_HEADER

METADATA = {"_rid": "r", "_self": "s", "_etag": "e", "_attachments": "a", "_ts": 1}


class AsyncItems:
    """Async iterator standing in for the SDK's query pager."""

    def __init__(self, items: list[dict[str, Any]]) -> None:
        self._items = iter(items)

    def __aiter__(self) -> "AsyncItems":
        return self

    async def __anext__(self) -> dict[str, Any]:
        try:
            return next(self._items)
        except StopIteration:
            raise StopAsyncIteration from None


def _http_error(status_code: int, retry_after_ms: str | None = None) -> CosmosHttpResponseError:
    error = CosmosHttpResponseError(status_code=status_code, message="request failed")
    error.headers = {RETRY_AFTER_HEADER: retry_after_ms} if retry_after_ms is not None else {}
    return error


@pytest.fixture
def container() -> MagicMock:
    container = MagicMock()
    container.id = "items"
    container.create_item = AsyncMock()
    container.upsert_item = AsyncMock()
    container.delete_item = AsyncMock()
    return container


@pytest.fixture
def cosmos_store(container: MagicMock) -> CosmosDocumentStore:
    return CosmosDocumentStore(container, enable_tracing=False)


class TestQuery:
    @pytest.mark.asyncio
    async def test_query_sanitizes(
        self, cosmos_store: CosmosDocumentStore, container: MagicMock
    ) -> None:
        container.query_items = MagicMock(
            return_value=AsyncItems([{"id": "1", **METADATA}, {"id": "2", **METADATA}])
        )

        documents = await cosmos_store.query("SELECT * FROM c")

        assert documents == [{"id": "1"}, {"id": "2"}]
        container.query_items.assert_called_once_with(query="SELECT * FROM c", parameters=None)

    @pytest.mark.asyncio
    async def test_query_parameters(
        self, cosmos_store: CosmosDocumentStore, container: MagicMock
    ) -> None:
        container.query_items = MagicMock(return_value=AsyncItems([]))
        spec = QuerySpec("SELECT * FROM c WHERE c.type = @type", (QueryParameter("@type", "x"),))

        await cosmos_store.query(spec)

        container.query_items.assert_called_once_with(
            query=spec.query,
            parameters=[{"name": "@type", "value": "x"}],
        )

    @pytest.mark.asyncio
    async def test_query_error_wrapped(
        self, cosmos_store: CosmosDocumentStore, container: MagicMock
    ) -> None:
        container.query_items = MagicMock(side_effect=_http_error(400))
        with pytest.raises(DocumentStoreError, match="Query failed"):
            await cosmos_store.query("SELECT bad")


class TestSingleItemWrites:
    @pytest.mark.asyncio
    async def test_create(self, cosmos_store: CosmosDocumentStore, container: MagicMock) -> None:
        container.create_item.return_value = {"id": "1", **METADATA}
        assert await cosmos_store.create({"id": "1"}) == {"id": "1"}
        container.create_item.assert_awaited_once_with(body={"id": "1"})

    @pytest.mark.asyncio
    async def test_create_without_resource(
        self, cosmos_store: CosmosDocumentStore, container: MagicMock
    ) -> None:
        container.create_item.return_value = {}
        with pytest.raises(MissingResourceError, match="Failed to create document"):
            await cosmos_store.create({"id": "1"})

    @pytest.mark.asyncio
    async def test_upsert_without_resource(
        self, cosmos_store: CosmosDocumentStore, container: MagicMock
    ) -> None:
        container.upsert_item.return_value = None
        with pytest.raises(MissingResourceError, match="Failed to upsert document"):
            await cosmos_store.upsert({"id": "1"})

    @pytest.mark.asyncio
    async def test_create_http_error(
        self, cosmos_store: CosmosDocumentStore, container: MagicMock
    ) -> None:
        container.create_item.side_effect = _http_error(409)
        with pytest.raises(DocumentStoreError, match="Create failed"):
            await cosmos_store.create({"id": "1"})

    @pytest.mark.asyncio
    async def test_delete(self, cosmos_store: CosmosDocumentStore, container: MagicMock) -> None:
        await cosmos_store.delete("1", "tenant")
        container.delete_item.assert_awaited_once_with(item="1", partition_key="tenant")


class TestBulk:
    @pytest.mark.asyncio
    async def test_results_in_order(
        self, cosmos_store: CosmosDocumentStore, container: MagicMock
    ) -> None:
        container.create_item.return_value = {"id": "a", **METADATA}
        container.upsert_item.return_value = {"id": "b", **METADATA}

        results = await cosmos_store.bulk(
            [
                CreateOperation({"id": "a"}),
                UpsertOperation({"id": "b"}),
                DeleteOperation("c", "t1"),
            ]
        )

        assert [result.status_code for result in results] == [201, 200, 204]
        assert results[0].resource == {"id": "a"}
        container.delete_item.assert_awaited_once_with(item="c", partition_key="t1")

    @pytest.mark.asyncio
    async def test_throttled_operation_reports_hint(
        self, cosmos_store: CosmosDocumentStore, container: MagicMock
    ) -> None:
        """HTTP failures become results carrying the retry-after hint."""
        container.create_item.side_effect = [
            {"id": "a"},
            _http_error(429, retry_after_ms="1500"),
            {"id": "c"},
        ]

        results = await cosmos_store.bulk(
            [CreateOperation({"id": "a"}), CreateOperation({"id": "b"}), CreateOperation({"id": "c"})]
        )

        assert [result.status_code for result in results] == [201, 429, 201]
        assert results[1].retry_after_ms == 1500.0
        assert results[1].succeeded is False

    @pytest.mark.asyncio
    async def test_unparseable_hint_ignored(
        self, cosmos_store: CosmosDocumentStore, container: MagicMock
    ) -> None:
        container.delete_item.side_effect = _http_error(429, retry_after_ms="soon")
        results = await cosmos_store.bulk([DeleteOperation("a")])
        assert results[0].retry_after_ms is None

    @pytest.mark.asyncio
    async def test_transport_error_raises(
        self, cosmos_store: CosmosDocumentStore, container: MagicMock
    ) -> None:
        """Non-HTTP SDK errors abort the batch."""
        container.create_item.side_effect = ServiceRequestError("connection reset")
        with pytest.raises(DocumentStoreError, match="Bulk operation failed"):
            await cosmos_store.bulk([CreateOperation({"id": "a"})])

    @pytest.mark.asyncio
    async def test_tracing(self, container: MagicMock) -> None:
        tracer = MockTracer()
        store = CosmosDocumentStore(container, tracer=tracer)
        container.create_item.return_value = {"id": "a"}

        await store.bulk([CreateOperation({"id": "a"})])

        name, attributes = tracer.spans[0]
        assert name == "docmigrate.cosmos_store.bulk"
        assert attributes["db.system"] == "cosmosdb"


class TestLifecycle:
    def test_from_settings(self) -> None:
        settings = CosmosSettings(
            connection_string="AccountEndpoint=https://x/;AccountKey=a2V5;",
            database="db",
            container="items",
        )
        with patch("docmigrate.stores.cosmos.CosmosClient") as client_class:
            store = CosmosDocumentStore.from_settings(settings, enable_tracing=False)

        client_class.from_connection_string.assert_called_once_with(
            "AccountEndpoint=https://x/;AccountKey=a2V5;"
        )
        client = client_class.from_connection_string.return_value
        client.get_database_client.assert_called_once_with("db")
        client.get_database_client.return_value.get_container_client.assert_called_once_with(
            "items"
        )
        assert isinstance(store, CosmosDocumentStore)

    @pytest.mark.asyncio
    async def test_close_owned_client(self, container: MagicMock) -> None:
        client = MagicMock()
        client.close = AsyncMock()

        async with CosmosDocumentStore(container, client=client, enable_tracing=False):
            pass

        client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_without_client(self, cosmos_store: CosmosDocumentStore) -> None:
        await cosmos_store.close()
