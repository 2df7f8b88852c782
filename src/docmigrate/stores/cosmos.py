"""
Azure Cosmos DB document store.

Adapter over the asynchronous Cosmos DB SDK (``azure.cosmos.aio``).

Bulk requests:
    The Python SDK offers transactional batches (single partition, all or
    nothing) but no non-transactional bulk executor. ``bulk`` therefore
    applies the operations of a batch one by one, in order, and converts
    each per-item HTTP failure into an OperationResult carrying the status
    code and the ``x-ms-retry-after-ms`` hint. The caller sees the same
    contract as a native bulk call: one result per operation, same order.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from azure.core.exceptions import AzureError
from azure.cosmos.aio import CosmosClient
from azure.cosmos.exceptions import CosmosHttpResponseError

from docmigrate.exceptions import DocumentStoreError, MissingResourceError
from docmigrate.observability import (
    ATTR_DB_CONTAINER,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_OPERATION_COUNT,
    ATTR_QUERY,
    Tracer,
    create_tracer,
)
from docmigrate.operations import (
    CreateOperation,
    DeleteOperation,
    Operation,
    OperationResult,
    UpsertOperation,
)
from docmigrate.sanitizer import sanitize, sanitize_all
from docmigrate.stores.interface import DocumentStore, QuerySpec
from docmigrate.types import Document, PartitionKeyValue

if TYPE_CHECKING:
    from azure.cosmos.aio import ContainerProxy

    from docmigrate.config import CosmosSettings

logger = logging.getLogger(__name__)

RETRY_AFTER_HEADER = "x-ms-retry-after-ms"


class CosmosDocumentStore(DocumentStore):
    """
    Document store backed by a Cosmos DB container.

    Example:
        >>> settings = CosmosSettings.from_env()
        >>> async with CosmosDocumentStore.from_settings(settings) as store:
        ...     documents = await store.query("SELECT * FROM c")

    Attributes:
        _container: Container client all calls go through.
        _client: Owning client, closed by ``close`` when this store created it.
    """

    def __init__(
        self,
        container: ContainerProxy,
        *,
        client: CosmosClient | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the store.

        Args:
            container: Container client to operate on.
            client: Client to close together with the store, if owned.
            tracer: Optional custom Tracer instance.
            enable_tracing: If True and OpenTelemetry is available, emit traces.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._container = container
        self._client = client

    @classmethod
    def from_settings(
        cls,
        settings: CosmosSettings,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> CosmosDocumentStore:
        """
        Create a store that owns its client.

        Args:
            settings: Connection string, database and container names.

        Returns:
            Store bound to the configured container.
        """
        client = CosmosClient.from_connection_string(
            settings.connection_string.get_secret_value()
        )
        container = client.get_database_client(settings.database).get_container_client(
            settings.container
        )
        logger.info(
            "Connected to Cosmos DB container",
            extra={"database": settings.database, "container": settings.container},
        )
        return cls(container, client=client, tracer=tracer, enable_tracing=enable_tracing)

    @property
    def _container_name(self) -> str:
        return str(getattr(self._container, "id", "unknown"))

    async def query(self, query: QuerySpec | str) -> list[Document]:
        spec = QuerySpec.of(query)
        with self._tracer.span(
            "docmigrate.cosmos_store.query",
            {
                ATTR_DB_SYSTEM: "cosmosdb",
                ATTR_DB_OPERATION: "query",
                ATTR_DB_CONTAINER: self._container_name,
                ATTR_QUERY: spec.query,
            },
        ):
            try:
                items = self._container.query_items(
                    query=spec.query,
                    parameters=spec.parameters_as_dicts() or None,
                )
                resources = [item async for item in items]
            except (CosmosHttpResponseError, AzureError) as e:
                raise DocumentStoreError(f"Query failed: {e}") from e

            logger.debug(
                "Query returned %d documents",
                len(resources),
                extra={"query": spec.query},
            )
            return sanitize_all(resources)

    async def create(self, document: Document) -> Document:
        try:
            resource = await self._container.create_item(body=document)
        except (CosmosHttpResponseError, AzureError) as e:
            raise DocumentStoreError(f"Create failed: {e}") from e
        if not resource:
            raise MissingResourceError("create", document)
        return sanitize(resource)

    async def upsert(self, document: Document) -> Document:
        try:
            resource = await self._container.upsert_item(body=document)
        except (CosmosHttpResponseError, AzureError) as e:
            raise DocumentStoreError(f"Upsert failed: {e}") from e
        if not resource:
            raise MissingResourceError("upsert", document)
        return sanitize(resource)

    async def delete(self, document_id: str, partition_key: PartitionKeyValue = None) -> None:
        try:
            await self._container.delete_item(item=document_id, partition_key=partition_key)
        except (CosmosHttpResponseError, AzureError) as e:
            raise DocumentStoreError(f"Delete failed: {e}") from e

    async def bulk(self, operations: Sequence[Operation]) -> list[OperationResult]:
        with self._tracer.span(
            "docmigrate.cosmos_store.bulk",
            {
                ATTR_DB_SYSTEM: "cosmosdb",
                ATTR_DB_OPERATION: "bulk",
                ATTR_DB_CONTAINER: self._container_name,
                ATTR_OPERATION_COUNT: len(operations),
            },
        ):
            results: list[OperationResult] = []
            for operation in operations:
                results.append(await self._execute(operation))
            return results

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def _execute(self, operation: Operation) -> OperationResult:
        try:
            if isinstance(operation, CreateOperation):
                resource = await self._container.create_item(body=operation.resource_body)
                return OperationResult(201, resource=sanitize(resource) if resource else None)
            if isinstance(operation, UpsertOperation):
                resource = await self._container.upsert_item(body=operation.resource_body)
                return OperationResult(200, resource=sanitize(resource) if resource else None)
            if isinstance(operation, DeleteOperation):
                await self._container.delete_item(
                    item=operation.id,
                    partition_key=operation.partition_key,
                )
                return OperationResult(204)
        except CosmosHttpResponseError as e:
            return OperationResult(
                status_code=int(e.status_code or 500),
                retry_after_ms=_retry_after_ms(e),
                error_message=e.message,
            )
        except AzureError as e:
            raise DocumentStoreError(
                f"Bulk operation failed for document {operation.document_id!r}: {e}"
            ) from e
        raise TypeError(f"Unsupported operation: {operation!r}")


def _retry_after_ms(error: CosmosHttpResponseError) -> float | None:
    headers: Any = getattr(error, "headers", None) or {}
    value = headers.get(RETRY_AFTER_HEADER)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


__all__ = ["CosmosDocumentStore", "RETRY_AFTER_HEADER"]
