"""
Document store interface and query description.

The document store is the only shared resource of a migration run: the
engine selects candidates through ``query`` and the bulk writer commits
changes through ``bulk``.

This module provides:
- QueryParameter: A named parameter of a parameterised SQL query
- QuerySpec: Query text plus parameters
- DocumentStore: Abstract base class for document store clients
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from types import TracebackType
from typing import Any

from docmigrate.operations import Operation, OperationResult
from docmigrate.types import Document, PartitionKeyValue


@dataclass(frozen=True)
class QueryParameter:
    """
    Named query parameter.

    Attributes:
        name: Parameter name including the leading ``@`` (e.g. ``@type``).
        value: Bound value.
    """

    name: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class QuerySpec:
    """
    Selection query for a migration.

    Attributes:
        query: SQL text, e.g. ``SELECT * FROM c WHERE c.type = @type``.
        parameters: Parameters referenced by the query text.

    Example:
        >>> QuerySpec(
        ...     "SELECT * FROM c WHERE c.type = @type",
        ...     (QueryParameter("@type", "appProductsByDay"),),
        ... )
    """

    query: str
    parameters: tuple[QueryParameter, ...] = ()

    @classmethod
    def of(cls, query: QuerySpec | str) -> QuerySpec:
        """Coerce raw query text into a QuerySpec."""
        if isinstance(query, QuerySpec):
            return query
        return cls(query=query)

    def parameters_as_dicts(self) -> list[dict[str, Any]]:
        return [parameter.to_dict() for parameter in self.parameters]

    def __str__(self) -> str:
        return self.query


class DocumentStore(ABC):
    """
    Abstract base class for document store clients.

    All documents returned by a store are sanitized: store-assigned
    bookkeeping fields are stripped before they reach the caller.

    Implementations:
    - InMemoryDocumentStore: For testing and local rehearsal
    - CosmosDocumentStore: Azure Cosmos DB container
    """

    @abstractmethod
    async def query(self, query: QuerySpec | str) -> list[Document]:
        """
        Run a query and return every matching document.

        The result is fully materialised before it is returned.

        Args:
            query: Query to run.

        Returns:
            List of sanitized documents.

        Raises:
            DocumentStoreError: If the query cannot be executed.
        """
        pass

    @abstractmethod
    async def create(self, document: Document) -> Document:
        """
        Create a single document.

        Returns:
            The sanitized stored document.

        Raises:
            MissingResourceError: If the store returned no resource.
        """
        pass

    @abstractmethod
    async def upsert(self, document: Document) -> Document:
        """
        Create or replace a single document.

        Returns:
            The sanitized stored document.

        Raises:
            MissingResourceError: If the store returned no resource.
        """
        pass

    @abstractmethod
    async def delete(self, document_id: str, partition_key: PartitionKeyValue = None) -> None:
        """
        Delete a single document.

        Args:
            document_id: ID of the document.
            partition_key: Partition key value of the document.
        """
        pass

    @abstractmethod
    async def bulk(self, operations: Sequence[Operation]) -> list[OperationResult]:
        """
        Submit an ordered batch of operations.

        Per-operation failures are reported as results, never raised.

        Args:
            operations: Operations to apply, in order.

        Returns:
            One OperationResult per operation, in the same order.
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the store."""
        return None

    async def __aenter__(self) -> DocumentStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


__all__ = [
    "QueryParameter",
    "QuerySpec",
    "DocumentStore",
]
