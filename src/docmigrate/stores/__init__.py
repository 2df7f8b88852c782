"""Document store implementations for the docmigrate library."""

from docmigrate.stores.cosmos import CosmosDocumentStore
from docmigrate.stores.in_memory import InMemoryDocumentStore
from docmigrate.stores.interface import DocumentStore, QueryParameter, QuerySpec

__all__ = [
    # Query description
    "QueryParameter",
    "QuerySpec",
    # Abstract base classes
    "DocumentStore",
    # Concrete implementations
    "InMemoryDocumentStore",
    "CosmosDocumentStore",
]
