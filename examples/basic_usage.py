"""
Basic Usage Example

This example rehearses the three migration variants against the in-memory
store:
- Create documents from a literal list
- Update them with a transform guarded by a rollback check
- Delete a subset selected by query

Run with: python examples/basic_usage.py
"""

import asyncio
import logging

from docmigrate import (
    AutoConfirmation,
    CreateMigration,
    DeleteMigration,
    InMemoryDocumentStore,
    LiteralSource,
    MigrationEngine,
    QueryParameter,
    QuerySpec,
    UpdateMigration,
)


def add_region(document: dict) -> dict:
    """Move the legacy ``country`` field under ``region``."""
    document["region"] = {"country": document.pop("country")}
    return document


def remove_region(document: dict) -> dict:
    document["country"] = document.pop("region")["country"]
    return document


async def main():
    logging.basicConfig(level=logging.WARNING)

    print("=" * 60)
    print("docmigrate Basic Usage Example")
    print("=" * 60)

    store = InMemoryDocumentStore(partition_key_path="/tenantId")
    engine = MigrationEngine(store, AutoConfirmation())

    # Create
    print("\n1. Creating 250 documents")
    documents = [
        {
            "id": f"product-{index}",
            "tenantId": f"tenant-{index % 3}",
            "type": "appProductsByDay" if index % 5 else "order",
            "country": "NL",
        }
        for index in range(250)
    ]
    outcome = await engine.run(CreateMigration(source=LiteralSource(documents)))
    print(f"   Status: {outcome.status.value}")
    print(f"   Batches: {outcome.write_result.batches_total}")

    # Update
    print("\n2. Updating orders with a validated rollback")
    outcome = await engine.run(
        UpdateMigration(
            query=QuerySpec(
                "SELECT * FROM c WHERE c.type = @type",
                (QueryParameter("@type", "order"),),
            ),
            transform=add_region,
            rollback=remove_region,
        )
    )
    print(f"   Updated: {outcome.operations_submitted} documents")
    print(f"   Sample: {store.documents[0]}")

    # Delete
    print("\n3. Deleting appProductsByDay documents")
    outcome = await engine.run(
        DeleteMigration(
            query="SELECT * FROM c WHERE c.type = 'appProductsByDay'",
            partition_key=lambda document: document["tenantId"],
        )
    )
    print(f"   Deleted: {outcome.operations_submitted} documents")
    print(f"   Remaining: {len(store.documents)} documents")

    print("\n" + "=" * 60)
    print("Example completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
