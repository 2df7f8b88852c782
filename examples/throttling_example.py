"""
Throttling Example

This example shows how the bulk writer handles failed operations:
- Only the failed operations of a batch are resubmitted
- The wait honours the store's retry-after hint
- A permanent failure stops the submission without retrying

Run with: python examples/throttling_example.py
"""

import asyncio
import logging

from docmigrate import (
    BulkWriteError,
    BulkWriter,
    CreateOperation,
    InMemoryDocumentStore,
    RetryPolicy,
)


async def main():
    logging.basicConfig(level=logging.INFO, format="   %(levelname)s %(message)s")

    print("=" * 60)
    print("docmigrate Throttling Example")
    print("=" * 60)

    store = InMemoryDocumentStore()
    writer = BulkWriter(store, retry_policy=RetryPolicy(max_retries=3, max_delay_ms=1000))

    print("\n1. Two operations throttled with retry-after hints")
    store.schedule_failure("doc-7", retry_after_ms=200)
    store.schedule_failure("doc-42", retry_after_ms=150)
    operations = [CreateOperation({"id": f"doc-{index}"}) for index in range(120)]
    result = await writer.submit(operations)
    print(f"   Written: {result.operations_written}, retries: {result.retries}")
    print(f"   Batch sizes sent: {[len(call) for call in store.bulk_calls]}")

    print("\n2. A conflict is permanent and is not retried")
    try:
        await writer.submit([CreateOperation({"id": "doc-new"}), CreateOperation({"id": "doc-1"})])
    except BulkWriteError as e:
        print(f"   Failed: {e}")
        print(f"   Status codes: {e.status_codes}")

    print("\n" + "=" * 60)
    print("Example completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
