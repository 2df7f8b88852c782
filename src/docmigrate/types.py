"""Common type definitions for the docmigrate library."""

from collections.abc import Callable
from typing import Any

# A logical document as stored in the container
Document = dict[str, Any]

# Value of the partition key field used to route a document
PartitionKeyValue = str | int | float | bool | None

# Per-document transforms supplied by migrations
DocumentTransform = Callable[[Document], Document]
PartitionKeyExtractor = Callable[[Document], PartitionKeyValue]
RowMapper = Callable[[dict[str, Any]], Document]
