"""
Removal of store-assigned bookkeeping fields.

Documents read back from the store carry system properties (resource id,
self link, etag, attachments link, last-modified timestamp) that are not part
of the logical document. Store clients strip them from every document they
return so that callers never see them and never write them back.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from docmigrate.types import Document

STORE_METADATA_FIELDS: tuple[str, ...] = ("_rid", "_self", "_etag", "_attachments", "_ts")


def sanitize(document: Mapping[str, Any]) -> Document:
    """
    Return a copy of ``document`` without store metadata fields.

    Args:
        document: A document as returned by the store.

    Returns:
        New dictionary containing only the logical fields.

    Example:
        >>> sanitize({"id": "1", "_etag": '"00"', "_ts": 1700000000})
        {'id': '1'}
    """
    return {key: value for key, value in document.items() if key not in STORE_METADATA_FIELDS}


def sanitize_all(documents: Iterable[Mapping[str, Any]]) -> list[Document]:
    """Sanitize every document in ``documents``."""
    return [sanitize(document) for document in documents]


def has_store_metadata(document: Mapping[str, Any]) -> bool:
    """Check whether any store metadata field is present."""
    return any(key in document for key in STORE_METADATA_FIELDS)


__all__ = [
    "STORE_METADATA_FIELDS",
    "sanitize",
    "sanitize_all",
    "has_store_metadata",
]
