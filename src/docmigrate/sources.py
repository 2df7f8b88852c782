"""
Input sources for Create migrations.

A source produces the complete list of documents to create. File-based
sources stream their input record by record, applying an optional mapping
function, and are fully drained before the Create pipeline continues.

This module provides:
- InputType: Kind of input a Create migration reads
- DocumentSource: Protocol implemented by every source
- LiteralSource: Documents given in memory
- CsvFileSource: Delimited-text file, one document per row
- JsonFileSource: JSON array file, or JSON Lines for ``.jsonl``
"""

from __future__ import annotations

import asyncio
import copy
import csv
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import Enum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from docmigrate.exceptions import DocumentSourceError
from docmigrate.types import Document, RowMapper

logger = logging.getLogger(__name__)


class InputType(Enum):
    """Kind of input a Create migration reads."""

    JSON = "JSON"
    CSV = "CSV"


@runtime_checkable
class DocumentSource(Protocol):
    """Protocol for producers of documents to create."""

    async def read(self) -> list[Document]:
        """
        Read every document from the source.

        Returns:
            Documents in source order.

        Raises:
            DocumentSourceError: If the source cannot be read.
        """
        ...


class LiteralSource:
    """
    Documents supplied directly in memory.

    Example:
        >>> source = LiteralSource([{"id": "1", "name": "first"}])
        >>> await source.read()
        [{'id': '1', 'name': 'first'}]
    """

    input_type = InputType.JSON

    def __init__(self, documents: Iterable[Document]) -> None:
        self._documents = [copy.deepcopy(document) for document in documents]

    async def read(self) -> list[Document]:
        return [copy.deepcopy(document) for document in self._documents]


class _FileSource(ABC):
    """Shared path handling for file-based sources."""

    def __init__(
        self,
        path: str | Path,
        *,
        map_row: RowMapper | None = None,
        encoding: str = "utf-8",
        base_dir: str | Path | None = None,
    ) -> None:
        self._path = Path(path)
        self._map_row = map_row
        self._encoding = encoding
        self._base_dir = Path(base_dir) if base_dir is not None else None

    @property
    def path(self) -> Path:
        """Absolute path of the input file."""
        if self._path.is_absolute():
            return self._path
        base = self._base_dir if self._base_dir is not None else Path.cwd()
        return (base / self._path).resolve()

    def _map(self, record: dict[str, Any]) -> Document:
        if self._map_row is None:
            return record
        return self._map_row(record)

    async def read(self) -> list[Document]:
        path = self.path
        if not path.is_file():
            raise DocumentSourceError(f"Input file not found: {path}")
        try:
            documents = await asyncio.to_thread(self._read_file, path)
        except (OSError, UnicodeDecodeError, csv.Error, json.JSONDecodeError) as e:
            raise DocumentSourceError(f"Failed to read {path}: {e}") from e
        logger.info(
            "Read %d documents from %s",
            len(documents),
            path,
            extra={"path": str(path), "document_count": len(documents)},
        )
        return documents

    @abstractmethod
    def _read_file(self, path: Path) -> list[Document]:
        """Parse the whole file into mapped documents. Runs in a worker thread."""


class CsvFileSource(_FileSource):
    """
    Delimited-text file with a header row.

    Each row becomes a document of column name to string value, passed
    through ``map_row`` when given (to convert types or build ids).

    Example:
        >>> source = CsvFileSource(
        ...     "products.csv",
        ...     map_row=lambda row: {**row, "price": float(row["price"])},
        ... )
    """

    input_type = InputType.CSV

    def __init__(
        self,
        path: str | Path,
        *,
        map_row: RowMapper | None = None,
        delimiter: str = ",",
        encoding: str = "utf-8",
        base_dir: str | Path | None = None,
    ) -> None:
        super().__init__(path, map_row=map_row, encoding=encoding, base_dir=base_dir)
        self._delimiter = delimiter

    def _read_file(self, path: Path) -> list[Document]:
        with path.open(newline="", encoding=self._encoding) as handle:
            reader = csv.DictReader(handle, delimiter=self._delimiter)
            return [self._map(dict(row)) for row in reader]


class JsonFileSource(_FileSource):
    """
    JSON file holding an array of documents, or JSON Lines for ``.jsonl``.
    """

    input_type = InputType.JSON

    def _read_file(self, path: Path) -> list[Document]:
        with path.open(encoding=self._encoding) as handle:
            if path.suffix.lower() == ".jsonl":
                records = [json.loads(line) for line in handle if line.strip()]
            else:
                records = json.load(handle)

        if not isinstance(records, list):
            raise DocumentSourceError(f"Expected a JSON array in {path}")
        documents = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise DocumentSourceError(f"Record {index} in {path} is not an object")
            documents.append(self._map(record))
        return documents


__all__ = [
    "InputType",
    "DocumentSource",
    "LiteralSource",
    "CsvFileSource",
    "JsonFileSource",
]
