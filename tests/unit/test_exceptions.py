"""
Unit tests for the exception hierarchy.
"""

import pytest

from docmigrate.exceptions import (
    BulkWriteError,
    ConfigurationError,
    DocMigrateError,
    DocumentSourceError,
    DocumentStoreError,
    InvalidDocumentError,
    MigrationCancelledError,
    MigrationError,
    MissingResourceError,
    RollbackValidationError,
    SelectionError,
)
from docmigrate.operations import DeleteOperation, OperationResult, UpsertOperation


class TestHierarchy:
    """Every library error derives from DocMigrateError."""

    @pytest.mark.parametrize(
        "error_class",
        [
            ConfigurationError,
            DocumentSourceError,
            DocumentStoreError,
            MissingResourceError,
            MigrationError,
            SelectionError,
            RollbackValidationError,
            InvalidDocumentError,
            BulkWriteError,
            MigrationCancelledError,
        ],
    )
    def test_subclass_of_base(self, error_class: type) -> None:
        assert issubclass(error_class, DocMigrateError)

    def test_missing_resource_is_store_error(self) -> None:
        assert issubclass(MissingResourceError, DocumentStoreError)


class TestConfigurationError:
    def test_missing_names(self) -> None:
        error = ConfigurationError("missing", missing=["COSMOSDB_DATABASE"])
        assert error.missing == ["COSMOSDB_DATABASE"]

    def test_missing_defaults_to_empty(self) -> None:
        assert ConfigurationError("bad").missing == []


class TestMissingResourceError:
    def test_message(self) -> None:
        """Message names the action and the document id."""
        error = MissingResourceError("create", {"id": "doc-1"})
        assert str(error) == "Failed to create document 'doc-1'"
        assert error.action == "create"


class TestMigrationError:
    def test_str_with_operation_type(self) -> None:
        error = MigrationError("boom", operation_type="DELETE")
        assert str(error) == "boom (operation_type=DELETE)"

    def test_str_without_operation_type(self) -> None:
        assert str(MigrationError("boom")) == "boom"

    def test_to_dict_is_safe_as_log_extra(self) -> None:
        """Keys do not collide with LogRecord attributes."""
        data = MigrationError("boom").to_dict()
        assert data == {
            "error_type": "MigrationError",
            "error_message": "boom",
            "operation_type": None,
        }
        assert "message" not in data


class TestSelectionError:
    def test_carries_query(self) -> None:
        error = SelectionError("SELECT * FROM c", "syntax error", operation_type="UPDATE")
        assert error.query == "SELECT * FROM c"
        assert error.original_error == "syntax error"
        assert error.to_dict()["query"] == "SELECT * FROM c"
        assert "syntax error" in str(error)


class TestRollbackValidationError:
    def test_lists_differing_fields(self) -> None:
        error = RollbackValidationError(
            "1",
            {"id": "1", "count": 1, "name": "a"},
            {"id": "1", "count": 2, "name": "a"},
        )
        assert error.operation_type == "UPDATE"
        assert "differing fields: count" in str(error)
        assert error.to_dict()["document_id"] == "1"

    def test_non_document_result(self) -> None:
        """A rollback that produced no document still formats."""
        error = RollbackValidationError("1", {"id": "1"}, None)
        assert "differing fields" not in str(error)


class TestBulkWriteError:
    def test_status_codes_and_dict(self) -> None:
        failures = [
            (UpsertOperation({"id": "a"}), OperationResult(409, error_message="conflict")),
            (DeleteOperation("b"), OperationResult(400)),
        ]
        error = BulkWriteError(
            "failed",
            batch_index=2,
            failures=failures,
            attempts=1,
            operations_written=230,
        )
        assert error.status_codes == [409, 400]
        data = error.to_dict()
        assert data["batch_index"] == 2
        assert data["operations_written"] == 230
        assert data["failures"][0] == {"document_id": "a", "status_code": 409, "error": "conflict"}


class TestMigrationCancelledError:
    def test_message_with_reason(self) -> None:
        error = MigrationCancelledError(batches_committed=3, operations_written=300, reason="SIGINT")
        assert str(error) == "Migration cancelled after 3 batches (300 operations written): SIGINT"
        assert error.batches_committed == 3

    def test_message_without_reason(self) -> None:
        error = MigrationCancelledError(batches_committed=0, operations_written=0)
        assert str(error).endswith("(0 operations written)")
