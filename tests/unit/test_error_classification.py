"""
Unit tests for the error taxonomy and response code classification.
"""

from promptvault.core.exceptions import (
    CancelledError,
    ConfigurationError,
    InvalidFormatError,
    NotFoundError,
    StorageError,
    ValidationError,
    classify_error,
)


class TestErrorMessages:
    """Errors carry their code as message prefix."""

    def test_message_prefix(self):
        error = NotFoundError("Group not found")
        assert str(error) == "NOT_FOUND: Group not found"
        assert error.code == "NOT_FOUND"
        assert error.detail == "Group not found"

    def test_validation_prefix(self):
        assert str(ValidationError("Title is required")).startswith("VALIDATION_ERROR: ")


class TestClassifyError:
    """Test classify_error()."""

    def test_known_classes_map_to_their_code(self):
        assert classify_error(ValidationError("x"), "CREATE_FAILED") == "VALIDATION_ERROR"
        assert classify_error(NotFoundError("x"), "UPDATE_FAILED") == "NOT_FOUND"
        assert classify_error(CancelledError("x"), "EXPORT_FAILED") == "CANCELLED"
        assert classify_error(InvalidFormatError("x"), "IMPORT_FAILED") == "INVALID_FORMAT"

    def test_storage_errors_use_fallback(self):
        assert classify_error(StorageError("disk full"), "CREATE_FAILED") == "CREATE_FAILED"

    def test_configuration_errors_use_fallback(self):
        assert classify_error(ConfigurationError("missing"), "MIGRATION_FAILED") == "MIGRATION_FAILED"

    def test_foreign_exception_with_recognised_prefix(self):
        error = RuntimeError("NOT_FOUND: Category not found")
        assert classify_error(error, "GET_FAILED") == "NOT_FOUND"

    def test_foreign_exception_without_prefix(self):
        assert classify_error(RuntimeError("boom"), "LIST_FAILED") == "LIST_FAILED"

    def test_prefix_must_be_at_start(self):
        error = RuntimeError("wrapped: NOT_FOUND: nope")
        assert classify_error(error, "DELETE_FAILED") == "DELETE_FAILED"
