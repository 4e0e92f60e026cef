"""Tests for error types and codes."""

import pytest

from vaultgraph.core.errors import (
    ConfigError,
    EmbeddingError,
    ErrorCode,
    InternalError,
    QueryError,
    ScanError,
    StoreError,
    VaultGraphError,
)


class TestErrorCode:
    """Error code value tests."""

    @pytest.mark.parametrize(
        ("code", "expected_range"),
        [
            (ErrorCode.CONFIG_PARSE_ERROR, 2000),
            (ErrorCode.CONFIG_INVALID_VALUE, 2000),
            (ErrorCode.INDEX_NOT_LOADED, 3000),
            (ErrorCode.SCAN_FAILED, 3000),
            (ErrorCode.STORE_CORRUPT_VECTOR, 3000),
            (ErrorCode.EMBED_REQUEST_FAILED, 4000),
            (ErrorCode.INTERNAL_ERROR, 9000),
        ],
    )
    def test_given_error_code_when_checked_then_in_correct_range(
        self, code: ErrorCode, expected_range: int
    ) -> None:
        """Error codes fall within their designated numeric range."""
        # Given
        error_code = code

        # When
        value = error_code.value

        # Then
        assert expected_range <= value < expected_range + 1000


class TestVaultGraphError:
    """Base error behavior tests."""

    def test_given_error_when_to_dict_then_serializes_all_fields(self) -> None:
        """Error serializes to dict with all required fields."""
        # Given
        error = QueryError.note_not_found("notes/a.md")

        # When
        result = error.to_dict()

        # Then
        assert result == {
            "code": 3002,
            "error": "NOTE_NOT_FOUND",
            "message": "Note not found or has no embedding: notes/a.md",
            "retryable": False,
            "details": {"path": "notes/a.md"},
        }

    def test_given_error_when_str_then_includes_code_and_name(self) -> None:
        """String form carries the numeric code and the code name."""
        error = QueryError.index_not_loaded()
        assert str(error) == f"[3001] INDEX_NOT_LOADED: {error.message}"

    def test_subclasses_are_vaultgraph_errors(self) -> None:
        """Every factory returns a catchable VaultGraphError."""
        errors = [
            ConfigError.parse_error("/x.yaml", "bad"),
            QueryError.dimension_mismatch(3, 2),
            ScanError.scan_failed("/vault/sub", "Permission denied"),
            StoreError.corrupt_vector(7),
            EmbeddingError.invalid_response("empty embeddings list"),
            InternalError.unexpected("boom"),
        ]
        for error in errors:
            assert isinstance(error, VaultGraphError)
            assert isinstance(error, Exception)

    def test_given_error_when_raised_then_can_be_caught(self) -> None:
        """Factories produce raisable exceptions that keep their context."""
        with pytest.raises(ScanError) as exc_info:
            raise ScanError.scan_failed("/vault/private", "Permission denied")

        assert exc_info.value.code == ErrorCode.SCAN_FAILED
        assert exc_info.value.details["directory"] == "/vault/private"


class TestEmbeddingError:
    """Embedding service error factories."""

    def test_request_failed_is_retryable(self) -> None:
        """Transport and status failures may be retried by callers."""
        error = EmbeddingError.request_failed("http://h/api/embed", "HTTP 503", status=503)

        assert error.retryable is True
        assert error.details == {"url": "http://h/api/embed", "status": 503, "reason": "HTTP 503"}

    def test_invalid_response_is_not_retryable(self) -> None:
        """A malformed payload will not fix itself on retry."""
        error = EmbeddingError.invalid_response("count mismatch", expected=2, actual=1)

        assert error.retryable is False
        assert error.code == ErrorCode.EMBED_INVALID_RESPONSE
        assert error.details == {"expected": 2, "actual": 1}


class TestConfigError:
    """Config error factories."""

    def test_invalid_value_stringifies_value(self) -> None:
        """Offending values are stored as strings for JSON output."""
        error = ConfigError.invalid_value("limit", 500, "too large")

        assert error.details["value"] == "500"
        assert "limit" in error.message
