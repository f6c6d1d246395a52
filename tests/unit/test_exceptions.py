"""Unit tests for exception hierarchy."""

import pytest

from bidflow.core.exceptions import (
    BaseError,
    ClientError,
    ConfigurationError,
    EncodingError,
    ErrorCategory,
    ExternalServiceError,
    PayloadTooLargeError,
    PollingTimeout,
    PollingTransientError,
    SubmissionError,
    ValidationError,
    VerificationError,
)


class TestBaseError:
    """Tests for BaseError class."""

    def test_base_error_creation(self):
        """Test BaseError can be created with all parameters."""
        error = BaseError(
            message="Test error",
            error_code="TEST_ERROR",
            category=ErrorCategory.CLIENT_ERROR,
            http_status=400,
            details={"detail": "Additional info"},
            retryable=False,
        )

        assert str(error) == "Test error"
        assert error.error_code == "TEST_ERROR"
        assert error.category == ErrorCategory.CLIENT_ERROR
        assert error.details == {"detail": "Additional info"}
        assert error.retryable is False

    def test_base_error_to_dict(self):
        """Test BaseError converts to RFC 7807 format."""
        error = BaseError(
            message="Test error",
            error_code="TEST_ERROR",
            category=ErrorCategory.SERVER_ERROR,
            http_status=500,
            details={"detail": "Additional context"},
        )

        result = error.to_dict()

        assert result["type"] == "/errors/TEST_ERROR"
        assert result["title"] == "Test error"
        assert result["status"] == 500
        assert result["category"] == "server_error"
        assert result["detail"] == "Additional context"


class TestClientErrors:
    """Tests for caller-side errors."""

    def test_client_error_never_retryable(self):
        """Test ClientError is not retryable."""
        error = ClientError(message="Bad input", error_code="BAD")
        assert error.retryable is False
        assert error.http_status == 400

    def test_validation_error_collects_messages(self):
        """Test ValidationError keeps individual file messages."""
        error = ValidationError(
            message="2 files were rejected.",
            field="documents",
            errors=["a is too large", "b is not supported"],
        )

        assert error.http_status == 422
        assert error.category == ErrorCategory.VALIDATION
        assert error.details["field"] == "documents"
        assert error.errors == ["a is too large", "b is not supported"]

    def test_validation_error_single_message(self):
        """Test errors falls back to the message itself."""
        error = ValidationError(message="Too many files", field="documents")
        assert error.errors == ["Too many files"]

    def test_payload_too_large_message(self):
        """Test PayloadTooLargeError cites the estimate and limit."""
        error = PayloadTooLargeError(estimated_size_mb=15.96, max_size_mb=5)

        assert isinstance(error, ValidationError)
        assert error.error_code == "PAYLOAD_TOO_LARGE"
        assert error.http_status == 413
        assert "~16.0MB" in error.message
        assert "5MB limit" in error.message

    def test_encoding_error(self):
        """Test EncodingError names the file."""
        error = EncodingError("bid.pdf", "Permission denied")
        assert error.filename == "bid.pdf"
        assert "bid.pdf" in error.message
        assert error.details["reason"] == "Permission denied"

    def test_configuration_error(self):
        """Test ConfigurationError records the setting."""
        error = ConfigurationError("Missing key", setting="WORKFLOW_API_KEY")
        assert error.category == ErrorCategory.CONFIGURATION
        assert error.details["setting"] == "WORKFLOW_API_KEY"


class TestExternalServiceErrors:
    """Tests for remote-service errors."""

    def test_submission_error_carries_remote_status(self):
        """Test SubmissionError keeps remote status and message."""
        error = SubmissionError(401, "Invalid API key")

        assert isinstance(error, ExternalServiceError)
        assert error.status_code == 401
        assert error.http_status == 401
        assert error.message == "Invalid API key"
        assert error.retryable is False
        assert error.details["service"] == "workflow"

    def test_submission_error_without_response(self):
        """Test status 0 maps to 502 for reporting."""
        error = SubmissionError(0, "unreachable")
        assert error.status_code == 0
        assert error.http_status == 502

    def test_polling_transient_is_retryable(self):
        """Test PollingTransientError is marked retryable."""
        error = PollingTransientError("run-1", "timeout")
        assert error.retryable is True
        assert error.job_id == "run-1"

    def test_polling_timeout_distinct_from_failure(self):
        """Test PollingTimeout suggests checking back later."""
        error = PollingTimeout("run-1", 600)

        assert error.error_code == "POLLING_TIMEOUT"
        assert error.http_status == 504
        assert "600s" in error.message
        assert "Check back later" in error.message

    @pytest.mark.parametrize("status", [0, 400, 429])
    def test_verification_error(self, status):
        """Test VerificationError keeps the user-facing message."""
        error = VerificationError("Invalid verification code", status)
        assert error.message == "Invalid verification code"
        assert error.status_code == status
        assert error.details["service"] == "verification"
