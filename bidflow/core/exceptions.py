"""Exception hierarchy for bidflow.

Every error raised by the package inherits from BaseError and carries
structured information compatible with RFC 7807 Problem Details, so the
service layer and the CLI can turn any failure into an explicit result.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Error categories for classification and monitoring."""

    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    EXTERNAL_SERVICE = "external_service"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"


class BaseError(Exception):
    """Base exception for all bidflow errors.

    Attributes:
        message: Human-readable error message
        error_code: Application-specific error code
        category: Error category for classification
        http_status: Related HTTP status (remote status for external errors)
        details: Additional context (dict)
        retryable: Whether the operation can be retried
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        category: ErrorCategory,
        http_status: int,
        details: Optional[dict[str, Any]] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.category = category
        self.http_status = http_status
        self.details = details or {}
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to RFC 7807 Problem Details format."""
        return {
            "type": f"/errors/{self.error_code}",
            "title": self.message,
            "status": self.http_status,
            "code": self.error_code,
            "detail": self.details.get("detail"),
            "category": self.category.value,
            "retryable": self.retryable,
        }


class ClientError(BaseError):
    """Base for errors caused by the caller's input. Never retryable."""

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=kwargs.pop("category", ErrorCategory.CLIENT_ERROR),
            http_status=kwargs.pop("http_status", 400),
            retryable=False,
            **kwargs,
        )


class ValidationError(ClientError):
    """A file or batch failed type, size or count rules.

    Args:
        message: Validation error description
        field: Name of the offending field or file
        errors: Individual messages when several files failed
    """

    def __init__(self, message: str, field: str, **kwargs):
        additional_details = kwargs.pop("details", {})
        additional_details["field"] = field
        errors = kwargs.pop("errors", None)
        if errors:
            additional_details["errors"] = list(errors)
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            category=ErrorCategory.VALIDATION,
            http_status=422,
            details=additional_details,
            **kwargs,
        )

    @property
    def errors(self) -> list[str]:
        return self.details.get("errors", [self.message])


class PayloadTooLargeError(ValidationError):
    """The estimated transport size of a batch exceeds the ceiling."""

    def __init__(self, estimated_size_mb: float, max_size_mb: int):
        super().__init__(
            message=(
                f"Combined file size (~{estimated_size_mb:.1f}MB) exceeds the "
                f"{max_size_mb}MB limit. Please upload smaller files."
            ),
            field="documents",
            details={
                "estimated_size_mb": estimated_size_mb,
                "max_size_mb": max_size_mb,
            },
        )
        self.error_code = "PAYLOAD_TOO_LARGE"
        self.http_status = 413


class EncodingError(ClientError):
    """A file could not be read for encoding.

    Args:
        filename: Name of the file that failed
        reason: Underlying failure description
    """

    def __init__(self, filename: str, reason: str):
        super().__init__(
            message=f'Could not read file "{filename}": {reason}',
            error_code="ENCODING_ERROR",
            http_status=400,
            details={"filename": filename, "reason": reason},
        )
        self.filename = filename


class ConfigurationError(ClientError):
    """Required configuration is missing or malformed."""

    def __init__(self, message: str, setting: str):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            category=ErrorCategory.CONFIGURATION,
            http_status=500,
            details={"setting": setting},
        )


class ExternalServiceError(BaseError):
    """Base for failures reported by, or while talking to, a remote service.

    Args:
        service_name: Name of the external service
        message: Error description
        status_code: Remote HTTP status, 0 when no response was received
    """

    def __init__(
        self,
        service_name: str,
        message: str,
        error_code: str,
        status_code: int = 0,
        **kwargs,
    ):
        additional_details = kwargs.pop("details", {})
        additional_details.update({"service": service_name, "status_code": status_code})
        super().__init__(
            message=message,
            error_code=error_code,
            category=ErrorCategory.EXTERNAL_SERVICE,
            http_status=status_code or 502,
            details=additional_details,
            retryable=kwargs.pop("retryable", False),
            **kwargs,
        )
        self.service_name = service_name
        self.status_code = status_code


class SubmissionError(ExternalServiceError):
    """The workflow run endpoint rejected the job or could not be reached.

    Not retried automatically: resubmitting may duplicate downstream work.
    """

    def __init__(self, status_code: int, message: str, **kwargs):
        super().__init__(
            service_name="workflow",
            message=message,
            error_code="SUBMISSION_FAILED",
            status_code=status_code,
            **kwargs,
        )


class PollingTransientError(ExternalServiceError):
    """A single status poll was inconclusive (network hiccup, 5xx)."""

    def __init__(self, job_id: str, message: str, status_code: int = 0):
        super().__init__(
            service_name="workflow",
            message=message,
            error_code="POLLING_TRANSIENT",
            status_code=status_code,
            retryable=True,
            details={"job_id": job_id},
        )
        self.job_id = job_id


class PollingTimeout(ExternalServiceError):
    """The job did not reach a terminal state before the polling ceiling."""

    def __init__(self, job_id: str, timeout_seconds: float):
        super().__init__(
            service_name="workflow",
            message=(
                f"Analysis is still running after {timeout_seconds:.0f}s. "
                "Check back later for results."
            ),
            error_code="POLLING_TIMEOUT",
            retryable=True,
            details={"job_id": job_id, "timeout_seconds": timeout_seconds},
        )
        self.http_status = 504
        self.job_id = job_id


class VerificationError(ExternalServiceError):
    """Code issuance or verification failed (bad code, expired, network)."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(
            service_name="verification",
            message=message,
            error_code="VERIFICATION_FAILED",
            status_code=status_code,
        )
