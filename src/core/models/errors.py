"""Custom exception classes for the photo intake service."""

from typing import Any

from core.utils.constants import (
    ERROR_CODE_DYNAMODB,
    ERROR_CODE_IMAGE_DELETE_FAILED,
    ERROR_CODE_IMAGE_DUPLICATE_IMAGE,
    ERROR_CODE_IMAGE_UPLOAD_FAILED,
    ERROR_CODE_INVALID_PAGINATION,
    ERROR_CODE_METADATA_OPERATION_FAILED,
    ERROR_CODE_PROCESSING_FAILED,
    ERROR_CODE_RATE_LIMITED,
    ERROR_CODE_RESOURCE_NOT_FOUND,
    ERROR_CODE_S3,
    ERROR_CODE_UNAUTHORIZED,
    ERROR_CODE_UNSUPPORTED_ENCODING,
    ERROR_CODE_UPLOAD_SESSION,
)


class ImageServiceError(Exception):
    """
    Base exception for all photo intake errors.

    All custom errors must inherit from this class.
    Callers must explicitly provide a message and error code.
    Optional contextual information can be supplied via `details`.
    """

    message: str
    error_code: str
    details: dict[str, Any]

    def __init__(
        self,
        *,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}

        super().__init__(self.message)


class PaginationError(ImageServiceError):
    """Raised when page or limit parameters are out of range."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_INVALID_PAGINATION,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class UnsupportedEncodingError(ImageServiceError):
    """Raised when the normalizer cannot decode the source bytes.

    Fatal for the upload; never retried.
    """

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_UNSUPPORTED_ENCODING,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class ProcessingError(ImageServiceError):
    """Raised by analyzers when image bytes are malformed."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_PROCESSING_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class NotFoundError(ImageServiceError):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_RESOURCE_NOT_FOUND,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class DuplicateImageError(ImageServiceError):
    """Raised when a duplicate image is detected."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_IMAGE_DUPLICATE_IMAGE,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class UploadSessionError(ImageServiceError):
    """Raised for unknown, expired, closed or inconsistent upload sessions."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_UPLOAD_SESSION,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class UnauthorizedError(ImageServiceError):
    """Raised when the identity collaborator did not authorize the caller."""

    def __init__(
        self,
        *,
        message: str = "Authentication required",
        error_code: str = ERROR_CODE_UNAUTHORIZED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class RateLimitExceededError(ImageServiceError):
    """Raised when a caller exceeds the upload rate limit."""

    def __init__(
        self,
        *,
        message: str = "Too many upload requests. Please try again later.",
        error_code: str = ERROR_CODE_RATE_LIMITED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class MetadataOperationFailedError(ImageServiceError):
    """Raised when an image metadata operation fails."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_METADATA_OPERATION_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class DynamoDBError(MetadataOperationFailedError):
    """Raised when a DynamoDB operation fails."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_DYNAMODB,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class S3Error(ImageServiceError):
    """Raised when an image storage operation fails."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_S3,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class ImageUploadFailedError(S3Error):
    """Raised when writing image bytes to blob storage fails."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_IMAGE_UPLOAD_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class ImageDeletionFailedError(S3Error):
    """Raised when deleting image bytes from blob storage fails."""

    def __init__(
        self,
        *,
        message: str,
        error_code: str = ERROR_CODE_IMAGE_DELETE_FAILED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)
