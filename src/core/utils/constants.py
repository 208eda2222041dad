"""Global constants used throughout the application.

This module centralizes all magic numbers, string literals, and configuration
values that are used across multiple modules. Using constants prevents hardcoding
values and makes it easy to change them globally.
"""

from typing import Final

# ============================================================================
# Error Codes
# ============================================================================


# Input Errors
ERROR_CODE_VALIDATION_FAILED = "VALIDATION_FAILED"
ERROR_CODE_INVALID_PAGINATION = "INVALID_PAGINATION"

# Pipeline Errors
ERROR_CODE_IMAGE_VALIDATION_FAILED = "IMAGE_VALIDATION_FAILED"
ERROR_CODE_UNSUPPORTED_ENCODING = "UNSUPPORTED_ENCODING"
ERROR_CODE_PROCESSING_FAILED = "PROCESSING_FAILED"
ERROR_CODE_IMAGE_DUPLICATE_IMAGE = "DUPLICATE_IMAGE_ERROR"

# Session Errors
ERROR_CODE_UPLOAD_SESSION = "UPLOAD_SESSION_ERROR"
ERROR_CODE_UPLOAD_SESSION_EXPIRED = "UPLOAD_SESSION_EXPIRED"
ERROR_CODE_UPLOAD_SESSION_CLOSED = "UPLOAD_SESSION_CLOSED"
ERROR_CODE_UPLOAD_SESSION_MISMATCH = "UPLOAD_SESSION_MISMATCH"
ERROR_CODE_UPLOAD_SESSION_LOST = "UPLOAD_SESSION_LOST"

# Access Errors
ERROR_CODE_UNAUTHORIZED = "UNAUTHORIZED"
ERROR_CODE_RATE_LIMITED = "RATE_LIMITED"

# Not Found Errors
ERROR_CODE_RESOURCE_NOT_FOUND = "NOT_FOUND"
ERROR_CODE_IMAGE_NOT_FOUND = "IMAGE_NOT_FOUND"

# Storage Errors
ERROR_CODE_S3 = "S3_ERROR"
ERROR_CODE_IMAGE_UPLOAD_FAILED = "IMAGE_UPLOAD_FAILED"
ERROR_CODE_IMAGE_DELETE_FAILED = "IMAGE_DELETE_FAILED"
ERROR_CODE_IMAGE_PRESIGNED_URL_FAILED = "PRESIGNED_URL_FAILED"
ERROR_CODE_CHUNK_STORE_FAILED = "CHUNK_STORE_FAILED"

# Metadata / DynamoDB Errors
ERROR_CODE_DYNAMODB = "DYNAMODB_ERROR"
ERROR_CODE_METADATA_OPERATION_FAILED = "METADATA_OPERATION_FAILED"
ERROR_CODE_METADATA_CREATE_FAILED = "METADATA_CREATE_FAILED"
ERROR_CODE_METADATA_FETCH_FAILED = "METADATA_FETCH_FAILED"
ERROR_CODE_METADATA_DELETE_FAILED = "METADATA_DELETE_FAILED"
ERROR_CODE_METADATA_LIST_FAILED = "METADATA_LIST_FAILED"
ERROR_CODE_METADATA_DUPLICATE_CHECK_FAILED = "METADATA_DUPLICATE_CHECK_FAILED"
ERROR_CODE_SESSION_CREATE_FAILED = "SESSION_CREATE_FAILED"
ERROR_CODE_SESSION_FETCH_FAILED = "SESSION_FETCH_FAILED"
ERROR_CODE_SESSION_UPDATE_FAILED = "SESSION_UPDATE_FAILED"

# Internal / Unexpected
ERROR_CODE_INTERNAL_ERROR = "INTERNAL_ERROR"


# ============================================================================
# Public Error Messages (response contract)
# ============================================================================

MESSAGE_VALIDATION_FAILED = "Image validation failed"
MESSAGE_DUPLICATE_IMAGE = "Duplicate image detected"


# ============================================================================
# File Upload Constraints
# ============================================================================

# Hard request guard; the configurable quality limit lives in PipelineSettings.
MAX_REQUEST_FILE_SIZE = 50 * 1024 * 1024  # 50MB in bytes

MIME_TYPE_EXTENSION_MAP: Final[dict[str, tuple[str, ...]]] = {
    "image/jpeg": ("jpg", "jpeg"),
    "image/jpg": ("jpg", "jpeg"),
    "image/png": ("png",),
    "image/heic": ("heic",),
    "image/heif": ("heif", "heic"),
}

ALLOWED_MIME_TYPES: Final[frozenset[str]] = frozenset(MIME_TYPE_EXTENSION_MAP.keys())

HEIC_MIME_TYPES: Final[frozenset[str]] = frozenset({"image/heic", "image/heif"})
HEIC_EXTENSIONS: Final[frozenset[str]] = frozenset({"heic", "heif"})

CANONICAL_MIME_TYPE = "image/jpeg"

# Formats reported by header inspection that the validator accepts.
ALLOWED_IMAGE_FORMATS: Final[tuple[str, ...]] = ("jpeg", "jpg", "png", "heic")

MAX_FILENAME_LENGTH = 255


# ============================================================================
# Validation Defaults (overridable through the environment)
# ============================================================================

DEFAULT_MIN_IMAGE_WIDTH = 300
DEFAULT_MIN_IMAGE_HEIGHT = 300
DEFAULT_MAX_IMAGE_WIDTH = 4000
DEFAULT_MAX_IMAGE_HEIGHT = 4000
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB in bytes
DEFAULT_BLUR_THRESHOLD = 100.0
DEFAULT_MIN_FACE_AREA_RATIO = 0.10
DEFAULT_HEIC_JPEG_QUALITY = 90
DEFAULT_DOWNLOAD_URL_TTL_SECONDS = 3600
DEFAULT_UPLOAD_SESSION_TTL_HOURS = 24
DEFAULT_UPLOAD_RATE_LIMIT = 10
DEFAULT_UPLOAD_RATE_WINDOW_SECONDS = 60

# DetectFaces limit for images sent inline as bytes
REKOGNITION_MAX_IMAGE_BYTES = 5 * 1024 * 1024
REKOGNITION_JPEG_QUALITY = 85


# ============================================================================
# Chunked Upload Constraints
# ============================================================================

MAX_TOTAL_CHUNKS = 10_000

# Parts live under chunks/<session_id>/<index> until the session terminates;
# a bucket lifecycle rule on the prefix expires parts of abandoned sessions.
CHUNK_KEY_PREFIX = "chunks"
CHUNK_CONTENT_TYPE = "application/octet-stream"


# ============================================================================
# Image Lifecycle
# ============================================================================

IMAGE_STATUS_VALIDATED = "VALIDATED"
IMAGE_KEY_PREFIX = "images"


# ============================================================================
# Pagination Constraints
# ============================================================================

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MIN_LIMIT = 1
MAX_LIMIT = 100


# ============================================================================
# DynamoDB Index Names
# ============================================================================

FILE_HASH_INDEX = "file-hash-index"
HASH_GUARD_PREFIX = "hash#"
STATUS_CREATED_INDEX = "status-created-index"


# ============================================================================
# Observability
# ============================================================================

METRICS_NAMESPACE = "PhotoIntake"
SERVICE_NAME = "photo-intake-service"

HEALTH_STATUS_OK = "OK"
HEALTH_STATUS_DEGRADED = "DEGRADED"
DEFAULT_ENVIRONMENT = "dev"


# ============================================================================
# API Gateway Configuration
# ============================================================================

CORS_ORIGIN = "*"
CORS_METHODS = "GET,POST,PUT,DELETE,OPTIONS"
CORS_HEADERS = "Content-Type,Authorization,X-Api-Key"
EXPOSE_HEADERS = "Content-Type,Content-Length"
DEFAULT_CONTENT_TYPE = "application/json"

# ============================================================================
# Environment Variable Names
# ============================================================================

ENV_AWS_ENDPOINT_URL = "AWS_ENDPOINT_URL"
ENV_AWS_REGION = "AWS_REGION"
ENV_IMAGE_S3_BUCKET_NAME = "IMAGE_S3_BUCKET_NAME"
ENV_IMAGE_METADATA_TABLE_NAME = "IMAGE_METADATA_TABLE_NAME"
ENV_UPLOAD_SESSION_TABLE_NAME = "UPLOAD_SESSION_TABLE_NAME"
ENV_ENVIRONMENT = "ENVIRONMENT"

ENV_MIN_IMAGE_WIDTH = "MIN_IMAGE_WIDTH"
ENV_MIN_IMAGE_HEIGHT = "MIN_IMAGE_HEIGHT"
ENV_MAX_IMAGE_WIDTH = "MAX_IMAGE_WIDTH"
ENV_MAX_IMAGE_HEIGHT = "MAX_IMAGE_HEIGHT"
ENV_MAX_FILE_SIZE = "MAX_FILE_SIZE"
ENV_BLUR_THRESHOLD = "BLUR_THRESHOLD"
ENV_MIN_FACE_AREA_RATIO = "MIN_FACE_AREA_RATIO"
ENV_HEIC_JPEG_QUALITY = "HEIC_JPEG_QUALITY"
ENV_DOWNLOAD_URL_TTL_SECONDS = "DOWNLOAD_URL_TTL_SECONDS"
ENV_UPLOAD_SESSION_TTL_HOURS = "UPLOAD_SESSION_TTL_HOURS"
ENV_UPLOAD_RATE_LIMIT = "UPLOAD_RATE_LIMIT"
ENV_UPLOAD_RATE_WINDOW_SECONDS = "UPLOAD_RATE_WINDOW_SECONDS"

# ============================================================================
# Helper Functions
# ============================================================================


def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted file size string
    """
    size: float = float(size_bytes)

    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0

    return f"{size:.1f} TB"
