"""Business logic services."""

from .errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidOperationError,
    NotFoundError,
    ServiceError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from .images import (
    JPEG_CONTENT_TYPE,
    MAX_IMAGE_DIMENSION,
    UploadTooLargeError,
    process_image_bytes,
    read_upload_file,
)
from .rate_limiter import (
    RateLimitMiddleware,
    RateLimiter,
    get_rate_limiter,
    set_rate_limiter,
)
from .storage import (
    create_presigned_get_url,
    delete_object,
    ensure_bucket,
    get_minio_client,
    upload_object,
)

__all__ = [
    "ServiceError",
    "InvalidInputError",
    "InvalidOperationError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "ServiceUnavailableError",
    "get_minio_client",
    "ensure_bucket",
    "upload_object",
    "delete_object",
    "create_presigned_get_url",
    "process_image_bytes",
    "read_upload_file",
    "MAX_IMAGE_DIMENSION",
    "JPEG_CONTENT_TYPE",
    "UploadTooLargeError",
    "RateLimiter",
    "RateLimitMiddleware",
    "get_rate_limiter",
    "set_rate_limiter",
]
