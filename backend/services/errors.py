"""Domain error taxonomy shared by services and the HTTP boundary."""

from __future__ import annotations

from fastapi import status


class ServiceError(Exception):
    """Base class for failures with a stable code and HTTP status."""

    code = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(ServiceError):
    code = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidOperationError(ServiceError):
    code = "invalid_operation"
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(ServiceError):
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(ServiceError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class ServiceUnavailableError(ServiceError):
    code = "service_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
