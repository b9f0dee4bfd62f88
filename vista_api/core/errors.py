from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class ApiError(HTTPException):
    """HTTPException carrying a machine-readable code for the response envelope."""

    status_code_default = status.HTTP_400_BAD_REQUEST
    code_default = "BAD_REQUEST"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(
            status_code=status_code or self.status_code_default,
            detail=message,
            headers=headers,
        )
        self.code = code or self.code_default
        self.errors = errors


class ValidationFailed(ApiError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    code_default = "VALIDATION_ERROR"


class Unauthorized(ApiError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    code_default = "AUTH_REQUIRED"


class Forbidden(ApiError):
    status_code_default = status.HTTP_403_FORBIDDEN
    code_default = "FORBIDDEN"


class NotFound(ApiError):
    status_code_default = status.HTTP_404_NOT_FOUND
    code_default = "NOT_FOUND"


class Conflict(ApiError):
    status_code_default = status.HTTP_409_CONFLICT
    code_default = "CONFLICT"


class TooManyAttempts(ApiError):
    status_code_default = status.HTTP_429_TOO_MANY_REQUESTS
    code_default = "TOO_MANY_ATTEMPTS"


class StorageError(RuntimeError):
    """Raised by storage backends; entity deletion treats it as best-effort."""
