from __future__ import annotations

from dataclasses import dataclass

from seminar_core.exceptions import ConflictError, NotFoundError, SeminarError, StoreFailureError, ValidationError


@dataclass
class ApiError(Exception):
    code: str
    message: str
    status_code: int


def api_error_from(exc: SeminarError) -> ApiError:
    if isinstance(exc, ValidationError):
        return ApiError("VALIDATION_ERROR", str(exc), 422)
    if isinstance(exc, NotFoundError):
        return ApiError("NOT_FOUND", "Seminar not found", 404)
    if isinstance(exc, ConflictError):
        return ApiError("CONFLICT", str(exc), 409)
    if isinstance(exc, StoreFailureError):
        return ApiError("STORE_FAILURE", "Seminar store operation failed", 500)
    return ApiError("INTERNAL_ERROR", "Unexpected seminar error", 500)
