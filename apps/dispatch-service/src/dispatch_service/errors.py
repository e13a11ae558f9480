from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    status_code: int


def not_found(resource: str) -> ApiError:
    return ApiError("NOT_FOUND", f"{resource} not found", 404)


def forbidden(message: str = "not allowed") -> ApiError:
    return ApiError("FORBIDDEN", message, 403)


def conflict(message: str) -> ApiError:
    return ApiError("CONFLICT", message, 409)
