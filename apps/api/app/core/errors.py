from __future__ import annotations

from typing import Any

from fastapi import HTTPException


class ServiceError(HTTPException):
    """
    Expected failure of a family graph operation.

    Carries a stable machine-readable `code` next to the human message so the API can
    render the uniform result envelope. Subclasses pin the status for each category.
    """

    status_code_default = 400

    def __init__(self, code: str, message: str, *, data: Any = None, status_code: int | None = None):
        super().__init__(status_code=status_code or self.status_code_default, detail=message)
        self.code = code
        self.message = message
        self.data = data


class NotFoundError(ServiceError):
    status_code_default = 404


class ConflictError(ServiceError):
    status_code_default = 409


class ValidationFailure(ServiceError):
    status_code_default = 422


class PersistenceFailure(ServiceError):
    status_code_default = 500


def unexpected_error_message(exc: Exception) -> str:
    return f"an unexpected error occurred while processing the request: {exc.__class__.__name__}"


def integrity_violation(exc: Exception, *needles: str) -> bool:
    """Whether a driver integrity error names one of the given constraints or columns."""
    text = str(getattr(exc, "orig", exc))
    return any(needle in text for needle in needles)
