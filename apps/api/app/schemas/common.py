from typing import Any

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    code: str
    message: str


class ResultEnvelope(BaseModel):
    status_code: int
    message: str
    data: Any = None
    error: ErrorDetail | None = None
