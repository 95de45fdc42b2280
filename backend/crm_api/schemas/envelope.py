from typing import Any

from pydantic import BaseModel


class ErrorBody(BaseModel):
    message: str
    path: str | None = None
    timestamp: str | None = None


class Envelope(BaseModel):
    status: int
    result: Any = None
    error: ErrorBody | None = None
