"""Failure taxonomy.

Each failure is typed where it originates: request rejections by the route
layer or the service, store failures by the repository. The classifier only
has to match on the variant.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from crm_api.core.constants import StoreErrorCode


class AppError(Exception):
    pass


class RequestRejected(AppError):
    status: int = 400

    def __init__(self, messages: str | Sequence[str], status: int | None = None):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        if status is not None:
            self.status = status
        super().__init__(self.messages[0] if self.messages else "")

    @classmethod
    def from_http_exception(cls, exc: StarletteHTTPException) -> "RequestRejected":
        detail = exc.detail
        if isinstance(detail, Mapping) and "message" in detail:
            detail = detail["message"]
        if isinstance(detail, (list, tuple)):
            messages = [str(m) for m in detail]
        else:
            messages = [str(detail)]
        return cls(messages, status=exc.status_code)

    @classmethod
    def from_validation_error(cls, exc: RequestValidationError) -> "RequestRejected":
        messages = [_validation_message(e) for e in exc.errors()]
        return cls(messages or ["Validation failed"], status=400)


def _validation_message(err: Mapping[str, Any]) -> str:
    loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
    msg = str(err.get("msg", "invalid value"))
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    if not loc:
        return msg
    return f"{'.'.join(loc)}: {msg}"


class Unauthorized(RequestRejected):
    status = 401


class NotFound(RequestRejected):
    status = 404


class Conflict(RequestRejected):
    status = 409


class StoreError(AppError):
    def __init__(self, code: int, message: str):
        self.code = int(code)
        self.message = message
        super().__init__(message)


class DuplicateKeyError(StoreError):
    def __init__(self, key_value: Mapping[str, Any], message: str = "duplicate key"):
        self.key_value = dict(key_value)
        super().__init__(StoreErrorCode.UNIQUE_VIOLATION, message)


class CastError(AppError):
    def __init__(self, kind: str, value: Any, field: str):
        self.kind = kind
        self.value = value
        self.field = field
        super().__init__(f"Cast to {kind} failed for value '{value}' at field '{field}'")


class FieldValidationError(AppError):
    def __init__(self, errors: Mapping[str, str]):
        # insertion order is the field declaration order
        self.errors = dict(errors)
        super().__init__(next(iter(self.errors.values()), "Validation failed"))
