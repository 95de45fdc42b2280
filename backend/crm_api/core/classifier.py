"""Maps any raised failure to an HTTP status and a client-facing message."""
from __future__ import annotations

import logging

from crm_api.core.constants import INTERNAL_SERVER_ERROR, StoreErrorCode
from crm_api.core.errors import (
    CastError,
    DuplicateKeyError,
    FieldValidationError,
    RequestRejected,
    StoreError,
)

log = logging.getLogger("crm_api.classifier")

DOCUMENT_VALIDATION_CODES = (
    StoreErrorCode.NOT_NULL_VIOLATION,
    StoreErrorCode.CHECK_VIOLATION,
)


class ErrorClassifier:
    def __init__(self, logger: logging.Logger | None = None):
        self.log = logger or log

    def classify(self, exc: object) -> tuple[int, str]:
        # order matters: first match wins
        if isinstance(exc, RequestRejected):
            return exc.status, exc.messages[0] if exc.messages else "Bad request"

        if isinstance(exc, StoreError):
            return self._store_error(exc)

        if isinstance(exc, CastError):
            return 400, f"Invalid {exc.kind} value '{exc.value}' for field '{exc.field}'"

        if isinstance(exc, FieldValidationError):
            first = next(iter(exc.errors.values()), None)
            return 422, first or "Validation failed"

        if isinstance(exc, Exception) and str(exc):
            self._log_error("Unhandled exception: %s", exc, exc_info=exc)
            return 500, str(exc)

        self._log_error("Unknown error type: %r", exc)
        return 500, INTERNAL_SERVER_ERROR

    def _store_error(self, exc: StoreError) -> tuple[int, str]:
        if isinstance(exc, DuplicateKeyError):
            fields = ", ".join(exc.key_value.keys())
            values = ", ".join(str(v) for v in exc.key_value.values())
            return 409, f"A record with {fields} '{values}' already exists"
        if exc.code in DOCUMENT_VALIDATION_CODES:
            return 400, "Document validation failed"
        return 400, exc.message

    def _log_error(self, msg: str, *args, **kwargs) -> None:
        try:
            self.log.error(msg, *args, **kwargs)
        except Exception:
            # classification must still return when logging is broken
            pass
