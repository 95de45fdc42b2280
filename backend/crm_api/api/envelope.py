"""Response envelope.

Every body that leaves the API is assembled here:

    {"status": int, "result": <value> | null, "error": {"message": str, ...} | null}

Routes opt in through ``EnvelopeRoute``; failures raised outside a route
(unknown path, wrong method) reach the same code through the app-level
exception handlers installed by ``install_envelope``.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from crm_api.core.classifier import ErrorClassifier
from crm_api.core.errors import RequestRejected
from crm_api.schemas.envelope import Envelope, ErrorBody
from crm_api.utils.timestamps import now_iso

log = logging.getLogger("crm_api.envelope")


class ResponseNormalizer:
    def __init__(self, classifier: ErrorClassifier | None = None, logger: logging.Logger | None = None):
        self.log = logger or log
        self.classifier = classifier or ErrorClassifier(self.log)

    def success(self, value: Any, status: int = 200) -> tuple[int, dict]:
        err = value.get("error") if isinstance(value, Mapping) else None
        if isinstance(err, Mapping) and isinstance(err.get("code"), int):
            message = err.get("error")
            if isinstance(message, (list, tuple)):
                message = message[0] if message else ""
            code = err["code"]
            self._log(logging.ERROR, "Status: %s Error: %s", code, message)
            return code, Envelope(status=code, error=ErrorBody(message=str(message))).model_dump()
        return status, Envelope(status=status, result=value).model_dump()

    def failure(self, exc: object, path: str | None = None) -> tuple[int, dict]:
        status, message = self.classifier.classify(exc)
        self._log(logging.ERROR, "Status: %s Error: %s", status, message)
        body = Envelope(
            status=status,
            error=ErrorBody(message=message, path=path, timestamp=now_iso()),
        )
        return status, body.model_dump()

    def entry(self, request: Request) -> None:
        self._log(logging.INFO, "Processing %s %s", request.method, request.url.path)

    def error_response(self, exc: object, request: Request) -> JSONResponse:
        if isinstance(exc, RequestValidationError):
            exc = RequestRejected.from_validation_error(exc)
        elif isinstance(exc, StarletteHTTPException):
            exc = RequestRejected.from_http_exception(exc)
        status, body = self.failure(exc, path=request.url.path)
        return JSONResponse(status_code=status, content=body)

    def wrap_response(self, response: Response) -> Response:
        body = getattr(response, "body", None)
        if response.status_code == 204 or not body:
            return response
        if not (response.media_type or "").startswith("application/json"):
            return response

        status, content = self.success(json.loads(body), response.status_code)
        headers = {
            k: v
            for k, v in response.headers.items()
            if k.lower() not in ("content-length", "content-type")
        }
        return JSONResponse(status_code=status, content=content, headers=headers, background=response.background)

    def _log(self, level: int, msg: str, *args: Any) -> None:
        try:
            self.log.log(level, msg, *args)
        except Exception:
            # a broken handler must not cost the client its response
            pass


default_normalizer = ResponseNormalizer()


def get_normalizer(request: Request) -> ResponseNormalizer:
    return getattr(request.app.state, "normalizer", None) or default_normalizer


class EnvelopeRoute(APIRoute):
    def get_route_handler(self) -> Callable:
        original = super().get_route_handler()

        async def handler(request: Request) -> Response:
            normalizer = get_normalizer(request)
            normalizer.entry(request)
            try:
                response = await original(request)
            except Exception as exc:
                return normalizer.error_response(exc, request)
            return normalizer.wrap_response(response)

        return handler


def install_envelope(app: FastAPI, normalizer: ResponseNormalizer) -> None:
    app.state.normalizer = normalizer

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception(request: Request, exc: StarletteHTTPException):
        normalizer.entry(request)
        return normalizer.error_response(exc, request)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception(request: Request, exc: RequestValidationError):
        normalizer.entry(request)
        return normalizer.error_response(exc, request)
