import logging

from fastapi.responses import JSONResponse
from starlette.responses import Response

from crm_api.api.envelope import ResponseNormalizer
from crm_api.core.classifier import ErrorClassifier
from crm_api.core.errors import NotFound


def _normalizer():
    logger = logging.getLogger("crm_api.test.envelope")
    return ResponseNormalizer(ErrorClassifier(logger), logger)


def test_success_wraps_value():
    status, body = _normalizer().success({"id": 1}, 201)
    assert status == 201
    assert body == {"status": 201, "result": {"id": 1}, "error": None}


def test_success_defaults_to_ok():
    status, body = _normalizer().success([1, 2])
    assert status == 200
    assert body["result"] == [1, 2]


def test_embedded_error_becomes_error_envelope():
    status, body = _normalizer().success({"error": {"code": 418, "error": ["first", "second"]}})
    assert status == 418
    assert body["result"] is None
    assert body["error"]["message"] == "first"


def test_failure_envelope_carries_path_and_timestamp(caplog):
    with caplog.at_level(logging.ERROR, logger="crm_api.test.envelope"):
        status, body = _normalizer().failure(NotFound("User not found"), path="/api/user/7")

    assert status == 404
    assert body["status"] == 404
    assert body["result"] is None
    assert body["error"]["message"] == "User not found"
    assert body["error"]["path"] == "/api/user/7"
    assert body["error"]["timestamp"]
    assert "Status: 404 Error: User not found" in caplog.text


def test_broken_logger_still_produces_envelope():
    class BrokenLogger:
        def log(self, *a, **kw):
            raise OSError("disk full")

        def error(self, *a, **kw):
            raise OSError("disk full")

    n = ResponseNormalizer(logger=BrokenLogger())
    status, body = n.failure(RuntimeError("boom"))
    assert status == 500
    assert body["error"]["message"] == "boom"


def test_wrap_response_leaves_empty_bodies_alone():
    r = Response(status_code=204)
    assert _normalizer().wrap_response(r) is r


def test_wrap_response_rewrites_json_body():
    r = JSONResponse(status_code=201, content={"id": 3}, headers={"x-request-id": "abc"})
    out = _normalizer().wrap_response(r)
    assert out.status_code == 201
    assert out.headers["x-request-id"] == "abc"
    assert out.body == JSONResponse(content={"status": 201, "result": {"id": 3}, "error": None}).body
