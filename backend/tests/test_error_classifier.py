import logging

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError

from crm_api.core.classifier import ErrorClassifier
from crm_api.core.constants import INTERNAL_SERVER_ERROR, StoreErrorCode
from crm_api.core.errors import (
    CastError,
    Conflict,
    DuplicateKeyError,
    FieldValidationError,
    NotFound,
    RequestRejected,
    StoreError,
    Unauthorized,
)


def _classifier():
    return ErrorClassifier(logging.getLogger("crm_api.test.classifier"))


def test_duplicate_key_is_conflict_naming_field_and_value():
    status, message = _classifier().classify(DuplicateKeyError({"username": "alice"}))
    assert status == 409
    assert message == "A record with username 'alice' already exists"


def test_duplicate_compound_key_keeps_store_order():
    err = DuplicateKeyError({"username": "alice", "role": "executor"})
    status, message = _classifier().classify(err)
    assert status == 409
    assert message == "A record with username, role 'alice, executor' already exists"


def test_document_validation_codes_are_bad_request():
    for code in (StoreErrorCode.NOT_NULL_VIOLATION, StoreErrorCode.CHECK_VIOLATION):
        status, message = _classifier().classify(StoreError(code, "NOT NULL constraint failed: users.role"))
        assert status == 400
        assert message == "Document validation failed"


def test_other_store_code_passes_driver_message():
    status, message = _classifier().classify(StoreError(8001, "connection reset by peer"))
    assert status == 400
    assert message == "connection reset by peer"


def test_cast_error_names_field_and_value():
    status, message = _classifier().classify(CastError("string", "bogus", "role"))
    assert status == 400
    assert "role" in message
    assert "bogus" in message
    assert message == "Invalid string value 'bogus' for field 'role'"


def test_field_validation_uses_first_field_error():
    err = FieldValidationError(
        {
            "full_name": "Path `full_name` is required.",
            "role": "`bogus` is not a valid enum value for path `role`.",
        }
    )
    assert _classifier().classify(err) == (422, "Path `full_name` is required.")


def test_request_rejections_keep_status_and_first_message():
    assert _classifier().classify(Unauthorized("Invalid username or password")) == (401, "Invalid username or password")
    assert _classifier().classify(NotFound("User not found")) == (404, "User not found")
    assert _classifier().classify(Conflict(["first", "second"])) == (409, "first")


def test_validation_error_keeps_validator_order():
    exc = RequestValidationError(
        [
            {"loc": ("body", "username"), "msg": "Field required", "type": "missing"},
            {"loc": ("body", "password"), "msg": "Value error, too weak", "type": "value_error"},
        ]
    )
    status, message = _classifier().classify(RequestRejected.from_validation_error(exc))
    assert status == 400
    assert message == "username: Field required"


def test_http_exception_with_message_list():
    exc = HTTPException(status_code=403, detail={"message": ["forbidden path", "other"]})
    assert _classifier().classify(RequestRejected.from_http_exception(exc)) == (403, "forbidden path")


def test_store_error_with_message_list_does_not_fall_through():
    err = StoreError(StoreErrorCode.CHECK_VIOLATION, "CHECK constraint failed")
    err.messages = ["should not be used"]
    assert _classifier().classify(err) == (400, "Document validation failed")


def test_generic_exception_returns_its_message_and_logs_stack(caplog):
    with caplog.at_level(logging.ERROR, logger="crm_api.test.classifier"):
        status, message = _classifier().classify(RuntimeError("boom"))
    assert (status, message) == (500, "boom")
    assert any(r.exc_info for r in caplog.records)


def test_non_exception_value_is_internal_error(caplog):
    with caplog.at_level(logging.ERROR, logger="crm_api.test.classifier"):
        status, message = _classifier().classify({"weird": "value"})
    assert (status, message) == (500, INTERNAL_SERVER_ERROR)
    assert "weird" in caplog.text


def test_exception_without_message_is_internal_error():
    assert _classifier().classify(ValueError()) == (500, INTERNAL_SERVER_ERROR)


def test_broken_logger_does_not_block_classification():
    class BrokenLogger:
        def error(self, *a, **kw):
            raise OSError("disk full")

    assert ErrorClassifier(BrokenLogger()).classify(RuntimeError("boom")) == (500, "boom")
