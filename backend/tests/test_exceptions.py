"""Tests for error responses rendered by the exception handlers."""

import json

import pytest
from sqlalchemy.exc import IntegrityError
from starlette.requests import Request

from app.middleware.exceptions import (
    StateError,
    classify_integrity_error,
    database_exception_handler,
    repotrack_exception_handler,
)


def _request(path: str = "/api/repositions/rep-1/timer/start") -> Request:
    return Request({
        "type": "http",
        "method": "POST",
        "path": path,
        "headers": [],
        "query_string": b"",
    })


@pytest.mark.unit
class TestClassifyIntegrityError:

    @pytest.mark.parametrize(
        "driver_message",
        [
            'duplicate key value violates unique constraint "uq_reposition_timers_running"',
            "UNIQUE constraint failed: reposition_timers.reposition_id, reposition_timers.area",
        ],
    )
    def test_running_timer(self, driver_message):
        status_code, code, message = classify_integrity_error(driver_message)
        assert status_code == 409
        assert code == "CONFLICT"
        assert "timer is already running" in message

    def test_username(self):
        _, code, message = classify_integrity_error(
            "UNIQUE constraint failed: users.username"
        )
        assert code == "CONFLICT"
        assert message == "Username already taken"

    def test_folio(self):
        _, code, message = classify_integrity_error(
            'duplicate key value violates unique constraint "ix_repositions_folio"'
        )
        assert code == "CONFLICT"
        assert message.startswith("Folio already issued")

    def test_other_unique_index(self):
        status_code, code, _ = classify_integrity_error(
            "UNIQUE constraint failed: documents.filename"
        )
        assert (status_code, code) == (409, "DUPLICATE_RECORD")

    def test_foreign_key(self):
        status_code, code, _ = classify_integrity_error("FOREIGN KEY constraint failed")
        assert (status_code, code) == (422, "FOREIGN_KEY_VIOLATION")


@pytest.mark.unit
@pytest.mark.asyncio
class TestHandlers:

    async def test_database_handler_body(self):
        exc = IntegrityError(
            "INSERT INTO reposition_timers ...",
            {},
            Exception(
                "UNIQUE constraint failed: "
                "reposition_timers.reposition_id, reposition_timers.area"
            ),
        )
        response = await database_exception_handler(_request(), exc)

        assert response.status_code == 409
        body = json.loads(response.body)
        assert body["error"]["code"] == "CONFLICT"

    async def test_domain_handler_body(self):
        response = await repotrack_exception_handler(
            _request(), StateError("Cannot complete reposition JN-REQ-03-26-001")
        )

        assert response.status_code == 409
        assert json.loads(response.body) == {
            "error": {
                "code": "INVALID_STATE",
                "message": "Cannot complete reposition JN-REQ-03-26-001",
            }
        }
