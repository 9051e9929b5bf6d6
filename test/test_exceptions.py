"""
Tests for custom exception classes and their HTTP mapping

Tests exception initialization, status codes, error codes and the
error envelope produced by the exception handlers.
"""

import json

from fastapi import status
from starlette.requests import Request

from meta_api.exception_handlers import (
    create_error_response,
    get_error_type,
    get_http_error_code,
    meta_exception_handler,
)
from meta_api.exceptions import (
    AuthenticationError,
    DuplicateKeyError,
    ErrorCode,
    ForbiddenError,
    InvalidInputError,
    MetaAPIError,
    NotFoundError,
    PolicyViolationError,
    StoreFailureError,
    UnsupportedError,
)


def _request(path="/api/v1/posts/1/meta"):
    return Request({"type": "http", "method": "GET", "path": path, "headers": [], "query_string": b""})


class TestMetaAPIError:
    """Test base MetaAPIError class"""

    def test_defaults(self):
        exc = MetaAPIError("Test error")
        assert str(exc) == "Test error"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.error_code == ErrorCode.UNKNOWN_ERROR
        assert exc.details == {}

    def test_custom_values(self):
        exc = MetaAPIError("Custom", status_code=418, error_code=ErrorCode.INTERNAL_ERROR, details={"a": 1})
        assert exc.status_code == 418
        assert exc.details == {"a": 1}


class TestTaxonomy:
    """Each error kind maps to its fixed status"""

    def test_not_found(self):
        exc = NotFoundError("Invalid meta id.", ErrorCode.META_INVALID_ID)
        assert exc.status_code == status.HTTP_404_NOT_FOUND
        assert exc.error_code == ErrorCode.META_INVALID_ID

    def test_forbidden(self):
        exc = ForbiddenError()
        assert exc.status_code == status.HTTP_403_FORBIDDEN
        assert exc.error_code == ErrorCode.META_FORBIDDEN

    def test_policy_violation(self):
        exc = PolicyViolationError("_edit_lock")
        assert exc.status_code == status.HTTP_403_FORBIDDEN
        assert exc.error_code == ErrorCode.META_PROTECTED
        assert exc.message == "_edit_lock is marked as a protected field."
        assert exc.details == {"key": "_edit_lock"}

    def test_invalid_input(self):
        exc = InvalidInputError("bad")
        assert exc.status_code == status.HTTP_400_BAD_REQUEST
        assert exc.error_code == ErrorCode.META_INVALID_PARAMETERS

    def test_unsupported(self):
        exc = UnsupportedError()
        assert exc.status_code == status.HTTP_501_NOT_IMPLEMENTED
        assert exc.error_code == ErrorCode.META_TRASH_NOT_SUPPORTED

    def test_store_failure_defaults_to_500(self):
        exc = StoreFailureError("Could not update meta.", ErrorCode.META_COULD_NOT_UPDATE)
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR

    def test_store_failure_on_add_is_400(self):
        exc = StoreFailureError("Could not add meta.", ErrorCode.META_COULD_NOT_ADD, 400)
        assert exc.status_code == status.HTTP_400_BAD_REQUEST

    def test_authentication(self):
        assert AuthenticationError().status_code == status.HTTP_401_UNAUTHORIZED

    def test_duplicate_key(self):
        exc = DuplicateKeyError("post", "color")
        assert exc.status_code == status.HTTP_409_CONFLICT
        assert exc.details == {"entity_type": "post", "key": "color"}

    def test_all_are_meta_api_errors(self):
        for exc in (NotFoundError(), ForbiddenError(), UnsupportedError(), PolicyViolationError("_x")):
            assert isinstance(exc, MetaAPIError)


class TestErrorResponses:
    def test_create_error_response_envelope(self):
        response = create_error_response(404, "Invalid meta id.", ErrorCode.META_INVALID_ID, {"entry_id": 3}, "/x")
        body = json.loads(response.body)
        assert body == {
            "error": {
                "status_code": 404,
                "message": "Invalid meta id.",
                "type": "Not Found",
                "error_code": "META_INVALID_ID",
                "details": {"entry_id": 3},
                "path": "/x",
            }
        }

    def test_error_type_lookup(self):
        assert get_error_type(501) == "Not Implemented"
        assert get_error_type(599) == "Error"

    def test_http_error_code_lookup(self):
        assert get_http_error_code(401) == ErrorCode.AUTH_FAILED.value
        assert get_http_error_code(418) == ErrorCode.UNKNOWN_ERROR.value

    async def test_meta_exception_handler(self):
        response = await meta_exception_handler(_request(), PolicyViolationError("_secret"))
        body = json.loads(response.body)
        assert response.status_code == 403
        assert body["error"]["error_code"] == "META_PROTECTED"
        assert body["error"]["path"] == "/api/v1/posts/1/meta"

    async def test_authentication_error_sets_www_authenticate(self):
        response = await meta_exception_handler(_request(), AuthenticationError())
        assert response.headers["www-authenticate"] == "Bearer"
