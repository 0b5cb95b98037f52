"""
Tests for response classification and normalization.
"""

import dataclasses
import json

import pytest
from requests.structures import CaseInsensitiveDict

from omni_request.core.config import ResponseType
from omni_request.core.context import RawResponse
from omni_request.core.exceptions import HTTPStatusError, ResponseParseError, TimeoutError
from omni_request.core.response import (
    decode_raw,
    extract_filename,
    failure_response,
    normalize_response,
    parse_header_string,
)
from omni_request.core.status import is_http_success


def raw(status=200, content=b"", headers=None, reason="OK"):
    return RawResponse(
        status=status,
        reason=reason,
        headers=CaseInsensitiveDict(headers or {"Content-Type": "application/json"}),
        content=content,
        url="https://api.example.com/x",
        handle=object(),
    )


class TestStatusClassifier:
    """Test success classification."""

    @pytest.mark.parametrize("status", [200, 201, 204, 299, 304, 1223])
    def test_success(self, status):
        assert is_http_success(status)

    @pytest.mark.parametrize("status", [0, 100, 199, 300, 301, 302, 400, 404, 500, 503])
    def test_failure(self, status):
        assert not is_http_success(status)


class TestFilename:
    """Test Content-Disposition parsing."""

    def test_quoted(self):
        assert extract_filename('attachment; filename="report 2024.csv"') == "report 2024.csv"

    def test_plain(self):
        assert extract_filename("attachment; filename=data.bin") == "data.bin"

    def test_rfc5987(self):
        assert extract_filename("attachment; filename*=UTF-8''r%C3%A9sum%C3%A9.pdf") == "résumé.pdf"

    def test_missing(self):
        assert extract_filename(None) is None
        assert extract_filename("inline") is None

    def test_parse_header_string(self):
        headers = parse_header_string("HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\nX-Id: 7\r\n")
        assert headers["content-type"] == "text/plain"
        assert headers["x-id"] == "7"
        assert len(headers) == 2


class TestNormalizeResponse:
    """Test building NormalizedResponse from a transport response."""

    def test_success_envelope(self):
        """Test result accessor reads the envelope field."""
        response_raw = raw(content=json.dumps({"result": [1, 2], "code": 0}).encode())
        body, error = decode_raw(response_raw, ResponseType.JSON)
        response = normalize_response(response_raw, ResponseType.JSON, True, body, error)

        assert response.success
        assert response.status == 200
        assert response.result == [1, 2]
        assert response["code"] == 0
        assert "result" in response
        assert response.headers["content-type"] == "application/json"
        assert response.raw is response_raw.handle

    def test_failure_with_body_merges_shape(self):
        """Test failure body keeps its fields and gains status/success."""
        response_raw = raw(status=422, content=b'{"message": "invalid email", "field": "email"}',
                           reason="Unprocessable Entity")
        body, error = decode_raw(response_raw, ResponseType.JSON)
        response = normalize_response(response_raw, ResponseType.JSON, False, body, error)

        assert not response.success
        assert response.body == {
            "status": 422, "success": False, "message": "invalid email", "field": "email"
        }
        assert response.message == "invalid email"
        # исходный объект не изменён
        assert body == {"message": "invalid email", "field": "email"}

    def test_failure_with_empty_body(self):
        response_raw = raw(status=500, content=b"", reason="Internal Server Error")
        response = normalize_response(response_raw, ResponseType.JSON, False, None, None)
        assert response.body == {"status": 500, "message": "Internal Server Error", "success": False}

    def test_failure_with_unparseable_body(self):
        """Test HTML error page on a JSON request still yields the minimal shape."""
        response_raw = raw(status=502, content=b"<html>Bad Gateway</html>", reason="Bad Gateway")
        body, error = decode_raw(response_raw, ResponseType.JSON)
        response = normalize_response(response_raw, ResponseType.JSON, False, body, error)
        assert response.body == {"status": 502, "message": "Bad Gateway", "success": False}

    def test_parse_error_on_success(self):
        response_raw = raw(content=b"not json")
        body, error = decode_raw(response_raw, ResponseType.JSON)
        response = normalize_response(response_raw, ResponseType.JSON, True, body, error)

        assert not response.success
        assert isinstance(response.error, ResponseParseError)
        with pytest.raises(ResponseParseError):
            response.raise_for_error()

    def test_blob_filename(self):
        response_raw = raw(
            content=b"a,b",
            headers={"Content-Type": "text/csv", "Content-Disposition": 'attachment; filename="r.csv"'},
        )
        body, error = decode_raw(response_raw, ResponseType.BLOB)
        response = normalize_response(response_raw, ResponseType.BLOB, True, body, error)
        assert response.body == b"a,b"
        assert response.filename == "r.csv"

    def test_blob_filename_on_failure(self):
        """Test a failed download still exposes the attachment name."""
        response_raw = raw(
            status=404,
            reason="Not Found",
            content=b"missing",
            headers={"Content-Type": "text/plain", "Content-Disposition": 'attachment; filename="r.csv"'},
        )
        body, error = decode_raw(response_raw, ResponseType.BLOB)
        response = normalize_response(response_raw, ResponseType.BLOB, False, body, error)

        assert not response.success
        assert response.body == b"missing"
        assert response.filename == "r.csv"

    def test_attachments_not_serialized(self):
        """Test raw headers/handle stay out of asdict, repr and to_dict."""
        response_raw = raw(content=b'{"a": 1}')
        response = normalize_response(response_raw, ResponseType.JSON, True, {"a": 1})

        assert set(dataclasses.asdict(response)) == {
            "status", "success", "message", "body", "filename", "url", "aborted", "error"
        }
        assert response.to_dict() == {"status": 200, "success": True, "message": "OK", "body": {"a": 1}}
        assert "handle" not in repr(response)

    def test_raise_for_error_status(self):
        response_raw = raw(status=404, content=b'{"message": "no such user"}', reason="Not Found")
        body, error = decode_raw(response_raw, ResponseType.JSON)
        response = normalize_response(response_raw, ResponseType.JSON, False, body, error)

        with pytest.raises(HTTPStatusError) as exc_info:
            response.raise_for_error()
        assert exc_info.value.status == 404
        assert "no such user" in str(exc_info.value)

    def test_raise_for_error_success_returns_self(self):
        response = normalize_response(raw(content=b"{}"), ResponseType.JSON, True, {})
        assert response.raise_for_error() is response


class TestFailureResponse:
    """Test synthesized responses for transport errors and aborts."""

    def test_transport_error(self):
        error = TimeoutError("Request timeout", "https://a.com")
        response = failure_response(500, error.message, url="https://a.com", error=error)
        assert response.status == 500
        assert not response.success
        assert response.body == {"status": 500, "message": error.message, "success": False}
        with pytest.raises(TimeoutError):
            response.raise_for_error()

    def test_aborted(self):
        response = failure_response(0, "Request aborted", aborted=True)
        assert response.aborted
        assert response.status == 0
        assert response.to_dict()["aborted"] is True


class TestPage:
    def test_page(self):
        response_raw = raw(content=json.dumps({"result": {
            "current": 2, "pageSize": 10, "totalPage": 3, "total": 25, "data": [{"id": 11}]
        }}).encode())
        body, _ = decode_raw(response_raw, ResponseType.JSON)
        page = normalize_response(response_raw, ResponseType.JSON, True, body).page()
        assert (page.current, page.page_size, page.total_page, page.total) == (2, 10, 3, 25)
        assert page.data == [{"id": 11}]
