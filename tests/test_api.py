"""Unit tests for the remote store API client."""

import json
from unittest.mock import patch

import httpx
import pytest

from drivesync.api import DriveClient, escape_query_value
from drivesync.exceptions import (
    InvalidResponseError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    RemoteAPIError,
)
from drivesync.models import FOLDER_MIME_TYPE

API_URL = "https://drive.test"


def make_client(handler, **kwargs):
    """Create a client whose requests are answered by ``handler``."""
    return DriveClient(
        access_token="test_token",
        api_url=API_URL,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def json_response(status_code, data):
    return httpx.Response(status_code, json=data)


class TestDriveClient:
    """Tests for DriveClient initialization and basic functionality."""

    def test_init(self):
        client = DriveClient(access_token="test_token", api_url="https://x/")
        assert client.access_token == "test_token"
        assert client.api_url == "https://x"
        assert client.max_retries == 0

    def test_authorization_header(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            return json_response(200, {"user": {}})

        make_client(handler).get_about()

        assert seen["auth"] == "Bearer test_token"

    def test_close_and_reopen(self):
        client = make_client(lambda r: json_response(200, {}))
        first = client._get_client()
        client.close()
        assert first.is_closed
        assert client._get_client() is not first

    def test_context_manager_closes(self):
        with make_client(lambda r: json_response(200, {})) as client:
            inner = client._get_client()
        assert inner.is_closed


class TestEscapeQueryValue:
    def test_quotes_and_backslashes(self):
        assert escape_query_value("it's") == "it\\'s"
        assert escape_query_value("a\\b") == "a\\\\b"
        assert escape_query_value("plain") == "plain"


class TestListing:
    def test_list_children_params(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return json_response(
                200, {"files": [{"id": "1", "name": "a.txt"}], "nextPageToken": "p2"}
            )

        result = make_client(handler).list_children("root123", page_token="p1")

        assert seen["path"] == "/drive/v3/files"
        assert seen["params"]["q"] == "'root123' in parents and trashed=false"
        assert seen["params"]["pageToken"] == "p1"
        assert "md5Checksum" in seen["params"]["fields"]
        assert "nextPageToken" in seen["params"]["fields"]
        assert result["nextPageToken"] == "p2"

    def test_first_page_has_no_token(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return json_response(200, {"files": []})

        make_client(handler).list_children("root")

        assert "pageToken" not in seen["params"]

    def test_find_child_folder_query(self):
        seen = {}

        def handler(request):
            seen["q"] = request.url.params["q"]
            return json_response(200, {"files": [{"id": "f1", "name": "it's"}]})

        folder = make_client(handler).find_child_folder("root", "it's")

        assert folder["id"] == "f1"
        assert "name='it\\'s'" in seen["q"]
        assert "'root' in parents" in seen["q"]
        assert f"mimeType='{FOLDER_MIME_TYPE}'" in seen["q"]
        assert "trashed=false" in seen["q"]

    def test_find_child_folder_none(self):
        client = make_client(lambda r: json_response(200, {"files": []}))
        assert client.find_child_folder("root", "missing") is None


class TestWrites:
    def test_create_folder(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return json_response(200, {"id": "new-folder"})

        folder_id = make_client(handler).create_folder("parent1", "docs")

        assert folder_id == "new-folder"
        assert seen["method"] == "POST"
        assert seen["body"] == {
            "name": "docs",
            "mimeType": FOLDER_MIME_TYPE,
            "parents": ["parent1"],
        }

    def test_create_file_multipart(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["upload_type"] = request.url.params["uploadType"]
            seen["content_type"] = request.headers["Content-Type"]
            seen["body"] = request.content
            return json_response(200, {"id": "new-file", "md5Checksum": "x"})

        file_id = make_client(handler).create_file(
            "parent1", "a.txt", b"hello world", content_type="text/plain"
        )

        assert file_id == "new-file"
        assert seen["path"] == "/upload/drive/v3/files"
        assert seen["upload_type"] == "multipart"
        assert seen["content_type"].startswith("multipart/related; boundary=")
        boundary = seen["content_type"].split("boundary=")[1]
        assert seen["body"].startswith(f"--{boundary}\r\n".encode())
        assert seen["body"].endswith(f"--{boundary}--\r\n".encode())
        assert b'"name": "a.txt"' in seen["body"]
        assert b'"parents": ["parent1"]' in seen["body"]
        assert b"Content-Type: text/plain\r\n\r\nhello world" in seen["body"]

    def test_create_without_id_is_invalid(self):
        client = make_client(lambda r: json_response(200, {}))
        with pytest.raises(InvalidResponseError):
            client.create_folder("root", "docs")

    def test_update_file_media(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["upload_type"] = request.url.params["uploadType"]
            seen["body"] = request.content
            return json_response(200, {"id": "file1", "md5Checksum": "abc"})

        result = make_client(handler).update_file("file1", b"new content")

        assert seen["method"] == "PATCH"
        assert seen["path"] == "/upload/drive/v3/files/file1"
        assert seen["upload_type"] == "media"
        assert seen["body"] == b"new content"
        assert result["id"] == "file1"

    def test_delete_file_empty_response(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            return httpx.Response(204)

        assert make_client(handler).delete_file("file1") is None
        assert seen == {"method": "DELETE", "path": "/drive/v3/files/file1"}


class TestErrorHandling:
    """Tests for HTTP error translation."""

    @pytest.mark.parametrize(
        "status_code,error_class",
        [
            (401, PermissionDeniedError),
            (403, PermissionDeniedError),
            (404, NotFoundError),
            (429, RateLimitError),
            (500, RemoteAPIError),
            (400, RemoteAPIError),
        ],
    )
    def test_status_codes(self, status_code, error_class):
        client = make_client(lambda r: httpx.Response(status_code))
        with pytest.raises(error_class):
            client.delete_file("file1")

    def test_error_message_from_body(self):
        body = {
            "error": {
                "code": 404,
                "message": "File not found: abc.",
                "errors": [{"reason": "notFound"}],
            }
        }
        client = make_client(lambda r: json_response(404, body))

        with pytest.raises(NotFoundError, match="File not found: abc. \\(notFound\\)"):
            client.update_file("abc", b"x")

    def test_403_rate_limit_reason(self):
        body = {
            "error": {
                "message": "User rate limit exceeded.",
                "errors": [{"reason": "userRateLimitExceeded"}],
            }
        }
        client = make_client(lambda r: json_response(403, body))

        with pytest.raises(RateLimitError):
            client.list_children("root")

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError, match="connection refused"):
            make_client(handler).list_children("root")

    def test_non_json_response(self):
        client = make_client(
            lambda r: httpx.Response(
                200, content=b"<html></html>", headers={"Content-Type": "text/html"}
            )
        )
        with pytest.raises(InvalidResponseError, match="text/html"):
            client.list_children("root")

    def test_no_retry_by_default(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        with pytest.raises(RemoteAPIError):
            make_client(handler).list_children("root")

        assert len(calls) == 1


class TestRetries:
    @patch("drivesync.api.time.sleep")
    def test_retries_server_errors(self, mock_sleep):
        responses = [httpx.Response(503), json_response(200, {"files": []})]
        client = make_client(lambda r: responses.pop(0), max_retries=2)

        assert client.list_children("root") == {"files": []}
        assert mock_sleep.call_count == 1

    @patch("drivesync.api.time.sleep")
    def test_retry_after_header(self, mock_sleep):
        responses = [
            httpx.Response(429, headers={"Retry-After": "7"}),
            json_response(200, {"files": []}),
        ]
        client = make_client(lambda r: responses.pop(0), max_retries=1)

        client.list_children("root")

        mock_sleep.assert_called_once_with(7.0)

    @patch("drivesync.api.time.sleep")
    def test_gives_up_after_max_retries(self, mock_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(NetworkError):
            make_client(handler, max_retries=2).list_children("root")

        assert len(calls) == 3
        assert mock_sleep.call_count == 2

    @patch("drivesync.api.time.sleep")
    def test_client_errors_not_retried(self, mock_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        with pytest.raises(NotFoundError):
            make_client(handler, max_retries=3).delete_file("x")

        assert len(calls) == 1
        mock_sleep.assert_not_called()

    def test_retry_delay_grows(self):
        client = DriveClient(access_token="t", retry_delay=1.0)
        with patch("drivesync.api.random.random", return_value=0.5):
            assert client._calculate_retry_delay(0) == 1.0
            assert client._calculate_retry_delay(2) == 4.0
