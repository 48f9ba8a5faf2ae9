"""API client for the remote file store (Google Drive v3 REST)."""

from __future__ import annotations

import json
import logging
import random
import threading
import time
import uuid
from typing import Any

import httpx

from .config import config
from .exceptions import (
    InvalidResponseError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    RemoteAPIError,
)
from .models import FOLDER_MIME_TYPE
from .utils import DEFAULT_CONTENT_TYPE

logger = logging.getLogger(__name__)

LIST_FIELDS = "nextPageToken, files(id, name, mimeType, md5Checksum)"
FILE_FIELDS = "id, name, mimeType, md5Checksum"


def escape_query_value(value: str) -> str:
    """Escape a string for use inside a single-quoted Drive query literal.

    Examples:
        >>> escape_query_value("it's")
        "it\\\\'s"
    """
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    """Client for the remote store's list/create/update/delete surface."""

    def __init__(
        self,
        access_token: str,
        api_url: str | None = None,
        max_retries: int | None = None,
        retry_delay: float = 1.0,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the API client.

        Args:
            access_token: OAuth bearer token
            api_url: Optional API base URL (uses config if not provided)
            max_retries: Retry attempts for transient failures
                (uses config if not provided, which defaults to no retries)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (uses config if not provided)
            transport: Optional httpx transport, mainly for tests
        """
        self.access_token = access_token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.max_retries = config.max_retries if max_retries is None else max_retries
        self.retry_delay = retry_delay
        self.timeout = config.timeout if timeout is None else timeout
        self._transport = transport
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()

    def __enter__(self) -> DriveClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.Client(
                    headers={"Authorization": f"Bearer {self.access_token}"},
                    timeout=httpx.Timeout(self.timeout),
                    follow_redirects=True,
                    transport=self._transport,
                )
            return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        with self._client_lock:
            if self._client is not None and not self._client.is_closed:
                self._client.close()
            self._client = None

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False
        return isinstance(exception, (NetworkError, RateLimitError))

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # +/- 25% jitter
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[RemoteAPIError, bool]:
        """Translate an HTTP error and decide whether to retry.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code
        detail = self._extract_error_message(e.response)
        suffix = f": {detail}" if detail else ""

        rate_limited = "ratelimitexceeded" in detail.lower()

        if status_code in (401, 403) and not rate_limited:
            return (
                PermissionDeniedError(
                    f"Access denied (status {status_code}){suffix}"
                ),
                False,
            )
        if status_code == 404:
            return NotFoundError(f"Resource not found{suffix}"), False
        if status_code in (403, 429):
            error: RemoteAPIError = RateLimitError(
                f"Rate limit exceeded (status {status_code}){suffix}"
            )
            return error, attempt < self.max_retries

        error = RemoteAPIError(
            f"API request failed with status {status_code}{suffix}"
        )
        should_retry = 500 <= status_code < 600 and attempt < self.max_retries
        return error, should_retry

    @staticmethod
    def _extract_error_message(response: httpx.Response) -> str:
        """Pull a human readable message out of an error response body."""
        try:
            if not response.content:
                return ""
            data = response.json()
        except ValueError:
            return ""
        if not isinstance(data, dict):
            return ""
        error = data.get("error")
        if isinstance(error, dict):
            message = error.get("message") or ""
            reasons = [
                item.get("reason", "")
                for item in error.get("errors", [])
                if isinstance(item, dict)
            ]
            if reasons:
                message = f"{message} ({', '.join(r for r in reasons if r)})"
            return message
        if isinstance(error, str):
            return data.get("error_description") or error
        return data.get("message") or ""

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """Make an API request.

        Args:
            method: HTTP method
            url: Endpoint path (joined to api_url) or absolute URL
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data ({} for empty bodies)

        Raises:
            RemoteAPIError: If the request fails
        """
        if not url.startswith("http"):
            url = f"{self.api_url}/{url.lstrip('/')}"
        last_exception: RemoteAPIError | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                start = time.time()
                response = client.request(method, url, **kwargs)
                logger.debug(
                    "%s %s -> %s (%.2fs)",
                    method,
                    url,
                    response.status_code,
                    time.time() - start,
                )
                response.raise_for_status()

                if not response.content:
                    return {}
                content_type = response.headers.get("Content-Type", "")
                if "application/json" not in content_type:
                    raise InvalidResponseError(
                        f"Unexpected response type: {content_type}"
                    )
                try:
                    return response.json()
                except ValueError as e:
                    raise InvalidResponseError(
                        "Invalid JSON response from server"
                    ) from e

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                last_exception = error
                if should_retry:
                    retry_after = e.response.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        delay = float(retry_after)
                    else:
                        delay = self._calculate_retry_delay(attempt)
                    logger.warning(
                        "%s (attempt %d/%d), retrying in %.1fs",
                        error,
                        attempt + 1,
                        self.max_retries + 1,
                        delay,
                    )
                    time.sleep(delay)
                    continue
                raise error from e
            except RemoteAPIError:
                raise
            except httpx.RequestError as e:
                error = NetworkError(f"Network error: {e}")
                last_exception = error
                if self._should_retry(error, attempt):
                    delay = self._calculate_retry_delay(attempt)
                    logger.warning(
                        "%s (attempt %d/%d), retrying in %.1fs",
                        error,
                        attempt + 1,
                        self.max_retries + 1,
                        delay,
                    )
                    time.sleep(delay)
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise RemoteAPIError("Request failed after all retry attempts")

    # =========================
    # Listing Operations
    # =========================

    def list_children(
        self,
        parent_id: str,
        page_token: str | None = None,
        page_size: int = 1000,
    ) -> dict[str, Any]:
        """List one page of non-trashed children of a folder.

        Args:
            parent_id: ID of the folder to list
            page_token: Token from a previous page's ``nextPageToken``
            page_size: Maximum entries per page

        Returns:
            Response with ``files`` and, when more pages exist,
            ``nextPageToken``
        """
        params: dict[str, Any] = {
            "q": f"'{escape_query_value(parent_id)}' in parents and trashed=false",
            "fields": LIST_FIELDS,
            "pageSize": page_size,
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }
        if page_token:
            params["pageToken"] = page_token
        return self._request("GET", "/drive/v3/files", params=params)

    def find_child_folder(self, parent_id: str, name: str) -> dict[str, Any] | None:
        """Find a non-trashed folder with an exact name under a parent.

        Args:
            parent_id: ID of the parent folder
            name: Folder name to look for

        Returns:
            The first matching file resource, or None if there is none
        """
        query = (
            f"name='{escape_query_value(name)}' "
            f"and '{escape_query_value(parent_id)}' in parents "
            f"and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        )
        result = self._request(
            "GET",
            "/drive/v3/files",
            params={
                "q": query,
                "fields": "files(id, name, mimeType)",
                "pageSize": 10,
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            },
        )
        files = result.get("files") or []
        return files[0] if files else None

    def get_about(self) -> dict[str, Any]:
        """Return information about the authenticated user."""
        return self._request("GET", "/drive/v3/about", params={"fields": "user"})

    # =========================
    # Write Operations
    # =========================

    def create_folder(self, parent_id: str, name: str) -> str:
        """Create a folder.

        Args:
            parent_id: ID of the parent folder
            name: Name of the new folder

        Returns:
            ID of the created folder
        """
        result = self._request(
            "POST",
            "/drive/v3/files",
            params={"fields": "id", "supportsAllDrives": "true"},
            json={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
        )
        return self._require_id(result, "folder creation")

    def create_file(
        self,
        parent_id: str,
        name: str,
        content: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> str:
        """Upload a new file with a multipart (metadata + media) request.

        Args:
            parent_id: ID of the parent folder
            name: File name
            content: File content
            content_type: MIME type of the content

        Returns:
            ID of the created file
        """
        metadata = {"name": name, "parents": [parent_id]}
        boundary = f"drivesync-{uuid.uuid4().hex}"
        body = b"".join(
            [
                f"--{boundary}\r\n".encode(),
                b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
                json.dumps(metadata).encode("utf-8"),
                f"\r\n--{boundary}\r\n".encode(),
                f"Content-Type: {content_type}\r\n\r\n".encode(),
                content,
                f"\r\n--{boundary}--\r\n".encode(),
            ]
        )
        result = self._request(
            "POST",
            "/upload/drive/v3/files",
            params={
                "uploadType": "multipart",
                "fields": FILE_FIELDS,
                "supportsAllDrives": "true",
            },
            content=body,
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
        )
        return self._require_id(result, "file upload")

    def update_file(
        self,
        file_id: str,
        content: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> dict[str, Any]:
        """Replace the content of an existing file, keeping its ID.

        Args:
            file_id: ID of the file to update
            content: New file content
            content_type: MIME type of the content

        Returns:
            Updated file resource
        """
        return self._request(
            "PATCH",
            f"/upload/drive/v3/files/{file_id}",
            params={
                "uploadType": "media",
                "fields": FILE_FIELDS,
                "supportsAllDrives": "true",
            },
            content=content,
            headers={"Content-Type": content_type},
        )

    def delete_file(self, file_id: str) -> None:
        """Delete a file permanently.

        Args:
            file_id: ID of the file to delete
        """
        self._request(
            "DELETE",
            f"/drive/v3/files/{file_id}",
            params={"supportsAllDrives": "true"},
        )

    @staticmethod
    def _require_id(result: Any, operation: str) -> str:
        if not isinstance(result, dict) or not result.get("id"):
            raise InvalidResponseError(f"No id returned by {operation}")
        return str(result["id"])
