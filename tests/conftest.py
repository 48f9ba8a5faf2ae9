"""Shared fixtures: an in-memory remote store that records every call."""

import hashlib
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from drivesync.exceptions import NotFoundError
from drivesync.models import FOLDER_MIME_TYPE

WRITE_OPERATIONS = ("create_folder", "create_file", "update_file", "delete_file")


def md5(content: bytes) -> str:
    return hashlib.md5(content).hexdigest()


class FakeDriveClient:
    """Implements the DriveClient surface used by the sync engine."""

    def __init__(self, page_size: int = 2):
        self.page_size = page_size
        self.objects: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, tuple]] = []
        self._failures: dict[str, tuple[Exception, Callable[..., bool]]] = {}
        self._lock = threading.Lock()
        self._counter = 0
        self.closed = False

    # -- setup helpers -----------------------------------------------------

    def _new_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}{self._counter}"

    def add_root(self, root_id: str) -> str:
        self.objects[root_id] = {
            "id": root_id,
            "name": root_id,
            "mimeType": FOLDER_MIME_TYPE,
            "parent": None,
        }
        return root_id

    def add_folder(self, parent_id: str, name: str) -> str:
        folder_id = self._new_id("folder")
        self.objects[folder_id] = {
            "id": folder_id,
            "name": name,
            "mimeType": FOLDER_MIME_TYPE,
            "parent": parent_id,
        }
        return folder_id

    def add_file(self, parent_id: str, name: str, content: bytes) -> str:
        file_id = self._new_id("file")
        self.objects[file_id] = {
            "id": file_id,
            "name": name,
            "mimeType": "text/plain",
            "parent": parent_id,
            "content": content,
            "md5Checksum": md5(content),
        }
        return file_id

    def fail(
        self,
        operation: str,
        error: Exception,
        when: Optional[Callable[..., bool]] = None,
    ) -> None:
        """Make an operation raise ``error`` (optionally only when ``when(*args)``)."""
        self._failures[operation] = (error, when or (lambda *args: True))

    # -- inspection helpers ------------------------------------------------

    def calls_to(self, operation: str) -> list[tuple]:
        return [args for op, args in self.calls if op == operation]

    @property
    def write_calls(self) -> list[tuple[str, tuple]]:
        return [(op, args) for op, args in self.calls if op in WRITE_OPERATIONS]

    def reset_calls(self) -> None:
        self.calls.clear()

    def children(self, parent_id: str) -> list[dict[str, Any]]:
        return sorted(
            (o for o in self.objects.values() if o["parent"] == parent_id),
            key=lambda o: o["id"],
        )

    def tree(self, root_id: str, prefix: str = "") -> dict[str, Optional[str]]:
        """Return {path: md5} for files and {path: None} for folders."""
        result: dict[str, Optional[str]] = {}
        for child in self.children(root_id):
            path = f"{prefix}/{child['name']}" if prefix else child["name"]
            if child["mimeType"] == FOLDER_MIME_TYPE:
                result[path] = None
                result.update(self.tree(child["id"], path))
            else:
                result[path] = child["md5Checksum"]
        return result

    def files(self, root_id: str) -> dict[str, str]:
        return {p: h for p, h in self.tree(root_id).items() if h is not None}

    def id_at(self, root_id: str, path: str) -> str:
        parent = root_id
        for segment in path.split("/"):
            match = [c for c in self.children(parent) if c["name"] == segment]
            assert match, f"{path} not found"
            parent = match[0]["id"]
        return parent

    # -- DriveClient surface -----------------------------------------------

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        failure = self._failures.get(operation)
        if failure is not None:
            error, when = failure
            if when(*args):
                raise error

    def list_children(
        self, parent_id: str, page_token: Optional[str] = None, page_size: int = 1000
    ) -> dict[str, Any]:
        with self._lock:
            self._record("list_children", parent_id, page_token)
            children = self.children(parent_id)
            offset = int(page_token or 0)
            page = children[offset : offset + self.page_size]
            result: dict[str, Any] = {
                "files": [
                    {k: v for k, v in c.items() if k in ("id", "name", "mimeType", "md5Checksum")}
                    for c in page
                ]
            }
            if offset + self.page_size < len(children):
                result["nextPageToken"] = str(offset + self.page_size)
            return result

    def find_child_folder(self, parent_id: str, name: str) -> Optional[dict[str, Any]]:
        with self._lock:
            self._record("find_child_folder", parent_id, name)
            for child in self.children(parent_id):
                if child["name"] == name and child["mimeType"] == FOLDER_MIME_TYPE:
                    return {"id": child["id"], "name": name, "mimeType": FOLDER_MIME_TYPE}
            return None

    def create_folder(self, parent_id: str, name: str) -> str:
        with self._lock:
            self._record("create_folder", parent_id, name)
            return self.add_folder(parent_id, name)

    def create_file(
        self, parent_id: str, name: str, content: bytes, content_type: str = ""
    ) -> str:
        with self._lock:
            self._record("create_file", parent_id, name)
            return self.add_file(parent_id, name, content)

    def update_file(
        self, file_id: str, content: bytes, content_type: str = ""
    ) -> dict[str, Any]:
        with self._lock:
            self._record("update_file", file_id)
            obj = self.objects.get(file_id)
            if obj is None:
                raise NotFoundError(f"Resource not found: {file_id}")
            obj["content"] = content
            obj["md5Checksum"] = md5(content)
            return {"id": file_id, "md5Checksum": obj["md5Checksum"]}

    def delete_file(self, file_id: str) -> None:
        with self._lock:
            self._record("delete_file", file_id)
            if self.objects.pop(file_id, None) is None:
                raise NotFoundError(f"Resource not found: {file_id}")

    def get_about(self) -> dict[str, Any]:
        self._record("get_about")
        return {"user": {"emailAddress": "test@example.com"}}

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeDriveClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


@pytest.fixture
def fake_drive():
    """Create an in-memory remote store with an empty root 'root'."""
    drive = FakeDriveClient()
    drive.add_root("root")
    return drive


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
