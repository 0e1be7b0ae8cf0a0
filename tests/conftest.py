"""Shared fixtures: an in-memory drive and a TestClient wired to it."""

from __future__ import annotations

import itertools
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from cloud_drive.core.config import Settings, get_settings
from cloud_drive.core.errors import DriveApiError
from cloud_drive.main import app
from cloud_drive.models.file import DriveFile, DriveFolder
from cloud_drive.routers.deps import get_drive

USER = "user_1"
OTHER_USER = "user_2"


# ---------------------------------------------------------------------------
# Fake drive
# ---------------------------------------------------------------------------


class FakeDrive:
    """In-memory stand-in for MisskeyClient.

    Folders and files live in dicts keyed by id. Deleting a folder removes
    everything below it, as the real drive does.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.folders: dict[str, DriveFolder] = {}
        self.files: dict[str, tuple[DriveFile, Optional[str]]] = {}
        self.urls: dict[str, tuple[bytes, str]] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.fail_upload_names: set[str] = set()
        self.find_status: Optional[int] = None
        self.closed = False

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids)}"

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))

    def calls_to(self, name: str) -> list[tuple]:
        return [args for call, args in self.calls if call == name]

    def close(self) -> None:
        self.closed = True

    # --- folders ---

    def find_folder(self, name, parent_id):
        self._record("find_folder", name, parent_id)
        if self.find_status is not None:
            raise DriveApiError(self.find_status, "drive/folders/find", "find failed")
        return [f for f in self.folders.values() if f.name == name and f.parent_id == parent_id]

    def create_folder(self, name, parent_id):
        self._record("create_folder", name, parent_id)
        folder = DriveFolder(
            id=self._next_id("fo"), name=name, parent_id=parent_id, created_at="2024-05-01T10:00:00.000Z"
        )
        self.folders[folder.id] = folder
        return folder

    def show_folder(self, folder_id):
        self._record("show_folder", folder_id)
        if folder_id not in self.folders:
            raise DriveApiError(400, "drive/folders/show", "No such folder.")
        return self.folders[folder_id]

    def list_folders(self, folder_id, limit=100):
        self._record("list_folders", folder_id)
        return [f for f in self.folders.values() if f.parent_id == folder_id][:limit]

    def update_folder(self, folder_id, name):
        self._record("update_folder", folder_id, name)
        folder = self.show_folder(folder_id)
        self.folders[folder_id] = folder.model_copy(update={"name": name})

    def delete_folder(self, folder_id):
        self._record("delete_folder", folder_id)
        self.show_folder(folder_id)
        doomed = {folder_id}
        changed = True
        while changed:
            children = {f.id for f in self.folders.values() if f.parent_id in doomed}
            changed = not children <= doomed
            doomed |= children
        for fid in doomed:
            self.folders.pop(fid, None)
        for file_id in [k for k, (_, parent) in self.files.items() if parent in doomed]:
            del self.files[file_id]

    # --- files ---

    def add_file(self, name, folder_id, type="text/plain", size=10, url=None):
        file = DriveFile(
            id=self._next_id("fi"),
            name=name,
            type=type,
            size=size,
            created_at="2024-05-01T10:00:00.000Z",
            url=url or f"https://files.test/{name}",
        )
        self.files[file.id] = (file, folder_id)
        return file

    def list_files(self, folder_id, limit=100):
        self._record("list_files", folder_id)
        return [f for f, parent in self.files.values() if parent == folder_id][:limit]

    def show_file(self, file_id):
        self._record("show_file", file_id)
        if file_id not in self.files:
            raise DriveApiError(400, "drive/files/show", "No such file.")
        return self.files[file_id][0]

    def update_file(self, file_id, name):
        self._record("update_file", file_id, name)
        file, parent = self.files[file_id]
        self.files[file_id] = (file.model_copy(update={"name": name}), parent)

    def delete_file(self, file_id):
        self._record("delete_file", file_id)
        self.files.pop(file_id, None)

    def search_files(self, query, folder_id, limit=100):
        self._record("search_files", query, folder_id)
        return [f for f, parent in self.files.values() if parent == folder_id and query in f.name][:limit]

    def upload_file(self, filename, content, content_type, folder_id):
        self._record("upload_file", filename, folder_id)
        if filename in self.fail_upload_names:
            raise DriveApiError(500, "drive/files/create", "Internal error")
        return self.add_file(filename, folder_id, type=content_type, size=len(content))

    def fetch_url(self, url):
        self._record("fetch_url", url)
        if url not in self.urls:
            raise DriveApiError(404, url, "Not Found")
        return self.urls[url]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        misskey_base_url="https://misskey.test",
        misskey_token="test-token",
    )


@pytest.fixture
def drive() -> FakeDrive:
    return FakeDrive()


@pytest.fixture
def client(settings: Settings, drive: FakeDrive):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_drive] = lambda: drive
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth() -> dict[str, str]:
    return {"X-Auth-Request-User": USER}


@pytest.fixture
def user_root(drive: FakeDrive) -> str:
    """Create bucket/<USER> up front and return the user's root folder id."""
    bucket = drive.create_folder("bucket", None)
    return drive.create_folder(USER, bucket.id).id
