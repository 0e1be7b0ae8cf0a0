"""Route tests for the JSON error boundary: bad upstream replies and unhandled errors."""

from unittest.mock import MagicMock

import pytest
import requests
from fastapi.testclient import TestClient

from cloud_drive.core.config import get_settings
from cloud_drive.main import app
from cloud_drive.routers.deps import get_drive
from cloud_drive.services.misskey import MisskeyClient

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _reply(payload=None, body: bytes = b"{...}"):
    resp = MagicMock(spec=requests.Response)
    resp.status_code = 200
    resp.ok = True
    resp.reason = "OK"
    resp.content = body
    if payload is None:
        resp.json.side_effect = ValueError("Expecting value")
    else:
        resp.json.return_value = payload
    return resp


def _html() -> MagicMock:
    return _reply(body=b"<html>gateway</html>")


@pytest.fixture
def upstream() -> MagicMock:
    """The requests.Session behind a real MisskeyClient."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def api(settings, upstream):
    drive = MisskeyClient(settings.misskey_base_url, settings.misskey_token, session=upstream)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_drive] = lambda: drive
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Unreadable 2xx replies from the drive
# ---------------------------------------------------------------------------


class TestUpstreamReplies:
    def test_html_listing_reply_is_json_500(self, api, auth, upstream) -> None:
        upstream.post.side_effect = [_html()]

        response = api.get("/api/files", params={"path": "bucket/user_1/"}, headers=auth)

        assert response.status_code == 500
        assert response.headers["content-type"] == "application/json"
        assert "drive/folders/find" in response.json()["error"]

    def test_unexpected_shape_on_initialize_is_json_500(self, api, auth, upstream) -> None:
        upstream.post.side_effect = [_reply({"unexpected": True})]

        response = api.get("/api/initialize", headers=auth)

        assert response.status_code == 500
        assert "expected a list" in response.json()["error"]

    def test_upload_batch_keeps_results_before_bad_reply(self, api, auth, upstream) -> None:
        upstream.post.side_effect = [
            _reply([{"id": "b1", "name": "bucket", "parentId": None}]),
            _reply([{"id": "r1", "name": "user_1", "parentId": "b1"}]),
            _reply({"id": "f1", "name": "a.txt", "type": "text/plain", "size": 1}),
            _html(),
        ]
        files = [("files", ("a.txt", b"a", "text/plain")), ("files", ("b.txt", b"b", "text/plain"))]

        response = api.post("/api/upload", files=files, data={"path": "bucket/user_1/"}, headers=auth)

        assert response.status_code == 500
        body = response.json()
        assert "b.txt" in body["error"]
        assert [f["id"] for f in body["files"]] == ["f1"]
        assert upstream.post.call_count == 4


# ---------------------------------------------------------------------------
# Errors nothing else handles
# ---------------------------------------------------------------------------


def test_unhandled_error_is_json_500(settings, drive, auth, user_root) -> None:
    drive.list_files = MagicMock(side_effect=RuntimeError("listing exploded"))
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_drive] = lambda: drive
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = test_client.get("/api/files", params={"path": "bucket/user_1/"}, headers=auth)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"error": "listing exploded"}
