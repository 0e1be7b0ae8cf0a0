"""Misskey drive API client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from cloud_drive.core.errors import (
    DriveApiError,
    DriveConfigError,
    DriveResponseError,
    DriveTransportError,
)
from cloud_drive.models.file import DriveFile, DriveFolder

if TYPE_CHECKING:
    from cloud_drive.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
DEFAULT_TIMEOUT = 30.0

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: type[ModelT], endpoint: str, data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise DriveResponseError(
            endpoint, f"invalid {model.__name__}: {exc.error_count()} error(s)"
        ) from exc


def _parse_list(model: type[ModelT], endpoint: str, data: Any) -> list[ModelT]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise DriveResponseError(endpoint, f"expected a list, got {type(data).__name__}")
    return [_parse(model, endpoint, item) for item in data]


class MisskeyClient:
    """Client for the drive endpoints of a Misskey-compatible server.

    Every endpoint is a ``POST /api/<endpoint>`` whose JSON body carries the
    access token as ``i``.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Set up the client.

        Args:
            base_url: Server base URL, e.g. ``https://misskey.example``.
            token: Access token with drive permissions.
            timeout: Per-request timeout in seconds.
            session: Optional pre-built requests session (tests inject one).
        """
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> MisskeyClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/api/{endpoint}"

    def _handle(self, endpoint: str, response: requests.Response) -> Any:
        """Turn an API response into parsed JSON.

        Non-2xx raises DriveApiError; a 2xx body that is not JSON raises
        DriveResponseError.

        Endpoints that return nothing (204, empty body) yield ``None``.
        """
        if not response.ok:
            try:
                detail = response.json().get("error", {}).get("message") or response.reason
            except (ValueError, AttributeError):
                detail = response.reason
            logger.debug(
                "[_handle] drive api error; endpoint:%s;status:%d", endpoint, response.status_code
            )
            raise DriveApiError(response.status_code, endpoint, str(detail))
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.debug(
                "[_handle] non-json drive response; endpoint:%s;status:%d", endpoint, response.status_code
            )
            raise DriveResponseError(endpoint, "response body is not JSON") from exc

    def call(self, endpoint: str, **params: Any) -> Any:
        """POST ``params`` (plus the token) to ``/api/<endpoint>``.

        Raises:
            DriveApiError: If the API returns a non-2xx status code.
            DriveResponseError: If a 2xx body is not JSON.
            DriveTransportError: If the server cannot be reached.
        """
        body = {"i": self._token, **params}
        logger.debug("[call] drive request; endpoint:%s", endpoint)
        try:
            response = self._session.post(self._url(endpoint), json=body, timeout=self._timeout)
        except requests.RequestException as exc:
            raise DriveTransportError(f"Misskey request to {endpoint} failed: {exc}") from exc
        return self._handle(endpoint, response)

    # ------------------------------------------------------------------
    # folders
    # ------------------------------------------------------------------

    def list_folders(self, folder_id: Optional[str], limit: int = DEFAULT_LIMIT) -> list[DriveFolder]:
        endpoint = "drive/folders"
        return _parse_list(DriveFolder, endpoint, self.call(endpoint, folderId=folder_id, limit=limit))

    def find_folder(self, name: str, parent_id: Optional[str]) -> list[DriveFolder]:
        endpoint = "drive/folders/find"
        return _parse_list(DriveFolder, endpoint, self.call(endpoint, name=name, parentId=parent_id))

    def create_folder(self, name: str, parent_id: Optional[str]) -> DriveFolder:
        endpoint = "drive/folders/create"
        return _parse(DriveFolder, endpoint, self.call(endpoint, name=name, parentId=parent_id))

    def show_folder(self, folder_id: str) -> DriveFolder:
        endpoint = "drive/folders/show"
        return _parse(DriveFolder, endpoint, self.call(endpoint, folderId=folder_id))

    def update_folder(self, folder_id: str, name: str) -> None:
        self.call("drive/folders/update", folderId=folder_id, name=name)

    def delete_folder(self, folder_id: str) -> None:
        self.call("drive/folders/delete", folderId=folder_id)

    # ------------------------------------------------------------------
    # files
    # ------------------------------------------------------------------

    def list_files(self, folder_id: Optional[str], limit: int = DEFAULT_LIMIT) -> list[DriveFile]:
        endpoint = "drive/files"
        return _parse_list(DriveFile, endpoint, self.call(endpoint, folderId=folder_id, limit=limit))

    def show_file(self, file_id: str) -> DriveFile:
        endpoint = "drive/files/show"
        return _parse(DriveFile, endpoint, self.call(endpoint, fileId=file_id))

    def update_file(self, file_id: str, name: str) -> None:
        self.call("drive/files/update", fileId=file_id, name=name)

    def delete_file(self, file_id: str) -> None:
        self.call("drive/files/delete", fileId=file_id)

    def search_files(
        self, query: str, folder_id: Optional[str], limit: int = DEFAULT_LIMIT
    ) -> list[DriveFile]:
        endpoint = "drive/files/search-by-name"
        data = self.call(endpoint, query=query, folderId=folder_id, limit=limit)
        return _parse_list(DriveFile, endpoint, data)

    def upload_file(
        self,
        filename: str,
        content: bytes,
        content_type: str,
        folder_id: Optional[str],
    ) -> DriveFile:
        """Upload one file with a multipart ``drive/files/create`` request."""
        endpoint = "drive/files/create"
        form = {"i": self._token, "name": filename}
        if folder_id:
            form["folderId"] = folder_id
        logger.debug("[upload_file] drive upload; name:%s;size:%d", filename, len(content))
        try:
            response = self._session.post(
                self._url(endpoint),
                data=form,
                files={"file": (filename, content, content_type)},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise DriveTransportError(f"Misskey upload of {filename} failed: {exc}") from exc
        return _parse(DriveFile, endpoint, self._handle(endpoint, response))

    def fetch_url(self, url: str) -> tuple[bytes, str]:
        """Download a file URL in full. Returns ``(content, content_type)``."""
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise DriveTransportError(f"Download of {url} failed: {exc}") from exc
        if not response.ok:
            raise DriveApiError(response.status_code, url, response.reason or "download failed")
        content_type = response.headers.get("Content-Type") or "application/octet-stream"
        return response.content, content_type


def drive_client_from_settings(settings: Settings) -> MisskeyClient:
    """Construct a MisskeyClient from application settings.

    Raises:
        DriveConfigError: If the base URL or token is missing.
    """
    if not settings.misskey_base_url or not settings.misskey_token:
        raise DriveConfigError("Misskey configuration missing")
    return MisskeyClient(
        base_url=settings.misskey_base_url,
        token=settings.misskey_token,
        timeout=settings.request_timeout,
    )
