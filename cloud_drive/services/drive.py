"""Request-scoped drive operations shared by the JSON API and the HTML views."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional
from urllib.parse import unquote, urlparse

from cloud_drive.core.errors import DriveError, UploadAbortedError
from cloud_drive.models.file import DriveFile, FolderEntry, Listing, UploadResult
from cloud_drive.services.misskey import DEFAULT_LIMIT
from cloud_drive.services.resolver import PathResolver, relative_path

if TYPE_CHECKING:
    from cloud_drive.services.misskey import MisskeyClient

logger = logging.getLogger(__name__)

VIEW_ALL = "all"
VIEW_IMAGES = "images"
VIEWS = (VIEW_ALL, VIEW_IMAGES)


@dataclass
class UploadItem:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class Download:
    content: bytes
    content_type: str
    filename: str


def only_images(files: list[DriveFile]) -> list[DriveFile]:
    return [f for f in files if f.is_image]


class DriveService:
    def __init__(self, drive: MisskeyClient, bucket: str = "bucket", limit: int = DEFAULT_LIMIT) -> None:
        self.drive = drive
        self.bucket = bucket
        self.limit = limit
        self.resolver = PathResolver(drive, bucket)

    # --- listing ---

    def list_folder(self, folder_id: Optional[str], view: str = VIEW_ALL, base_path: str = "/") -> Listing:
        """Files and subfolders of one folder.

        Folder entries get ``base_path + name + "/"`` as their path. The
        images view keeps only ``image/*`` files and drops folders.
        """
        files = self.drive.list_files(folder_id, limit=self.limit)
        if view == VIEW_IMAGES:
            return Listing(files=only_images(files), folders=[])

        if not base_path.endswith("/"):
            base_path += "/"
        folders = [
            FolderEntry(id=folder.id, name=folder.name, path=f"{base_path}{folder.name}/")
            for folder in self.drive.list_folders(folder_id, limit=self.limit)
        ]
        return Listing(files=files, folders=folders)

    def list_path(self, path: str, view: str, user_id: str) -> Listing:
        folder_id = self.resolver.resolve(path)
        return self.list_folder(folder_id, view, relative_path(path, user_id, self.bucket))

    def search(self, query: str, view: str, root_folder_id: Optional[str]) -> Listing:
        # The search endpoint has no type filter and returns no folders
        files = self.drive.search_files(query, root_folder_id, limit=self.limit)
        if view == VIEW_IMAGES:
            files = only_images(files)
        return Listing(files=files, folders=[])

    # --- folders ---

    def create_folder(self, path: str, name: str) -> FolderEntry:
        parent_id = self.resolver.resolve(path)
        folder = self.drive.create_folder(name, parent_id)
        if not path.endswith("/"):
            path += "/"
        logger.info("[create_folder] folder created; path:%s;folder_id:%s", path, folder.id)
        return FolderEntry(id=folder.id, name=folder.name, path=f"{path}{folder.name}/")

    def rename_folder(self, folder_id: str, new_name: str) -> None:
        self.drive.update_folder(folder_id, new_name)

    def delete_folder(self, folder_id: str) -> None:
        # Descendants are removed by the drive itself
        self.drive.delete_folder(folder_id)

    # --- files ---

    def rename_file(self, file_id: str, new_name: str) -> None:
        self.drive.update_file(file_id, new_name)

    def delete_file(self, file_id: str) -> None:
        self.drive.delete_file(file_id)

    def upload(self, items: list[UploadItem], folder_id: Optional[str]) -> list[UploadResult]:
        """Upload ``items`` one after another into ``folder_id``.

        Raises:
            UploadAbortedError: On the first failure. Earlier uploads stay in
                the drive and are listed in the error's ``results``; later
                items are never attempted.
        """
        results: list[UploadResult] = []
        for item in items:
            try:
                result = self.drive.upload_file(item.filename, item.content, item.content_type, folder_id)
            except DriveError as exc:
                logger.error(
                    "[upload] upload failed, aborting batch; name:%s;done:%d;total:%d",
                    item.filename,
                    len(results),
                    len(items),
                )
                raise UploadAbortedError(item.filename, exc, results) from exc
            results.append(result)
        return results

    def download(self, file_id: Optional[str] = None, url: Optional[str] = None) -> Download:
        """Fetch a whole file into memory, by drive id or by direct URL."""
        if file_id:
            info = self.drive.show_file(file_id)
            content, fetched_type = self.drive.fetch_url(info.url)
            return Download(content, info.type or fetched_type, info.name)
        if not url:
            raise ValueError("file_id or url is required")
        content, content_type = self.drive.fetch_url(url)
        filename = unquote(urlparse(url).path.rsplit("/", 1)[-1]) or "download"
        return Download(content, content_type, filename)
