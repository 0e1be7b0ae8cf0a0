"""Virtual path → drive folder id resolution.

The drive only knows folders by id and parent id. Paths such as
``bucket/<userId>/Photos/2024/`` are mapped onto it by walking the segments
from the top level, finding each folder by name under the current parent and
creating it when it does not exist yet.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from cloud_drive.core.errors import DriveApiError

if TYPE_CHECKING:
    from cloud_drive.services.misskey import MisskeyClient

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "bucket"


def split_path(path: Optional[str]) -> list[str]:
    return [part for part in (path or "").split("/") if part]


def user_root_path(user_id: str, bucket: str = DEFAULT_BUCKET) -> str:
    return f"{bucket}/{user_id}"


def owns_path(path: str, user_id: str, bucket: str = DEFAULT_BUCKET) -> bool:
    """True when ``path`` is the user's root or lies below it.

    A bare prefix test would let ``bucket/u1`` match ``bucket/u10``, so the
    root must match exactly or be followed by a slash.
    """
    root = user_root_path(user_id, bucket)
    return path == root or path.startswith(root + "/")


def relative_path(path: str, user_id: str, bucket: str = DEFAULT_BUCKET) -> str:
    """``bucket/u1/Photos`` → ``/Photos/``; the user root itself → ``/``."""
    parts = split_path(path)[len(split_path(user_root_path(user_id, bucket))):]
    return "/" + "".join(f"{part}/" for part in parts)


class PathResolver:
    def __init__(self, drive: MisskeyClient, bucket: str = DEFAULT_BUCKET) -> None:
        self.drive = drive
        self.bucket = bucket

    def _find_or_create(self, name: str, parent_id: Optional[str]) -> str:
        try:
            found = self.drive.find_folder(name, parent_id)
        except DriveApiError as exc:
            if exc.status_code != 404:
                raise
            found = []
        if found:
            return found[0].id

        # No lock between find and create: two requests racing on the same
        # missing segment can both create it.
        folder = self.drive.create_folder(name, parent_id)
        logger.info(
            "[_find_or_create] created folder; name:%s;parent_id:%s;folder_id:%s",
            name,
            parent_id,
            folder.id,
        )
        return folder.id

    def resolve(self, path: Optional[str]) -> Optional[str]:
        """Return the folder id for ``path``, creating missing segments.

        ``/`` and the empty path are the drive's top level and map to ``None``.
        Afterwards every ancestor segment of ``path`` exists upstream.

        Raises:
            DriveError: On any upstream failure other than a 404 lookup.
        """
        current: Optional[str] = None
        for part in split_path(path):
            current = self._find_or_create(part, current)
        return current

    def ensure_user_root(self, user_id: str) -> tuple[str, str]:
        """Make sure ``bucket/<user_id>`` exists.

        Returns:
            ``(root_folder_id, bucket_folder_id)``.
        """
        bucket_id = self._find_or_create(self.bucket, None)
        root_id = self._find_or_create(user_id, bucket_id)
        return root_id, bucket_id
