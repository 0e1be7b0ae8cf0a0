"""Cookie-backed navigation session.

The session is read once per request with ``load``, changed through the
pure transitions ``advance`` / ``ascend`` / ``rewind`` / ``reset`` (each
returns a new session) and written back with ``persist``. Concurrent
requests from the same browser are last-write-wins.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Optional
from urllib.parse import quote, unquote

from pydantic import ValidationError

from cloud_drive.models.session import DriveSession, HistoryEntry
from cloud_drive.services.resolver import PathResolver

if TYPE_CHECKING:
    from starlette.responses import Response

    from cloud_drive.core.config import Settings
    from cloud_drive.services.misskey import MisskeyClient

logger = logging.getLogger(__name__)


def _path_for(history: list[HistoryEntry]) -> str:
    # history[0] is the user root, which is "/" in display terms
    return "/" + "".join(f"{entry.name}/" for entry in history[1:])


def _at(history: list[HistoryEntry]) -> DriveSession:
    return DriveSession(
        current_folder_id=history[-1].id,
        folder_path=_path_for(history),
        folder_history=history,
    )


class SessionStore:
    def __init__(self, settings: Settings, drive: MisskeyClient, user_id: str) -> None:
        self.settings = settings
        self.drive = drive
        self.user_id = user_id

    def _root_id(self) -> str:
        root_id, _ = PathResolver(self.drive, self.settings.bucket_folder_name).ensure_user_root(
            self.user_id
        )
        return root_id

    def _fresh_at(self, root_id: str) -> DriveSession:
        return _at([HistoryEntry(id=root_id, name=self.user_id)])

    def fresh(self) -> DriveSession:
        return self._fresh_at(self._root_id())

    def parse(self, cookie_value: Optional[str]) -> Optional[DriveSession]:
        """Decode a cookie value; ``None`` when absent, malformed or foreign."""
        if not cookie_value:
            return None
        try:
            session = DriveSession.model_validate(json.loads(unquote(cookie_value)))
        except (ValueError, ValidationError):
            logger.warning("[parse] discarding malformed session cookie; user_id:%s", self.user_id)
            return None
        if not session.folder_history or session.folder_history[0].name != self.user_id:
            logger.warning("[parse] discarding foreign session cookie; user_id:%s", self.user_id)
            return None
        # current folder must be one of the folders we walked through
        if session.current_folder_id not in {entry.id for entry in session.folder_history}:
            logger.warning("[parse] discarding inconsistent session cookie; user_id:%s", self.user_id)
            return None
        return session

    def load(self, cookie_value: Optional[str]) -> DriveSession:
        """Return the cookie session, or a fresh one at the user root.

        A cookie is only trusted when its history starts at this user's own
        root folder, so one left behind by another account is dropped.
        """
        root_id = self._root_id()
        session = self.parse(cookie_value)
        if session is None or session.folder_history[0].id != root_id:
            return self._fresh_at(root_id)
        return session

    def advance(self, session: DriveSession, folder_id: str) -> DriveSession:
        folder = self.drive.show_folder(folder_id)
        return _at([*session.folder_history, HistoryEntry(id=folder.id, name=folder.name)])

    def ascend(self, session: DriveSession) -> DriveSession:
        if session.at_root:
            return session.model_copy(deep=True)
        return _at(session.folder_history[:-1])

    def rewind(self, session: DriveSession, folder_id: str) -> DriveSession:
        """Jump back to an earlier history entry (breadcrumb click)."""
        for index, entry in enumerate(session.folder_history):
            if entry.id == folder_id:
                return _at(session.folder_history[: index + 1])
        return session.model_copy(deep=True)

    def reset(self, session: DriveSession) -> DriveSession:
        if not session.folder_history:
            return self.fresh()
        return _at(session.folder_history[:1])

    def dump(self, session: DriveSession) -> str:
        return quote(session.model_dump_json(by_alias=True), safe="")

    def persist(self, response: Response, session: DriveSession) -> None:
        response.set_cookie(
            self.settings.session_cookie_name,
            self.dump(session),
            max_age=self.settings.session_max_age,
            httponly=True,
            secure=self.settings.secure_cookies,
            samesite="lax",
        )
