# cloud_drive/models/session.py
from pydantic import BaseModel, ConfigDict, Field


class HistoryEntry(BaseModel):
    id: str
    name: str


class DriveSession(BaseModel):
    """Navigation state kept in the drive-session cookie.

    ``folder_history`` is a stack whose first entry is always the user's root
    folder (named after the user id) and whose last entry is the current
    folder. ``folder_path`` is the display path relative to that root.
    """

    model_config = ConfigDict(populate_by_name=True)

    current_folder_id: str = Field(alias="currentFolderId")
    folder_path: str = Field(default="/", alias="folderPath")
    folder_history: list[HistoryEntry] = Field(default_factory=list, alias="folderHistory")

    @property
    def at_root(self) -> bool:
        return len(self.folder_history) <= 1
