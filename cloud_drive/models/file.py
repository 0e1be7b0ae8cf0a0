# cloud_drive/models/file.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DriveModel(BaseModel):
    # Upstream speaks camelCase; we keep it on the wire and snake_case in code
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DriveFile(DriveModel):
    id: str
    name: str
    type: str = "application/octet-stream"   # MIME type
    size: int = 0                             # bytes
    created_at: str = Field(default="", alias="createdAt")
    url: str = ""
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbnailUrl")

    @property
    def is_image(self) -> bool:
        return self.type.startswith("image/")


# Upload results come back from drive/files/create in the same shape
UploadResult = DriveFile


class DriveFolder(DriveModel):
    id: str
    name: str
    parent_id: Optional[str] = Field(default=None, alias="parentId")
    created_at: str = Field(default="", alias="createdAt")


class FolderEntry(DriveModel):
    """A folder as shown to the browser: id, name and its virtual path."""

    id: str
    name: str
    path: str


class Listing(DriveModel):
    files: list[DriveFile] = Field(default_factory=list)
    folders: list[FolderEntry] = Field(default_factory=list)
