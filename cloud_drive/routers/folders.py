import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from cloud_drive.core.config import Settings, get_settings
from cloud_drive.routers.deps import check_owner, get_service, require_user
from cloud_drive.services.drive import DriveService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class CreateFolderRequest(BaseModel):
    path: Optional[str] = None
    name: Optional[str] = None


class RenameFolderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    folder_id: Optional[str] = Field(default=None, alias="folderId")
    new_name: Optional[str] = Field(default=None, alias="newName")


# --- create a folder under a path (missing parents are created too) ---
@router.post("/folders")
def create_folder(
    body: CreateFolderRequest,
    user_id: str = Depends(require_user),
    settings: Settings = Depends(get_settings),
    service: DriveService = Depends(get_service),
):
    name = (body.name or "").strip()
    if not body.path or not name:
        raise HTTPException(status_code=400, detail="Path and folder name are required")
    check_owner(body.path, user_id, settings)

    folder = service.create_folder(body.path, name)
    return {"success": True, "folder": folder.model_dump()}


# --- delete a folder (the drive removes its contents) ---
@router.delete("/folders")
def delete_folder(
    folderId: Optional[str] = None,
    user_id: str = Depends(require_user),
    service: DriveService = Depends(get_service),
):
    if not folderId:
        raise HTTPException(status_code=400, detail="Folder ID is required")

    service.delete_folder(folderId)
    logger.info("[delete_folder] folder deleted; user_id:%s;folder_id:%s", user_id, folderId)
    return {"success": True}


# --- rename a folder ---
@router.patch("/folders")
def rename_folder(
    body: RenameFolderRequest,
    user_id: str = Depends(require_user),
    service: DriveService = Depends(get_service),
):
    new_name = (body.new_name or "").strip()
    if not body.folder_id or not new_name:
        raise HTTPException(status_code=400, detail="Folder ID and new name are required")

    service.rename_folder(body.folder_id, new_name)
    return {"success": True}


# --- make sure bucket/<userId> exists ---
@router.get("/initialize")
def initialize(
    user_id: str = Depends(require_user),
    service: DriveService = Depends(get_service),
):
    root_id, bucket_id = service.resolver.ensure_user_root(user_id)
    return {"rootFolderId": root_id, "bucketFolderId": bucket_id}
