import io
import logging
from typing import Optional
from urllib.parse import quote, urlparse

from fastapi import APIRouter, Depends, File as FastAPIFile, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from cloud_drive.core.config import Settings, get_settings
from cloud_drive.core.errors import UploadAbortedError
from cloud_drive.models.file import Listing
from cloud_drive.routers.deps import check_owner, get_service, get_session_store, require_user
from cloud_drive.services.drive import VIEW_ALL, DriveService, UploadItem
from cloud_drive.services.resolver import user_root_path
from cloud_drive.services.session import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class RenameFileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_id: Optional[str] = Field(default=None, alias="fileId")
    new_name: Optional[str] = Field(default=None, alias="newName")


# --- list files and folders of a path (or of the session's folder) ---
@router.get("/files", response_model=Listing)
def list_files(
    request: Request,
    path: Optional[str] = None,
    view: str = VIEW_ALL,
    user_id: str = Depends(require_user),
    settings: Settings = Depends(get_settings),
    service: DriveService = Depends(get_service),
    store: SessionStore = Depends(get_session_store),
):
    if path:
        check_owner(path, user_id, settings)
        return service.list_path(path, view, user_id)

    session = store.load(request.cookies.get(settings.session_cookie_name))
    return service.list_folder(session.current_folder_id, view, session.folder_path)


# --- delete a file ---
@router.delete("/files")
def delete_file(
    fileId: Optional[str] = None,
    user_id: str = Depends(require_user),
    service: DriveService = Depends(get_service),
):
    if not fileId:
        raise HTTPException(status_code=400, detail="File ID is required")

    service.delete_file(fileId)
    logger.info("[delete_file] file deleted; user_id:%s;file_id:%s", user_id, fileId)
    return {"success": True}


# --- rename a file ---
@router.patch("/files")
def rename_file(
    body: RenameFileRequest,
    user_id: str = Depends(require_user),
    service: DriveService = Depends(get_service),
):
    new_name = (body.new_name or "").strip()
    if not body.file_id or not new_name:
        raise HTTPException(status_code=400, detail="File ID and new name are required")

    service.rename_file(body.file_id, new_name)
    return {"success": True}


# --- upload one or more files ---
@router.post("/upload")
async def upload_files(
    request: Request,
    files: list[UploadFile] = FastAPIFile(default=[]),
    path: Optional[str] = Form(default=None),
    user_id: str = Depends(require_user),
    settings: Settings = Depends(get_settings),
    service: DriveService = Depends(get_service),
    store: SessionStore = Depends(get_session_store),
):
    if not files:
        raise HTTPException(status_code=400, detail="No files provided")
    if path:
        check_owner(path, user_id, settings)

    items = [
        UploadItem(
            filename=upload.filename or "upload",
            content=await upload.read(),
            content_type=upload.content_type or "application/octet-stream",
        )
        for upload in files
    ]

    if path:
        folder_id = await run_in_threadpool(service.resolver.resolve, path)
    else:
        cookie = request.cookies.get(settings.session_cookie_name)
        folder_id = (await run_in_threadpool(store.load, cookie)).current_folder_id

    try:
        results = await run_in_threadpool(service.upload, items, folder_id)
    except UploadAbortedError as exc:
        logger.error("[upload_files] upload batch aborted; user_id:%s", user_id, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": str(exc),
                "files": [r.model_dump(by_alias=True) for r in exc.results],
            },
        )

    logger.info("[upload_files] files uploaded; user_id:%s;count:%d", user_id, len(results))
    return {"success": True, "files": [r.model_dump(by_alias=True) for r in results]}


# --- search files by name within the user's root folder ---
@router.get("/search", response_model=Listing)
def search_files(
    path: Optional[str] = None,
    query: str = "",
    view: str = VIEW_ALL,
    user_id: str = Depends(require_user),
    settings: Settings = Depends(get_settings),
    service: DriveService = Depends(get_service),
):
    path = path or user_root_path(user_id, settings.bucket_folder_name)
    check_owner(path, user_id, settings)

    root_id, _ = service.resolver.ensure_user_root(user_id)
    if not query.strip():
        return service.list_folder(root_id, view, "/")
    return service.search(query.strip(), view, root_id)


# --- download a file as an attachment ---
@router.get("/download")
def download_file(
    fileId: Optional[str] = None,
    url: Optional[str] = None,
    user_id: str = Depends(require_user),
    service: DriveService = Depends(get_service),
):
    if not fileId and not url:
        raise HTTPException(status_code=400, detail="File ID or URL is required")
    if not fileId and urlparse(url).scheme not in ("http", "https"):
        raise HTTPException(status_code=400, detail="Only http(s) URLs can be downloaded")

    download = service.download(file_id=fileId, url=url)

    return StreamingResponse(
        io.BytesIO(download.content),
        media_type=download.content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{quote(download.filename)}"',
            "Content-Length": str(len(download.content)),
        },
    )
