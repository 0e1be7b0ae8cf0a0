from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from cloud_drive.core.config import Settings, get_settings
from cloud_drive.models.session import DriveSession
from cloud_drive.routers.deps import get_session_store
from cloud_drive.services.drive import VIEW_IMAGES, VIEWS
from cloud_drive.services.session import SessionStore

router = APIRouter(prefix="/api/session")


class FolderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    folder_id: Optional[str] = Field(default=None, alias="folderId")


class ViewRequest(BaseModel):
    view: str


def _load(request: Request, store: SessionStore, settings: Settings) -> DriveSession:
    return store.load(request.cookies.get(settings.session_cookie_name))


def _respond(store: SessionStore, session: DriveSession) -> JSONResponse:
    response = JSONResponse(session.model_dump(by_alias=True))
    store.persist(response, session)
    return response


@router.get("")
def show_session(
    request: Request,
    settings: Settings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
):
    return _respond(store, _load(request, store, settings))


@router.post("/navigate")
def navigate(
    body: FolderRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
):
    if not body.folder_id:
        raise HTTPException(status_code=400, detail="Folder ID is required")
    session = _load(request, store, settings)
    return _respond(store, store.advance(session, body.folder_id))


@router.post("/up")
def navigate_up(
    request: Request,
    settings: Settings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
):
    return _respond(store, store.ascend(_load(request, store, settings)))


@router.post("/rewind")
def rewind(
    body: FolderRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
):
    if not body.folder_id:
        raise HTTPException(status_code=400, detail="Folder ID is required")
    return _respond(store, store.rewind(_load(request, store, settings), body.folder_id))


@router.post("/view")
def switch_view(
    body: ViewRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
):
    if body.view not in VIEWS:
        raise HTTPException(status_code=400, detail=f"Unknown view: {body.view}")
    session = _load(request, store, settings)
    if body.view == VIEW_IMAGES:
        session = store.reset(session)
    return _respond(store, session)
