import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from cloud_drive.core.config import Settings, get_settings
from cloud_drive.core.errors import DriveError
from cloud_drive.models.file import Listing
from cloud_drive.routers.deps import current_user, get_drive, get_service
from cloud_drive.services.drive import VIEW_ALL, VIEW_IMAGES, DriveService
from cloud_drive.services.misskey import MisskeyClient
from cloud_drive.services.resolver import user_root_path
from cloud_drive.services.session import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()

BASE_DIR = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def format_file_size(size: Optional[int]) -> str:
    size = size or 0
    if size < 1024:
        return f"{size} B"
    if size < 1024 ** 2:
        return f"{size / 1024:.2f} KB"
    if size < 1024 ** 3:
        return f"{size / 1024 ** 2:.2f} MB"
    return f"{size / 1024 ** 3:.2f} GB"


def format_date(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except ValueError:
        return value


templates.env.filters["filesize"] = format_file_size
templates.env.filters["shortdate"] = format_date


def _redirect_to_drive(store: SessionStore, session) -> RedirectResponse:
    response = RedirectResponse(url="/drive", status_code=303)
    store.persist(response, session)
    return response


@router.get("/", response_class=HTMLResponse)
def home(request: Request, user_id: Optional[str] = Depends(current_user), settings: Settings = Depends(get_settings)):
    if user_id:
        return RedirectResponse(url="/drive", status_code=303)
    return RedirectResponse(url=settings.sign_in_url, status_code=303)


# --- the drive page: current folder, image grid or search results ---
@router.get("/drive", response_class=HTMLResponse)
def drive_page(
    request: Request,
    view: str = VIEW_ALL,
    query: str = "",
    user_id: Optional[str] = Depends(current_user),
    settings: Settings = Depends(get_settings),
    drive: MisskeyClient = Depends(get_drive),
    service: DriveService = Depends(get_service),
):
    if not user_id:
        return RedirectResponse(url=settings.sign_in_url, status_code=303)
    if view not in (VIEW_ALL, VIEW_IMAGES):
        view = VIEW_ALL

    store = SessionStore(settings, drive, user_id)
    session = None
    listing = Listing()
    error = None
    try:
        session = store.load(request.cookies.get(settings.session_cookie_name))
        if view == VIEW_IMAGES:
            session = store.reset(session)

        if query.strip():
            listing = service.search(query.strip(), view, session.folder_history[0].id)
        else:
            listing = service.list_folder(session.current_folder_id, view, session.folder_path)
    except DriveError as exc:
        logger.error("[drive_page] failed to load drive; user_id:%s", user_id, exc_info=True)
        error = str(exc)

    response = templates.TemplateResponse(
        request,
        "drive.html",
        {
            "user_id": user_id,
            "view": view,
            "query": query,
            "session": session,
            "files": listing.files,
            "folders": listing.folders,
            "bucket_path": user_root_path(user_id, settings.bucket_folder_name),
            "error": error,
        },
    )
    if session is not None:
        store.persist(response, session)
    return response


# --- navigation: each transition updates the cookie and goes back to /drive ---
@router.get("/drive/open/{folder_id}")
def open_folder(
    folder_id: str,
    request: Request,
    user_id: Optional[str] = Depends(current_user),
    settings: Settings = Depends(get_settings),
    drive: MisskeyClient = Depends(get_drive),
):
    if not user_id:
        return RedirectResponse(url=settings.sign_in_url, status_code=303)
    store = SessionStore(settings, drive, user_id)
    session = store.load(request.cookies.get(settings.session_cookie_name))
    return _redirect_to_drive(store, store.advance(session, folder_id))


@router.get("/drive/up")
def folder_up(
    request: Request,
    user_id: Optional[str] = Depends(current_user),
    settings: Settings = Depends(get_settings),
    drive: MisskeyClient = Depends(get_drive),
):
    if not user_id:
        return RedirectResponse(url=settings.sign_in_url, status_code=303)
    store = SessionStore(settings, drive, user_id)
    session = store.load(request.cookies.get(settings.session_cookie_name))
    return _redirect_to_drive(store, store.ascend(session))


@router.get("/drive/crumb/{folder_id}")
def crumb(
    folder_id: str,
    request: Request,
    user_id: Optional[str] = Depends(current_user),
    settings: Settings = Depends(get_settings),
    drive: MisskeyClient = Depends(get_drive),
):
    if not user_id:
        return RedirectResponse(url=settings.sign_in_url, status_code=303)
    store = SessionStore(settings, drive, user_id)
    session = store.load(request.cookies.get(settings.session_cookie_name))
    return _redirect_to_drive(store, store.rewind(session, folder_id))
