from typing import Optional

from fastapi import Depends, HTTPException, Request

from cloud_drive.core.config import Settings, get_settings
from cloud_drive.services.drive import DriveService
from cloud_drive.services.misskey import MisskeyClient, drive_client_from_settings
from cloud_drive.services.resolver import owns_path
from cloud_drive.services.session import SessionStore


# --- drive client dependency: one client per request, closed afterwards ---
def get_drive(settings: Settings = Depends(get_settings)):
    drive = drive_client_from_settings(settings)
    try:
        yield drive
    finally:
        drive.close()


# --- helper: caller id supplied by the identity provider in front of us ---
def get_current_user_id(request: Request, settings: Settings) -> Optional[str]:
    user_id = request.headers.get(settings.auth_user_header, "").strip()
    return user_id or None


def current_user(request: Request, settings: Settings = Depends(get_settings)) -> Optional[str]:
    return get_current_user_id(request, settings)


def require_user(user_id: Optional[str] = Depends(current_user)) -> str:
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


def check_owner(path: str, user_id: str, settings: Settings) -> None:
    if not owns_path(path, user_id, settings.bucket_folder_name):
        raise HTTPException(status_code=403, detail="Access denied")


def get_service(
    drive: MisskeyClient = Depends(get_drive),
    settings: Settings = Depends(get_settings),
) -> DriveService:
    return DriveService(drive, bucket=settings.bucket_folder_name, limit=settings.list_limit)


def get_session_store(
    user_id: str = Depends(require_user),
    drive: MisskeyClient = Depends(get_drive),
    settings: Settings = Depends(get_settings),
) -> SessionStore:
    return SessionStore(settings, drive, user_id)
