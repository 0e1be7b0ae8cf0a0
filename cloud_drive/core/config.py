# cloud_drive/core/config.py
from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Drive backend. Left empty here so the app boots without them; the first
    # request that needs the drive fails with DriveConfigError instead.
    misskey_base_url: str = ""
    misskey_token: str = ""

    bucket_folder_name: str = "bucket"

    session_cookie_name: str = "drive-session"
    session_max_age: int = 60 * 60 * 24  # 1 day

    environment: str = "development"

    # Caller identity is set by the identity provider in front of the app
    auth_user_header: str = "X-Auth-Request-User"
    sign_in_url: str = "/sign-in"

    list_limit: int = Field(default=100, validation_alias="DRIVE_LIST_LIMIT")
    request_timeout: float = Field(default=30.0, validation_alias="DRIVE_REQUEST_TIMEOUT")

    log_level: str = "INFO"

    # Tell pydantic-settings to load from .env at project root
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore any extra stuff in .env
        populate_by_name=True,
    )

    @property
    def secure_cookies(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
