"""Errors raised while talking to the drive backend."""

from __future__ import annotations

from typing import Any


class DriveError(Exception):
    """Base class for every failure on the drive side of a request."""


class DriveConfigError(DriveError):
    """Raised when the drive base URL or token is not configured."""


class DriveTransportError(DriveError):
    """Raised when the drive cannot be reached (connection, timeout)."""


class DriveApiError(DriveError):
    """Raised when the drive API returns a non-2xx response."""

    def __init__(self, status_code: int, endpoint: str, message: str) -> None:
        super().__init__(f"Misskey API error {status_code} on {endpoint}: {message}")
        self.status_code = status_code
        self.endpoint = endpoint
        self.message = message


class DriveResponseError(DriveError):
    """Raised when the drive answers 2xx with a body that is not the expected JSON."""

    def __init__(self, endpoint: str, message: str) -> None:
        super().__init__(f"Unexpected Misskey response on {endpoint}: {message}")
        self.endpoint = endpoint
        self.message = message


class UploadAbortedError(DriveError):
    """Raised when one upload of a batch fails.

    Files uploaded before the failure are kept upstream (no rollback) and are
    reported through ``results``; files after it are never attempted.
    """

    def __init__(self, filename: str, cause: DriveError, results: list[Any]) -> None:
        super().__init__(f"Failed to upload file {filename}: {cause}")
        self.filename = filename
        self.cause = cause
        self.results = results
