# wl_app/core/errors.py
from __future__ import annotations

from fastapi import status

EMAIL_EXISTS = "EMAIL_EXISTS"
USERNAME_EXISTS = "USERNAME_EXISTS"
INVALID_TOKEN = "INVALID_TOKEN"
WAITLIST_NOT_FOUND = "WAITLIST_NOT_FOUND"

CREATE_ERROR = "CREATE_ERROR"
FETCH_ERROR = "FETCH_ERROR"
VERIFY_ERROR = "VERIFY_ERROR"
UPDATE_ERROR = "UPDATE_ERROR"
STATS_ERROR = "STATS_ERROR"
EXPORT_ERROR = "EXPORT_ERROR"

_STATUS_BY_CODE = {
    EMAIL_EXISTS: status.HTTP_409_CONFLICT,
    USERNAME_EXISTS: status.HTTP_409_CONFLICT,
    INVALID_TOKEN: status.HTTP_400_BAD_REQUEST,
    WAITLIST_NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


class StorageError(Exception):
    """Storage failure carrying a machine-readable code."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def http_status(self) -> int:
        return _STATUS_BY_CODE.get(self.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    @property
    def is_internal(self) -> bool:
        return self.http_status >= 500

    def __repr__(self) -> str:
        return f"StorageError(code={self.code!r}, message={self.message!r})"
