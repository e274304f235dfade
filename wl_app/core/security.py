from __future__ import annotations
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional, Set

from jose import jwt, JWTError
from passlib.context import CryptContext

from wl_app.core.config import settings, logger

if TYPE_CHECKING:
    from wl_app.storage.users import UserStorage

pwd = CryptContext(schemes=["argon2"], deprecated="auto")
ALGO = "HS512"

ACCESS_DENIED = "Access denied. Only authorized administrators can access the admin dashboard."


class AdminAuthError(Exception):
    def __init__(self, message: str = ACCESS_DENIED):
        super().__init__(message)
        self.message = message


def hash_password(p: str) -> str:
    return pwd.hash(p)


def verify_password(p: str, h: str) -> bool:
    return pwd.verify(p, h)


def _to_set(v: Optional[Iterable[str] | str]) -> Set[str]:
    if v is None:
        return set()
    if isinstance(v, str):
        parts = [x.strip().lower() for x in v.split(",")]
        return {x for x in parts if x}
    return {str(x).strip().lower() for x in v if str(x).strip()}


class AdminAllowList:
    """
    Set of emails allowed into the admin dashboard.

    Combines a fixed set (from settings) with an optional file holding one
    email per line. The file is re-read whenever its mtime changes, so an
    address can be added or revoked without a restart.
    """

    def __init__(self, emails: Optional[Iterable[str] | str] = None, path: Optional[str | Path] = None):
        self._static = _to_set(emails)
        self._path = Path(path) if path else None
        self._file_emails: Set[str] = set()
        self._mtime: Optional[float] = None

    @classmethod
    def from_settings(cls) -> "AdminAllowList":
        return cls(settings.admin_emails, settings.admin_emails_file)

    def _read_file(self) -> Set[str]:
        out: Set[str] = set()
        for line in self._path.read_text(encoding="utf-8").splitlines():
            line = line.split("#", 1)[0].strip().lower()
            if line:
                out.add(line)
        return out

    def reload(self, force: bool = False) -> None:
        if self._path is None:
            return
        try:
            mtime = self._path.stat().st_mtime
        except FileNotFoundError:
            if self._mtime is not None:
                logger.warning(f"admin allow-list file {self._path} disappeared; clearing file entries")
            self._file_emails = set()
            self._mtime = None
            return
        if not force and mtime == self._mtime:
            return
        self._file_emails = self._read_file()
        self._mtime = mtime
        logger.info(f"admin allow-list loaded {len(self._file_emails)} entries from {self._path}")

    def emails(self) -> Set[str]:
        self.reload()
        return self._static | self._file_emails

    def __contains__(self, email: object) -> bool:
        if not isinstance(email, str):
            return False
        return email.strip().lower() in self.emails()


def create_admin_token(email: str, *, secret: Optional[str] = None, hours: Optional[int] = None) -> str:
    now = datetime.now(tz=timezone.utc)
    exp = now + timedelta(hours=hours if hours is not None else settings.admin_token_hours)
    payload = {"sub": email, "email": email, "iat": now, "exp": exp}
    return jwt.encode(payload, secret or settings.jwt_secret, algorithm=ALGO)


def verify_admin_token(token: str, allow_list: AdminAllowList, *, secret: Optional[str] = None) -> str:
    """Decode an admin token and return its email if still allowed."""
    try:
        payload = jwt.decode(token, secret or settings.jwt_secret, algorithms=[ALGO])
    except JWTError:
        raise AdminAuthError("Invalid or expired token")

    email = str(payload.get("email") or payload.get("sub") or "").strip().lower()
    if not email:
        raise AdminAuthError("Invalid token payload")
    if email not in allow_list:
        raise AdminAuthError(ACCESS_DENIED)
    return email


async def authenticate_admin(
    email: str,
    password: Optional[str],
    allow_list: AdminAllowList,
    users: "UserStorage",
    require_password: Optional[bool] = None,
) -> str:
    """
    Check an admin login and issue a bearer token.

    The allow-list is authoritative. When a ``users`` row exists for the
    email it must be active, and a supplied password must match its hash.
    With ``require_password`` the row and password become mandatory.
    """
    if require_password is None:
        require_password = settings.admin_require_password

    email = (email or "").strip().lower()
    if email not in allow_list:
        logger.warning(f"admin auth denied for {email}")
        raise AdminAuthError(ACCESS_DENIED)

    user = await users.get_user_by_username(email)
    if user is not None:
        if not user.is_active:
            raise AdminAuthError("Account is disabled")
        if password is not None or require_password:
            if not password or not verify_password(password, user.password_hash):
                raise AdminAuthError("Invalid credentials")
        await users.record_login(user.id)
    elif require_password:
        raise AdminAuthError("Invalid credentials")

    logger.info(f"admin auth granted for {email}")
    return create_admin_token(email)
