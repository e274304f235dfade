from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, String, Text, Integer, Boolean, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from wl_app.db.base import Base

SIGNUP_STATUSES = ("pending", "verified", "invited", "declined")


def utcnow() -> datetime:
    """Naive UTC now; all DateTime columns hold naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class WaitlistSignup(Base):
    __tablename__ = "waitlist_signups"
    id: Mapped[int] = mapped_column(primary_key=True)
    full_name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(320), unique=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    status: Mapped[str] = mapped_column(String(16), default="pending")
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    verification_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    verification_expiry: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    referral_source: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    interests: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, default=0)
    invited_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    declined_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("waitlist_email_idx", "email"),
        Index("waitlist_status_idx", "status"),
        Index("waitlist_timestamp_idx", "timestamp"),
    )
