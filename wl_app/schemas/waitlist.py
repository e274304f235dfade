# wl_app/schemas/waitlist.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

SignupStatus = Literal["pending", "verified", "invited", "declined"]

MAX_INTERESTS = 20
MAX_INTEREST_LEN = 100


def sanitize_text(value: Any) -> Any:
    """Trim and drop angle brackets from user supplied free text."""
    if not isinstance(value, str):
        return value
    return value.replace("<", "").replace(">", "").strip()


def _as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    # rows hold naive UTC datetimes
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)


# ---------- input ----------

class WaitlistSignupIn(BaseModel):
    fullName: str = Field(min_length=2, max_length=100)
    email: EmailStr
    referralSource: Optional[str] = Field(default=None, max_length=255)
    interests: Optional[List[str]] = None

    @field_validator("fullName", "referralSource", mode="before")
    @classmethod
    def _clean_text(cls, v):
        return sanitize_text(v)

    @field_validator("referralSource")
    @classmethod
    def _empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator("email", mode="before")
    @classmethod
    def _strip_email(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("interests", mode="before")
    @classmethod
    def _clean_interests(cls, v):
        if isinstance(v, list):
            return [sanitize_text(x) for x in v]
        return v

    @field_validator("interests")
    @classmethod
    def _check_interests(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        items = [x for x in v if x]
        if len(items) > MAX_INTERESTS:
            raise ValueError(f"at most {MAX_INTERESTS} interests allowed")
        if any(len(x) > MAX_INTEREST_LEN for x in items):
            raise ValueError(f"each interest must be at most {MAX_INTEREST_LEN} characters")
        return items or None


class WaitlistSignupUpdate(BaseModel):
    status: Optional[SignupStatus] = None
    priority: Optional[int] = Field(default=None, ge=0, le=10)
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("notes", mode="before")
    @classmethod
    def _clean_notes(cls, v):
        return sanitize_text(v)

    @model_validator(mode="after")
    def _require_field(self):
        if not self.changes():
            raise ValueError("at least one of status, priority or notes is required")
        return self

    def changes(self) -> Dict[str, Any]:
        """Column values to write; notes may be explicitly cleared with null."""
        out: Dict[str, Any] = {}
        if self.status is not None:
            out["status"] = self.status
        if self.priority is not None:
            out["priority"] = self.priority
        if "notes" in self.model_fields_set:
            out["notes"] = self.notes or None
        return out


class EmailVerificationIn(BaseModel):
    token: str = Field(min_length=1, max_length=256)

    @field_validator("token", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class BulkUpdateIn(BaseModel):
    signupIds: List[Annotated[int, Field(gt=0)]] = Field(min_length=1, max_length=1000)
    updates: WaitlistSignupUpdate

    @field_validator("signupIds")
    @classmethod
    def _dedupe(cls, v: List[int]) -> List[int]:
        return list(dict.fromkeys(v))


# ---------- output ----------

class SignupSummary(BaseModel):
    id: int
    fullName: str
    email: str
    timestamp: datetime
    status: str
    emailVerified: bool

    @classmethod
    def from_row(cls, row) -> "SignupSummary":
        return cls(
            id=row.id,
            fullName=row.full_name,
            email=row.email,
            timestamp=_as_utc(row.timestamp),
            status=row.status,
            emailVerified=bool(row.email_verified),
        )


class SignupOut(SignupSummary):
    verificationToken: Optional[str] = None
    verificationExpiry: Optional[datetime] = None
    referralSource: Optional[str] = None
    interests: Optional[List[str]] = None
    ipAddress: Optional[str] = None
    userAgent: Optional[str] = None
    notes: Optional[str] = None
    priority: int = 0
    invitedAt: Optional[datetime] = None
    declinedAt: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "SignupOut":
        base = SignupSummary.from_row(row).model_dump()
        return cls(
            **base,
            verificationToken=row.verification_token,
            verificationExpiry=_as_utc(row.verification_expiry),
            referralSource=row.referral_source,
            interests=row.interests,
            ipAddress=row.ip_address,
            userAgent=row.user_agent,
            notes=row.notes,
            priority=row.priority or 0,
            invitedAt=_as_utc(row.invited_at),
            declinedAt=_as_utc(row.declined_at),
        )


class StatsOut(BaseModel):
    totalSignups: int = 0
    todaySignups: int = 0
    weeklyGrowth: int = 0
    verifiedCount: int = 0
    pendingCount: int = 0
    invitedCount: int = 0
    declinedCount: int = 0


class SignupCreatedOut(BaseModel):
    message: str
    signup: SignupSummary


class SignupMessageOut(BaseModel):
    message: str
    signup: SignupSummary


class SignupUpdatedOut(BaseModel):
    message: str
    signup: SignupOut


class WaitlistListOut(BaseModel):
    signups: List[SignupOut]
    stats: StatsOut


class BulkUpdateOut(BaseModel):
    message: str
    updated: int
    missing: List[int] = []
